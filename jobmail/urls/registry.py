from __future__ import annotations

from jobmail.log import get_logger
from jobmail.models import Delegate, ExtractionOutcome, Failed, Resolved
from jobmail.urls.base import URLExtractor
from jobmail.urls.default import DefaultURLExtractor

log = get_logger(__name__)


class URLExtractorRegistry:
    """Specialized extractors in priority order, then the generic fallback.

    An unsuccessful extraction is not an error: it comes back as ``Delegate``
    so the caller hands the email to the LLM.
    """

    def __init__(self, default: URLExtractor | None = None) -> None:
        self.extractors: list[URLExtractor] = []
        self.default = default or DefaultURLExtractor()

    def register(self, extractor: URLExtractor) -> None:
        self.extractors.append(extractor)
        log.info("Registered URL extractor: %s", extractor.__class__.__name__)

    @property
    def extractor_count(self) -> int:
        return len(self.extractors)

    def find(self, sender: str, subject: str) -> URLExtractor:
        for extractor in self.extractors:
            if extractor.can_handle(sender, subject):
                return extractor
        return self.default

    def extract_urls(self, sender: str, subject: str, content: str) -> ExtractionOutcome:
        extractor = self.find(sender, subject)
        name = extractor.__class__.__name__
        log.debug("Using URL extractor %s", name)
        try:
            result = extractor.extract_urls(content, subject)
        except Exception as exc:
            log.warning("%s raised %s: %s", name, exc.__class__.__name__, exc)
            return Failed(reason=str(exc))

        if not result.success:
            log.debug("%s delegated to LLM: %s", name, result.error_message)
            return Delegate(job_portal_name=result.job_portal_name, reason=result.error_message or "")
        return Resolved(result)
