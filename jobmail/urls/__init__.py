from .base import URLExtractor
from .cadremploi import CadremploiExtractor
from .default import DefaultURLExtractor
from .page_parser import CadremploiPageParser
from .registry import URLExtractorRegistry
from .resolver import URLRedirectResolver
from .validator import ValidationResult, validate_url

from jobmail.config import Settings

__all__ = [
    "URLExtractor", "CadremploiExtractor", "DefaultURLExtractor",
    "CadremploiPageParser", "URLExtractorRegistry", "URLRedirectResolver",
    "ValidationResult", "validate_url", "build_registry",
]


def build_registry(settings: Settings) -> URLExtractorRegistry:
    page_parser = CadremploiPageParser(max_job_age_days=settings.max_job_age_days)
    registry = URLExtractorRegistry()
    registry.register(
        CadremploiExtractor(
            URLRedirectResolver(page_parser),
            page_parser,
            use_llm_for_long_html=settings.use_llm_for_long_html,
        )
    )
    return registry
