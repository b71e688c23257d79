"""Fallback extractor: first http(s) link in the message."""
from __future__ import annotations

import re

from jobmail.log import get_logger
from jobmail.models import ExtractionMethod, URLExtractionResult
from jobmail.urls.base import URLExtractor
from jobmail.urls.validator import validate_url

log = get_logger(__name__)

URL_PATTERN = re.compile(r"https?://[^\s\"'<>]+", re.IGNORECASE)
_TRAILING_PUNCTUATION = ".,);:!"


class DefaultURLExtractor(URLExtractor):
    def can_handle(self, sender: str, subject: str) -> bool:
        return True

    def extract_urls(self, content: str, subject: str) -> URLExtractionResult:
        if not content or not content.strip():
            return URLExtractionResult.failure("Email content is null or empty")

        match = URL_PATTERN.search(content)
        if not match:
            return URLExtractionResult.failure("No URLs found in email content")

        url = match.group(0).rstrip(_TRAILING_PUNCTUATION)
        check = validate_url(url)
        if not check.valid:
            log.debug("First URL rejected (%s): %s", check.error, url)
            return URLExtractionResult.failure(f"Invalid URL: {check.error}")

        return URLExtractionResult(
            description_on_portal=url,
            success=True,
            method=ExtractionMethod.REGEX,
        )
