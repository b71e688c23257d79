from __future__ import annotations

from abc import ABC, abstractmethod

from jobmail.models import URLExtractionResult


class URLExtractor(ABC):
    """One strategy for pulling job URLs out of an email body."""

    portal_name: str | None = None

    @abstractmethod
    def can_handle(self, sender: str, subject: str) -> bool:
        pass

    @abstractmethod
    def extract_urls(self, content: str, subject: str) -> URLExtractionResult:
        pass
