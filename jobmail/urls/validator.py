"""Syntactic URL validation."""
from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlparse


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: str | None = None

    def __bool__(self) -> bool:
        return self.valid


def validate_url(url: str | None) -> ValidationResult:
    if url is None or not url.strip():
        return ValidationResult(False, "URL is null or empty")

    url = url.strip()
    if not (url.startswith("http://") or url.startswith("https://")):
        return ValidationResult(False, "URL must start with http:// or https://")

    try:
        parsed = urlparse(url)
        host = parsed.hostname
        parsed.port  # non-numeric port raises
    except ValueError as exc:
        return ValidationResult(False, f"Malformed URL: {exc}")
    if not host:
        return ValidationResult(False, "URL has no host")

    if any(c.isspace() for c in url):
        return ValidationResult(False, "URL contains spaces")

    return ValidationResult(True)
