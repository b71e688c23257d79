"""Cadremploi alert emails: one HTML message, many job links behind tracking redirects."""
from __future__ import annotations

import re

from jobmail.log import get_logger, truncate
from jobmail.models import (
    ExtractionMethod,
    JobOpportunity,
    URLExtractionResult,
    UrlReferenceType,
)
from jobmail.urls.base import URLExtractor
from jobmail.urls.canonical import decode_entities
from jobmail.urls.page_parser import NEUTRAL_FIT_SCORE, PORTAL_NAME, CadremploiPageParser
from jobmail.urls.resolver import URLRedirectResolver
from jobmail.urls.validator import validate_url

log = get_logger(__name__)

SENDER_ADDRESS = "offres@alertes.cadremploi.fr"

JOB_LINK_PATTERN = re.compile(
    r'<a\s+href="(https://r\.emails[^"]+\.cadremploi\.fr/tr/cl/[^"]+)"[^>]+title="([^"]+)"[^>]*>',
    re.IGNORECASE | re.DOTALL,
)

# Footer and social links share the anchor shape of job links.
EXCLUDED_TITLES: frozenset[str] = frozenset(
    {"Cadremploi", "Facebook", "X", "Instagram", "Youtube", "LinkedIn", "Twitter"}
)


def is_valid_job_title(title: str | None) -> bool:
    if not title or not title.strip():
        return False
    if title.strip() in EXCLUDED_TITLES:
        return False
    low = title.lower()
    if "voir" in low and "offre" in low:
        return False
    return 5 <= len(title) <= 200


class CadremploiExtractor(URLExtractor):
    portal_name = PORTAL_NAME

    def __init__(
        self,
        resolver: URLRedirectResolver | None = None,
        page_parser: CadremploiPageParser | None = None,
        *,
        use_llm_for_long_html: bool = False,
    ) -> None:
        self.page_parser = page_parser or CadremploiPageParser()
        self.resolver = resolver or URLRedirectResolver(self.page_parser)
        self.use_llm_for_long_html = use_llm_for_long_html

    def can_handle(self, sender: str, subject: str) -> bool:
        return SENDER_ADDRESS in (sender or "").lower()

    def extract_urls(self, content: str, subject: str) -> URLExtractionResult:
        """Never succeeds: one alert holds many offers, see ``extract_job_opportunities``."""
        if not content or not content.strip():
            return URLExtractionResult.failure("Email content is null or empty", PORTAL_NAME)
        if self.use_llm_for_long_html:
            return URLExtractionResult.failure(
                "Configured to use LLM for HTML parsing", PORTAL_NAME, ExtractionMethod.LLM
            )
        return URLExtractionResult.failure(
            "Use extract_job_opportunities() for complete extraction", PORTAL_NAME
        )

    def find_job_links(self, content: str) -> list[tuple[str, str]]:
        """``(redirect_url, title)`` for every anchor that looks like a job posting."""
        links: list[tuple[str, str]] = []
        for m in JOB_LINK_PATTERN.finditer(content or ""):
            title = decode_entities(m.group(2))
            if is_valid_job_title(title):
                links.append((m.group(1), title))
        return links

    def extract_job_opportunities(
        self, content: str, subject: str = ""
    ) -> list[JobOpportunity] | None:
        """Resolve each job link in the alert; None when nothing usable was found."""
        if not content or not content.strip():
            log.warning("Cadremploi email content is empty")
            return None

        opportunities: list[JobOpportunity] = []
        try:
            for redirect_url, title in self.find_job_links(content):
                check = validate_url(redirect_url)
                if not check.valid:
                    log.warning(
                        "Invalid redirect URL for '%s': %s", truncate(title, 50), check.error
                    )
                    continue
                opportunities.extend(self._resolve_link(redirect_url, title))
        except Exception:
            # caller falls back to the LLM on None
            log.exception("Cadremploi extraction failed")
            return None

        if not opportunities:
            log.warning("No valid job opportunities found in Cadremploi HTML")
            return None
        log.info("Cadremploi: %d job(s) extracted by regex", len(opportunities))
        return opportunities

    def _resolve_link(self, redirect_url: str, title: str) -> list[JobOpportunity]:
        direct_url = self.resolver.resolve(redirect_url, title)

        if direct_url is None:
            log.warning("Redirect unresolved for '%s', keeping tracking URL", truncate(title, 50))
            direct_url = redirect_url
        else:
            page = self.page_parser.parse_page(direct_url, title)
            if page.fetch_success and page.is_expired:
                expired = JobOpportunity(
                    title=f"{title} (expired)",
                    job_portal_name=PORTAL_NAME,
                    job_offer_url_description_portal=direct_url,
                    url_reference_type=UrlReferenceType.NOT_FINAL_REFERENCE,
                    fit_score=NEUTRAL_FIT_SCORE,
                )
                return [expired, *self.page_parser.extract_recent_jobs(direct_url, title)]

            if not self.resolver.is_url_accessible(direct_url):
                log.warning("Direct URL not accessible, keeping tracking URL: %s", direct_url)
                direct_url = redirect_url

        return [
            JobOpportunity(
                title=title,
                job_portal_name=PORTAL_NAME,
                job_offer_url_description_portal=direct_url,
                url_reference_type=UrlReferenceType.DIRECT,
                fit_score=NEUTRAL_FIT_SCORE,
            )
        ]
