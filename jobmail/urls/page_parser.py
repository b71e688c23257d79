"""Detect expired Cadremploi offers and mine their "similar offers" pages.

When a posting is gone, Cadremploi serves a page headed "Ces autres offres
similaires" at the same URL. That page carries "Candidature rapide" links and
neighbouring postings tagged "Publiée il y a N jours", which we reuse.
"""
from __future__ import annotations

import re

import requests

from jobmail.log import get_logger, truncate
from jobmail.models import JobCard, JobOpportunity, ParsedJobPage, UrlReferenceType
from jobmail.urls import http
from jobmail.urls.canonical import absolute_url, decode_entities, simplify_url

log = get_logger(__name__)

PORTAL_NAME = "Cadremploi"
FETCH_TIMEOUT = 10
NEUTRAL_FIT_SCORE = 5.0
UNKNOWN_AGE_DAYS = 999
MAX_PUBLICATION_DATES = 5

SIMILAR_OFFERS_PATTERN = re.compile(
    r"Ces autres offres similaires|Les offres similaires", re.IGNORECASE
)
QUICK_APPLY_PATTERN = re.compile(
    r'href="(/emploi/detail_offre\?offreId=([0-9]+))"[^>]*>[^<]*Candidature rapide',
    re.IGNORECASE | re.DOTALL,
)
PUBLICATION_DATE_PATTERN = re.compile(
    r"Publiée il y a (\d+) (jours?|heures?|minutes?)", re.IGNORECASE
)
JOB_LINK_PATTERN = re.compile(
    r'<a[^>]+href="(/emploi/detail_offre\?offreId=([0-9]+))"[^>]*>\s*'
    r"(?:<[^>]+>)*\s*([^<]+?)\s*(?:</[^>]+>)*\s*</a>",
    re.IGNORECASE | re.DOTALL,
)
CARD_AGE_PATTERN = re.compile(r"Publiée il y a (\d+) (jours?|heures?)", re.IGNORECASE)
SECTION_SPLIT = re.compile(r"</article>|</div>")


class CadremploiPageParser:
    def __init__(self, max_job_age_days: int = 7, timeout: float = FETCH_TIMEOUT) -> None:
        self.max_job_age_days = max_job_age_days
        self.timeout = timeout

    def fetch_page(self, url: str) -> str | None:
        """HTML of *url* on HTTP 200, else None. Network errors are logged, not raised."""
        try:
            with http.get(url, timeout=self.timeout) as r:
                if r.status_code != 200:
                    log.warning("Page fetch HTTP %d: %s", r.status_code, truncate(url, 80))
                    return None
                return r.text
        except (requests.RequestException, OSError) as exc:
            log.warning("Page fetch error for %s: %s", truncate(url, 80), exc)
            return None

    def parse_page(self, url: str, expected_title: str | None = None) -> ParsedJobPage:
        page = ParsedJobPage(original_url=url)
        html = self.fetch_page(url)
        if not html:
            return page

        page.fetch_success = True
        page.is_similar_offers_page = bool(SIMILAR_OFFERS_PATTERN.search(html))
        if not page.is_similar_offers_page:
            page.direct_job_url = url
            return page

        log.info("Offer expired (similar offers page): %s", truncate(expected_title, 60))
        page.candidature_rapide_urls = [
            absolute_url(m.group(1)) for m in QUICK_APPLY_PATTERN.finditer(html)
        ]
        for m in PUBLICATION_DATE_PATTERN.finditer(html):
            if len(page.publication_dates) >= MAX_PUBLICATION_DATES:
                break
            page.publication_dates.append(f"Publiée il y a {m.group(1)} {m.group(2)}")
        if not page.candidature_rapide_urls:
            log.debug("No 'Candidature rapide' link on %s", truncate(url, 80))
        return page

    def extract_job_cards(self, html: str) -> list[JobCard]:
        """Job cards of a similar-offers page, one per coarse HTML section."""
        cards: list[JobCard] = []
        for section in SECTION_SPLIT.split(html):
            link = JOB_LINK_PATTERN.search(section)
            if not link:
                continue

            title = decode_entities(re.sub(r"\s+", " ", link.group(3)).strip())
            if len(title) < 10 or "Voir" in title or "Postuler" in title:
                continue

            age = UNKNOWN_AGE_DAYS
            when = CARD_AGE_PATTERN.search(section)
            if when:
                age = 0 if "heure" in when.group(2).lower() else int(when.group(1))

            cards.append(JobCard(title=title, url=absolute_url(link.group(1)), age_days=age))
        return cards

    def extract_recent_jobs(
        self, page_url: str, original_title: str | None = None
    ) -> list[JobOpportunity]:
        """Postings on the similar-offers page no older than ``max_job_age_days``."""
        html = self.fetch_page(simplify_url(page_url) or page_url)
        if not html:
            log.warning("Could not fetch similar offers for %s", truncate(original_title, 60))
            return []

        jobs: list[JobOpportunity] = []
        for card in self.extract_job_cards(html):
            if card.age_days > self.max_job_age_days:
                log.debug("Skipping old posting (%d days): %s", card.age_days, card.title)
                continue
            jobs.append(
                JobOpportunity(
                    title=card.title,
                    job_portal_name=PORTAL_NAME,
                    job_offer_url_description_portal=card.url,
                    url_reference_type=UrlReferenceType.DIRECT,
                    fit_score=NEUTRAL_FIT_SCORE,
                )
            )
        log.info(
            "Similar offers: %d recent job(s) (≤ %d days)", len(jobs), self.max_job_age_days
        )
        return jobs
