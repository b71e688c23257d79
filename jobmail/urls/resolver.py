"""Resolve tracking redirects from alert emails to canonical job URLs."""
from __future__ import annotations

from urllib.parse import urlsplit

import requests

from jobmail.log import get_logger, truncate
from jobmail.urls import http
from jobmail.urls.canonical import (
    CADREMPLOI_HOST,
    build_canonical_url,
    extract_offre_id,
    is_canonical_candidate,
    simplify_url,
)
from jobmail.urls.page_parser import CadremploiPageParser

log = get_logger(__name__)

MAX_REDIRECTS = 5
HOP_TIMEOUT = 5


class URLRedirectResolver:
    """Walks redirect chains by hand so each ``Location`` can be inspected.

    The walk stops as soon as a hop points at the portal host with an
    ``offreId``: the portal answers 403 to session-less follow-up requests.
    """

    def __init__(
        self,
        page_parser: CadremploiPageParser | None = None,
        *,
        max_redirects: int = MAX_REDIRECTS,
        timeout: float = HOP_TIMEOUT,
    ) -> None:
        self.page_parser = page_parser or CadremploiPageParser()
        self.max_redirects = max_redirects
        self.timeout = timeout

    def resolve(self, redirect_url: str | None, expected_title: str | None = None) -> str | None:
        """Canonical URL for *redirect_url*, or None (caller keeps the redirect URL)."""
        if not redirect_url or not redirect_url.strip():
            return None

        if is_canonical_candidate(redirect_url):
            return simplify_url(redirect_url)

        offre_id = extract_offre_id(redirect_url)
        if offre_id:
            return build_canonical_url(offre_id)

        log.debug("Following redirect: %s", truncate(redirect_url, 70))
        try:
            final_url = self.follow_redirects(redirect_url)
        except (requests.RequestException, OSError) as exc:
            log.warning("Failed to follow redirect %s: %s", truncate(redirect_url, 70), exc)
            return None

        if final_url is None:
            log.warning("Could not resolve %s", truncate(redirect_url, 70))
            return None

        if is_canonical_candidate(final_url):
            page = self.page_parser.parse_page(final_url, expected_title)
            if page.fetch_success and page.is_expired:
                if page.has_valid_apply_url:
                    log.info("Expired offer, using quick-apply URL %s", page.best_url)
                    return simplify_url(page.best_url)
                log.warning("Expired offer without quick-apply link: %s", final_url)

        return simplify_url(final_url)

    def follow_redirects(self, start_url: str) -> str | None:
        """Last URL reached within ``max_redirects`` hops; None on an unexpected status."""
        current = start_url
        for hop in range(1, self.max_redirects + 1):
            with http.get(current, timeout=self.timeout, allow_redirects=False) as r:
                status = r.status_code
                location = r.headers.get("Location")

            if 300 <= status < 400:
                if location is None:
                    log.warning("Redirect without Location header at %s", truncate(current, 70))
                    return current
                if location.startswith("/"):
                    parts = urlsplit(current)
                    location = f"{parts.scheme}://{parts.hostname}{location}"
                log.debug("Redirect %d: %s", hop, location)
                if is_canonical_candidate(location):
                    return location
                current = location
            elif status == 200:
                return current
            elif status == 403 and CADREMPLOI_HOST in current:
                # portal wants a session cookie; the URL itself is what we need
                return current
            else:
                log.warning("Unexpected HTTP %d at %s", status, truncate(current, 70))
                return None

        log.warning("Max redirects (%d) reached, keeping %s", self.max_redirects, current)
        return current

    def is_url_accessible(self, url: str | None) -> bool:
        if not url or not url.strip():
            return False
        try:
            with http.get(url, timeout=self.timeout) as r:
                return r.status_code == 200
        except (requests.RequestException, OSError):
            return False
