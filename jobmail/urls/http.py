"""Browser-like HTTP GET helpers. Portals reject non-browser agents and HEAD."""
from __future__ import annotations

import requests

BROWSER_HEADERS: dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "fr-FR,fr;q=0.9,en-US;q=0.8,en;q=0.7",
}


def get(url: str, *, timeout: float, allow_redirects: bool = True) -> requests.Response:
    """Plain GET with browser headers. Callers close the response (``with``)."""
    return requests.get(
        url,
        headers=BROWSER_HEADERS,
        timeout=timeout,
        allow_redirects=allow_redirects,
    )
