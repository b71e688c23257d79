"""Canonical Cadremploi job URLs: ``detail_offre?offreId=<id>`` and nothing else."""
from __future__ import annotations

import re

CADREMPLOI_HOST = "www.cadremploi.fr"
CADREMPLOI_BASE = f"https://{CADREMPLOI_HOST}"
OFFRE_ID_PATTERN = re.compile(r"offreId=([0-9]+)", re.IGNORECASE)


def build_canonical_url(offre_id: str) -> str:
    return f"{CADREMPLOI_BASE}/emploi/detail_offre?offreId={offre_id}"


def extract_offre_id(url: str | None) -> str | None:
    if not url:
        return None
    m = OFFRE_ID_PATTERN.search(url)
    return m.group(1) if m else None


def is_canonical_candidate(url: str | None) -> bool:
    """On the portal host and already carrying a job id."""
    return bool(url) and CADREMPLOI_HOST in url and "offreId=" in url


def simplify_url(url: str | None) -> str | None:
    """Drop every query parameter except the job id; unknown shapes pass through."""
    if url is None:
        return None
    offre_id = extract_offre_id(url)
    if offre_id is None:
        return url
    return build_canonical_url(offre_id)


def absolute_url(path: str) -> str:
    return CADREMPLOI_BASE + path


def decode_entities(text: str) -> str:
    """The handful of entities Cadremploi emits in titles."""
    return (
        text.replace("&amp;", "&")
        .replace("&lt;", "<")
        .replace("&gt;", ">")
        .replace("&quot;", '"')
        .replace("&#39;", "'")
        .replace("&#x27;", "'")
        .replace("&apos;", "'")
    )
