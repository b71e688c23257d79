"""Keyword tables used for mailbox search and relevance scoring.

The defaults below are empirically tuned; scores in the test-suite depend on
them, so change them together with the tests.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from jobmail.log import get_logger

log = get_logger(__name__)

TOPIC_KEYWORDS: dict[str, tuple[str, ...]] = {
    "job": (
        "offer", "offre", "opportunity", "poste", "apply",
        "application", "interview", "vacancy", "hiring", "position",
        "role", "opening", "candidate", "recruiter", "recruitment",
        "candidature", "recrutement", "candidato", "opportunità", "posizione",
    ),
    "freelance": (
        "freelance", "contract", "consultant", "project", "gig",
        "independent", "contractor", "remote work", "consulting",
    ),
    "internship": (
        "internship", "intern", "stage", "stagiaire", "trainee",
        "apprenticeship", "student position",
    ),
}

TRUSTED_DOMAINS: tuple[str, ...] = (
    "linkedin.com", "indeed.com", "glassdoor.com", "monster.com",
    "hellowork.com", "apec.fr", "cadremploi.fr", "welcometothejungle.com",
    "angellist.com", "hired.com", "triplebyte.com", "talent.io", "dice.com",
    "ziprecruiter.com", "careerbuilder.com", "workday.com", "greenhouse.io",
    "lever.co", "smartrecruiters.com", "jobs.lever.co", "tekkit.io",
)

BLOCKED_DOMAINS: tuple[str, ...] = (
    "meetup.com", "eventbrite.com", "luma.co", "substack.com", "beehiiv.com",
    "ghost.io", "darty.com", "fnac.com", "amazon.fr", "cdiscount.com",
    "news.darty.com", "bolt.eu", "uber.com", "deliveroo.com", "skyscanner.com",
    "estateguru.co", "boursorama.fr", "fortuneo.fr", "ca-des-savoie.fr",
    "mygreatlearning.com", "coursera.org", "udemy.com", "edx.org",
    "facebook.com", "twitter.com", "instagram.com",
)

PROMO_TOKENS: tuple[str, ...] = (
    "réduction", "discount", "promo", "bon plan", "deal", "sale", "coupon",
    "voucher", "limited offer", "special price", "prix spécial", "€", "$",
    "% off", "gratuit", "free shipping", "livraison gratuite",
)

FINANCIAL_TOKENS: tuple[str, ...] = (
    "investment opportunity", "invest", "etf", "trading", "crypto", "stock",
    "actions", "bourse", "dividende", "rendement",
)

EVENT_TOKENS: tuple[str, ...] = (
    "appena programmati", "just scheduled", "upcoming event", "rsvp",
    "speaker series", "workshop", "demo night", "networking event",
    "tech talk", "conference", "webinar", "événement à venir",
)

TRAVEL_TOKENS: tuple[str, ...] = (
    "flight", "vol", "voyage", "booking", "reservation", "hotel",
    "baisse de prix", "price drop", "travel alert",
)

EDUCATION_TOKENS: tuple[str, ...] = (
    "learn this", "past learners", "program enrollment", "course",
    "formation en ligne", "online learning", "certification program",
)

NEWSLETTER_TOKENS: tuple[str, ...] = (
    "newsletter", "daily digest", "weekly roundup", "hebdomadaire",
    "job alert", "job news", "recommended for you", "jobs you might like",
    "new jobs matching", "career advice", "career tips", "guide to",
)

STRONG_OFFER_PHRASES: tuple[str, ...] = (
    "apply now", "apply for this position", "submit your application",
    "application deadline", "apply before", "submit resume", "send your cv",
    "postuler maintenant", "envoyer votre cv", "join our team as",
    "we're hiring a", "we are looking for a",
)

MODERATE_OFFER_PHRASES: tuple[str, ...] = (
    "interview", "screening call", "position available", "opening for",
    "vacancy", "recrut", "hiring", "join our team", "join us",
    "offre de poste", "candidature", "poste à pourvoir",
)

STRUCTURE_MARKERS: tuple[str, ...] = ("position:", "role:", "poste :", "ruolo:")


@dataclass(frozen=True)
class KeywordCatalog:
    """Immutable keyword configuration shared by the scorer and the mailbox search."""

    topics: dict[str, tuple[str, ...]] = field(default_factory=lambda: dict(TOPIC_KEYWORDS))
    trusted_domains: tuple[str, ...] = TRUSTED_DOMAINS
    blocked_domains: tuple[str, ...] = BLOCKED_DOMAINS
    promo_tokens: tuple[str, ...] = PROMO_TOKENS
    financial_tokens: tuple[str, ...] = FINANCIAL_TOKENS
    event_tokens: tuple[str, ...] = EVENT_TOKENS
    travel_tokens: tuple[str, ...] = TRAVEL_TOKENS
    education_tokens: tuple[str, ...] = EDUCATION_TOKENS
    newsletter_tokens: tuple[str, ...] = NEWSLETTER_TOKENS
    strong_phrases: tuple[str, ...] = STRONG_OFFER_PHRASES
    moderate_phrases: tuple[str, ...] = MODERATE_OFFER_PHRASES
    structure_markers: tuple[str, ...] = STRUCTURE_MARKERS

    def keywords_for(self, topic: str) -> tuple[str, ...]:
        return self.topics.get(topic.lower(), (topic,))

    def search_keywords(self, topic: str, limit: int = 5) -> tuple[str, ...]:
        """Leading keywords of *topic*; IMAP servers choke on longer OR chains."""
        return self.keywords_for(topic)[:limit]

    def is_trusted_sender(self, sender: str) -> bool:
        s = (sender or "").lower()
        return any(d in s for d in self.trusted_domains)

    def is_blocked_sender(self, sender: str) -> bool:
        s = (sender or "").lower()
        return any(d in s for d in self.blocked_domains)


def _as_tuple(values: Any) -> tuple[str, ...]:
    return tuple(str(v).lower() for v in (values or []))


def load_catalog(path: Path | None = None) -> KeywordCatalog:
    """Built-in catalog, optionally overlaid with ``topics`` / ``*_domains`` from YAML."""
    catalog = KeywordCatalog()
    if path is None or not path.exists():
        return catalog

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    overrides: dict[str, Any] = {}
    if data.get("topics"):
        overrides["topics"] = {
            str(name).lower(): _as_tuple(words) for name, words in data["topics"].items()
        }
    if data.get("trusted_domains"):
        overrides["trusted_domains"] = _as_tuple(data["trusted_domains"])
    if data.get("blocked_domains"):
        overrides["blocked_domains"] = _as_tuple(data["blocked_domains"])

    if overrides:
        log.info("Keyword overrides loaded from %s: %s", path.name, ", ".join(sorted(overrides)))
    return replace(catalog, **overrides)
