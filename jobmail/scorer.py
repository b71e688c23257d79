"""Score mailbox messages for job-offer relevance with ordered reject rules."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import timezone
from typing import Any

from jobmail.keywords import KeywordCatalog
from jobmail.log import get_logger
from jobmail.models import EmailRecord

log = get_logger(__name__)

HIGH_PRIORITY_SCORE = 8

CATEGORY_NAMES: tuple[str, ...] = (
    "High Priority", "Direct Offers", "Job Boards", "Recruiters", "Other",
)

_DIRECT_OFFER_TERMS: tuple[str, ...] = ("offer", "propose", "salary", "compensation")
_RECRUITER_TERMS: tuple[str, ...] = (
    "recruiter", "recruitment", "talent acquisition", "headhunter",
)

_SUBJECT_OFFER_PHRASES: tuple[str, ...] = ("job offer", "offre d'emploi", "offre de travail")
_SUBJECT_OPENING_PHRASES: tuple[str, ...] = ("job opening", "poste disponible")


def _normalize(s: str | None) -> str:
    return (s or "").lower()


def _contains_any(text: str, tokens: tuple[str, ...]) -> bool:
    return any(t in text for t in tokens)


class RelevanceScorer:
    """Pure, deterministic relevance score. ``0`` means rejected.

    Rules run in a fixed order: sender blocklist, trusted-platform flag,
    content rejects (promo, financial, event, travel, education, newsletter),
    positive signals, then final gating. Thresholds 5/8/10/12/15 are part of
    the contract.
    """

    def __init__(self, catalog: KeywordCatalog | None = None) -> None:
        self.catalog = catalog or KeywordCatalog()

    def score_email(self, email: EmailRecord, topic: str = "job") -> int:
        return self.score(email.sender, email.subject, email.content, topic)

    def score(self, sender: str, subject: str, content: str, topic: str = "job") -> int:
        cat = self.catalog
        sender = _normalize(sender)
        subject = _normalize(subject)
        content = _normalize(content)
        topic = _normalize(topic)
        full_text = subject + " " + content

        if cat.is_blocked_sender(sender):
            return 0

        trusted = topic == "job" and cat.is_trusted_sender(sender)

        if _contains_any(subject, cat.promo_tokens):
            return 0

        for token in cat.financial_tokens:
            if token in subject or (token in full_text and "apply" not in full_text):
                return 0

        if _contains_any(full_text, cat.event_tokens):
            return 0
        if _contains_any(full_text, cat.travel_tokens):
            return 0
        if (
            _contains_any(full_text, cat.education_tokens)
            and "hiring" not in full_text
            and "recrut" not in full_text
        ):
            return 0
        if not trusted and _contains_any(full_text, cat.newsletter_tokens):
            return 0

        score = 0
        strong = False
        offer = False

        if _contains_any(full_text, cat.strong_phrases):
            score += 10
            strong = offer = True
        elif _contains_any(full_text, cat.moderate_phrases):
            score += 5
            offer = True

        if trusted:
            score += 8
            offer = True

        if topic == "job":
            if _contains_any(subject, _SUBJECT_OFFER_PHRASES):
                score += 15
                strong = True
            if _contains_any(subject, _SUBJECT_OPENING_PHRASES):
                score += 12
            if "hiring" in subject and ("for" in subject or "seeking" in subject):
                score += 10

        if _contains_any(full_text, cat.structure_markers):
            score += 4
        if ("join" in full_text and "team" in full_text) or "work with us" in full_text \
                or "travaille avec nous" in full_text:
            score += 3

        if trusted and score >= 5:
            return score
        if not offer:
            return 0
        if not strong and score < 10:
            return 0

        matches = sum(
            1 for kw in cat.keywords_for(topic) if kw in subject or kw in content
        )
        if matches == 0 and not trusted:
            return 0

        return max(0, score)


def is_duplicate(email: EmailRecord, existing: list[EmailRecord]) -> bool:
    """Same subject, sender and sent date as an already stored email."""
    for other in existing:
        if (
            email.subject == other.subject
            and email.sender == other.sender
            and email.sent_date is not None
            and email.sent_date == other.sent_date
        ):
            return True
    return False


def _date_key(email: EmailRecord) -> float:
    if email.sent_date is None:
        return float("-inf")
    d = email.sent_date
    if d.tzinfo is None:
        d = d.replace(tzinfo=timezone.utc)
    return d.timestamp()


def rank(emails: list[EmailRecord], max_results: int | None = None) -> list[EmailRecord]:
    """Highest score first, newest first on ties."""
    ordered = sorted(emails, key=lambda e: (-e.relevance_score, -_date_key(e)))
    if max_results is not None and len(ordered) > max_results:
        log.info("Limited to top %d of %d emails", max_results, len(ordered))
        ordered = ordered[:max_results]
    return ordered


def categorize(
    emails: list[EmailRecord], catalog: KeywordCatalog | None = None
) -> dict[str, list[EmailRecord]]:
    catalog = catalog or KeywordCatalog()
    buckets: dict[str, list[EmailRecord]] = {name: [] for name in CATEGORY_NAMES}
    for email in emails:
        text = _normalize(email.subject + " " + email.content)
        domain = _normalize(email.sender_domain)
        if email.relevance_score >= HIGH_PRIORITY_SCORE:
            buckets["High Priority"].append(email)
        elif _contains_any(text, _DIRECT_OFFER_TERMS):
            buckets["Direct Offers"].append(email)
        elif domain and any(d in domain for d in catalog.trusted_domains):
            buckets["Job Boards"].append(email)
        elif _contains_any(_normalize(email.sender + " " + email.content), _RECRUITER_TERMS):
            buckets["Recruiters"].append(email)
        else:
            buckets["Other"].append(email)
    return buckets


@dataclass
class JobCriteria:
    """Candidate preferences. Empty fields do not filter."""

    position: str = ""
    position_aliases: list[str] = field(default_factory=list)
    seniority: str = ""
    seniority_aliases: list[str] = field(
        default_factory=lambda: ["senior", "executive", "leadership"]
    )
    contract_type: str = ""
    locations: list[str] = field(default_factory=list)
    skills: list[str] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return bool(
            self.position or self.seniority or self.contract_type or self.locations or self.skills
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> JobCriteria:
        """Build from the ``criteria:`` section of the keyword file."""
        data = data or {}
        criteria = cls(
            position=str(data.get("position") or ""),
            position_aliases=[str(a) for a in data.get("position_aliases") or []],
            seniority=str(data.get("seniority") or ""),
            contract_type=str(data.get("contract_type") or ""),
            locations=[str(loc) for loc in data.get("locations") or []],
            skills=[str(s) for s in data.get("skills") or []],
        )
        if data.get("seniority_aliases"):
            criteria.seniority_aliases = [str(a) for a in data["seniority_aliases"]]
        return criteria


def _contract_matches(contract_type: str, text: str) -> bool:
    wanted = contract_type.lower()
    if wanted.startswith("permanent"):
        return "contract" not in text and "freelance" not in text
    return wanted in text


def apply_criteria(emails: list[EmailRecord], criteria: JobCriteria) -> list[EmailRecord]:
    """Re-score emails against a candidate's criteria and keep the good fits.

    Boosts: position +5, seniority +3, contract +2, location +3, +2 per skill.
    When set, the position (or seniority) must match, a location must match
    and at least two skills must appear. Returns re-scored copies, best first.
    """
    kept: list[EmailRecord] = []
    for email in emails:
        text = _normalize(email.subject + " " + email.content)
        boost = 0

        position_match = True
        if criteria.position:
            terms = [criteria.position, *criteria.position_aliases]
            position_match = any(t.lower() in text for t in terms)
            if position_match:
                boost += 5

        seniority_match = True
        if criteria.seniority:
            terms = [criteria.seniority, *criteria.seniority_aliases]
            seniority_match = any(t.lower() in text for t in terms)
            if seniority_match:
                boost += 3

        if criteria.contract_type and _contract_matches(criteria.contract_type, text):
            boost += 2

        location_match = True
        if criteria.locations:
            location_match = any(loc.lower() in text for loc in criteria.locations)
            if location_match:
                boost += 3

        skill_matches = sum(1 for s in criteria.skills if s.lower() in text)
        boost += 2 * skill_matches

        ok = True
        if criteria.position:
            ok = ok and (position_match or seniority_match)
        if criteria.locations:
            ok = ok and location_match
        if criteria.skills:
            ok = ok and skill_matches >= 2

        if ok:
            kept.append(replace(email, relevance_score=email.relevance_score + boost))

    result = sorted(kept, key=lambda e: -e.relevance_score)
    log.info("Criteria filter: %d emails → %d matches", len(emails), len(result))
    return result
