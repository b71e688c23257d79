"""Data models for emails, extracted job opportunities and URL results."""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union


class ExtractionMethod(str, Enum):
    REGEX = "REGEX"
    LLM = "LLM"


class UrlReferenceType(str, Enum):
    DIRECT = "DIRECT"
    NOT_FINAL_REFERENCE = "NOT_FINAL_REFERENCE"


def parse_sent_date(value: Any) -> datetime | None:
    """Accept ISO strings, epoch milliseconds or datetimes."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


@dataclass
class EmailRecord:
    sender: str
    subject: str
    content: str
    sent_date: datetime | None = None
    relevance_score: int = 0
    sender_domain: str = ""

    def __post_init__(self) -> None:
        if not self.sender_domain:
            self.sender_domain = sender_domain(self.sender)

    @property
    def key(self) -> str:
        return f"{self.subject}|{self.sender}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.sender,
            "subject": self.subject,
            "sent_date": self.sent_date.isoformat() if self.sent_date else None,
            "content": self.content,
            "relevance_score": self.relevance_score,
            "sender_domain": self.sender_domain,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EmailRecord:
        return cls(
            sender=data.get("from") or "",
            subject=data.get("subject") or "",
            content=data.get("content") or "",
            sent_date=parse_sent_date(data.get("sent_date", data.get("sentDate"))),
            relevance_score=int(data.get("relevance_score", data.get("relevanceScore")) or 0),
            sender_domain=data.get("sender_domain", data.get("senderDomain")) or "",
        )


def sender_domain(sender: str) -> str:
    """Domain part of an address such as ``Jobs <jobs@linkedin.com>``."""
    if not sender or "@" not in sender:
        return ""
    return sender.split("@", 1)[1].strip().rstrip(">").strip().lower()


@dataclass
class JobOpportunity:
    title: str | None = None
    job_portal_name: str | None = None
    job_offer_url_apply_portal: str | None = None
    job_offer_url_apply_company: str | None = None
    job_offer_url_description_portal: str | None = None
    job_offer_url_description_company: str | None = None
    url_reference_type: UrlReferenceType | None = None
    company: str | None = None
    fit_score: float | None = None
    location: str | None = None
    salary: Any = None
    responsibilities: Any = None
    skills_required: Any = None
    compensation: Any = None
    employment_type: str | None = None
    contract_type: str | None = None
    is_startup: bool | None = None
    company_size: str | None = None
    team_size_to_manage: Any = None
    additional_experience: Any = None
    work_languages: Any = None
    source_email_subject: str | None = None
    source_email_from: str | None = None
    source_email_date: str | None = None

    @property
    def link(self) -> str | None:
        """First populated URL. Kept for older consumers of the JSON file."""
        return (
            self.job_offer_url_apply_portal
            or self.job_offer_url_apply_company
            or self.job_offer_url_description_portal
            or self.job_offer_url_description_company
        )

    @property
    def source_key(self) -> str:
        return f"{self.source_email_subject}|{self.source_email_from}"

    def set_source(self, email: EmailRecord) -> None:
        self.source_email_subject = email.subject
        self.source_email_from = email.sender
        self.source_email_date = email.sent_date.isoformat() if email.sent_date else None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.value
            out[f.name] = value
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JobOpportunity:
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}

        ref = kwargs.get("url_reference_type")
        if ref is not None:
            try:
                kwargs["url_reference_type"] = UrlReferenceType(ref)
            except ValueError:
                kwargs["url_reference_type"] = None

        score = kwargs.get("fit_score")
        if score is not None:
            try:
                kwargs["fit_score"] = float(score)
            except (TypeError, ValueError):
                kwargs["fit_score"] = None
        return cls(**kwargs)


@dataclass
class URLExtractionResult:
    job_portal_name: str | None = None
    apply_on_portal: str | None = None
    apply_on_company: str | None = None
    description_on_portal: str | None = None
    description_on_company: str | None = None
    success: bool = False
    method: ExtractionMethod = ExtractionMethod.REGEX
    error_message: str | None = None

    @classmethod
    def failure(
        cls,
        error_message: str,
        job_portal_name: str | None = None,
        method: ExtractionMethod = ExtractionMethod.REGEX,
    ) -> URLExtractionResult:
        return cls(
            job_portal_name=job_portal_name,
            success=False,
            method=method,
            error_message=error_message,
        )


# Registry outcomes: one email either yields URLs, asks the caller to hand
# the email to the LLM, or fails outright.

@dataclass(frozen=True)
class Resolved:
    result: URLExtractionResult


@dataclass(frozen=True)
class Delegate:
    job_portal_name: str | None
    reason: str


@dataclass(frozen=True)
class Failed:
    reason: str


ExtractionOutcome = Union[Resolved, Delegate, Failed]


@dataclass
class JobCard:
    """A neighbouring posting listed on a similar-offers page."""

    title: str
    url: str
    age_days: int


@dataclass
class ParsedJobPage:
    original_url: str
    fetch_success: bool = False
    is_similar_offers_page: bool = False
    direct_job_url: str | None = None
    candidature_rapide_urls: list[str] = field(default_factory=list)
    publication_dates: list[str] = field(default_factory=list)

    @property
    def is_expired(self) -> bool:
        return self.is_similar_offers_page

    @property
    def has_valid_apply_url(self) -> bool:
        return bool(self.candidature_rapide_urls)

    @property
    def best_url(self) -> str:
        if self.direct_job_url:
            return self.direct_job_url
        if self.candidature_rapide_urls:
            return self.candidature_rapide_urls[0]
        return self.original_url
