"""Read candidate job emails over IMAP and keep the ones that score above zero."""
from __future__ import annotations

import email
import imaplib
from dataclasses import dataclass, field
from datetime import date, timedelta
from email.message import EmailMessage
from email.policy import default as default_policy
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Iterable, Iterator, Protocol

from jobmail import store
from jobmail.keywords import KeywordCatalog
from jobmail.log import get_logger, truncate
from jobmail.models import EmailRecord
from jobmail.retry import retry
from jobmail.scorer import RelevanceScorer, is_duplicate, rank

log = get_logger(__name__)

DEV_MODE_MESSAGE_LIMIT = 5
MAX_MESSAGES = 10_000

# IMAP dates are always English, whatever the process locale.
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


class Mailbox(Protocol):
    def search(self, criteria: str) -> Iterable[EmailMessage]: ...

    def fetch_content(self, message: EmailMessage) -> str: ...


def imap_date(d: date) -> str:
    return f"{d.day:02d}-{_MONTHS[d.month - 1]}-{d.year}"


def _or_chain(terms: list[str]) -> str:
    if len(terms) == 1:
        return terms[0]
    return f"OR {terms[0]} {_or_chain(terms[1:])}"


def build_search_criteria(
    catalog: KeywordCatalog,
    topic: str,
    days_back: int,
    senders: list[str] | None = None,
    today: date | None = None,
) -> str:
    """``SINCE <date>`` AND (any sender, or any of the first topic keywords in subject/body)."""
    since = imap_date((today or date.today()) - timedelta(days=days_back))
    if senders:
        terms = [f'FROM "{s}"' for s in senders]
    else:
        terms = [f'OR SUBJECT "{kw}" BODY "{kw}"' for kw in catalog.search_keywords(topic)]
    return f"SINCE {since} {_or_chain(terms)}"


def _part_text(part: EmailMessage) -> str:
    try:
        return str(part.get_content())
    except (LookupError, UnicodeError):
        payload = part.get_payload(decode=True) or b""
        return payload.decode("utf-8", errors="replace")


def message_to_text(msg: EmailMessage) -> str:
    """Header block, then every text/plain and text/html part as-is."""
    out = [
        f"From: {msg.get('From', '')}\n",
        f"Subject: {msg.get('Subject', '')}\n",
        f"Date: {msg.get('Date', '')}\n\n",
    ]
    for part in msg.walk():
        if part.is_multipart() or part.get_content_disposition() == "attachment":
            continue
        if part.get_content_type() in ("text/plain", "text/html"):
            out.append(_part_text(part))
    return "".join(out)


def message_to_record(msg: EmailMessage, content: str) -> EmailRecord:
    sent = None
    if msg.get("Date"):
        try:
            sent = parsedate_to_datetime(str(msg["Date"]))
        except (TypeError, ValueError):
            log.debug("Unparseable Date header: %s", msg["Date"])
    return EmailRecord(
        sender=str(msg.get("From", "Unknown")),
        subject=str(msg.get("Subject", "")),
        content=content,
        sent_date=sent,
    )


class IMAPMailbox:
    """Read-only IMAP folder. Use as a context manager."""

    def __init__(self, host: str, user: str, password: str, folder: str = "INBOX") -> None:
        self.host = host
        self.user = user
        self.password = password
        self.folder = folder
        self._conn: imaplib.IMAP4_SSL | None = None

    @retry(max_attempts=3, base_delay=3.0, retryable=(imaplib.IMAP4.error, OSError))
    def _connect(self) -> imaplib.IMAP4_SSL:
        conn = imaplib.IMAP4_SSL(self.host)
        conn.login(self.user, self.password)
        conn.select(self.folder, readonly=True)
        return conn

    def __enter__(self) -> IMAPMailbox:
        self._conn = self._connect()
        log.info("Connected to %s (%s)", self.host, self.folder)
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self._conn is None:
            return
        try:
            self._conn.close()
            self._conn.logout()
        except (imaplib.IMAP4.error, OSError) as exc:
            log.debug("IMAP logout error: %s", exc)
        finally:
            self._conn = None

    def search(self, criteria: str) -> Iterator[EmailMessage]:
        if self._conn is None:
            raise RuntimeError("IMAPMailbox used outside of a with-block")
        typ, data = self._conn.search(None, criteria)
        if typ != "OK":
            log.error("IMAP search failed: %s", data)
            return
        ids = data[0].split() if data and data[0] else []
        log.info("IMAP search matched %d message(s)", len(ids))
        for num in ids:
            typ, parts = self._conn.fetch(num, "(RFC822)")
            if typ != "OK" or not parts or not isinstance(parts[0], tuple):
                log.warning("IMAP fetch failed for message %s", num)
                continue
            yield email.message_from_bytes(parts[0][1], policy=default_policy)

    def fetch_content(self, message: EmailMessage) -> str:
        return message_to_text(message)


@dataclass
class ScanResult:
    emails: list[EmailRecord] = field(default_factory=list)
    processed: int = 0
    added: int = 0
    duplicates: int = 0
    rejected: int = 0


def scan_mailbox(
    mailbox: Mailbox,
    scorer: RelevanceScorer,
    *,
    topic: str = "job",
    days_back: int = 30,
    senders: list[str] | None = None,
    max_results: int = 100,
    dev_mode: bool = False,
    output_path: Path | None = None,
) -> ScanResult:
    """Score matching messages, keep the relevant ones, save after each addition."""
    existing = store.load_existing_emails(output_path) if output_path else []
    if existing:
        log.info("Loaded %d existing emails from %s", len(existing), output_path.name)

    criteria = build_search_criteria(scorer.catalog, topic, days_back, senders)
    log.info("Searching mailbox for topic %r: %s", topic, criteria)

    limit = DEV_MODE_MESSAGE_LIMIT if dev_mode else MAX_MESSAGES
    result = ScanResult(emails=list(existing))
    for msg in mailbox.search(criteria):
        if result.processed >= limit:
            log.info("Stopped after %d messages (DEV_MODE limit)", limit)
            break
        result.processed += 1

        record = message_to_record(msg, mailbox.fetch_content(msg))
        record.relevance_score = scorer.score_email(record, topic)
        if record.relevance_score <= 0:
            result.rejected += 1
            log.debug("Rejected: %s", truncate(record.subject, 60))
            continue
        if is_duplicate(record, result.emails):
            result.duplicates += 1
            log.debug("Duplicate: %s", truncate(record.subject, 60))
            continue

        result.emails.append(record)
        result.added += 1
        log.info("Kept (score %d): %s", record.relevance_score, truncate(record.subject, 60))
        if output_path:
            store.save_emails(result.emails, output_path)

    result.emails = rank(result.emails, max_results)
    log.info(
        "Scan complete — processed=%d, added=%d, duplicates=%d, rejected=%d, kept=%d",
        result.processed, result.added, result.duplicates, result.rejected, len(result.emails),
    )
    return result
