"""
Job mail agent.

Runs: mailbox scan → relevance scoring → (JSON hand-off) → job extraction → reports.
"""
from __future__ import annotations

from typing import Any

from jobmail import store
from jobmail.config import Settings, ensure_dirs, load_criteria, load_keywords, load_settings
from jobmail.errors import ConfigurationError
from jobmail.extractor import JobOpportunityExtractor
from jobmail.llm import LLMClient
from jobmail.log import get_logger
from jobmail.mailbox import IMAPMailbox, Mailbox, scan_mailbox
from jobmail.report import build_extraction_report, build_scan_report, write_report
from jobmail.scorer import JobCriteria, RelevanceScorer, apply_criteria, categorize
from jobmail.urls import build_registry

log = get_logger(__name__)


def run_scan(
    *,
    settings: Settings | None = None,
    mailbox: Mailbox | None = None,
    topic: str = "job",
    days_back: int = 30,
    max_results: int = 100,
    senders: list[str] | None = None,
    criteria: JobCriteria | None = None,
    write: bool = True,
) -> dict[str, Any]:
    """Scan, score and save; active *criteria* (default: keyword file) re-score and filter."""
    settings = settings or load_settings()
    criteria = criteria if criteria is not None else load_criteria()
    ensure_dirs()
    catalog = load_keywords()
    scorer = RelevanceScorer(catalog)

    def _scan(box: Mailbox):
        return scan_mailbox(
            box,
            scorer,
            topic=topic,
            days_back=days_back,
            senders=senders,
            max_results=max_results,
            dev_mode=settings.dev_mode,
            output_path=settings.emails_file,
        )

    if mailbox is not None:
        result = _scan(mailbox)
    else:
        if not (settings.imap_user and settings.imap_password):
            raise ConfigurationError("IMAP not configured (set IMAP_USER and IMAP_PASSWORD in .env)")
        with IMAPMailbox(
            settings.imap_host, settings.imap_user, settings.imap_password, settings.imap_folder
        ) as box:
            result = _scan(box)

    emails = result.emails
    if criteria.is_active:
        emails = apply_criteria(emails, criteria)
    store.save_emails(emails, settings.emails_file)

    report_path = None
    if write:
        content = build_scan_report(
            emails,
            categorize(emails, catalog),
            processed=result.processed,
            rejected=result.rejected,
        )
        report_path = write_report(content, "scan")

    log.info("Run complete — processed=%d, kept=%d", result.processed, len(emails))
    return {
        "processed": result.processed,
        "added": result.added,
        "matched_criteria": criteria.is_active,
        "kept": len(emails),
        "emails_file": str(settings.emails_file),
        "report_path": str(report_path) if report_path else None,
    }


def run_extract(
    *,
    settings: Settings | None = None,
    llm: LLMClient | None = None,
    write: bool = True,
) -> dict[str, Any]:
    """Raises ConfigurationError when the scanned-emails file is missing."""
    settings = settings or load_settings()
    ensure_dirs()

    extractor = JobOpportunityExtractor(
        build_registry(settings),
        llm or LLMClient.from_settings(settings),
        delay=settings.inter_email_delay,
    )
    summary = extractor.run(settings.emails_file, settings.opportunities_file)

    report_path = None
    if write:
        opportunities = store.load_opportunities(settings.opportunities_file)
        report_path = write_report(build_extraction_report(summary, opportunities), "extraction")

    log.info(
        "Run complete — extracted=%d, failed=%d, cost=$%.4f",
        summary.successful, summary.failed, summary.costs.total_cost,
    )
    return {
        "total": summary.total,
        "skipped": summary.skipped,
        "successful": summary.successful,
        "failed": summary.failed,
        "total_in_file": summary.total_in_file,
        "errors": {kind: len(errs) for kind, errs in summary.errors_by_kind().items()},
        "opportunities_file": str(settings.opportunities_file),
        "report_path": str(report_path) if report_path else None,
    }
