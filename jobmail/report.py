"""Markdown reports for the scan and extraction stages."""
from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import urlparse

from jobmail.config import REPORTS_DIR
from jobmail.extractor import ExtractionSummary
from jobmail.log import get_logger, truncate
from jobmail.models import EmailRecord, JobOpportunity

log = get_logger(__name__)


def _today() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def _short_url_label(url: str) -> str:
    host = (urlparse(url).hostname or "").replace("www.", "")
    parts = host.split(".")
    return parts[0].capitalize() if parts and parts[0] else "Link"


def top_sender_domains(emails: list[EmailRecord], n: int = 5) -> list[tuple[str, int]]:
    counts = Counter(e.sender_domain or "unknown" for e in emails)
    return counts.most_common(n)


def build_scan_report(
    emails: list[EmailRecord],
    categories: dict[str, list[EmailRecord]],
    *,
    processed: int,
    rejected: int,
) -> str:
    lines: list[str] = [f"# Job Mail Scan — {_today()}", ""]
    lines.append(
        f"**{processed}** messages processed | **{len(emails)}** kept | **{rejected}** rejected"
    )
    lines.append("")

    domains = top_sender_domains(emails)
    if domains:
        lines.append("## Top Senders")
        lines.append("")
        for domain, count in domains:
            lines.append(f"- **{domain}**: {count}")
        lines.append("")

    lines.append("## Categories")
    lines.append("")
    lines.append("| Category | Emails |")
    lines.append("|----------|-------:|")
    for name, bucket in categories.items():
        lines.append(f"| {name} | {len(bucket)} |")
    lines.append("")

    if emails:
        lines.append("## Top Emails")
        lines.append("")
        lines.append("| # | Score | Subject | From | Date |")
        lines.append("|--:|------:|---------|------|------|")
        for i, e in enumerate(emails[:15], 1):
            sent = e.sent_date.strftime("%Y-%m-%d") if e.sent_date else "—"
            subject = truncate(e.subject, 50).replace("|", "/")
            lines.append(f"| {i} | {e.relevance_score} | {subject} | {e.sender_domain} | {sent} |")
        lines.append("")

    log.info("Built scan report: %d emails", len(emails))
    return "\n".join(lines)


def build_extraction_report(
    summary: ExtractionSummary, opportunities: list[JobOpportunity]
) -> str:
    lines: list[str] = [f"# Job Extraction — {_today()}", ""]
    lines.append(
        f"**{summary.total}** emails | **{summary.skipped}** skipped | "
        f"**{summary.successful}** extracted | **{summary.failed}** failed | "
        f"**{summary.total_in_file}** opportunities in file"
    )
    lines.append("")

    grouped = summary.errors_by_kind()
    if grouped:
        lines.append("## Errors")
        lines.append("")
        for kind, errs in grouped.items():
            lines.append(f"### {kind} ({len(errs)})")
            for err in errs:
                lines.append(
                    f"- {truncate(err.subject, 55)} — _{truncate(err.sender, 50)}_: "
                    f"{truncate(err.message, 80)}"
                )
            lines.append("")

    if summary.costs.api_calls:
        lines.append("## LLM Cost")
        lines.append("")
        for line in summary.costs.summary_lines():
            lines.append(f"- {line}")
        lines.append("")

    if opportunities:
        lines.append("## Opportunities")
        lines.append("")
        lines.append("| # | Title | Company | Location | Link |")
        lines.append("|--:|-------|---------|----------|------|")
        for i, o in enumerate(opportunities[:30], 1):
            link = f"[{_short_url_label(o.link)}]({o.link})" if o.link else "—"
            title = truncate(o.title or "", 45).replace("|", "/")
            lines.append(
                f"| {i} | {title} | {o.company or '—'} | {o.location or '—'} | {link} |"
            )
        lines.append("")

    return "\n".join(lines)


def write_report(content: str, prefix: str) -> Path:
    REPORTS_DIR.mkdir(parents=True, exist_ok=True)
    path = REPORTS_DIR / f"{prefix}_{_today()}.md"
    path.write_text(content, encoding="utf-8")
    log.info("Report written → %s", path)
    return path
