#!/usr/bin/env python3
"""Entry point: scan the mailbox, extract job opportunities, or both."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from jobmail.errors import ConfigurationError
from jobmail.log import get_logger

log = get_logger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Job offer mailbox pipeline")
    p.add_argument("command", choices=("scan", "extract", "all"), nargs="?", default="all")
    p.add_argument("--topic", default="job", help="job, freelance or internship")
    p.add_argument("--days", type=int, default=30, help="how far back to search the mailbox")
    p.add_argument("--max-results", type=int, default=100)
    p.add_argument("--sender", action="append", default=None, help="restrict scan to a sender")
    p.add_argument("--position", default="", help="target job title; enables criteria filtering")
    p.add_argument("--seniority", default="")
    p.add_argument("--contract", default="", help="e.g. CDI, freelance")
    p.add_argument("--location", action="append", default=None)
    p.add_argument("--skill", action="append", default=None)
    p.add_argument("--no-report", action="store_true")
    return p.parse_args(argv)


def _criteria_from_args(args: argparse.Namespace):
    from jobmail.scorer import JobCriteria

    criteria = JobCriteria(
        position=args.position,
        seniority=args.seniority,
        contract_type=args.contract,
        locations=args.location or [],
        skills=args.skill or [],
    )
    # None falls back to the criteria section of the keyword file
    return criteria if criteria.is_active else None


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    from jobmail.agent import run_extract, run_scan

    try:
        if args.command in ("scan", "all"):
            result = run_scan(
                topic=args.topic,
                days_back=args.days,
                max_results=args.max_results,
                senders=args.sender,
                criteria=_criteria_from_args(args),
                write=not args.no_report,
            )
            log.info("  Messages processed: %d", result["processed"])
            log.info("  Emails kept: %d → %s", result["kept"], result["emails_file"])
            if result["report_path"]:
                log.info("  Report: %s", result["report_path"])

        if args.command in ("extract", "all"):
            result = run_extract(write=not args.no_report)
            log.info("  Emails: %d (skipped %d)", result["total"], result["skipped"])
            log.info("  Extracted: %d, failed: %d", result["successful"], result["failed"])
            log.info("  Opportunities in file: %d", result["total_in_file"])
            if result["report_path"]:
                log.info("  Report: %s", result["report_path"])
    except ConfigurationError as exc:
        log.error("Fatal: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
