"""JSON files that hand emails and opportunities from one stage to the next."""
from __future__ import annotations

import fcntl
import json
import os
from pathlib import Path
from typing import Any

from jobmail.errors import ConfigurationError
from jobmail.log import get_logger
from jobmail.models import EmailRecord, JobOpportunity

log = get_logger(__name__)


def _lock(f, exclusive: bool = True) -> None:
    """Advisory file lock (Unix fcntl)."""
    try:
        op = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(f.fileno(), op)
    except (OSError, AttributeError):
        pass


def _unlock(f) -> None:
    try:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    except (OSError, AttributeError):
        pass


def _read_json_list(path: Path) -> list[dict[str, Any]]:
    with open(path, "r", encoding="utf-8") as f:
        _lock(f, exclusive=False)
        try:
            data = json.load(f)
        finally:
            _unlock(f)
    if not isinstance(data, list):
        raise ValueError(f"{path.name}: expected a JSON array")
    return data


def _write_json_list(path: Path, items: list[dict[str, Any]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        _lock(f)
        try:
            json.dump(items, f, ensure_ascii=False, indent=2)
            f.flush()
            os.fsync(f.fileno())
        finally:
            _unlock(f)
    os.replace(tmp, path)


def load_emails(path: Path) -> list[EmailRecord]:
    """Scored emails to extract from. A missing file is a setup error."""
    if not path.exists():
        raise ConfigurationError(f"Input file not found: {path}")
    try:
        rows = _read_json_list(path)
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"Cannot read emails from {path}: {exc}") from exc
    return [EmailRecord.from_dict(r) for r in rows]


def load_existing_emails(path: Path) -> list[EmailRecord]:
    """Previously saved scan results; empty when absent or unreadable."""
    if not path.exists():
        return []
    try:
        return [EmailRecord.from_dict(r) for r in _read_json_list(path)]
    except (OSError, ValueError, AttributeError) as exc:
        log.warning("Could not load existing emails from %s: %s", path.name, exc)
        return []


def save_emails(emails: list[EmailRecord], path: Path) -> None:
    _write_json_list(path, [e.to_dict() for e in emails])
    log.debug("Saved %d emails → %s", len(emails), path.name)


def load_opportunities(path: Path) -> list[JobOpportunity]:
    """Opportunities from an earlier (possibly interrupted) run; empty when unusable."""
    if not path.exists():
        return []
    try:
        return [JobOpportunity.from_dict(r) for r in _read_json_list(path)]
    except (OSError, ValueError, TypeError, AttributeError) as exc:
        log.warning("Could not load existing opportunities from %s (%s), starting fresh", path.name, exc)
        return []


def save_opportunities(opportunities: list[JobOpportunity], path: Path) -> None:
    _write_json_list(path, [o.to_dict() for o in opportunities])
    log.debug("Saved %d opportunities → %s", len(opportunities), path.name)
