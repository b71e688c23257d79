"""Logging for the mail pipeline: console plus one DEBUG file per day."""
from __future__ import annotations

import logging
import os
import sys
from datetime import date
from pathlib import Path

_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"

# HTTP and SDK internals log every request at DEBUG.
_NOISY_LOGGERS = ("urllib3", "httpx", "httpcore", "openai")

_configured = False


def get_logger(name: str) -> logging.Logger:
    global _configured
    if not _configured:
        _configure()
        _configured = True
    return logging.getLogger(name)


def truncate(text: str | None, max_length: int) -> str:
    """Shorten *text* for log lines, keeping a trailing ellipsis."""
    if text is None:
        return "null"
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def _log_dir() -> Path:
    override = os.environ.get("LOG_DIR", "").strip()
    if override:
        return Path(override)
    return Path(__file__).resolve().parent.parent / "logs"


def _configure() -> None:
    level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)
    formatter = logging.Formatter(_FORMAT, datefmt=_DATE_FMT)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    # pytest and embedding apps install their own handlers
    if root.handlers:
        root.setLevel(level)
        return

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    root.addHandler(console)

    log_dir = _log_dir()
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_dir / f"jobmail_{date.today():%Y-%m-%d}.log", encoding="utf-8")
    except OSError as exc:
        sys.stderr.write(f"File logging disabled ({log_dir}): {exc}\n")
        return
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(formatter)
    root.addHandler(fh)
