"""Load env configuration and keyword settings."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml
from dotenv import load_dotenv

from jobmail.keywords import KeywordCatalog, load_catalog
from jobmail.log import get_logger
from jobmail.scorer import JobCriteria

log = get_logger(__name__)

load_dotenv()

ROOT_DIR: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = ROOT_DIR / "config"
KEYWORDS_PATH: Path = CONFIG_DIR / "keywords.yaml"
REPORTS_DIR: Path = ROOT_DIR / "reports"
DATA_DIR: Path = ROOT_DIR / "data"

_TRUE_VALUES = ("1", "true", "yes")


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def _env_bool(key: str, default: bool = False) -> bool:
    raw = get_env(key)
    if not raw:
        return default
    return raw.lower() in _TRUE_VALUES


def _env_int(key: str, default: int) -> int:
    try:
        return int(get_env(key, str(default)))
    except ValueError:
        log.warning("Invalid integer for %s, using %d", key, default)
        return default


def _env_float(key: str, default: float) -> float:
    try:
        return float(get_env(key, str(default)))
    except ValueError:
        log.warning("Invalid number for %s, using %s", key, default)
        return default


@dataclass(frozen=True)
class Settings:
    max_job_age_days: int = 7
    use_llm_for_long_html: bool = False
    dev_mode: bool = False
    llm_model: str = "gpt-4o-mini"
    openai_api_key: str = ""
    openai_base_url: str = ""
    llm_timeout: float = 60.0
    inter_email_delay: float = 1.0
    emails_file: Path = DATA_DIR / "job_opportunities_emails.json"
    opportunities_file: Path = DATA_DIR / "job_opportunities.json"
    imap_host: str = "imap.gmail.com"
    imap_user: str = ""
    imap_password: str = ""
    imap_folder: str = "INBOX"


def load_settings() -> Settings:
    emails_file = get_env("EMAILS_FILE")
    opportunities_file = get_env("OPPORTUNITIES_FILE")
    return Settings(
        max_job_age_days=_env_int("MAX_JOB_AGE_DAYS", 7),
        use_llm_for_long_html=_env_bool("USE_LLM_FOR_LONG_HTML"),
        dev_mode=_env_bool("DEV_MODE"),
        llm_model=get_env("LLM_MODEL", "gpt-4o-mini") or "gpt-4o-mini",
        openai_api_key=get_env("OPENAI_API_KEY"),
        openai_base_url=get_env("OPENAI_BASE_URL"),
        llm_timeout=_env_float("LLM_TIMEOUT", 60.0),
        inter_email_delay=_env_float("INTER_EMAIL_DELAY", 1.0),
        emails_file=Path(emails_file) if emails_file else DATA_DIR / "job_opportunities_emails.json",
        opportunities_file=(
            Path(opportunities_file) if opportunities_file else DATA_DIR / "job_opportunities.json"
        ),
        imap_host=get_env("IMAP_HOST", "imap.gmail.com"),
        imap_user=get_env("IMAP_USER"),
        imap_password=get_env("IMAP_PASSWORD"),
        imap_folder=get_env("IMAP_FOLDER", "INBOX") or "INBOX",
    )


def load_keywords() -> KeywordCatalog:
    return load_catalog(KEYWORDS_PATH)


def load_criteria(path: Path = KEYWORDS_PATH) -> JobCriteria:
    """Candidate criteria from the ``criteria:`` section; inactive when absent."""
    if not path.exists():
        return JobCriteria()
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return JobCriteria.from_dict(data.get("criteria"))


def ensure_dirs() -> None:
    for d in (REPORTS_DIR, DATA_DIR):
        d.mkdir(parents=True, exist_ok=True)
