"""JSON hand-off files, keyword overrides and env settings."""
import json
from datetime import datetime, timezone

import pytest

from jobmail import store
from jobmail.config import load_criteria, load_settings
from jobmail.errors import ConfigurationError
from jobmail.keywords import load_catalog
from jobmail.models import EmailRecord, JobOpportunity, UrlReferenceType


def test_emails_round_trip(tmp_path, make_email):
    path = tmp_path / "data" / "emails.json"
    email = make_email(sender="Jobs <jobs@linkedin.com>", score=18)
    store.save_emails([email], path)

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw[0]["from"] == "Jobs <jobs@linkedin.com>"
    assert raw[0]["sender_domain"] == "linkedin.com"

    loaded = store.load_emails(path)
    assert loaded == [email]


def test_load_emails_accepts_camel_case_and_epoch(tmp_path):
    path = tmp_path / "emails.json"
    path.write_text(
        json.dumps(
            [{"from": "a@b.com", "subject": "S", "content": "C",
              "sentDate": 1710061200000, "relevanceScore": 12}]
        ),
        encoding="utf-8",
    )
    email = store.load_emails(path)[0]
    assert email.relevance_score == 12
    assert email.sent_date == datetime(2024, 3, 10, 9, 0, tzinfo=timezone.utc)
    assert email.sender_domain == "b.com"


def test_missing_or_corrupt_email_file_is_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError):
        store.load_emails(tmp_path / "missing.json")
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        store.load_emails(bad)


def test_unreadable_opportunities_start_fresh(tmp_path):
    path = tmp_path / "opps.json"
    path.write_text('{"title": "not a list"}', encoding="utf-8")
    assert store.load_opportunities(path) == []
    assert store.load_existing_emails(path) == []
    assert store.load_opportunities(tmp_path / "none.json") == []


def test_opportunities_round_trip(tmp_path):
    path = tmp_path / "opps.json"
    job = JobOpportunity(
        title="CTO",
        url_reference_type=UrlReferenceType.NOT_FINAL_REFERENCE,
        fit_score=5.0,
        skills_required=["python", "aws"],
    )
    store.save_opportunities([job], path)

    assert json.loads(path.read_text(encoding="utf-8"))[0]["url_reference_type"] == "NOT_FINAL_REFERENCE"
    assert store.load_opportunities(path) == [job]
    assert not path.with_name("opps.json.tmp").exists()


def test_sender_domain_extraction():
    assert EmailRecord("Name <HR@Acme.COM>", "", "").sender_domain == "acme.com"
    assert EmailRecord("no-address", "", "").sender_domain == ""


def test_keyword_overrides(tmp_path):
    path = tmp_path / "keywords.yaml"
    path.write_text(
        "topics:\n  job:\n    - Mission\n    - poste\n"
        "blocked_domains:\n  - spam.example\n",
        encoding="utf-8",
    )
    catalog = load_catalog(path)
    assert catalog.keywords_for("job") == ("mission", "poste")
    assert catalog.is_blocked_sender("x@spam.example")
    assert catalog.is_trusted_sender("jobs@linkedin.com")
    assert load_catalog(tmp_path / "absent.yaml").keywords_for("rust") == ("rust",)


def test_criteria_section_of_keyword_file(tmp_path):
    path = tmp_path / "keywords.yaml"
    path.write_text(
        "criteria:\n"
        "  position: CTO\n"
        "  position_aliases: [chief technology officer]\n"
        "  locations: [Paris, Remote]\n"
        "  skills: [python, aws]\n"
        "  seniority_aliases: [vp]\n",
        encoding="utf-8",
    )
    criteria = load_criteria(path)
    assert criteria.is_active
    assert criteria.position_aliases == ["chief technology officer"]
    assert criteria.locations == ["Paris", "Remote"]
    assert criteria.seniority_aliases == ["vp"]
    assert criteria.contract_type == ""


def test_criteria_inactive_without_section(tmp_path):
    path = tmp_path / "keywords.yaml"
    path.write_text("criteria:\n  position: \"\"\n  skills: []\n", encoding="utf-8")
    assert not load_criteria(path).is_active
    assert not load_criteria(tmp_path / "absent.yaml").is_active

def test_settings_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("MAX_JOB_AGE_DAYS", "3")
    monkeypatch.setenv("USE_LLM_FOR_LONG_HTML", "yes")
    monkeypatch.setenv("INTER_EMAIL_DELAY", "oops")
    monkeypatch.setenv("EMAILS_FILE", str(tmp_path / "in.json"))
    monkeypatch.delenv("LLM_MODEL", raising=False)

    settings = load_settings()
    assert settings.max_job_age_days == 3
    assert settings.use_llm_for_long_html is True
    assert settings.inter_email_delay == 1.0
    assert settings.emails_file == tmp_path / "in.json"
    assert settings.llm_model == "gpt-4o-mini"
