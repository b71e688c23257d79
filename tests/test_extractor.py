"""LLM response parsing and the batch extraction run."""
import json
from unittest.mock import MagicMock

import pytest

from jobmail import store
from jobmail.costs import LLMUsage
from jobmail.errors import ConfigurationError, ExtractionError
from jobmail.extractor import (
    HTML_MAX_CHARS,
    TEXT_MAX_CHARS,
    JobOpportunityExtractor,
    build_user_prompt,
    clean_urls,
    is_html,
    merge_url_result,
    parse_llm_response,
    strip_code_fences,
)
from jobmail.llm import APOLOGY_SENTINEL, LLMClient
from jobmail.models import JobOpportunity, URLExtractionResult
from jobmail.urls.cadremploi import CadremploiExtractor
from jobmail.urls.registry import URLExtractorRegistry

ONE_JOB = '{"title": "Backend Engineer", "company": "Acme", "fit_score": 7.5}'


def test_strip_code_fences():
    assert strip_code_fences("```json\n" + ONE_JOB + "\n```") == ONE_JOB
    assert strip_code_fences("```\n[]\n```") == "[]"
    assert strip_code_fences("  " + ONE_JOB + "  ") == ONE_JOB


def test_parse_single_object_in_fence():
    jobs = parse_llm_response("```json\n" + ONE_JOB + "\n```")
    assert len(jobs) == 1
    assert jobs[0].title == "Backend Engineer"
    assert jobs[0].fit_score == 7.5


def test_parse_array_ignores_unknown_keys():
    text = json.dumps([{"title": "A", "foo": 1}, {"title": "B", "url_reference_type": "DIRECT"}])
    jobs = parse_llm_response(text)
    assert [j.title for j in jobs] == ["A", "B"]
    assert jobs[1].url_reference_type.value == "DIRECT"


@pytest.mark.parametrize(
    "text, fragment",
    [
        ('[{"title": "A"}', "starts with [ but doesn't end with ]"),
        ('{"title": "A"', "starts with { but doesn't end with }"),
        ("Sorry, no jobs here.", "doesn't start with { or ["),
        ('{"title": "A",}', "Failed to parse JSON response"),
        ("[1, 2]", "only objects"),
    ],
)
def test_parse_errors(text, fragment):
    with pytest.raises(ExtractionError, match=fragment.replace("[", r"\[").replace("{", r"\{")):
        parse_llm_response(text)


def test_truncation_error_mentions_max_tokens():
    with pytest.raises(ExtractionError) as err:
        parse_llm_response('[{"title": "A"}, {"title": ')
    assert "max_tokens" in str(err.value)


def test_clean_urls_nulls_invalid_values():
    job = JobOpportunity(
        job_offer_url_apply_portal="not a url",
        job_offer_url_apply_company="  ",
        job_offer_url_description_portal=" https://jobs.example.com/1 ",
        job_offer_url_description_company="https://acme.com/careers/a b",
    )
    clean_urls(job)
    assert job.job_offer_url_apply_portal is None
    assert job.job_offer_url_apply_company is None
    assert job.job_offer_url_description_portal == "https://jobs.example.com/1"
    assert job.job_offer_url_description_company is None


def test_clean_urls_drops_url_with_line_break():
    job = JobOpportunity(job_offer_url_apply_portal="https://jobs.example.com/apply\nnow")
    clean_urls(job)
    assert job.job_offer_url_apply_portal is None


def test_regex_urls_override_llm_urls():
    job = JobOpportunity(
        job_portal_name="Indeed",
        job_offer_url_description_portal="https://llm.example.com/guess",
        job_offer_url_apply_company="https://acme.com/apply",
    )
    merge_url_result(
        job,
        URLExtractionResult(
            job_portal_name="Other",
            description_on_portal="https://regex.example.com/1",
            success=True,
        ),
    )
    assert job.job_offer_url_description_portal == "https://regex.example.com/1"
    assert job.job_offer_url_apply_company == "https://acme.com/apply"
    assert job.job_portal_name == "Indeed"


def test_user_prompt_truncates_long_content(make_email):
    text = make_email(content="x" * (TEXT_MAX_CHARS + 50))
    prompt = build_user_prompt(text)
    assert "Email Content (truncated):" in prompt
    assert f"[...content truncated at {TEXT_MAX_CHARS} characters...]" in prompt

    html = make_email(content="<html>" + "y" * (TEXT_MAX_CHARS + 50) + "</html>")
    assert is_html(html.content)
    html_prompt = build_user_prompt(html)
    assert "HTML email" in html_prompt
    assert "truncated" not in html_prompt
    assert len(html.content) < HTML_MAX_CHARS


def _llm(*answers: str) -> MagicMock:
    llm = MagicMock(spec=LLMClient)
    llm.complete.side_effect = [
        LLMUsage.priced(a, "gpt-4o-mini", 1000, 200) for a in answers
    ]
    return llm


def test_extract_from_email_merges_default_url(make_email):
    llm = _llm('{"title": "Data Engineer", "job_offer_url_description_portal": "bad url"}')
    extractor = JobOpportunityExtractor(URLExtractorRegistry(), llm)
    email = make_email(content="Apply here: https://jobs.example.com/42")

    jobs = extractor.extract_from_email(email)

    assert jobs[0].job_offer_url_description_portal == "https://jobs.example.com/42"
    assert jobs[0].source_email_subject == email.subject
    assert jobs[0].source_email_from == email.sender
    assert extractor.costs.api_calls == 1


def test_extract_from_email_sentinel_returns_none(make_email):
    extractor = JobOpportunityExtractor(URLExtractorRegistry(), _llm(APOLOGY_SENTINEL))
    assert extractor.extract_from_email(make_email(content="hello")) is None


def test_cadremploi_regex_skips_llm(make_email):
    cadremploi = MagicMock(spec=CadremploiExtractor)
    cadremploi.can_handle.return_value = True
    cadremploi.extract_job_opportunities.return_value = [JobOpportunity(title="CTO")]
    llm = _llm()
    extractor = JobOpportunityExtractor(URLExtractorRegistry(), llm, cadremploi)

    email = make_email(sender="offres@alertes.cadremploi.fr", content="<html></html>")
    jobs = extractor.extract_from_email(email)

    assert [j.title for j in jobs] == ["CTO"]
    assert jobs[0].source_email_from == "offres@alertes.cadremploi.fr"
    llm.complete.assert_not_called()


def test_cadremploi_without_links_falls_back_to_llm(make_email):
    cadremploi = MagicMock(spec=CadremploiExtractor)
    cadremploi.can_handle.return_value = True
    cadremploi.extract_job_opportunities.return_value = None
    registry = URLExtractorRegistry()
    extractor = JobOpportunityExtractor(registry, _llm(ONE_JOB), cadremploi)

    jobs = extractor.extract_from_email(make_email(content="<html>alert</html>"))
    assert jobs[0].company == "Acme"


def test_portal_name_from_delegate_fills_missing_name(make_email):
    registry = URLExtractorRegistry()
    registry.register(CadremploiExtractor())
    extractor = JobOpportunityExtractor(registry, _llm(ONE_JOB), cadremploi=MagicMock(
        spec=CadremploiExtractor, **{"can_handle.return_value": False}
    ))
    email = make_email(sender="offres@alertes.cadremploi.fr", content="<html>alert</html>")

    jobs = extractor.extract_from_email(email)
    assert jobs[0].job_portal_name == "Cadremploi"


def test_run_resumes_and_records_errors(tmp_path, make_email):
    emails = [
        make_email(subject="Already done", content="https://a.example.com"),
        make_email(subject="Good one", content="https://b.example.com"),
        make_email(subject="Broken answer", content="text"),
        make_email(subject="Nothing", content="text"),
    ]
    input_path = tmp_path / "emails.json"
    output_path = tmp_path / "opportunities.json"
    store.save_emails(emails, input_path)

    previous = JobOpportunity(title="Old")
    previous.set_source(emails[0])
    store.save_opportunities([previous], output_path)

    sleep = MagicMock()
    llm = _llm(ONE_JOB, "Sorry, I cannot help.", APOLOGY_SENTINEL)
    extractor = JobOpportunityExtractor(URLExtractorRegistry(), llm, delay=0.5, sleep=sleep)

    summary = extractor.run(input_path, output_path)

    assert (summary.total, summary.skipped, summary.successful, summary.failed) == (4, 1, 1, 2)
    assert summary.newly_processed == 3
    assert summary.total_in_file == 2
    assert set(summary.errors_by_kind()) == {"ExtractionError", "ExtractionFailure"}
    assert summary.costs.api_calls == 3
    # no pause after the skipped email or after the last one
    assert sleep.call_count == 2

    saved = store.load_opportunities(output_path)
    assert [o.title for o in saved] == ["Old", "Backend Engineer"]
    assert saved[1].job_offer_url_description_portal == "https://b.example.com"


def test_run_missing_input_is_configuration_error(tmp_path):
    extractor = JobOpportunityExtractor(URLExtractorRegistry(), _llm())
    with pytest.raises(ConfigurationError):
        extractor.run(tmp_path / "missing.json", tmp_path / "out.json")


def test_run_records_save_failure_and_continues(tmp_path, make_email, monkeypatch):
    emails = [
        make_email(subject="First", content="text"),
        make_email(subject="Second", content="text"),
    ]
    input_path = tmp_path / "emails.json"
    output_path = tmp_path / "opportunities.json"
    store.save_emails(emails, input_path)

    real_save = store.save_opportunities
    calls = []

    def flaky_save(opportunities, path):
        calls.append(len(opportunities))
        if len(calls) == 1:
            raise OSError("No space left on device")
        real_save(opportunities, path)

    monkeypatch.setattr(store, "save_opportunities", flaky_save)
    extractor = JobOpportunityExtractor(
        URLExtractorRegistry(), _llm(ONE_JOB, ONE_JOB), sleep=MagicMock()
    )

    summary = extractor.run(input_path, output_path)

    assert (summary.successful, summary.failed) == (1, 1)
    assert [e.kind for e in summary.errors] == ["OSError"]
    assert summary.total_in_file == 1
    saved = store.load_opportunities(output_path)
    assert [o.source_email_subject for o in saved] == ["Second"]
