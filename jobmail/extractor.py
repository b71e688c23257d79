"""
Turn scored job emails into structured job opportunities.

Per email: portal regex extraction first (Cadremploi alerts), otherwise the
registry's URL pass plus an LLM extraction whose JSON answer is merged with the
regex URLs and cleaned. Results are flushed to disk after every success so an
interrupted run resumes where it stopped.
"""
from __future__ import annotations

import json
import re
import time
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from jobmail import store
from jobmail.costs import CostSummary
from jobmail.errors import ExtractionError
from jobmail.llm import APOLOGY_SENTINEL, LLMClient
from jobmail.log import get_logger, truncate
from jobmail.models import (
    Delegate,
    EmailRecord,
    ExtractionOutcome,
    JobOpportunity,
    Resolved,
    URLExtractionResult,
)
from jobmail.urls.cadremploi import CadremploiExtractor
from jobmail.urls.registry import URLExtractorRegistry
from jobmail.urls.validator import validate_url

log = get_logger(__name__)

HTML_MAX_CHARS = 80_000
TEXT_MAX_CHARS = 10_000
LLM_TEMPERATURE = 0.1
LLM_MAX_TOKENS = 6000

EMPTY_RESULT_KIND = "ExtractionFailure"

URL_FIELDS: tuple[tuple[str, str], ...] = (
    ("job_offer_url_apply_portal", "Apply on Portal"),
    ("job_offer_url_apply_company", "Apply on Company"),
    ("job_offer_url_description_portal", "Description on Portal"),
    ("job_offer_url_description_company", "Description on Company"),
)

SYSTEM_PROMPT = (
    "You are an expert job opportunity analyzer. Your task is to extract structured "
    "information from job offer emails and return it in JSON format.\n\n"
    "Extract the following fields from the email:\n"
    "- title: The job title/position\n"
    "- company: Company name\n"
    "- job_portal_name: Name of job portal (Cadremploi, LinkedIn, Indeed, Apec, HelloWork, etc.) "
    "or null if direct from company\n"
    "- job_offer_url_apply_portal: URL to APPLY/SUBMIT APPLICATION on the job portal (intermediary site)\n"
    "- job_offer_url_apply_company: URL to APPLY/SUBMIT APPLICATION on the company's own website\n"
    "- job_offer_url_description_portal: URL to VIEW/READ job description on the job portal\n"
    "- job_offer_url_description_company: URL to VIEW/READ job description on company's website\n\n"
    "URL Classification Guidelines:\n"
    "  - 'Apply' URLs: Allow submitting CV/application, typically have 'apply', 'postuler', "
    "'candidater' in URL or button text\n"
    "  - 'Description' URLs: Only show job information, typically have 'voir', 'view', 'detail', "
    "'offre' in URL or button text\n"
    "  - 'Portal' URLs: On intermediary sites (Cadremploi, LinkedIn, Indeed, etc.)\n"
    "  - 'Company' URLs: On the actual employer's website (company domain)\n"
    "  - If you're unsure whether a URL is for apply or description, prefer using the description field\n"
    "  - Use null for missing URLs\n\n"
    "- fit_score: Your assessment of how good this opportunity is (0.0 to 10.0)\n"
    "- location: Job location (city, country, or 'Remote')\n"
    "- salary: Salary range if mentioned\n"
    "- responsibilities: Key responsibilities (brief summary)\n"
    "- skills_required: Required skills and technologies\n"
    "- compensation: Total compensation including benefits\n"
    "- employment_type: 'freelance' or 'employee'\n"
    "- contract_type: 'permanent' or 'temporary'\n"
    "- is_startup: true if it's a startup, false otherwise\n"
    "- company_size: Company size ('1-10', '11-50', '51-200', '201-1000', '1000+', 'unknown')\n"
    "- team_size_to_manage: Size of team to manage if mentioned\n"
    "- additional_experience: Additional experience requirements\n"
    "- work_languages: Required languages for work\n\n"
    "IMPORTANT: If the email contains multiple job offers, return a JSON Array with one object per offer. "
    "Each offer should have its specific URLs properly classified.\n\n"
    "Return a JSON Object (if single opportunity) or a JSON Array (if multiple opportunities) "
    "containing these fields. Use null for missing information. "
    "Do not include any explanatory text, only the JSON."
)

_FENCE_OPEN = re.compile(r"^```(?:json)?", re.IGNORECASE)


def is_html(content: str | None) -> bool:
    if not content:
        return False
    return content.strip().startswith("<!DOCTYPE") or "<html" in content


def build_user_prompt(email: EmailRecord) -> str:
    content = email.content
    html = is_html(content)
    parts: list[str] = []

    if html:
        parts.append(
            "Extract job opportunity information from this HTML email.\n"
            "IMPORTANT: The email content is in HTML format. Parse the HTML to extract:\n"
            "- Job titles (look for heading text, job names)\n"
            "- Company names\n"
            "- All URLs (especially 'Voir l'offre' / 'View offer' links)\n"
            "- Ignore CSS styles, DOCTYPE, meta tags, and formatting elements\n\n"
        )
    else:
        parts.append("Extract job opportunity information from this email:\n\n")

    parts.append(f"Email Subject: {email.subject}\n")
    parts.append(f"From: {email.sender}\n\n")

    max_length = HTML_MAX_CHARS if html else TEXT_MAX_CHARS
    if content:
        if len(content) > max_length:
            parts.append("Email Content (truncated):\n")
            parts.append(content[:max_length])
            parts.append(f"\n\n[...content truncated at {max_length} characters...]")
        else:
            parts.append("Email Content:\n")
            parts.append(content)

    parts.append("\n\nExtract ALL job opportunities from this email and return as JSON.")
    if html:
        parts.append("\nRemember: Parse the HTML carefully to find ALL job listings in the email.")
    return "".join(parts)


def strip_code_fences(text: str) -> str:
    cleaned = _FENCE_OPEN.sub("", text.strip(), count=1)
    if cleaned.endswith("```"):
        cleaned = cleaned[: cleaned.rfind("```")]
    return cleaned.strip()


def parse_llm_response(text: str) -> list[JobOpportunity]:
    """One JSON object or an array of them, optionally wrapped in a markdown fence."""
    cleaned = strip_code_fences(text)

    if cleaned.startswith("["):
        if not cleaned.endswith("]"):
            raise ExtractionError(
                "Invalid JSON array structure - starts with [ but doesn't end with ]. "
                "The LLM response was likely truncated; try increasing max_tokens. "
                f"Response length: {len(cleaned)} chars"
            )
    elif cleaned.startswith("{"):
        if not cleaned.endswith("}"):
            raise ExtractionError(
                "Invalid JSON object structure - starts with { but doesn't end with }. "
                "The LLM response was likely truncated; try increasing max_tokens. "
                f"Response length: {len(cleaned)} chars"
            )
    else:
        raise ExtractionError("Invalid JSON structure - doesn't start with { or [")

    try:
        data: Any = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ExtractionError(f"Failed to parse JSON response: {exc}") from exc

    items = data if isinstance(data, list) else [data]
    if not all(isinstance(item, dict) for item in items):
        raise ExtractionError("JSON array must contain only objects")
    return [JobOpportunity.from_dict(item) for item in items]


def merge_url_result(opportunity: JobOpportunity, result: URLExtractionResult) -> None:
    """Regex-found URLs beat the LLM's guesses for the same slot."""
    if result.job_portal_name and not opportunity.job_portal_name:
        opportunity.job_portal_name = result.job_portal_name
    if result.apply_on_portal:
        opportunity.job_offer_url_apply_portal = result.apply_on_portal
    if result.apply_on_company:
        opportunity.job_offer_url_apply_company = result.apply_on_company
    if result.description_on_portal:
        opportunity.job_offer_url_description_portal = result.description_on_portal
    if result.description_on_company:
        opportunity.job_offer_url_description_company = result.description_on_company


def clean_urls(opportunity: JobOpportunity) -> None:
    """Null out every URL field that fails validation."""
    for attr, label in URL_FIELDS:
        url = getattr(opportunity, attr)
        if url is None or not str(url).strip():
            setattr(opportunity, attr, None)
            continue
        url = str(url)
        check = validate_url(url)
        if not check.valid:
            log.warning("Invalid URL in '%s' field (%s): %s", label, check.error, truncate(url, 80))
            setattr(opportunity, attr, None)
        else:
            setattr(opportunity, attr, url.strip())


@dataclass
class ErrorDetail:
    subject: str
    sender: str
    message: str
    kind: str


@dataclass
class ExtractionSummary:
    total: int = 0
    skipped: int = 0
    processed: int = 0
    successful: int = 0
    failed: int = 0
    total_in_file: int = 0
    errors: list[ErrorDetail] = field(default_factory=list)
    costs: CostSummary = field(default_factory=CostSummary)

    @property
    def newly_processed(self) -> int:
        return self.processed - self.skipped

    def errors_by_kind(self) -> dict[str, list[ErrorDetail]]:
        grouped: dict[str, list[ErrorDetail]] = defaultdict(list)
        for err in self.errors:
            grouped[err.kind].append(err)
        return dict(grouped)


class JobOpportunityExtractor:
    def __init__(
        self,
        registry: URLExtractorRegistry,
        llm: LLMClient,
        cadremploi: CadremploiExtractor | None = None,
        *,
        delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.registry = registry
        self.llm = llm
        self.cadremploi = cadremploi or next(
            (e for e in registry.extractors if isinstance(e, CadremploiExtractor)), None
        )
        self.delay = delay
        self.sleep = sleep
        self.costs = CostSummary()

    def extract_from_email(self, email: EmailRecord) -> list[JobOpportunity] | None:
        """Opportunities found in one email, or None when nothing could be extracted.

        Raises ExtractionError when the LLM answer is not usable JSON.
        """
        if self.cadremploi and self.cadremploi.can_handle(email.sender, email.subject):
            log.info("Cadremploi alert, trying regex extraction")
            found = self.cadremploi.extract_job_opportunities(email.content, email.subject)
            if found:
                for opp in found:
                    opp.set_source(email)
                return found
            log.info("Regex extraction found nothing, falling back to LLM")

        outcome: ExtractionOutcome = self.registry.extract_urls(
            email.sender, email.subject, email.content
        )
        url_result = outcome.result if isinstance(outcome, Resolved) else None
        portal_name = None
        if url_result is not None:
            portal_name = url_result.job_portal_name
        elif isinstance(outcome, Delegate):
            portal_name = outcome.job_portal_name

        usage = self.llm.complete(
            SYSTEM_PROMPT,
            build_user_prompt(email),
            temperature=LLM_TEMPERATURE,
            max_tokens=LLM_MAX_TOKENS,
        )
        self.costs.add(usage)

        answer = (usage.response or "").strip()
        if not answer or answer == APOLOGY_SENTINEL:
            log.warning("LLM returned no usable answer for %s", truncate(email.subject, 60))
            return None

        try:
            opportunities = parse_llm_response(answer)
        except ExtractionError:
            log.debug("LLM response preview: %s", truncate(answer, 500))
            raise

        for opp in opportunities:
            opp.set_source(email)
            if portal_name and not opp.job_portal_name:
                opp.job_portal_name = portal_name
            if url_result is not None and url_result.success:
                merge_url_result(opp, url_result)
            clean_urls(opp)
        return opportunities

    def run(self, input_path: Path, output_path: Path) -> ExtractionSummary:
        """Process every email in *input_path*, appending results to *output_path*.

        Raises ConfigurationError when the input file is missing; every other
        failure is recorded per email and the batch continues.
        """
        emails = store.load_emails(input_path)
        log.info("Loaded %d emails to process from %s", len(emails), input_path.name)

        opportunities = store.load_opportunities(output_path)
        done = {o.source_key for o in opportunities}
        if opportunities:
            log.info("Resuming: %d opportunities already in %s", len(opportunities), output_path.name)

        summary = ExtractionSummary(total=len(emails), costs=self.costs)
        for i, email in enumerate(emails, start=1):
            summary.processed += 1
            log.info("Processing [%d/%d]: %s", i, len(emails), truncate(email.subject, 60))

            if email.key in done:
                summary.skipped += 1
                log.info("Skipped - already processed")
                continue

            try:
                found = self.extract_from_email(email)
                if found:
                    store.save_opportunities(opportunities + found, output_path)
            except Exception as exc:
                summary.failed += 1
                summary.errors.append(
                    ErrorDetail(email.subject, email.sender, str(exc), exc.__class__.__name__)
                )
                log.error(
                    "Extraction failed for %s from %s: %s: %s",
                    truncate(email.subject, 60),
                    truncate(email.sender, 40),
                    exc.__class__.__name__,
                    truncate(str(exc), 120),
                )
            else:
                if found:
                    opportunities.extend(found)
                    done.add(email.key)
                    summary.successful += 1
                    for opp in found:
                        log.info("  + %s @ %s", truncate(opp.title, 50), opp.company)
                else:
                    summary.failed += 1
                    summary.errors.append(
                        ErrorDetail(
                            email.subject,
                            email.sender,
                            "LLM returned null or empty response",
                            EMPTY_RESULT_KIND,
                        )
                    )
                    log.warning("No opportunity extracted from %s", truncate(email.subject, 60))

            if i < len(emails):
                self.sleep(self.delay)

        summary.total_in_file = len(opportunities)
        store.save_opportunities(opportunities, output_path)
        log.info(
            "Extraction complete — total=%d, skipped=%d, new=%d, ok=%d, failed=%d, in file=%d",
            summary.total, summary.skipped, summary.newly_processed,
            summary.successful, summary.failed, summary.total_in_file,
        )
        for kind, errs in summary.errors_by_kind().items():
            log.info("  %s: %d error(s)", kind, len(errs))
        for line in self.costs.summary_lines():
            log.info("  %s", line)
        return summary
