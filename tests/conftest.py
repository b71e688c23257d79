"""Shared fixtures."""
from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from jobmail.keywords import KeywordCatalog
from jobmail.models import EmailRecord
from jobmail.scorer import RelevanceScorer


@pytest.fixture
def catalog() -> KeywordCatalog:
    return KeywordCatalog()


@pytest.fixture
def scorer(catalog) -> RelevanceScorer:
    return RelevanceScorer(catalog)


@pytest.fixture
def make_email():
    def _make(
        sender="hr@acme.com",
        subject="Job offer",
        content="",
        score=0,
        sent=datetime(2024, 3, 10, 9, 0, tzinfo=timezone.utc),
    ) -> EmailRecord:
        return EmailRecord(
            sender=sender, subject=subject, content=content, sent_date=sent, relevance_score=score
        )

    return _make


@pytest.fixture
def http_response():
    """Factory for fake ``requests`` responses usable as context managers."""

    def _make(status=200, location=None, text=""):
        r = MagicMock()
        r.status_code = status
        r.headers = {"Location": location} if location else {}
        r.text = text
        r.__enter__.return_value = r
        r.__exit__.return_value = False
        return r

    return _make
