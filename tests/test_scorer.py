"""Relevance scoring, ranking, categories and candidate criteria."""
from datetime import datetime, timezone

import pytest

from jobmail.keywords import KeywordCatalog
from jobmail.scorer import (
    JobCriteria,
    RelevanceScorer,
    apply_criteria,
    categorize,
    is_duplicate,
    rank,
)


def test_trusted_platform_apply_now_is_accepted(scorer):
    score = scorer.score(
        "jobs-noreply@linkedin.com",
        "apply now to Technical Delivery Director",
        "apply now",
    )
    assert score >= 18


def test_trusted_sender_skips_newsletter_reject(scorer):
    score = scorer.score(
        "jobs-noreply@linkedin.com",
        "Apply now: Head of Engineering",
        "Apply now. Recommended for you based on your profile.",
    )
    assert score >= 18


def test_blocked_domain_scores_zero(scorer):
    assert scorer.score("info@estateguru.co", "New investment opportunity!", "") == 0


def test_newsletter_from_untrusted_sender_scores_zero(scorer):
    score = scorer.score(
        "newsletter@careertips.com",
        "How to ace your next job interview",
        "Our best career advice and a guide to salary negotiation.",
    )
    assert score == 0


def test_direct_offer_from_company(scorer):
    score = scorer.score(
        "hr@acme.com",
        "Job offer for a Backend Engineer",
        "We are looking for a backend engineer to join our team. Send your CV.",
    )
    # strong phrase 10 + subject "job offer" 15 + join/team 3
    assert score == 28



@pytest.mark.parametrize(
    "sender, subject, content, expected",
    [
        # financial wording in the body is tolerated next to "apply"
        ("hr@acme.com", "Backend engineer", "Build our trading engine. Apply now.", 10),
        ("hr@acme.com", "Backend engineer", "Build our trading engine. Send your CV.", 0),
        ("hr@acme.com", "Crypto engineer: apply now", "Apply now", 0),
        # education wording is tolerated when someone is hiring
        ("hr@acme.com", "Course designer", "We're hiring a course designer. Send your CV.", 10),
        ("hr@acme.com", "Course designer", "Send your CV.", 0),
        ("hr@acme.com", "Job opening: CTO", "Apply now", 22),
        ("hr@acme.com", "Hiring for CTO", "Join us", 15),
        ("hr@acme.com", "Backend engineer", "Position: Backend engineer. Apply now.", 14),
        ("jobs@linkedin.com", "Your profile", "A recruiter viewed your profile", 8),
        # strong phrase but no topic keyword anywhere
        ("hr@acme.com", "Backend engineer", "Send your CV to Jane", 0),
        ("hr@acme.com", "Backend engineer", "Send your CV for this role", 10),
    ],
)
def test_exact_scores(scorer, sender, subject, content, expected):
    assert scorer.score(sender, subject, content) == expected

def test_promo_subject_rejected_even_from_trusted_sender(scorer):
    assert scorer.score("jobs@linkedin.com", "Promo: 50% off Premium", "apply now") == 0


def test_travel_and_event_content_rejected(scorer):
    assert scorer.score("hr@acme.com", "Apply now", "Price drop on your flight to Rome") == 0
    assert scorer.score("hr@acme.com", "We're hiring a CTO", "Join the webinar on Friday") == 0


def test_plain_conversation_scores_zero(scorer):
    assert scorer.score("friend@gmail.com", "Lunch on Friday?", "See you at noon") == 0


def test_weak_signal_without_strong_offer_is_rejected(scorer):
    # moderate phrase only: 5 < 10
    assert scorer.score("someone@corp.com", "Quick question", "About the interview") == 0


def test_score_is_deterministic(scorer):
    args = ("hr@acme.com", "Job offer", "We are looking for a data engineer")
    assert scorer.score(*args) == scorer.score(*args)


def test_score_email_uses_record_fields(scorer, make_email):
    email = make_email(sender="jobs-noreply@linkedin.com", subject="apply now", content="apply now")
    assert scorer.score_email(email) == scorer.score(email.sender, email.subject, email.content)


def test_custom_catalog_changes_blocklist():
    catalog = KeywordCatalog(blocked_domains=("acme.com",))
    scorer = RelevanceScorer(catalog)
    assert scorer.score("hr@acme.com", "Job offer", "We are looking for a dev") == 0


def test_is_duplicate_requires_same_date(make_email):
    a = make_email(subject="Offer", sender="a@b.com")
    b = make_email(subject="Offer", sender="a@b.com")
    c = make_email(
        subject="Offer", sender="a@b.com", sent=datetime(2024, 3, 11, tzinfo=timezone.utc)
    )
    assert is_duplicate(b, [a])
    assert not is_duplicate(c, [a])
    assert not is_duplicate(make_email(sent=None), [make_email(sent=None)])


def test_rank_orders_by_score_then_date(make_email):
    old = make_email(subject="old", score=10, sent=datetime(2024, 1, 1, tzinfo=timezone.utc))
    new = make_email(subject="new", score=10, sent=datetime(2024, 2, 1, tzinfo=timezone.utc))
    top = make_email(subject="top", score=20)
    undated = make_email(subject="undated", score=10, sent=None)

    ranked = rank([old, undated, top, new])
    assert [e.subject for e in ranked] == ["top", "new", "old", "undated"]
    assert [e.subject for e in rank([old, new, top], max_results=2)] == ["top", "new"]


def test_categorize_buckets(make_email, catalog):
    emails = [
        make_email(subject="Big one", score=12),
        make_email(subject="We propose a role", score=5),
        make_email(sender="alerts@indeed.com", subject="New roles", score=5),
        make_email(sender="jane@talentco.com", subject="Hello", content="I am a recruiter", score=5),
        make_email(sender="x@y.com", subject="Hello", score=5),
    ]
    buckets = categorize(emails, catalog)
    assert [len(buckets[name]) for name in buckets] == [1, 1, 1, 1, 1]
    assert buckets["Job Boards"][0].sender == "alerts@indeed.com"


def test_apply_criteria_boosts_and_filters(make_email):
    criteria = JobCriteria(
        position="CTO",
        position_aliases=["chief technology officer"],
        locations=["Paris"],
        skills=["python", "aws"],
    )
    match = make_email(subject="CTO role", content="Based in Paris. Python and AWS.", score=10)
    alias = make_email(
        subject="Chief Technology Officer", content="Paris, python, aws, kubernetes", score=12
    )
    wrong_city = make_email(subject="CTO role", content="Lyon. Python and AWS.", score=30)
    one_skill = make_email(subject="CTO role", content="Paris. Python.", score=30)

    result = apply_criteria([match, alias, wrong_city, one_skill], criteria)

    assert [e.relevance_score for e in result] == [24, 22]
    assert match.relevance_score == 10


def test_permanent_contract_excludes_freelance(make_email):
    criteria = JobCriteria(contract_type="permanent")
    perm = make_email(subject="Permanent role", score=5)
    gig = make_email(subject="Freelance mission", score=5)
    result = {e.subject: e.relevance_score for e in apply_criteria([perm, gig], criteria)}
    assert result == {"Permanent role": 7, "Freelance mission": 5}
