from types import SimpleNamespace

import pytest

from app.identity_resolver import (
    dedupe_by_email,
    is_actionable_lead,
    normalize_email,
    resolve_identity,
)


def answer(prompt, value, qtype="text"):
    return SimpleNamespace(value=value, question=SimpleNamespace(prompt=prompt, type=qtype))


def lead(*answers, lead_id=1):
    return SimpleNamespace(id=lead_id, answers=list(answers))


NAME = answer("What is your first name?", "Jane")
EMAIL = answer("Where should we send your results? (email)", "  Jane@Example.COM ")


def test_normalize_email():
    assert normalize_email("  Foo@Bar.Com ") == "foo@bar.com"
    assert normalize_email("   ") is None
    assert normalize_email(None) is None


def test_resolves_name_verbatim_and_email_normalized():
    identity = resolve_identity([NAME, EMAIL])
    assert identity.name == "Jane"
    assert identity.email == "jane@example.com"
    assert identity.is_actionable


def test_email_found_by_type_tag():
    identity = resolve_identity([answer("Best address to reach you", "a@b.co", qtype="email")])
    assert identity.email == "a@b.co"
    assert identity.name is None


def test_name_prompt_with_email_value_is_not_a_name():
    identity = resolve_identity([answer("Your name", "jane@example.com")])
    assert identity.name is None


def test_unrelated_choice_questions_yield_nothing():
    identity = resolve_identity([answer("How much do you earn?", "a lot", qtype="single")])
    assert identity.name is None and identity.email is None


@pytest.mark.parametrize(
    "answers, expected",
    [
        ([NAME, EMAIL], True),
        ([NAME], False),
        ([EMAIL], False),
        ([], False),
        ([NAME, answer("Email", "   ")], False),
    ],
)
def test_actionable_iff_name_and_email(answers, expected):
    assert is_actionable_lead(lead(*answers)) is expected


def test_dedupe_keeps_first_occurrence_per_email():
    newest = lead(NAME, EMAIL, lead_id=3)
    older = lead(answer("Name", "Janet"), answer("email", "jane@example.com"), lead_id=2)
    incomplete = lead(NAME, lead_id=1)

    result = dedupe_by_email([newest, older, incomplete])

    assert [l.id for l in result] == [3]


def test_free_text_answer_is_the_name_fallback():
    identity = resolve_identity([
        answer("What should we call you?", "Jane Doe", qtype="text"),
        answer("Your email", "jane@example.com", qtype="email"),
    ])
    assert identity.name == "Jane Doe"
    assert identity.email == "jane@example.com"
    assert identity.is_actionable


def test_name_prompt_wins_over_earlier_free_text():
    identity = resolve_identity([
        answer("Anything else we should know?", "Call after 6pm", qtype="text"),
        answer("Your first name", "Jane", qtype="single"),
    ])
    assert identity.name == "Jane"


def test_free_text_that_looks_like_an_email_is_skipped():
    identity = resolve_identity([
        answer("How can we reach you?", "jane@example.com", qtype="text"),
        answer("Tell us about yourself", "Jane from Leeds", qtype="text"),
    ])
    assert identity.name == "Jane from Leeds"
    assert identity.email is None
