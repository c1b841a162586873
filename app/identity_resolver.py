# app/identity_resolver.py
"""
Lead identity from free-form quiz answers.

Name and email are never stored on the Lead: they are resolved on read by
scanning the answers. A Lead is actionable only when BOTH resolve.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol


class AnswerLike(Protocol):
    value: Optional[str]
    question: object


@dataclass(frozen=True)
class LeadIdentity:
    name: Optional[str] = None
    email: Optional[str] = None

    @property
    def is_actionable(self) -> bool:
        return bool(self.name) and bool(self.email)


def normalize_email(value: Optional[str]) -> Optional[str]:
    """Lower-cased and trimmed; empty becomes None."""
    if value is None:
        return None
    v = str(value).strip().lower()
    return v or None


def _looks_like_email(value: str) -> bool:
    return "@" in value


def _prompt(answer) -> str:
    q = getattr(answer, "question", None)
    return (getattr(q, "prompt", None) or "").lower()


def _qtype(answer) -> str:
    q = getattr(answer, "question", None)
    return (getattr(q, "type", None) or "").lower()


def _is_email_question(answer) -> bool:
    return "email" in _prompt(answer) or _qtype(answer) == "email"


def _is_name_question(answer) -> bool:
    if _is_email_question(answer):
        return False
    return "name" in _prompt(answer)


def _is_free_text(answer) -> bool:
    return not _is_email_question(answer) and _qtype(answer) == "text"


def resolve_identity(answers: Iterable[AnswerLike]) -> LeadIdentity:
    """
    Best-effort {name, email} from the ordered answers.
    The first matching answer wins; a missing match yields None, never an error.
    """
    name: Optional[str] = None
    free_text: Optional[str] = None
    email: Optional[str] = None

    for answer in answers:
        raw = answer.value
        if raw is None or not str(raw).strip():
            continue

        if email is None and _is_email_question(answer):
            email = normalize_email(raw)
            continue

        if _looks_like_email(str(raw)):
            continue
        if name is None and _is_name_question(answer):
            name = str(raw).strip()
        elif free_text is None and _is_free_text(answer):
            free_text = str(raw).strip()

    # a "name" prompt wins over the first free-text answer
    return LeadIdentity(name=name or free_text, email=email)


def is_actionable_lead(lead) -> bool:
    return resolve_identity(lead.answers).is_actionable


def dedupe_by_email(leads: Iterable) -> List:
    """
    Actionable leads only, one per resolved email.
    Input is expected most-recent-first; the first occurrence is kept.
    """
    seen = set()
    out = []
    for lead in leads:
        identity = resolve_identity(lead.answers)
        if not identity.is_actionable:
            continue
        if identity.email in seen:
            continue
        seen.add(identity.email)
        out.append(lead)
    return out
