"""Answer classification — raw questionnaire values into a closed set of kinds.

Answers arrive as a plain mapping of question id to raw JSON value
(string, list of strings, number or boolean).  ``classify_answer()``
turns each raw value into exactly one of the variants below, using the
owning question's declared type.  Scoring and completion only ever look
at the variant, never at the raw value.

A value whose shape does not match the question type is classified as
``Unanswered(reason="malformed")`` rather than raising: questionnaire
data is end-user authored and must never crash a report.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Literal, Mapping, Union

from schemas.profile import Question

UnansweredReason = Literal["absent", "empty", "malformed"]


@dataclass(frozen=True)
class Unanswered:
    reason: UnansweredReason = "absent"


@dataclass(frozen=True)
class ChoiceAnswer:
    """A single selected value.  May match no option."""
    value: str | int | float | bool


@dataclass(frozen=True)
class MultiChoiceAnswer:
    values: tuple[str, ...]


@dataclass(frozen=True)
class TextAnswer:
    text: str


@dataclass(frozen=True)
class NumberAnswer:
    value: float


@dataclass(frozen=True)
class BooleanAnswer:
    value: bool


Answer = Union[Unanswered, ChoiceAnswer, MultiChoiceAnswer, TextAnswer, NumberAnswer, BooleanAnswer]

ANSWERED_KINDS: tuple[type, ...] = (
    ChoiceAnswer,
    MultiChoiceAnswer,
    TextAnswer,
    NumberAnswer,
    BooleanAnswer,
)


def parse_number(raw: Any) -> float | None:
    """Return *raw* as a finite float, or None.

    Accepts ints, floats and numeric strings (thousands separators
    allowed).  Booleans are never numbers.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        cleaned = raw.replace(",", "").strip()
        if not cleaned:
            return None
        try:
            value = float(cleaned)
        except ValueError:
            return None
    else:
        return None
    return value if math.isfinite(value) else None


def _classify_scalar(raw: Any) -> Answer:
    if isinstance(raw, str):
        return ChoiceAnswer(raw) if raw.strip() else Unanswered("empty")
    if isinstance(raw, bool):
        return ChoiceAnswer(raw)
    if isinstance(raw, (int, float)):
        return ChoiceAnswer(raw) if not math.isnan(raw) else Unanswered("malformed")
    return Unanswered("malformed")


def classify_answer(question: Question, raw: Any) -> Answer:
    """Classify *raw* against *question*'s declared type."""
    if raw is None:
        return Unanswered("absent")

    qtype = question.type
    if qtype == "multi-choice":
        if not isinstance(raw, list) or not all(isinstance(v, str) for v in raw):
            return Unanswered("malformed")
        return MultiChoiceAnswer(tuple(raw)) if raw else Unanswered("empty")

    if qtype == "text":
        if not isinstance(raw, str):
            return Unanswered("malformed")
        return TextAnswer(raw) if raw.strip() else Unanswered("empty")

    if qtype == "number":
        if isinstance(raw, str) and not raw.strip():
            return Unanswered("empty")
        number = parse_number(raw)
        return NumberAnswer(number) if number is not None else Unanswered("malformed")

    if qtype == "boolean":
        return BooleanAnswer(raw) if isinstance(raw, bool) else Unanswered("malformed")

    # single-choice and anything else: a non-empty scalar
    if isinstance(raw, (list, dict)):
        return Unanswered("malformed")
    return _classify_scalar(raw)


def is_answered(question: Question, raw: Any) -> bool:
    """Sole gate for completion counting and regulatory-signal counting."""
    return isinstance(classify_answer(question, raw), ANSWERED_KINDS)


# ── Answer-map helpers (used by opinion builders and rules) ───────

def selected_values(answers: Mapping[str, Any], question_id: str) -> list[str]:
    """The selected option values of a multi-choice answer, or []."""
    raw = answers.get(question_id)
    if not isinstance(raw, list):
        return []
    return [v for v in raw if isinstance(v, str)]


def answer_number(answers: Mapping[str, Any], question_id: str) -> float | None:
    return parse_number(answers.get(question_id))
