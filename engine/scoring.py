# engine/scoring.py
"""Deterministic readiness scoring — per-question normalisation and roll-ups.

Every (score, max_score) pair is computed from the classified answer
variant (engine/answers.py), never from the raw value.  Choice scores are
normalised by the best attainable option score of *that* question, since
option score sets are authored per question and share no common ceiling.

Aggregation runs along two independent keys in one pass:
  - the question's topical ``section_id``
  - every ``document_section_id`` the question lists (fan-out: the same
    contribution is replicated into each, never split)
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from engine.answers import (
    BooleanAnswer,
    ChoiceAnswer,
    MultiChoiceAnswer,
    NumberAnswer,
    TextAnswer,
    Unanswered,
    classify_answer,
)
from schemas.profile import Question, Section


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def percent_of(score: float, max_score: float) -> int:
    return round_half_up(score / max_score * 100) if max_score > 0 else 0


# ── Filtering ─────────────────────────────────────────────────────

def applicable_questions(questions: Iterable[Question], domain: str | None) -> list[Question]:
    """Core questions plus those tagged for *domain*, in declaration order."""
    return [q for q in questions if q.applies_to(domain)]


def applicable_sections(sections: Iterable[Section], domain: str | None) -> list[Section]:
    return [s for s in sections if s.applies_to(domain)]


# ── Per-question scoring ──────────────────────────────────────────

def score_question(question: Question, raw: Any) -> tuple[float, float]:
    """Return ``(score, max_score)`` for one question; ``0 <= score <= max_score``."""
    weight = float(question.weight)
    answer = classify_answer(question, raw)

    if isinstance(answer, Unanswered):
        return 0.0, weight

    if isinstance(answer, ChoiceAnswer) and question.type == "single-choice":
        options = question.options or ()
        best = max([opt.score for opt in options] + [1])
        matched = question.option(answer.value)
        earned = matched.score if matched else 0
        return earned / best * weight, weight

    if isinstance(answer, MultiChoiceAnswer):
        options = question.options or ()
        total = max(sum(opt.score for opt in options), 1)
        chosen = set(answer.values)
        earned = sum(opt.score for opt in options if opt.value in chosen)
        return earned / total * weight, weight

    if isinstance(answer, BooleanAnswer):
        return (weight if answer.value else 0.0), weight

    if isinstance(answer, (TextAnswer, NumberAnswer, ChoiceAnswer)):
        # No rubric for free answers: a substantive answer earns full weight
        return weight, weight

    raise TypeError(f"Unhandled answer kind: {type(answer).__name__}")


# ── Completion ────────────────────────────────────────────────────

def completion_percent(questions: Iterable[Question], answers: Mapping[str, Any]) -> int:
    """Share of required questions answered, 0 when nothing is required."""
    required = [q for q in questions if q.required]
    if not required:
        return 0
    answered = sum(
        1 for q in required
        if not isinstance(classify_answer(q, answers.get(q.id)), Unanswered)
    )
    return round_half_up(answered / len(required) * 100)


# ── Aggregation ───────────────────────────────────────────────────

@dataclass
class ScoreTotals:
    """Running (score, max_score) accumulator for one grouping key."""
    score: float = 0.0
    max_score: float = 0.0

    def add(self, score: float, max_score: float) -> None:
        self.score += score
        self.max_score += max_score

    @property
    def percent(self) -> int:
        return percent_of(self.score, self.max_score)


def aggregate_scores(
    questions: Iterable[Question],
    answers: Mapping[str, Any],
) -> tuple[dict[str, ScoreTotals], dict[str, ScoreTotals]]:
    """Roll question scores up by topical section and by document section.

    Returns ``(by_section, by_document_section)``.  Both dicts keep
    first-seen order, which follows catalogue declaration order.
    """
    by_section: dict[str, ScoreTotals] = {}
    by_document: dict[str, ScoreTotals] = {}

    for q in questions:
        score, max_score = score_question(q, answers.get(q.id))
        by_section.setdefault(q.section_id, ScoreTotals()).add(score, max_score)
        for key in q.document_section_ids:
            by_document.setdefault(key, ScoreTotals()).add(score, max_score)

    return by_section, by_document
