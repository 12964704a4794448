# engine/insights.py
"""Profile insight assembly — one pass from (catalogue, domain, answers) to insights.

Pure function of its inputs: no I/O, no shared mutable state.  Each call
allocates its own accumulators and reads one immutable catalogue
snapshot, so concurrent callers need no locking.

Flow::

    catalogue + answers
        → applicable questions / sections       (engine/scoring.py)
        → completion + dual aggregation         (engine/scoring.py)
        → regulatory signals                    (engine/regulatory_signals.py)
        → perimeter opinion + highlights        (opinions/registry.py)
        → conflicts, capital, threshold alerts  (supplementary rules)
        → ProfileInsights
"""
from __future__ import annotations

import logging
from typing import Any, Mapping

from engine.answers import selected_values
from engine.capital import estimate_capital
from engine.conflicts import detect_conflicts
from engine.regulatory_signals import extract_regulatory_signals
from engine.scoring import (
    ScoreTotals,
    aggregate_scores,
    applicable_questions,
    applicable_sections,
    completion_percent,
)
from engine.thresholds import threshold_alerts
from opinions.registry import build_opinion, get_registration
from question_packs.loader import ProfileCatalogue
from schemas.insights import ProfileInsights, SectionScore

_log = logging.getLogger(__name__)

FOCUS_AREA_COUNT = 4


def activity_highlights(
    catalogue: ProfileCatalogue,
    domain: str | None,
    answers: Mapping[str, Any],
) -> list[str]:
    """Labels of the selected options of the domain's activity question."""
    registration = get_registration(domain)
    if registration is None or registration.activity_question_id is None:
        return []
    question = catalogue.question(registration.activity_question_id)
    if question is None or not question.options:
        return []
    selected = set(selected_values(answers, question.id))
    return [opt.label for opt in question.options if opt.value in selected]


def focus_areas(document_scores: list[SectionScore], top_n: int = FOCUS_AREA_COUNT) -> list[str]:
    """Weakest document sections first; ties keep catalogue order."""
    ranked = sorted(document_scores, key=lambda s: s.percent)
    return [s.label for s in ranked[:top_n]]


def _section_score(key: str, label: str, totals: ScoreTotals) -> SectionScore:
    return SectionScore(
        id=key,
        label=label,
        percent=totals.percent,
        score=totals.score,
        max_score=totals.max_score,
    )


def build_profile_insights(
    catalogue: ProfileCatalogue,
    domain: str | None,
    answers: Mapping[str, Any],
) -> ProfileInsights:
    """Score *answers* against *catalogue* for *domain*.

    Missing answers are unanswered, malformed ones too.  An unregistered
    domain yields the pending ``unknown`` opinion rather than an error.
    """
    answers = answers or {}
    questions = applicable_questions(catalogue.questions, domain)
    sections = applicable_sections(catalogue.sections, domain)

    by_section, by_document = aggregate_scores(questions, answers)

    section_scores = [
        _section_score(s.id, s.title, by_section.get(s.id, ScoreTotals()))
        for s in sections
    ]
    document_scores = [
        _section_score(key, catalogue.document_section_label(key), totals)
        for key, totals in by_document.items()
    ]

    completion = completion_percent(questions, answers)
    _log.debug(
        "Built insights for domain=%s: %d applicable questions, completion=%d%%",
        domain, len(questions), completion,
    )

    return ProfileInsights(
        completion_percent=completion,
        section_scores=tuple(section_scores),
        document_section_scores=tuple(document_scores),
        regulatory_signals=tuple(extract_regulatory_signals(questions, answers)),
        activity_highlights=tuple(activity_highlights(catalogue, domain, answers)),
        perimeter_opinion=build_opinion(domain, answers),
        focus_areas=tuple(focus_areas(document_scores)),
        conflicts=tuple(detect_conflicts(domain, answers)),
        capital_estimate=estimate_capital(domain, answers),
        threshold_alerts=tuple(threshold_alerts(questions, answers)),
    )
