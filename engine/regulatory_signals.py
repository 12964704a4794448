"""Regulatory signal tally — which cited rule areas the answers activate."""
from __future__ import annotations

from typing import Any, Iterable, Mapping

from engine.answers import is_answered
from schemas.insights import RegulatorySignal
from schemas.profile import Question


def extract_regulatory_signals(
    questions: Iterable[Question],
    answers: Mapping[str, Any],
) -> list[RegulatorySignal]:
    """Count answered questions per cited regulatory reference.

    A question with several refs increments every one of them.  Sorted by
    count descending; ties keep first-seen catalogue order (stable sort).
    """
    counts: dict[str, int] = {}
    for q in questions:
        if not q.regulatory_refs or not is_answered(q, answers.get(q.id)):
            continue
        for ref in q.regulatory_refs:
            counts[ref] = counts.get(ref, 0) + 1

    signals = [RegulatorySignal(label=label, count=count) for label, count in counts.items()]
    signals.sort(key=lambda s: s.count, reverse=True)
    return signals
