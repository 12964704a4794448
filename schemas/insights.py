"""Insight value objects — the shapes that leave the scoring engine.

Every object here is frozen and holds only primitives, strings and
tuples of other insight objects.  Nothing references back into the
catalogue or the answer map, so a ``ProfileInsights`` can be cached
or transmitted freely.  ``to_dict()`` yields plain JSON-safe data.
"""
from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any


def _plain(value: Any) -> Any:
    if isinstance(value, (tuple, list)):
        return [_plain(v) for v in value]
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value


class _ValueObject:
    def to_dict(self) -> dict[str, Any]:
        return {f.name: _plain(getattr(self, f.name)) for f in fields(self)}


@dataclass(frozen=True)
class SectionScore(_ValueObject):
    """Aggregate for one topical section or one document section."""
    id: str
    label: str
    percent: int
    score: float
    max_score: float


@dataclass(frozen=True)
class RegulatorySignal(_ValueObject):
    label: str
    count: int


@dataclass(frozen=True)
class PerimeterOpinion(_ValueObject):
    verdict: str                       # Verdict literal
    summary: str
    rationale: tuple[str, ...] = ()
    obligations: tuple[str, ...] = ()


@dataclass(frozen=True)
class ValidationConflict(_ValueObject):
    id: str
    severity: str                      # ConflictSeverity literal
    message: str
    question_ids: tuple[str, ...]
    suggestion: str | None = None


@dataclass(frozen=True)
class CapitalEstimate(_ValueObject):
    method: str | None                 # "A" | "B" | "C" | None
    minimum_capital: int
    method_a_estimate: float | None
    method_b_estimate: float | None
    recommendation: str
    breakdown: tuple[str, ...] = ()


@dataclass(frozen=True)
class ThresholdAlert(_ValueObject):
    question_id: str
    message: str


@dataclass(frozen=True)
class ProfileInsights(_ValueObject):
    """Full engine output for one (catalogue, domain, answers) call."""
    completion_percent: int
    section_scores: tuple[SectionScore, ...]
    document_section_scores: tuple[SectionScore, ...]
    regulatory_signals: tuple[RegulatorySignal, ...]
    activity_highlights: tuple[str, ...]
    perimeter_opinion: PerimeterOpinion
    focus_areas: tuple[str, ...]
    conflicts: tuple[ValidationConflict, ...] = ()
    capital_estimate: CapitalEstimate | None = None
    threshold_alerts: tuple[ThresholdAlert, ...] = ()


# Fallback used when no builder is registered for a domain
PENDING_OPINION = PerimeterOpinion(
    verdict="unknown",
    summary="Perimeter opinion pending.",
    rationale=("Complete the scope section to generate a perimeter view.",),
    obligations=(),
)
