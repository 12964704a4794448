# schemas/profile.py — Single authoritative vocabulary for the business-plan profile.
"""Centralised types for the regulatory scope questionnaire.

Every question and section that enters the scoring pipeline is a
**frozen dataclass** — typed, immutable, validated at load time.
``engine/catalogue_validator.py`` is the only code path that builds
them from the raw JSON pack; nothing in the engine mutates them.

Canonical sources defined here:
  - ``DomainId``          — business-activity verticals with opinion rules
  - ``QuestionType``      — single-choice | multi-choice | text | number | boolean
  - ``Verdict``           — perimeter classification outcomes
  - ``ConflictSeverity``  — error | warning
  - ``Option``            — scored answer option for choice questions
  - ``Threshold``         — numeric alert attached to a number question
  - ``Question``          — a single scored questionnaire item
  - ``Section``           — topical reporting group for questions
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, get_args


# ══════════════════════════════════════════════════════════════════
# Canonical enums, enforced at load time
# ══════════════════════════════════════════════════════════════════

DomainId = Literal[
    "payments",
    "consumer-credit",
    "investments",
]

ALL_DOMAINS: tuple[str, ...] = get_args(DomainId)

QuestionType = Literal[
    "single-choice",
    "multi-choice",
    "text",
    "number",
    "boolean",
]

ALL_QUESTION_TYPES: tuple[str, ...] = get_args(QuestionType)

# Types that MUST carry options (and only these may)
CHOICE_TYPES: frozenset[str] = frozenset({"single-choice", "multi-choice"})

Verdict = Literal[
    "in-scope",             # regulated activity confirmed by answers
    "possible-exemption",   # exemption selected, needs confirmation
    "out-of-scope",         # reserved for builders that can rule out scope
    "unknown",              # nothing can be inferred yet
]

ALL_VERDICTS: tuple[str, ...] = get_args(Verdict)

ConflictSeverity = Literal["error", "warning"]

ThresholdComparison = Literal["gt", "lt", "gte", "lte", "eq"]

ALL_COMPARISONS: tuple[str, ...] = get_args(ThresholdComparison)


# ══════════════════════════════════════════════════════════════════
# Catalogue definitions — typed, frozen, validated
# ══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Option:
    """One selectable answer of a choice question."""
    value: str
    label: str
    score: int
    implication: str | None = None


@dataclass(frozen=True)
class Threshold:
    value: float
    comparison: str                    # ThresholdComparison literal
    message: str

    def triggered_by(self, number: float) -> bool:
        if self.comparison == "gt":
            return number > self.value
        if self.comparison == "lt":
            return number < self.value
        if self.comparison == "gte":
            return number >= self.value
        if self.comparison == "lte":
            return number <= self.value
        return number == self.value


@dataclass(frozen=True)
class Question:
    """Typed, immutable questionnaire item.

    ``domain_filter`` is ``None`` for core (domain-agnostic) questions.
    ``options`` is a tuple for choice types and ``None`` otherwise;
    the validator guarantees the pairing before construction.
    """

    # ── Identity ──────────────────────────────────────────────────
    id: str
    section_id: str
    prompt: str
    type: str                                    # QuestionType literal

    # ── Scoring ───────────────────────────────────────────────────
    required: bool = False
    weight: int = 1
    options: tuple[Option, ...] | None = None

    # ── Cross-references ──────────────────────────────────────────
    domain_filter: frozenset[str] | None = None
    regulatory_refs: tuple[str, ...] = ()
    document_section_ids: tuple[str, ...] = ()

    # ── Documentation / UI metadata (never scored) ────────────────
    description: str = ""
    impact: str = ""
    allow_other: bool = False
    max_selections: int | None = None
    threshold: Threshold | None = None

    def applies_to(self, domain: str | None) -> bool:
        if not self.domain_filter:
            return True
        return domain in self.domain_filter

    def option(self, value: object) -> Option | None:
        for opt in self.options or ():
            if opt.value == value:
                return opt
        return None


@dataclass(frozen=True)
class Section:
    """Topical reporting group.  Holds no scores itself."""
    id: str
    title: str
    description: str = ""
    domain_filter: frozenset[str] | None = None
    document_section_ids: tuple[str, ...] = field(default=())

    def applies_to(self, domain: str | None) -> bool:
        if not self.domain_filter:
            return True
        return domain in self.domain_filter


# ── Required fields every raw definition MUST have ────────────────
REQUIRED_QUESTION_FIELDS: tuple[str, ...] = (
    "id",
    "section_id",
    "prompt",
    "type",
)

REQUIRED_SECTION_FIELDS: tuple[str, ...] = (
    "id",
    "title",
)
