# engine/catalogue_validator.py — Fail-fast catalogue integrity enforcement.
"""Catalogue integrity for the business-plan profile question pack.

Every section and question that enters the scoring pipeline MUST be
well-formed and cross-referenced.  The scoring kernel itself never
checks any of this (it would silently under-count); if a definition is
broken the pack refuses to load.

``validate_and_build_catalogue()`` validates the raw JSON dicts and then
constructs frozen ``Section`` / ``Question`` instances.  This is the
**only** code path that creates those objects from pack data.

Usage
~~~~~
    from engine.catalogue_validator import validate_and_build_catalogue, CatalogueViolation

    sections, questions = validate_and_build_catalogue(
        raw_sections, raw_questions, document_sections,
    )
    # Returns (tuple[Section, ...], tuple[Question, ...]) or raises CatalogueViolation

Wire-in
~~~~~~~
Called by ``question_packs.loader.load_catalogue()`` before constructing
the ``ProfileCatalogue`` snapshot.
"""
from __future__ import annotations

import math
from typing import Any

from schemas.profile import (
    ALL_COMPARISONS,
    ALL_DOMAINS,
    ALL_QUESTION_TYPES,
    CHOICE_TYPES,
    REQUIRED_QUESTION_FIELDS,
    REQUIRED_SECTION_FIELDS,
    Option,
    Question,
    Section,
    Threshold,
)


# ── Exception ─────────────────────────────────────────────────────

class CatalogueViolation(Exception):
    """Raised when one or more catalogue entries are malformed.

    Contains a structured list of violations so callers can format them
    however they like (CLI table, JSON report, etc.).
    """

    def __init__(self, violations: list[dict[str, str]]) -> None:
        self.violations = violations
        lines = [f"  ✗ [{v['item_id']}] {v['field']}: {v['detail']}" for v in violations]
        msg = (
            f"{len(violations)} catalogue violation(s) — fix before scoring:\n"
            + "\n".join(lines)
        )
        super().__init__(msg)


def _domain_filter(raw: Any) -> frozenset[str] | None:
    if not raw:
        return None
    return frozenset(raw)


def _check_domains(item_id: str, raw: Any, fail) -> None:
    if raw is None:
        return
    if not _is_string_list(raw):
        fail("applies_to", "Must be a list of domain ids")
        return
    for domain in raw:
        if domain not in ALL_DOMAINS:
            fail("applies_to", f"'{domain}' not in {list(ALL_DOMAINS)}")


def _is_string_list(raw: Any) -> bool:
    return isinstance(raw, list) and all(isinstance(v, str) and v.strip() for v in raw)


def _check_string_list(field: str, raw: Any, fail) -> None:
    if raw is not None and not _is_string_list(raw):
        fail(field, "Must be a list of non-empty strings")


def _check_document_sections(raw: Any, vocabulary: dict[str, str], fail) -> None:
    if raw is None:
        return
    if not _is_string_list(raw):
        fail("document_section_ids", "Must be a list of document section keys")
        return
    for key in raw:
        if key not in vocabulary:
            fail("document_section_ids", f"'{key}' is not a known document section")


# ── Single definition validation ─────────────────────────────────

def validate_section(
    section_id: str,
    raw: dict[str, Any],
    document_sections: dict[str, str],
) -> list[dict[str, str]]:
    """Validate a single raw section dict.

    Returns a (possibly empty) list of violation dicts:
        [{"item_id": "...", "field": "...", "detail": "..."}]
    """
    violations: list[dict[str, str]] = []

    def _fail(field: str, detail: str) -> None:
        violations.append({"item_id": section_id, "field": field, "detail": detail})

    for field in REQUIRED_SECTION_FIELDS:
        val = raw.get(field)
        if val is None or (isinstance(val, str) and val.strip() == ""):
            _fail(field, "Missing or empty (required by REQUIRED_SECTION_FIELDS)")

    _check_domains(section_id, raw.get("applies_to"), _fail)
    _check_document_sections(raw.get("document_section_ids"), document_sections, _fail)
    return violations


def validate_question(
    question_id: str,
    raw: dict[str, Any],
    sections: dict[str, dict[str, Any]],
    document_sections: dict[str, str],
) -> list[dict[str, str]]:
    """Validate a single raw question dict against the catalogue vocabulary.

    *sections* is the raw section index keyed by id, used for the
    section-reference and domain-reachability checks.
    """
    violations: list[dict[str, str]] = []

    def _fail(field: str, detail: str) -> None:
        violations.append({"item_id": question_id, "field": field, "detail": detail})

    # ── 1.  Required field presence ───────────────────────────────
    for field in REQUIRED_QUESTION_FIELDS:
        val = raw.get(field)
        if val is None or (isinstance(val, str) and val.strip() == ""):
            _fail(field, "Missing or empty (required by REQUIRED_QUESTION_FIELDS)")

    # ── 2.  Type and option pairing ───────────────────────────────
    qtype = raw.get("type")
    if qtype is not None and qtype not in ALL_QUESTION_TYPES:
        _fail("type", f"'{qtype}' not in {list(ALL_QUESTION_TYPES)}")

    options = raw.get("options")
    if isinstance(qtype, str) and qtype in CHOICE_TYPES:
        if not isinstance(options, list) or not options:
            _fail("options", f"Question type '{qtype}' requires a non-empty option list")
        else:
            seen: set[str] = set()
            for opt in options:
                if not isinstance(opt, dict):
                    _fail("options", "Every option must be an object")
                    continue
                value = opt.get("value")
                if not isinstance(value, str) or not value:
                    _fail("options", "Every option needs a non-empty string value")
                    continue
                if value in seen:
                    _fail("options", f"Duplicate option value '{value}'")
                seen.add(value)
                score = opt.get("score")
                if isinstance(score, bool) or not isinstance(score, int) or score < 0:
                    _fail("options", f"Option '{value}' score must be an integer >= 0")
    elif options is not None:
        _fail("options", f"Question type '{qtype}' must not define options")

    # ── 3.  Weight ────────────────────────────────────────────────
    weight = raw.get("weight", 1)
    if isinstance(weight, bool) or not isinstance(weight, int) or weight < 1:
        _fail("weight", f"Must be an integer >= 1, got {weight!r}")

    required = raw.get("required", False)
    if not isinstance(required, bool):
        _fail("required", f"Must be true or false, got {required!r}")

    # ── 4.  Domain filters, references and section reachability ────
    _check_domains(question_id, raw.get("applies_to"), _fail)
    _check_document_sections(raw.get("document_section_ids"), document_sections, _fail)
    _check_string_list("regulatory_refs", raw.get("regulatory_refs"), _fail)

    section_id = raw.get("section_id")
    section = sections.get(section_id) if isinstance(section_id, str) and section_id else None
    if section_id and section is None:
        _fail("section_id", f"'{section_id}' is not a defined section")
    elif (
        section is not None
        and section.get("applies_to")
        and _is_string_list(section["applies_to"])
        and (raw.get("applies_to") is None or _is_string_list(raw["applies_to"]))
    ):
        # Malformed filters are reported above; reachability needs both as lists
        section_domains = set(section["applies_to"])
        question_domains = raw.get("applies_to")
        if not question_domains:
            _fail(
                "applies_to",
                f"Core question sits in section '{section_id}' which only applies to "
                f"{sorted(section_domains)} — orphaned for other domains",
            )
        elif not set(question_domains) <= section_domains:
            _fail(
                "applies_to",
                f"Domains {sorted(set(question_domains) - section_domains)} cannot "
                f"reach section '{section_id}'",
            )

    # ── 5.  Threshold ─────────────────────────────────────────────
    threshold = raw.get("threshold")
    if threshold is not None and not isinstance(threshold, dict):
        _fail("threshold", "Must be an object with value, comparison and message")
    elif threshold is not None:
        if qtype != "number":
            _fail("threshold", "Thresholds are only valid on number questions")
        value = threshold.get("value")
        if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
            _fail("threshold", "Threshold value must be a number")
        if threshold.get("comparison") not in ALL_COMPARISONS:
            _fail("threshold", f"comparison must be one of {list(ALL_COMPARISONS)}")
        if not threshold.get("message"):
            _fail("threshold", "Threshold needs a message")

    return violations


# ── Construction ─────────────────────────────────────────────────

def _build_section(raw: dict[str, Any]) -> Section:
    return Section(
        id=raw["id"],
        title=raw["title"],
        description=raw.get("description", ""),
        domain_filter=_domain_filter(raw.get("applies_to")),
        document_section_ids=tuple(raw.get("document_section_ids") or ()),
    )


def _build_question(raw: dict[str, Any]) -> Question:
    options = None
    if raw.get("options") is not None:
        options = tuple(
            Option(
                value=opt["value"],
                label=opt.get("label", opt["value"]),
                score=opt["score"],
                implication=opt.get("implication"),
            )
            for opt in raw["options"]
        )
    threshold = None
    if raw.get("threshold") is not None:
        t = raw["threshold"]
        threshold = Threshold(value=float(t["value"]), comparison=t["comparison"], message=t["message"])

    return Question(
        id=raw["id"],
        section_id=raw["section_id"],
        prompt=raw["prompt"],
        type=raw["type"],
        required=raw.get("required", False),
        weight=raw.get("weight", 1),
        options=options,
        domain_filter=_domain_filter(raw.get("applies_to")),
        regulatory_refs=tuple(raw.get("regulatory_refs") or ()),
        document_section_ids=tuple(raw.get("document_section_ids") or ()),
        description=raw.get("description", ""),
        impact=raw.get("impact", ""),
        allow_other=bool(raw.get("allow_other", False)),
        max_selections=raw.get("max_selections"),
        threshold=threshold,
    )


def validate_and_build_catalogue(
    raw_sections: list[dict[str, Any]],
    raw_questions: list[dict[str, Any]],
    document_sections: dict[str, str],
) -> tuple[tuple[Section, ...], tuple[Question, ...]]:
    """Validate raw JSON definitions and return typed, frozen instances.

    Two-phase approach:
      1. Validate every raw dict (per-field messages, cross-references).
      2. If all clear, construct frozen ``Section`` / ``Question`` objects
         in declaration order.

    Raises ``CatalogueViolation`` if ANY definition has ANY violation.
    """
    if not raw_questions:
        raise CatalogueViolation([{
            "item_id": "*",
            "field": "questions",
            "detail": "Question pack has zero questions — nothing to score",
        }])

    all_violations: list[dict[str, str]] = []

    # ── Phase 1a: sections ────────────────────────────────────────
    section_index: dict[str, dict[str, Any]] = {}
    for i, raw in enumerate(raw_sections):
        sid = raw.get("id") or f"sections[{i}]"
        if sid in section_index:
            all_violations.append({"item_id": sid, "field": "id", "detail": "Duplicate section id"})
            continue
        section_index[sid] = raw
        all_violations.extend(validate_section(sid, raw, document_sections))

    # ── Phase 1b: questions ───────────────────────────────────────
    seen_questions: set[str] = set()
    for i, raw in enumerate(raw_questions):
        qid = raw.get("id") or f"questions[{i}]"
        if qid in seen_questions:
            all_violations.append({"item_id": qid, "field": "id", "detail": "Duplicate question id"})
            continue
        seen_questions.add(qid)
        all_violations.extend(validate_question(qid, raw, section_index, document_sections))

    if all_violations:
        raise CatalogueViolation(all_violations)

    # ── Phase 2: construct frozen instances ───────────────────────
    sections = tuple(_build_section(raw) for raw in raw_sections)
    questions = tuple(_build_question(raw) for raw in raw_questions)
    return sections, questions
