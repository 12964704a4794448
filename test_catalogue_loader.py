"""Tests for question pack loading, catalogue validation and hot reload."""
from __future__ import annotations

import copy

import pytest

from engine.catalogue_validator import CatalogueViolation, validate_and_build_catalogue
from question_packs import loader
from question_packs.loader import (
    CatalogueHandle,
    CataloguePackVersionError,
    build_catalogue,
    list_catalogues,
    load_catalogue,
)
from schemas.profile import Question, Section


# ═══════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════

_SECTIONS = [
    {"id": "core", "title": "Core"},
    {"id": "pay", "title": "Payments", "applies_to": ["payments"]},
]

_QUESTIONS = [
    {
        "id": "q1", "section_id": "core", "prompt": "Pick", "type": "single-choice",
        "options": [{"value": "a", "label": "A", "score": 2}, {"value": "b", "label": "B", "score": 0}],
        "document_section_ids": ["governance"],
    },
    {"id": "q2", "section_id": "pay", "prompt": "Volume", "type": "number", "applies_to": ["payments"]},
]

_DOCS = {"governance": "Governance"}


def _violations(sections=None, questions=None, docs=None):
    with pytest.raises(CatalogueViolation) as exc:
        validate_and_build_catalogue(
            sections if sections is not None else copy.deepcopy(_SECTIONS),
            questions if questions is not None else copy.deepcopy(_QUESTIONS),
            docs if docs is not None else _DOCS,
        )
    return exc.value.violations


def _with_question(**overrides):
    questions = copy.deepcopy(_QUESTIONS)
    questions[0].update(overrides)
    return questions


# ═══════════════════════════════════════════════════════════════════
#  Validation
# ═══════════════════════════════════════════════════════════════════

class TestCatalogueValidation:

    def test_valid_definitions_build_frozen_instances(self):
        sections, questions = validate_and_build_catalogue(copy.deepcopy(_SECTIONS), copy.deepcopy(_QUESTIONS), _DOCS)
        assert all(isinstance(s, Section) for s in sections)
        assert all(isinstance(q, Question) for q in questions)
        assert questions[1].domain_filter == frozenset({"payments"})
        with pytest.raises(AttributeError):
            questions[0].weight = 5

    def test_zero_questions_rejected(self):
        violations = _violations(questions=[])
        assert violations[0]["field"] == "questions"

    def test_unknown_section_reference(self):
        violations = _violations(questions=_with_question(section_id="missing"))
        assert {"item_id": "q1", "field": "section_id"} == {k: violations[0][k] for k in ("item_id", "field")}

    def test_core_question_in_domain_section_is_orphaned(self):
        questions = copy.deepcopy(_QUESTIONS)
        del questions[1]["applies_to"]
        violations = _violations(questions=questions)
        assert any(v["item_id"] == "q2" and v["field"] == "applies_to" for v in violations)

    def test_question_domains_must_reach_section(self):
        questions = copy.deepcopy(_QUESTIONS)
        questions[1]["applies_to"] = ["payments", "investments"]
        violations = _violations(questions=questions)
        assert any("investments" in v["detail"] for v in violations)

    @pytest.mark.parametrize("overrides,field", [
        ({"type": "slider"}, "type"),
        ({"options": []}, "options"),
        ({"options": ["a", "b"]}, "options"),
        ({"options": [{"value": "a", "score": 1}, {"value": "a", "score": 2}]}, "options"),
        ({"options": [{"value": "a", "score": -1}]}, "options"),
        ({"options": [{"value": "a", "score": 1.5}]}, "options"),
        ({"weight": 0}, "weight"),
        ({"weight": True}, "weight"),
        ({"applies_to": ["crypto"]}, "applies_to"),
        ({"document_section_ids": ["nope"]}, "document_section_ids"),
        ({"prompt": "  "}, "prompt"),
        ({"threshold": {"value": 1, "comparison": "gt", "message": "x"}}, "threshold"),
        ({"regulatory_refs": "PSR 2017"}, "regulatory_refs"),
        ({"regulatory_refs": ["PSR 2017", ""]}, "regulatory_refs"),
        ({"regulatory_refs": [7]}, "regulatory_refs"),
        ({"required": "false"}, "required"),
        ({"required": 1}, "required"),
        ({"applies_to": "payments"}, "applies_to"),
        ({"document_section_ids": "governance"}, "document_section_ids"),
    ])
    def test_malformed_question_fields(self, overrides, field):
        violations = _violations(questions=_with_question(**overrides))
        assert field in {v["field"] for v in violations}

    @pytest.mark.parametrize("applies_to", [5, "payments", {"payments": True}, [["payments"]]])
    def test_non_list_domain_filter_in_domain_section_is_a_violation(self, applies_to):
        questions = copy.deepcopy(_QUESTIONS)
        questions[1]["applies_to"] = applies_to
        violations = _violations(questions=questions)
        q2 = [v for v in violations if v["item_id"] == "q2"]
        assert q2 == [{"item_id": "q2", "field": "applies_to", "detail": "Must be a list of domain ids"}]

    def test_non_list_section_filter_is_a_violation(self):
        sections = copy.deepcopy(_SECTIONS)
        sections[1]["applies_to"] = 5
        violations = _violations(sections=sections)
        assert {"item_id": "pay", "field": "applies_to", "detail": "Must be a list of domain ids"} in violations

    def test_regulatory_refs_built_as_whole_strings(self):
        questions = _with_question(regulatory_refs=["PSR 2017", "PERG 15"], required=True)
        _, built = validate_and_build_catalogue(copy.deepcopy(_SECTIONS), questions, _DOCS)
        assert built[0].regulatory_refs == ("PSR 2017", "PERG 15")
        assert built[0].required is True

    def test_number_question_must_not_define_options(self):
        questions = copy.deepcopy(_QUESTIONS)
        questions[1]["options"] = [{"value": "a", "score": 1}]
        assert "options" in {v["field"] for v in _violations(questions=questions)}

    def test_threshold_needs_comparison_and_message(self):
        questions = copy.deepcopy(_QUESTIONS)
        questions[1]["threshold"] = {"value": 10, "comparison": "bigger"}
        details = [v["detail"] for v in _violations(questions=questions)]
        assert any("comparison" in d for d in details)
        assert any("message" in d for d in details)

    def test_duplicate_ids(self):
        questions = copy.deepcopy(_QUESTIONS) + [copy.deepcopy(_QUESTIONS[0])]
        sections = copy.deepcopy(_SECTIONS) + [{"id": "core", "title": "Again"}]
        details = {v["detail"] for v in _violations(sections=sections, questions=questions)}
        assert {"Duplicate question id", "Duplicate section id"} <= details

    def test_all_violations_reported_together(self):
        questions = _with_question(type="slider", weight=0, section_id="missing")
        assert len(_violations(questions=questions)) >= 3

    def test_violation_message_lists_items(self):
        with pytest.raises(CatalogueViolation, match=r"\[q1\] weight"):
            validate_and_build_catalogue(copy.deepcopy(_SECTIONS), _with_question(weight=0), _DOCS)


# ═══════════════════════════════════════════════════════════════════
#  build_catalogue
# ═══════════════════════════════════════════════════════════════════

class TestBuildCatalogue:

    def test_vocabulary_derived_when_not_given(self):
        catalogue = build_catalogue(copy.deepcopy(_SECTIONS), copy.deepcopy(_QUESTIONS))
        assert dict(catalogue.document_sections) == {"governance": "governance"}
        assert catalogue.document_section_label("unlisted") == "unlisted"

    def test_document_sections_are_read_only_and_not_shared(self):
        labels = dict(_DOCS)
        catalogue = build_catalogue(copy.deepcopy(_SECTIONS), copy.deepcopy(_QUESTIONS), labels)
        labels["governance"] = "Changed"
        assert catalogue.document_section_label("governance") == "Governance"
        with pytest.raises(TypeError):
            catalogue.document_sections["governance"] = "Changed"

    def test_lookups(self):
        catalogue = build_catalogue(copy.deepcopy(_SECTIONS), copy.deepcopy(_QUESTIONS), _DOCS)
        assert catalogue.question("q2").type == "number"
        assert catalogue.question("zzz") is None
        assert catalogue.section("pay").title == "Payments"
        assert catalogue.question_count() == 2


# ═══════════════════════════════════════════════════════════════════
#  Shipped packs
# ═══════════════════════════════════════════════════════════════════

class TestShippedPack:

    def test_profile_pack_loads_and_verifies_checksum(self):
        catalogue = load_catalogue("profile", "v1.0")
        assert catalogue.pack_id == "profile-v1.0"
        assert catalogue.checksum == loader._FROZEN_CHECKSUMS["profile/v1.0"]
        assert catalogue.question_count() == 50
        assert len(catalogue.sections) == 8

    def test_every_document_section_reference_has_a_label(self):
        catalogue = load_catalogue()
        for q in catalogue.questions:
            for key in q.document_section_ids:
                assert key in catalogue.document_sections

    def test_checksum_mismatch_raises(self, monkeypatch):
        monkeypatch.setitem(loader._FROZEN_CHECKSUMS, "profile/v1.0", "0000000000000000")
        with pytest.raises(CataloguePackVersionError, match="version-locked"):
            load_catalogue("profile", "v1.0")

    def test_missing_pack(self):
        with pytest.raises(FileNotFoundError):
            load_catalogue("profile", "v9.9")

    def test_list_catalogues(self):
        assert "profile-v1.0" in [p["pack_id"] for p in list_catalogues()]


# ═══════════════════════════════════════════════════════════════════
#  Hot reload
# ═══════════════════════════════════════════════════════════════════

class TestCatalogueHandle:

    def test_reload_publishes_new_snapshot(self):
        inline = build_catalogue(copy.deepcopy(_SECTIONS), copy.deepcopy(_QUESTIONS), _DOCS)
        handle = CatalogueHandle(inline)
        held = handle.current()

        fresh = handle.reload("profile", "v1.0")

        assert handle.current() is fresh
        # Readers holding the old snapshot are unaffected
        assert held is inline
        assert held.question_count() == 2

    def test_failed_reload_keeps_previous_snapshot(self, monkeypatch):
        inline = build_catalogue(copy.deepcopy(_SECTIONS), copy.deepcopy(_QUESTIONS), _DOCS)
        handle = CatalogueHandle(inline)
        monkeypatch.setitem(loader._FROZEN_CHECKSUMS, "profile/v1.0", "0000000000000000")

        with pytest.raises(CataloguePackVersionError):
            handle.reload("profile", "v1.0")
        assert handle.current() is inline
