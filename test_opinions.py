"""Tests for perimeter opinion builders and the builder registry."""
from __future__ import annotations

import logging

import pytest

from opinions.payments import SCA_OBLIGATION, build_payments_opinion
from opinions.registry import (
    OPINION_BUILDERS,
    build_opinion,
    get_registration,
    register_opinion_builder,
)
from schemas.insights import PENDING_OPINION, PerimeterOpinion
from schemas.profile import ALL_DOMAINS, ALL_VERDICTS


# ═══════════════════════════════════════════════════════════════════
#  Registry
# ═══════════════════════════════════════════════════════════════════

class TestRegistry:

    def test_every_domain_has_a_builder(self):
        assert set(OPINION_BUILDERS) == set(ALL_DOMAINS)

    def test_activity_questions_are_registered(self):
        assert get_registration("payments").activity_question_id == "pay-services"
        assert get_registration("consumer-credit").activity_question_id == "cc-activities"
        assert get_registration("investments").activity_question_id == "inv-activities"

    def test_duplicate_registration_rejected(self):
        with pytest.raises(ValueError, match="already registered"):
            register_opinion_builder("payments", build_payments_opinion)

    def test_unknown_domain_falls_back_to_pending(self, caplog):
        with caplog.at_level(logging.WARNING, logger="opinions.registry"):
            opinion = build_opinion("crypto-assets", {"pay-services": ["money-remittance"]})
        assert opinion == PENDING_OPINION
        assert opinion.verdict == "unknown"
        assert opinion.obligations == ()
        assert "crypto-assets" in caplog.text

    def test_no_domain_falls_back_silently(self, caplog):
        with caplog.at_level(logging.WARNING, logger="opinions.registry"):
            assert build_opinion(None, {}) == PENDING_OPINION
        assert caplog.text == ""


# ═══════════════════════════════════════════════════════════════════
#  Payments
# ═══════════════════════════════════════════════════════════════════

class TestPaymentsOpinion:

    def test_services_without_emoney_are_in_scope(self):
        opinion = build_opinion("payments", {"pay-services": ["money-remittance"], "pay-emoney": "no"})
        assert opinion.verdict == "in-scope"
        assert opinion.summary == "Likely in scope of PSR 2017 payment services."
        assert SCA_OBLIGATION in opinion.obligations
        assert not any("E-money" in o for o in opinion.obligations)

    def test_emoney_adds_issuance_obligation(self):
        opinion = build_opinion("payments", {"pay-services": ["issuing-acquiring"], "pay-emoney": "yes"})
        assert opinion.verdict == "in-scope"
        assert "EMRs 2011" in opinion.summary
        assert "E-money issuance controls and redemption obligations" in opinion.obligations
        assert opinion.obligations[-1] == SCA_OBLIGATION

    def test_exemptions_only(self):
        opinion = build_opinion("payments", {"pay-exemptions": ["limited-network"]})
        assert opinion.verdict == "possible-exemption"
        assert opinion.obligations == ("Document exemption rationale and evidence of fit.",)

    def test_exemptions_downgrade_in_scope_services(self):
        opinion = build_opinion("payments", {
            "pay-services": ["money-remittance"],
            "pay-exemptions": ["commercial-agent"],
        })
        assert opinion.verdict == "possible-exemption"
        assert "Some exemptions selected require confirmation." in opinion.rationale

    def test_none_exemption_is_not_an_exemption(self):
        assert build_opinion("payments", {"pay-exemptions": ["none"]}).verdict == "unknown"
        opinion = build_opinion("payments", {"pay-services": ["money-remittance"], "pay-exemptions": ["none"]})
        assert opinion.verdict == "in-scope"

    def test_empty_answers_are_unknown(self):
        opinion = build_opinion("payments", {})
        assert opinion.verdict == "unknown"
        assert opinion.obligations == ()

    def test_malformed_services_treated_as_unselected(self):
        assert build_opinion("payments", {"pay-services": "money-remittance"}).verdict == "unknown"


# ═══════════════════════════════════════════════════════════════════
#  Consumer credit and investments
# ═══════════════════════════════════════════════════════════════════

class TestOtherDomains:

    def test_consumer_credit_lending(self):
        opinion = build_opinion("consumer-credit", {"cc-activities": ["lending"]})
        assert opinion.verdict == "in-scope"
        assert any("Affordability" in o for o in opinion.obligations)

    def test_investments_advice(self):
        opinion = build_opinion("investments", {"inv-activities": ["advice"]})
        assert opinion.verdict == "in-scope"
        assert any("suitability" in o for o in opinion.obligations)

    @pytest.mark.parametrize("domain", ["consumer-credit", "investments"])
    def test_no_activities_is_unknown(self, domain):
        opinion = build_opinion(domain, {})
        assert opinion.verdict == "unknown"
        assert opinion.obligations == ()

    @pytest.mark.parametrize("domain", list(ALL_DOMAINS) + ["unregistered", None])
    def test_verdict_always_in_vocabulary(self, domain):
        opinion = build_opinion(domain, {"pay-services": ["x"], "cc-activities": ["y"], "inv-activities": ["z"]})
        assert isinstance(opinion, PerimeterOpinion)
        assert opinion.verdict in ALL_VERDICTS
