"""Payments perimeter opinion — PSR 2017 / EMRs 2011 scope."""
from __future__ import annotations

from typing import Any, Mapping

from engine.answers import selected_values
from opinions.registry import register_opinion_builder
from schemas.insights import PerimeterOpinion

BASE_OBLIGATIONS: tuple[str, ...] = (
    "Safeguarding and segregation of customer funds",
    "Operational and security risk management",
    "Incident reporting and notification processes",
    "Financial crime and AML controls",
)

EMONEY_OBLIGATION = "E-money issuance controls and redemption obligations"
SCA_OBLIGATION = "Strong customer authentication and secure communications (PSD2 RTS)"


def build_payments_opinion(answers: Mapping[str, Any]) -> PerimeterOpinion:
    services = selected_values(answers, "pay-services")
    # "none" is the explicit no-exemption option, not an exemption
    exemptions = [v for v in selected_values(answers, "pay-exemptions") if v != "none"]
    issues_emoney = answers.get("pay-emoney") == "yes"

    if not services and not exemptions:
        return PerimeterOpinion(
            verdict="unknown",
            summary="Payment services scope not confirmed.",
            rationale=("Confirm the payment services and perimeter assumptions.",),
            obligations=(),
        )

    if not services:
        return PerimeterOpinion(
            verdict="possible-exemption",
            summary="Potential exemption from full authorisation.",
            rationale=(
                "Exemptions selected may apply depending on the exact model.",
                "Confirm scope against PERG 15 exclusions.",
            ),
            obligations=("Document exemption rationale and evidence of fit.",),
        )

    obligations = list(BASE_OBLIGATIONS)
    if issues_emoney:
        obligations.append(EMONEY_OBLIGATION)
    obligations.append(SCA_OBLIGATION)

    return PerimeterOpinion(
        # Exemptions alongside services still downgrade the verdict
        verdict="possible-exemption" if exemptions else "in-scope",
        summary=(
            "Likely in scope of PSR 2017 and EMRs 2011."
            if issues_emoney
            else "Likely in scope of PSR 2017 payment services."
        ),
        rationale=(
            "Payment services selected indicate regulated activity.",
            "Some exemptions selected require confirmation." if exemptions else "No exemptions selected.",
        ),
        obligations=tuple(obligations),
    )


register_opinion_builder("payments", build_payments_opinion, activity_question_id="pay-services")
