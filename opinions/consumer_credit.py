"""Consumer credit perimeter opinion — CONC / PERG 17 scope."""
from __future__ import annotations

from typing import Any, Mapping

from engine.answers import selected_values
from opinions.registry import register_opinion_builder
from schemas.insights import PerimeterOpinion

OBLIGATIONS: tuple[str, ...] = (
    "Affordability and creditworthiness assessment (CONC 5)",
    "Arrears, forbearance, and vulnerable customer support (CONC 7)",
    "Financial promotions governance (CONC 3)",
)


def build_consumer_credit_opinion(answers: Mapping[str, Any]) -> PerimeterOpinion:
    activities = selected_values(answers, "cc-activities")
    if not activities:
        return PerimeterOpinion(
            verdict="unknown",
            summary="Consumer credit scope not confirmed.",
            rationale=("Confirm the consumer credit activities in scope.",),
            obligations=(),
        )
    return PerimeterOpinion(
        verdict="in-scope",
        summary="Likely in scope of regulated consumer credit activity.",
        rationale=("Selected activities indicate consumer credit permissions are required.",),
        obligations=OBLIGATIONS,
    )


register_opinion_builder("consumer-credit", build_consumer_credit_opinion, activity_question_id="cc-activities")
