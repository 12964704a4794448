"""Investment services perimeter opinion — COBS / MiFID scope."""
from __future__ import annotations

from typing import Any, Mapping

from engine.answers import selected_values
from opinions.registry import register_opinion_builder
from schemas.insights import PerimeterOpinion

OBLIGATIONS: tuple[str, ...] = (
    "Client categorisation (COBS 3) and suitability checks (COBS 9/10)",
    "Best execution monitoring (COBS 11.2A)",
    "Conflicts of interest management (COBS 2.3/SYSC 10)",
    "Client assets protections where applicable (CASS)",
)


def build_investments_opinion(answers: Mapping[str, Any]) -> PerimeterOpinion:
    activities = selected_values(answers, "inv-activities")
    if not activities:
        return PerimeterOpinion(
            verdict="unknown",
            summary="Investment scope not confirmed.",
            rationale=("Confirm investment activities and client categories.",),
            obligations=(),
        )
    return PerimeterOpinion(
        verdict="in-scope",
        summary="Likely in scope of regulated investment services.",
        rationale=("Selected activities indicate investment permissions are required.",),
        obligations=OBLIGATIONS,
    )


register_opinion_builder("investments", build_investments_opinion, activity_question_id="inv-activities")
