"""Opinion builder registry — maps domain ids to perimeter opinion builders.

Each supported domain registers exactly one pure builder that takes
only the answer map and returns a ``PerimeterOpinion``.  Adding a domain
is a registration in a new module, not an edit to a central dispatcher.

The registration also names the domain's activity question, whose
selected option labels become the insight's activity highlights.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from schemas.insights import PENDING_OPINION, PerimeterOpinion

_log = logging.getLogger(__name__)

# Type: (answers) -> PerimeterOpinion
OpinionBuilder = Callable[[Mapping[str, Any]], PerimeterOpinion]


@dataclass(frozen=True)
class OpinionRegistration:
    domain: str
    build: OpinionBuilder
    activity_question_id: str | None = None


OPINION_BUILDERS: dict[str, OpinionRegistration] = {}


def register_opinion_builder(
    domain: str,
    build: OpinionBuilder,
    *,
    activity_question_id: str | None = None,
) -> OpinionRegistration:
    if domain in OPINION_BUILDERS:
        raise ValueError(f"Opinion builder already registered for domain '{domain}'")
    registration = OpinionRegistration(domain, build, activity_question_id)
    OPINION_BUILDERS[domain] = registration
    return registration


def get_registration(domain: str | None) -> OpinionRegistration | None:
    if domain is None:
        return None
    return OPINION_BUILDERS.get(domain)


def build_opinion(domain: str | None, answers: Mapping[str, Any]) -> PerimeterOpinion:
    """Run the domain's builder, or fall back to the pending opinion."""
    registration = get_registration(domain)
    if registration is None:
        if domain is not None:
            _log.warning("No opinion builder registered for domain '%s', using fallback", domain)
        return PENDING_OPINION
    return registration.build(answers)


# ── Built-in builders register themselves on import ───────────────
from opinions import consumer_credit, investments, payments  # noqa: E402,F401
