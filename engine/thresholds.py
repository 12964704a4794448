"""Numeric threshold alerts for number questions."""
from __future__ import annotations

from typing import Any, Iterable, Mapping

from engine.answers import NumberAnswer, classify_answer
from schemas.insights import ThresholdAlert
from schemas.profile import Question


def threshold_alerts(questions: Iterable[Question], answers: Mapping[str, Any]) -> list[ThresholdAlert]:
    alerts = []
    for q in questions:
        if q.threshold is None:
            continue
        answer = classify_answer(q, answers.get(q.id))
        if isinstance(answer, NumberAnswer) and q.threshold.triggered_by(answer.value):
            alerts.append(ThresholdAlert(question_id=q.id, message=q.threshold.message))
    return alerts
