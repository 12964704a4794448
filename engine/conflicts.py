"""Cross-answer consistency rules.

Each rule inspects a handful of answers and returns a
``ValidationConflict`` or None.  Rules are scoped to a domain (or
``None`` for every domain) and run in registration order.
"""
from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

from engine.answers import answer_number, selected_values
from schemas.insights import ValidationConflict

# Type: (answers) -> ValidationConflict | None
ConflictRule = Callable[[Mapping[str, Any]], Optional[ValidationConflict]]

HIGH_VOLUME_GBP = 1_000_000


# ── Payments ──────────────────────────────────────────────────────

def _emoney_wallet(answers: Mapping[str, Any]) -> ValidationConflict | None:
    touchpoints = selected_values(answers, "pay-funds-flow-touchpoints")
    if answers.get("pay-emoney") == "no" and "customer-wallet" in touchpoints:
        return ValidationConflict(
            id="emoney-wallet-conflict",
            severity="error",
            message="You selected 'No e-money issuance' but included 'Customer wallet / e-money account' in funds flow.",
            question_ids=("pay-emoney", "pay-funds-flow-touchpoints"),
            suggestion="If you hold customer balances in wallets, this likely constitutes e-money issuance.",
        )
    return None


def _psp_accounts(answers: Mapping[str, Any]) -> ValidationConflict | None:
    if answers.get("pay-psp-record") == "psp-of-record" and answers.get("pay-operate-accounts") == "no":
        return ValidationConflict(
            id="psp-account-conflict",
            severity="warning",
            message="You are PSP of record but don't operate payment accounts. Clarify the operating model.",
            question_ids=("pay-psp-record", "pay-operate-accounts"),
            suggestion="If another PSP holds accounts, document the principal arrangement clearly.",
        )
    return None


def _volume_safeguarding(answers: Mapping[str, Any]) -> ValidationConflict | None:
    volume = answer_number(answers, "pay-volume") or 0
    if volume > HIGH_VOLUME_GBP and answers.get("pay-safeguarding") == "undecided":
        return ValidationConflict(
            id="volume-safeguarding-conflict",
            severity="warning",
            message="High transaction volume (>£1m/month) but safeguarding approach undecided.",
            question_ids=("pay-volume", "pay-safeguarding"),
            suggestion="Safeguarding is critical for volumes of this size. Decide on segregated accounts or insurance.",
        )
    return None


def _agents_risk(answers: Mapping[str, Any]) -> ValidationConflict | None:
    risks = selected_values(answers, "core-risk-theme")
    if answers.get("pay-agents") == "yes" and "outsourcing-failure" not in risks:
        return ValidationConflict(
            id="agents-risk-conflict",
            severity="warning",
            message="You use agents but haven't identified outsourcing/vendor failure as a key risk.",
            question_ids=("pay-agents", "core-risk-theme"),
            suggestion="Agent oversight is a regulatory focus area. Consider adding outsourcing risk.",
        )
    return None


def _credit_execution(answers: Mapping[str, Any]) -> ValidationConflict | None:
    if answers.get("pay-credit-line") not in ("credit", "both"):
        return None
    activities = answers.get("core-regulated-activities")
    if isinstance(activities, list):
        activities = " ".join(str(a) for a in activities)
    text = activities.lower() if isinstance(activities, str) else ""
    if "credit" in text:
        return None
    return ValidationConflict(
        id="credit-execution-conflict",
        severity="warning",
        message="Credit/overdraft-funded execution may trigger consumer credit permissions.",
        question_ids=("pay-credit-line", "core-regulated-activities"),
        suggestion="Document credit terms clearly - this could require additional CONC permissions.",
    )


# ── Any domain ────────────────────────────────────────────────────

def _governance_winddown(answers: Mapping[str, Any]) -> ValidationConflict | None:
    if answers.get("core-governance") == "not-started" and answers.get("core-winddown") == "draft":
        return ValidationConflict(
            id="governance-winddown-conflict",
            severity="warning",
            message="Wind-down plan drafted but governance not started. Wind-down requires board oversight.",
            question_ids=("core-governance", "core-winddown"),
            suggestion="Ensure board/SMF roles are in place to own the wind-down plan.",
        )
    return None


def _capital_projections(answers: Mapping[str, Any]) -> ValidationConflict | None:
    if answers.get("core-capital") == "not-secured" and answers.get("core-projections") == "full":
        return ValidationConflict(
            id="capital-projections-conflict",
            severity="warning",
            message="Full financial projections but funding not secured.",
            question_ids=("core-capital", "core-projections"),
            suggestion="Projections should align with realistic funding expectations.",
        )
    return None


# ── Master rule list: (domain | None, rule) ───────────────────────
CONFLICT_RULES: list[tuple[str | None, ConflictRule]] = [
    ("payments", _emoney_wallet),
    ("payments", _psp_accounts),
    ("payments", _volume_safeguarding),
    ("payments", _agents_risk),
    ("payments", _credit_execution),
    (None, _governance_winddown),
    (None, _capital_projections),
]


def detect_conflicts(domain: str | None, answers: Mapping[str, Any]) -> list[ValidationConflict]:
    conflicts = []
    for rule_domain, rule in CONFLICT_RULES:
        if rule_domain is not None and rule_domain != domain:
            continue
        conflict = rule(answers)
        if conflict is not None:
            conflicts.append(conflict)
    return conflicts
