"""Own-funds capital estimate for payment and e-money institutions.

Indicative only.  Method A is 10% of annualised fixed overheads; Method B
applies the PSR 2017 volume tiers to annualised payment volume.  Both are
compared against the PI (€125k) or EMI (€350k) minimum.
"""
from __future__ import annotations

from typing import Any, Mapping

from engine.answers import answer_number
from engine.scoring import round_half_up
from schemas.insights import CapitalEstimate

# Indicative conversion rate, not a live FX feed
GBP_TO_EUR = 1.17
EUR_TO_GBP = 1 / GBP_TO_EUR

PI_MINIMUM_EUR = 125_000
EMI_MINIMUM_EUR = 350_000

# (upper bound in EUR, marginal rate), applied band by band
METHOD_B_TIERS: tuple[tuple[float, float], ...] = (
    (5_000_000, 0.04),
    (10_000_000, 0.025),
    (100_000_000, 0.01),
    (250_000_000, 0.005),
    (float("inf"), 0.0025),
)

_METHODS = {"method-a": "A", "method-b": "B", "method-c": "C"}


def _gbp(amount: float) -> str:
    return f"£{round_half_up(amount):,}"


def method_a(monthly_opex: float) -> float:
    return monthly_opex * 12 * 0.1


def method_b(monthly_volume: float) -> float:
    """Tiered requirement on annual volume, computed in EUR, returned in GBP."""
    remaining = monthly_volume * 12 * GBP_TO_EUR
    previous = 0.0
    total_eur = 0.0
    for threshold, rate in METHOD_B_TIERS:
        band = min(remaining, threshold - previous)
        if band <= 0:
            break
        total_eur += band * rate
        remaining -= band
        previous = threshold
    return total_eur * EUR_TO_GBP


def estimate_capital(domain: str | None, answers: Mapping[str, Any]) -> CapitalEstimate | None:
    """Capital view for payments firms; None for every other domain."""
    if domain != "payments":
        return None

    emoney = answers.get("pay-emoney") == "yes"
    minimum_gbp = round_half_up((EMI_MINIMUM_EUR if emoney else PI_MINIMUM_EUR) * EUR_TO_GBP)
    minimum_line = f"Minimum capital ({'EMI €350k' if emoney else 'PI €125k'}): {_gbp(minimum_gbp)}"

    opex = answer_number(answers, "pay-monthly-opex")
    volume = answer_number(answers, "pay-volume")
    a = method_a(opex) if opex is not None and opex > 0 else None
    b = method_b(volume) if volume is not None and volume > 0 else None

    breakdown: list[str] = []
    if a is not None and b is not None:
        a_total = max(a, minimum_gbp)
        b_total = max(b, minimum_gbp)
        breakdown = [
            f"Method A (10% fixed overheads): {_gbp(a)}",
            f"Method B (volume tiers): {_gbp(b)}",
            minimum_line,
        ]
        if a_total < b_total:
            recommendation = (
                f"Method A results in lower capital ({_gbp(a_total)} vs {_gbp(b_total)}). "
                "Better for overhead-light, high-volume models."
            )
        elif b_total < a_total:
            recommendation = (
                f"Method B results in lower capital ({_gbp(b_total)} vs {_gbp(a_total)}). "
                "Better for low-volume or high-overhead models."
            )
        else:
            recommendation = (
                f"Both methods result in similar capital ({_gbp(a_total)}). "
                "Choose based on future growth expectations."
            )
    elif a is not None:
        breakdown = [f"Method A (10% fixed overheads): {_gbp(a)}", minimum_line]
        recommendation = "Enter transaction volume to compare with Method B calculation."
    elif b is not None:
        breakdown = [f"Method B (volume tiers): {_gbp(b)}", minimum_line]
        recommendation = "Enter monthly OpEx to compare with Method A calculation."
    else:
        recommendation = "Enter monthly OpEx and transaction volume to calculate capital requirements."

    method = answers.get("pay-capital-method")
    return CapitalEstimate(
        method=_METHODS.get(method) if isinstance(method, str) else None,
        minimum_capital=minimum_gbp,
        method_a_estimate=a,
        method_b_estimate=b,
        recommendation=recommendation,
        breakdown=tuple(breakdown),
    )
