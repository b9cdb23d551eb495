"""
Economic governor (Module 1).

Classifies the latest week with data into a verdict:
1. CM problem: unit economics are broken
2. Volume problem: new-customer count is well under plan
3. Both, or neither

and derives the scale permission, the CM mirage flag and the single
biggest dollar leak from it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from governor.config import (
    VOLUME_WINDOW_WEEKS,
    VOLUME_PROBLEM_PVA,
    PLANNED_LOSS_MULTIPLIER,
    MIRAGE_CM_PVA,
    MIRAGE_COUNT_PVA,
)
from governor.data.schema import WeekRecord
from governor.metrics.common import mean_defined, money, number, percent
from governor.metrics.derived import DerivedWeek, derive_weeks

logger = logging.getLogger(__name__)

VERDICT_CM = "cm_problem"
VERDICT_VOLUME = "volume_problem"
VERDICT_BOTH = "both"
VERDICT_NEITHER = "neither"
VERDICTS = (VERDICT_CM, VERDICT_VOLUME, VERDICT_BOTH, VERDICT_NEITHER)

SCALE_DENIED = "denied"
SCALE_LEAK_HUNT_ONLY = "leak_hunt_only"
SCALE_ALLOWED = "allowed"
SCALE_PERMISSIONS = (SCALE_DENIED, SCALE_LEAK_HUNT_ONLY, SCALE_ALLOWED)

LEAK_CAC = "cac_overspend"
LEAK_AOV = "aov_shortfall"

ATTRIBUTION_WARNINGS = (
    'Meta "new customers" include returning customers by default: do not use Meta attribution for NC count.',
    "Meta attribution over-credits conversions: use Tier 1 (Traction Scorecard) only.",
    'Shopify USA expansion store: "New customers" may be historical Canadian buyers. NC AOV is directionally useful only.',
)


class InsufficientDataError(ValueError):
    """Raised when no week carries ad spend, CM actuals or order count."""
    pass


@dataclass(frozen=True)
class BiggestLeak:
    """The larger of CAC overspend and AOV shortfall at the anchor week."""
    kind: str
    description: str
    per_customer: Optional[float]
    weekly_dollars: float


@dataclass(frozen=True)
class GovernorResult:
    verdict: str
    scale_permission: str
    scale_reason: str
    verdict_explanation: str
    warnings: Tuple[str, ...]
    cm_mirage: bool
    cm_mirage_explanation: Optional[str]
    biggest_leak: Optional[BiggestLeak]
    volume_signal: Optional[float]
    has_cm_problem: bool
    has_volume_problem: bool
    weeks: Tuple[DerivedWeek, ...]
    anchor_index: int

    @property
    def latest_week(self) -> DerivedWeek:
        """The last week with data; every rule is evaluated against it."""
        return self.weeks[self.anchor_index]

    @property
    def prior_week(self) -> Optional[DerivedWeek]:
        """The entry immediately before the anchor, if any."""
        if self.anchor_index == 0:
            return None
        return self.weeks[self.anchor_index - 1]


def data_indices(weeks: Sequence[WeekRecord]) -> list:
    """Positions of the weeks with data, in input order."""
    return [i for i, week in enumerate(weeks) if week.has_data]


def has_usable_weeks(weeks: Iterable[WeekRecord]) -> bool:
    """Precondition for evaluate_economics."""
    return any(week.has_data for week in weeks)


def volume_signal(with_data: Sequence[DerivedWeek]) -> Optional[float]:
    """Mean count PvA over the trailing window of weeks with data."""
    window = with_data[-VOLUME_WINDOW_WEEKS:]
    return mean_defined(week.count_pva for week in window)


def has_cm_problem(anchor: DerivedWeek) -> bool:
    actual = anchor.unit_cm_actual
    planned = anchor.unit_cm_forecast

    problem = False
    if actual is not None and planned is not None and planned < 0:
        # Planned loss per customer: tolerate up to twice the planned loss
        problem = actual < planned * PLANNED_LOSS_MULTIPLIER
    elif actual is not None and actual < 0 and planned is not None and planned >= 0:
        problem = True

    if anchor.cac_aov_gap is not None and anchor.cac_aov_gap > 0:
        problem = True

    return problem


def classify_verdict(cm_problem: bool, volume_problem: bool) -> str:
    if cm_problem and volume_problem:
        return VERDICT_BOTH
    if cm_problem:
        return VERDICT_CM
    if volume_problem:
        return VERDICT_VOLUME
    return VERDICT_NEITHER


def scale_permission(anchor: DerivedWeek, cm_problem: bool, volume_problem: bool) -> Tuple[str, str]:
    """Return (permission, reason)."""
    if cm_problem:
        reason = (
            f"Unit CM is {money(anchor.unit_cm_actual)}/customer vs {money(anchor.unit_cm_forecast)} plan. "
            f"CAC ({money(anchor.cac_actual)}) exceeds AOV ({money(anchor.aov_actual)}) "
            f"by {money(anchor.cac_aov_gap)}. Cannot scale into these losses."
        )
        return SCALE_DENIED, reason
    if volume_problem:
        return SCALE_ALLOWED, "CM is healthy. Funnel analysis allowed to grow volume."
    return SCALE_ALLOWED, "Economics are within acceptable range. Scaling allowed."


def detect_mirage(anchor: DerivedWeek) -> Tuple[bool, Optional[str]]:
    """
    Total CM beating plan while volume is far under plan.

    The outperformance comes from acquiring fewer loss-making customers, not
    from better economics.
    """
    cm_pva = anchor.cm_pva
    count_pva = anchor.count_pva
    if cm_pva is None or count_pva is None:
        return False, None
    if not (cm_pva > MIRAGE_CM_PVA and count_pva < MIRAGE_COUNT_PVA):
        return False, None

    hypothetical_cm = None
    if anchor.unit_cm_actual is not None and anchor.count_forecast is not None:
        hypothetical_cm = anchor.unit_cm_actual * anchor.count_forecast

    explanation = (
        f"CM appears to beat forecast ({percent(cm_pva)} PvA) but volume is at {percent(count_pva)} of plan. "
        f"At forecast volume of {number(anchor.count_forecast)} customers with actual unit economics "
        f"({money(anchor.unit_cm_actual)}/customer), total CM would be {money(hypothetical_cm)}, "
        f"NOT the {money(anchor.cm_forecast)} planned."
    )
    return True, explanation


def _gap(a: Optional[float], b: Optional[float]) -> Optional[float]:
    if a is None or b is None:
        return None
    return a - b


def find_biggest_leak(anchor: DerivedWeek) -> Optional[BiggestLeak]:
    """CAC overspend vs AOV shortfall in weekly dollars; CAC wins only if strictly larger."""
    count = anchor.count_actual
    if not count:
        return None

    cac_gap = _gap(anchor.cac_actual, anchor.cac_forecast)
    aov_gap = _gap(anchor.aov_forecast, anchor.aov_actual)
    cac_dollars = cac_gap * count if cac_gap is not None else 0.0
    aov_dollars = aov_gap * count if aov_gap is not None else 0.0

    if cac_dollars > aov_dollars:
        return BiggestLeak(
            kind=LEAK_CAC,
            description=(
                f"CAC overspend: {money(anchor.cac_actual)} actual vs {money(anchor.cac_forecast)} plan "
                f"= {money(cac_gap)} excess per customer"
            ),
            per_customer=cac_gap,
            weekly_dollars=cac_dollars,
        )
    return BiggestLeak(
        kind=LEAK_AOV,
        description=(
            f"AOV shortfall: {money(anchor.aov_actual)} actual vs {money(anchor.aov_forecast)} plan "
            f"= {money(aov_gap)} less per customer"
        ),
        per_customer=aov_gap,
        weekly_dollars=aov_dollars,
    )


def explain_verdict(verdict: str, anchor: DerivedWeek, signal: Optional[float]) -> str:
    actual = anchor.unit_cm_actual
    planned = anchor.unit_cm_forecast

    if verdict == VERDICT_BOTH:
        multiple = ""
        if actual is not None and planned:
            multiple = f" ({actual / planned:.1f}x plan)"
        return (
            f"BOTH broken. Volume at {percent(signal)} of target. "
            f"Unit CM at {money(actual)} vs {money(planned)} plan{multiple}. CM fixes take priority."
        )
    if verdict == VERDICT_CM:
        return f"CM Problem. Unit economics are broken: {money(actual)}/customer vs {money(planned)} plan."
    if verdict == VERDICT_VOLUME:
        return f"Volume Problem. NC count at {percent(signal)} of target. Unit economics are acceptable."
    return "Economics within acceptable variance. No structural issues detected."


def evaluate_economics(weeks: Sequence[WeekRecord]) -> GovernorResult:
    """
    Run the economic governor over the full, chronological week sequence.

    Callers must check has_usable_weeks() first; an input without a single
    week of data raises InsufficientDataError.
    """
    derived = derive_weeks(weeks)
    indices = data_indices(derived)
    if not indices:
        raise InsufficientDataError("No week has ad spend, CM actuals or order count")

    with_data = [derived[i] for i in indices]
    anchor = with_data[-1]

    signal = volume_signal(with_data)
    volume_problem = signal is not None and signal < VOLUME_PROBLEM_PVA
    cm_problem = has_cm_problem(anchor)

    verdict = classify_verdict(cm_problem, volume_problem)
    permission, reason = scale_permission(anchor, cm_problem, volume_problem)
    mirage, mirage_explanation = detect_mirage(anchor)
    leak = find_biggest_leak(anchor)

    logger.debug(
        "Governor anchor=%s verdict=%s volume_signal=%s cm_problem=%s",
        anchor.display_label, verdict, signal, cm_problem,
    )

    return GovernorResult(
        verdict=verdict,
        scale_permission=permission,
        scale_reason=reason,
        verdict_explanation=explain_verdict(verdict, anchor, signal),
        warnings=ATTRIBUTION_WARNINGS,
        cm_mirage=mirage,
        cm_mirage_explanation=mirage_explanation,
        biggest_leak=leak,
        volume_signal=signal,
        has_cm_problem=cm_problem,
        has_volume_problem=volume_problem,
        weeks=derived,
        anchor_index=indices[-1],
    )
