"""
Funnel diagnostician (Module 2).

Walks six ordered checkpoints against the governor's anchor week:
1. Spend -> orders reality
2. Attention quality (Meta CPM / CTR / frequency)
3. Click -> session integrity
4. Conversion mechanics
5. New-customer reality
6. Cash & CM leak

Each checkpoint is a small ordered rule table of
(predicate, status, message template); the first matching rule wins.
Steps 2-4 are the funnel checkpoints proper and feed the root-cause summary.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from governor.config import (
    SPEND_ORDER_GAP_POINTS,
    CPM_ELEVATED,
    CTR_FAIL,
    CTR_WARNING,
    FREQUENCY_FAIL,
    FREQUENCY_WARNING,
    CLICK_SESSION_FAIL,
    CLICK_SESSION_WARNING,
    CVR_FAIL,
    CVR_WARNING,
    COUNT_PVA_PASS,
    COUNT_PVA_WARNING,
    UNIT_CM_FAIL,
)
from governor.metrics.common import (
    STATUS_PASS,
    STATUS_WARNING,
    STATUS_FAIL,
    STATUS_NO_DATA,
    money,
    number,
    pct_change,
    worst_status,
)
from governor.metrics.derived import DerivedWeek
from governor.metrics.economic_governor import (
    GovernorResult,
    VERDICT_CM,
    VERDICT_VOLUME,
    VERDICT_BOTH,
    VERDICT_NEITHER,
)

logger = logging.getLogger(__name__)

# (predicate, status, message template)
Rule = Tuple[Callable[..., bool], str, str]

FUNNEL_STEPS = (2, 3, 4)

RCA_COLLECT_DATA = "collect_data"
RCA_HEALTHY = "healthy"
RCA_DIAGNOSED = "diagnosed"

STEP_TITLES = {
    1: "Spend → Orders Reality",
    2: "Attention Quality (Meta)",
    3: "Click → Session Integrity",
    4: "Conversion Mechanics",
    5: "New Customer Reality",
    6: "Cash & CM Leak",
}

STEP_CHECKS = {
    1: "Did spend go up but orders didn't follow? Is CAC > AOV?",
    2: "CPM too high? CTR too low? Frequency causing fatigue?",
    3: "Are Meta clicks actually becoming Shopify sessions?",
    4: "Is site CVR healthy? WoW trend?",
    5: "Actual NC count vs forecast (PvA %)",
    6: "Unit CM per customer, AOV gap, CAC gap. Biggest dollar leak?",
}

# Inputs that unlock each funnel step
STEP_INPUTS = {
    2: "CPM, CTR and Frequency",
    3: "Meta Clicks and Shopify Sessions",
    4: "Site CVR",
}

ALLOWED_SCOPE = {
    VERDICT_CM: "Leak hunting ONLY. Do NOT scale.",
    VERDICT_BOTH: "Leak hunting ONLY. Do NOT scale.",
    VERDICT_VOLUME: "Volume growth allowed. CM is healthy.",
    VERDICT_NEITHER: "No funnel issues flagged by economics.",
}

ACTION_LABELS = {
    STATUS_FAIL: "Fix immediately",
    STATUS_WARNING: "Investigate",
    STATUS_NO_DATA: "Collect data",
    STATUS_PASS: "Maintain",
}


@dataclass(frozen=True)
class FunnelStep:
    step: int
    title: str
    check: str
    status: str
    finding: str
    data_used: str
    caution: Optional[str] = None


@dataclass(frozen=True)
class RCASummary:
    kind: str
    action: str
    root_cause: str
    discussion: str
    solve: str
    do_not_do: str
    primary_step: Optional[int] = None
    other_steps: Tuple[int, ...] = ()


@dataclass(frozen=True)
class ActionRow:
    """One row of the tier-2 action table."""
    step: int
    title: str
    action: str
    identify: str
    root_cause: str
    discuss: str
    solve: str
    assign: str


@dataclass(frozen=True)
class DiagnosticianResult:
    allowed: bool
    allowed_scope: str
    steps: Tuple[FunnelStep, ...]
    rca_summary: RCASummary
    action_table: Tuple[ActionRow, ...]

    def step(self, step_number: int) -> FunnelStep:
        for step in self.steps:
            if step.step == step_number:
                return step
        raise KeyError(step_number)


def _always(*_args) -> bool:
    return True


def first_match(rules: Sequence[Rule], *args) -> Tuple[str, str]:
    """Status and template of the first rule whose predicate holds."""
    for predicate, status, template in rules:
        if predicate(*args):
            return status, template
    raise ValueError("Rule table has no fallback rule")


def _no_data(step: int, finding: str) -> FunnelStep:
    return FunnelStep(
        step=step,
        title=STEP_TITLES[step],
        check=STEP_CHECKS[step],
        status=STATUS_NO_DATA,
        finding=finding,
        data_used="N/A",
    )


# =============================================================================
# STEP 1: SPEND -> ORDERS
# =============================================================================

def _disproportionate(spend_change: float, order_change: float) -> bool:
    return abs(spend_change - order_change) >= SPEND_ORDER_GAP_POINTS


SPEND_ORDER_RULES: List[Rule] = [
    (
        lambda s, o: _disproportionate(s, o) and s > 0 and o <= 0,
        STATUS_FAIL,
        "Spend increased {spend:.0f}% but orders changed {orders:.0f}%. "
        "Efficiency breakdown: more spend is NOT producing more orders.",
    ),
    (
        _disproportionate,
        STATUS_WARNING,
        "Spend moved {spend:.0f}%, orders moved {orders:.0f}%. Disproportionate, investigate efficiency.",
    ),
    (
        _always,
        STATUS_PASS,
        "Spend and orders moved proportionally (spend {spend:.0f}%, orders {orders:.0f}%).",
    ),
]


def build_spend_orders_step(latest: DerivedWeek, prior: Optional[DerivedWeek]) -> FunnelStep:
    if latest.ad_spend is None or latest.count_actual is None:
        return _no_data(1, "Missing ad spend or order count data.")

    spend_change = pct_change(latest.ad_spend, prior.ad_spend if prior else None)
    order_change = pct_change(latest.count_actual, prior.count_actual if prior else None)

    if spend_change is not None and order_change is not None:
        status, template = first_match(SPEND_ORDER_RULES, spend_change, order_change)
        finding = template.format(spend=spend_change, orders=order_change)
    else:
        # No comparable prior week: static CAC vs AOV check
        status = STATUS_PASS
        finding = (
            f"WK{latest.week_num}: {money(latest.ad_spend)} spend → {number(latest.count_actual)} orders. "
            f"CAC: {money(latest.cac_actual)}."
        )
        if latest.cac_actual is not None and latest.aov_actual is not None and latest.cac_actual > latest.aov_actual:
            status = STATUS_FAIL
            finding += (
                f" CAC ({money(latest.cac_actual)}) exceeds AOV ({money(latest.aov_actual)}). "
                "Paying more to acquire than they spend."
            )

    return FunnelStep(
        step=1,
        title=STEP_TITLES[1],
        check=STEP_CHECKS[1],
        status=status,
        finding=finding,
        data_used="Tier 1: Ad Spend, Order Count",
    )


# =============================================================================
# STEP 2: ATTENTION QUALITY
# =============================================================================

CPM_RULES: List[Rule] = [
    (lambda v: v > CPM_ELEVATED, STATUS_WARNING, "CPM at ${value:.2f}: elevated. Check audience saturation."),
    (_always, STATUS_PASS, "CPM at ${value:.2f}: within normal range."),
]

CTR_RULES: List[Rule] = [
    (lambda v: v < CTR_FAIL, STATUS_FAIL, "CTR at {value:.2f}%: below 1%. Message-market mismatch likely."),
    (lambda v: v < CTR_WARNING, STATUS_WARNING, "CTR at {value:.2f}%: mediocre. Test new hooks/angles."),
    (_always, STATUS_PASS, "CTR at {value:.2f}%: healthy."),
]

FREQUENCY_RULES: List[Rule] = [
    (
        lambda v: v > FREQUENCY_FAIL,
        STATUS_FAIL,
        "Frequency at {value:.1f}: creative fatigue likely. Audience seeing ads {value:.1f}x.",
    ),
    (lambda v: v > FREQUENCY_WARNING, STATUS_WARNING, "Frequency at {value:.1f}: approaching fatigue threshold."),
    (_always, STATUS_PASS, "Frequency at {value:.1f}: healthy."),
]

ATTENTION_METRICS = (
    ("cpm", CPM_RULES),
    ("ctr", CTR_RULES),
    ("frequency", FREQUENCY_RULES),
)


def build_attention_step(latest: DerivedWeek) -> FunnelStep:
    if latest.cpm is None and latest.ctr is None and latest.frequency is None:
        return _no_data(2, "No Meta attention data provided. Input CPM, CTR, and Frequency to diagnose.")

    statuses = []
    findings = []
    for field_name, rules in ATTENTION_METRICS:
        value = getattr(latest, field_name)
        if value is None:
            continue
        status, template = first_match(rules, value)
        statuses.append(status)
        findings.append(template.format(value=value))

    return FunnelStep(
        step=2,
        title=STEP_TITLES[2],
        check=STEP_CHECKS[2],
        status=worst_status(statuses),
        finding=" ".join(findings),
        data_used="Tier 2: Meta CPM, CTR, Frequency",
        caution="Tier 2 data is directional only. No profitability conclusions allowed from Meta metrics.",
    )


# =============================================================================
# STEP 3: CLICK -> SESSION
# =============================================================================

CLICK_SESSION_RULES: List[Rule] = [
    (
        lambda r: r > CLICK_SESSION_FAIL,
        STATUS_FAIL,
        "{clicks} clicks but only {sessions} sessions (ratio: {ratio:.2f}). "
        "Major click leakage: tracking issue, slow site, or bot traffic.",
    ),
    (
        lambda r: r > CLICK_SESSION_WARNING,
        STATUS_WARNING,
        "{clicks} clicks vs {sessions} sessions (ratio: {ratio:.2f}). Moderate click loss, check page load speed.",
    ),
    (
        _always,
        STATUS_PASS,
        "{clicks} clicks → {sessions} sessions (ratio: {ratio:.2f}). Clicks tracking to sessions cleanly.",
    ),
]


def build_click_session_step(latest: DerivedWeek) -> FunnelStep:
    if latest.meta_clicks is None or latest.shopify_sessions is None:
        return _no_data(3, "No click/session data provided. Input Meta clicks and Shopify sessions to diagnose.")

    ratio = latest.click_session_ratio
    if ratio is None:
        return _no_data(3, "Shopify sessions are zero. Click/session ratio is not comparable.")

    status, template = first_match(CLICK_SESSION_RULES, ratio)
    return FunnelStep(
        step=3,
        title=STEP_TITLES[3],
        check=STEP_CHECKS[3],
        status=status,
        finding=template.format(
            clicks=number(latest.meta_clicks),
            sessions=number(latest.shopify_sessions),
            ratio=ratio,
        ),
        data_used="Tier 2: Meta Clicks, Shopify Sessions",
        caution="Treat click-session mismatch as a system issue, not traffic blame.",
    )


# =============================================================================
# STEP 4: CONVERSION
# =============================================================================

CVR_RULES: List[Rule] = [
    (
        lambda v: v < CVR_FAIL,
        STATUS_FAIL,
        "CVR at {value:.2f}%: below 1.5%. Check offer clarity, proof elements, and friction.",
    ),
    (
        lambda v: v < CVR_WARNING,
        STATUS_WARNING,
        "CVR at {value:.2f}%: mediocre. Room for improvement in offer presentation.",
    ),
    (_always, STATUS_PASS, "CVR at {value:.2f}%: solid. Traffic is innocent, conversion is working."),
]


def build_conversion_step(latest: DerivedWeek, prior: Optional[DerivedWeek]) -> FunnelStep:
    if latest.cvr is None:
        return _no_data(4, "No CVR data provided. Input site conversion rate to diagnose.")

    status, template = first_match(CVR_RULES, latest.cvr)
    finding = template.format(value=latest.cvr)

    if prior is not None and prior.cvr is not None:
        change = latest.cvr - prior.cvr
        sign = "+" if change > 0 else ""
        finding += f" WoW change: {sign}{change:.2f}pp."

    return FunnelStep(
        step=4,
        title=STEP_TITLES[4],
        check=STEP_CHECKS[4],
        status=status,
        finding=finding,
        data_used="Tier 2: CVR",
        caution="Assume traffic is innocent until proven guilty. Diagnose offer, not audience.",
    )


# =============================================================================
# STEP 5: NEW-CUSTOMER REALITY
# =============================================================================

COUNT_PVA_RULES: List[Rule] = [
    (lambda p: p >= COUNT_PVA_PASS, STATUS_PASS, ""),
    (lambda p: p >= COUNT_PVA_WARNING, STATUS_WARNING, ""),
    (_always, STATUS_FAIL, ""),
]


def build_new_customer_step(latest: DerivedWeek) -> FunnelStep:
    if latest.count_actual is None or latest.count_forecast is None:
        return _no_data(5, "Missing NC count data.")

    pva = latest.count_pva
    if pva is None:
        return _no_data(5, "NC count forecast is zero. PvA is not comparable.")

    status, _ = first_match(COUNT_PVA_RULES, pva)
    return FunnelStep(
        step=5,
        title=STEP_TITLES[5],
        check=STEP_CHECKS[5],
        status=status,
        finding=(
            f"{number(latest.count_actual)} real new customers vs {number(latest.count_forecast)} forecast "
            f"({pva:.0f}% PvA). Validated using Tier 1 data only."
        ),
        data_used="Tier 1: 1st Order Count (Traction Scorecard)",
        caution='Shopify "new" customers may include historical Canadian buyers. Use Tier 1 count only.',
    )


# =============================================================================
# STEP 6: CASH & CM LEAK
# =============================================================================

UNIT_CM_RULES: List[Rule] = [
    (lambda u: u >= 0, STATUS_PASS, ""),
    (lambda u: u > UNIT_CM_FAIL, STATUS_WARNING, ""),
    (_always, STATUS_FAIL, ""),
]


def _plan_gap(a: Optional[float], b: Optional[float]) -> float:
    if a is None or b is None:
        return 0.0
    return a - b


def build_cash_leak_step(latest: DerivedWeek) -> FunnelStep:
    if latest.aov_actual is None or latest.cac_actual is None or latest.cm_actual is None:
        return _no_data(6, "Missing AOV, CAC, or CM data.")

    count = latest.count_actual if latest.count_actual is not None else 1
    unit_cm = latest.unit_cm_actual if latest.unit_cm_actual is not None else 0.0
    status, _ = first_match(UNIT_CM_RULES, unit_cm)

    cac_gap = _plan_gap(latest.cac_actual, latest.cac_forecast)
    aov_gap = _plan_gap(latest.aov_forecast, latest.aov_actual)

    aov_note = f"-{money(aov_gap)} vs plan" if aov_gap > 0 else "on plan"
    cac_note = f"+{money(cac_gap)} over plan" if cac_gap > 0 else "on plan"
    findings = [
        f"Unit CM: {money(unit_cm)}/customer.",
        f"AOV: {money(latest.aov_actual)} ({aov_note}).",
        f"CAC: {money(latest.cac_actual)} ({cac_note}).",
    ]

    if cac_gap > aov_gap:
        findings.append(f"Biggest dollar leak: CAC overspend = {money(cac_gap * count)}/week.")
    elif aov_gap > 0:
        findings.append(f"Biggest dollar leak: AOV shortfall = {money(aov_gap * count)}/week.")

    return FunnelStep(
        step=6,
        title=STEP_TITLES[6],
        check=STEP_CHECKS[6],
        status=status,
        finding=" ".join(findings),
        data_used="Tier 1: AOV, CAC, CM, Count",
    )


# =============================================================================
# ROOT-CAUSE SYNTHESIS
# =============================================================================

# Per funnel step: what to do when the step is the primary break
RCA_PLAYBOOK: Dict[int, Dict[str, str]] = {
    2: {
        "action": "Fix attention before touching budget.",
        "root_cause": "Attention quality is the break. Ads are not earning cheap, fresh clicks.",
        "discussion": "Expensive impressions, weak click-through or audience fatigue throttle everything downstream.",
        "solve": "Rotate in new creative and hooks, broaden or refresh audiences, and cap frequency.",
        "do_not_do": "Do NOT raise budget on fatigued creative. Higher spend only pushes frequency and CPM up.",
        "assign": "Media buyer / creative",
    },
    3: {
        "action": "Audit tracking and landing-page delivery.",
        "root_cause": "Click integrity is the break. Paid clicks are not arriving as site sessions.",
        "discussion": "Clicks that never become sessions point at broken tracking, slow pages, redirects or bot traffic.",
        "solve": "Check pixel and UTM setup, landing-page load time and redirects; exclude bot placements.",
        "do_not_do": "Do NOT blame the audience or creative until clicks reconcile with sessions.",
        "assign": "Developer / analytics",
    },
    4: {
        "action": "Run an on-site conversion audit.",
        "root_cause": "Conversion is the break. Visitors arrive but do not buy.",
        "discussion": "Traffic is innocent until proven guilty: diagnose the offer, proof and checkout friction first.",
        "solve": "Tighten offer clarity, add proof elements, and remove checkout friction; A/B test the hero page.",
        "do_not_do": "Do NOT buy more traffic into a page that is not converting.",
        "assign": "CRO / site owner",
    },
}


def _describe(step: FunnelStep) -> str:
    return f"Step {step.step} ({step.title}, {step.status})"


def _economic_context(governor: GovernorResult) -> str:
    if governor.has_cm_problem:
        leak = governor.biggest_leak.description if governor.biggest_leak else "see unit CM"
        return f"The economic problem lies in Tier 1 unit economics, not the funnel. Biggest leak: {leak}."
    if governor.has_volume_problem:
        return (
            "The volume shortfall lies in Tier 1 data (spend level or forecast), "
            "not in attention, click integrity or conversion."
        )
    return "No economic problem flagged by the governor."


def build_rca(governor: GovernorResult, steps: Sequence[FunnelStep]) -> RCASummary:
    latest = governor.latest_week
    relevant = [s for s in steps if s.step in FUNNEL_STEPS]
    failed = [s for s in relevant if s.status == STATUS_FAIL]
    warned = [s for s in relevant if s.status == STATUS_WARNING]
    missing = [s for s in relevant if s.status == STATUS_NO_DATA]

    if len(missing) == len(relevant):
        inputs = "; ".join(f"{STEP_INPUTS[s.step]} (step {s.step})" for s in missing)
        return RCASummary(
            kind=RCA_COLLECT_DATA,
            action="Collect data. Funnel diagnosis is blocked.",
            root_cause=f"Unknown. No Tier 2 funnel data for {latest.display_label}.",
            discussion=f"Inputs that unlock diagnosis: {inputs}.",
            solve="Enter Tier 2 metrics for the latest week, per funnel or account-wide (pick one, don't mix).",
            do_not_do="Do NOT infer funnel health from Tier 1 numbers alone.",
        )

    if not failed and not warned:
        discussion = "Attention, click integrity and conversion show no breakpoint."
        if missing:
            discussion += " Still missing: " + ", ".join(_describe(s) for s in missing) + "."
        return RCASummary(
            kind=RCA_HEALTHY,
            action="Monitor. No acute funnel breakpoints detected.",
            root_cause=_economic_context(governor),
            discussion=discussion,
            solve="Fix the Tier 1 economics the governor flagged; otherwise maintain and look for incremental gains.",
            do_not_do='Do NOT increase spend to "test" without fixing underlying unit economics first.',
        )

    primary = failed[0] if failed else warned[0]
    playbook = RCA_PLAYBOOK[primary.step]
    others = sorted((s for s in failed + warned if s is not primary), key=lambda s: s.step)

    discussion = playbook["discussion"]
    if others:
        discussion += " Also unhealthy: " + ", ".join(_describe(s) for s in others) + "."
    if governor.has_cm_problem:
        discussion += " Unit economics are broken too, so fixes here are leak hunting, not a licence to scale."

    return RCASummary(
        kind=RCA_DIAGNOSED,
        action=playbook["action"],
        root_cause=f"{playbook['root_cause']} {primary.finding}",
        discussion=discussion,
        solve=playbook["solve"],
        do_not_do=playbook["do_not_do"],
        primary_step=primary.step,
        other_steps=tuple(s.step for s in others),
    )


def build_action_table(steps: Sequence[FunnelStep]) -> Tuple[ActionRow, ...]:
    """Tier-2 action table: one row per funnel step."""
    rows = []
    for step in steps:
        if step.step not in FUNNEL_STEPS:
            continue
        playbook = RCA_PLAYBOOK[step.step]
        unhealthy = step.status in (STATUS_FAIL, STATUS_WARNING)
        if step.status == STATUS_NO_DATA:
            root_cause = "Unknown until data is entered."
            solve = f"Enter {STEP_INPUTS[step.step]}."
        elif unhealthy:
            root_cause = playbook["root_cause"]
            solve = playbook["solve"]
        else:
            root_cause = "None detected."
            solve = "Keep current setup."
        rows.append(ActionRow(
            step=step.step,
            title=step.title,
            action=ACTION_LABELS[step.status],
            identify=step.finding,
            root_cause=root_cause,
            discuss=playbook["discussion"] if unhealthy else "",
            solve=solve,
            assign=playbook["assign"],
        ))
    return tuple(rows)


def evaluate_funnel(governor: GovernorResult) -> DiagnosticianResult:
    """Run the six funnel checkpoints against the governor's anchor week."""
    latest = governor.latest_week
    prior = governor.prior_week

    steps = (
        build_spend_orders_step(latest, prior),
        build_attention_step(latest),
        build_click_session_step(latest),
        build_conversion_step(latest, prior),
        build_new_customer_step(latest),
        build_cash_leak_step(latest),
    )
    rca = build_rca(governor, steps)

    logger.debug(
        "Funnel %s: %s; rca=%s",
        latest.display_label,
        ", ".join(f"{s.step}={s.status}" for s in steps),
        rca.kind,
    )

    return DiagnosticianResult(
        allowed=governor.verdict != VERDICT_NEITHER,
        allowed_scope=ALLOWED_SCOPE[governor.verdict],
        steps=steps,
        rca_summary=rca,
        action_table=build_action_table(steps),
    )
