"""
Tests for the six funnel checkpoints and root-cause synthesis.
"""
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from governor.data.defaults import DEFAULT_SCORECARD_TSV
from governor.data.schema import WeekRecord
from governor.data.sheets import parse_scorecard
from governor.metrics.derived import derive_week
from governor.metrics.economic_governor import evaluate_economics
from governor.metrics.funnel_diagnostician import (
    RCA_COLLECT_DATA,
    RCA_DIAGNOSED,
    RCA_HEALTHY,
    build_attention_step,
    build_cash_leak_step,
    build_click_session_step,
    build_conversion_step,
    build_new_customer_step,
    build_spend_orders_step,
    evaluate_funnel,
    first_match,
    SPEND_ORDER_RULES,
)


def week(**overrides):
    """On-plan tier-1 week; tier 2 empty unless overridden."""
    values = dict(
        label="WK 1", week_num=1,
        ad_spend=1000,
        cm_actual=100, cm_forecast=100,
        count_actual=10, count_forecast=10,
        aov_actual=100, aov_forecast=100,
        cac_actual=50, cac_forecast=50,
    )
    values.update(overrides)
    return derive_week(WeekRecord(**values))


HEALTHY_TIER2 = dict(cpm=10, ctr=2.0, frequency=1.5, meta_clicks=100, shopify_sessions=100, cvr=3.0)


def diagnose(*weeks):
    return evaluate_funnel(evaluate_economics(list(weeks)))


class TestSpendOrdersStep:
    """Step 1: does spend growth produce order growth?"""

    def test_spend_up_orders_flat_fails(self):
        step = build_spend_orders_step(
            week(ad_spend=150, count_actual=10),
            week(ad_spend=100, count_actual=10),
        )
        assert step.status == "fail"
        assert "Spend increased 50%" in step.finding

    def test_disproportionate_growth_warns(self):
        step = build_spend_orders_step(
            week(ad_spend=150, count_actual=12),
            week(ad_spend=100, count_actual=10),
        )
        assert step.status == "warning"

    def test_proportional_growth_passes(self):
        step = build_spend_orders_step(
            week(ad_spend=110, count_actual=11),
            week(ad_spend=100, count_actual=10),
        )
        assert step.status == "pass"
        assert "proportionally" in step.finding

    def test_no_prior_cac_above_aov_fails(self):
        step = build_spend_orders_step(week(cac_actual=90, aov_actual=50), None)
        assert step.status == "fail"
        assert "exceeds AOV" in step.finding

    def test_no_prior_healthy_passes(self):
        step = build_spend_orders_step(week(), None)
        assert step.status == "pass"

    def test_zero_prior_spend_uses_static_check(self):
        step = build_spend_orders_step(week(cac_actual=150), week(ad_spend=0))
        assert step.status == "fail"
        assert "exceeds AOV" in step.finding

    def test_missing_spend(self):
        step = build_spend_orders_step(week(ad_spend=None), None)
        assert step.status == "no_data"

    @pytest.mark.parametrize("spend,orders,expected", [
        (15.0, 0.0, "fail"),
        (14.9, 0.0, "pass"),
        (30.0, 15.0, "warning"),
        (29.9, 15.0, "pass"),
        (-15.0, 0.0, "warning"),
    ])
    def test_gap_of_fifteen_points_is_flagged(self, spend, orders, expected):
        status, _ = first_match(SPEND_ORDER_RULES, spend, orders)
        assert status == expected


class TestAttentionStep:
    """Step 2: Meta CPM / CTR / frequency."""

    def test_elevated_cpm_only_warns(self):
        step = build_attention_step(week(cpm=35, ctr=2.0, frequency=1.5))

        assert step.status == "warning"
        assert "elevated" in step.finding
        assert "CTR at 2.00%: healthy." in step.finding
        assert "Frequency at 1.5: healthy." in step.finding

    def test_low_ctr_fails(self):
        assert build_attention_step(week(ctr=0.8)).status == "fail"

    def test_high_frequency_fails(self):
        step = build_attention_step(week(cpm=10, frequency=3.5))
        assert step.status == "fail"
        assert "creative fatigue" in step.finding

    def test_partial_metrics(self):
        step = build_attention_step(week(cpm=10))
        assert step.status == "pass"
        assert "CTR" not in step.finding

    def test_no_data(self):
        step = build_attention_step(week())
        assert step.status == "no_data"
        assert step.caution is None

    def test_directional_caution(self):
        assert "directional" in build_attention_step(week(cpm=10)).caution


class TestClickSessionStep:
    """Step 3: clicks -> sessions."""

    def test_major_leakage(self):
        step = build_click_session_step(week(meta_clicks=1000, shopify_sessions=500))

        assert step.status == "fail"
        assert "Major click leakage" in step.finding
        assert "1,000 clicks" in step.finding

    def test_moderate_loss_warns(self):
        step = build_click_session_step(week(meta_clicks=130, shopify_sessions=100))
        assert step.status == "warning"

    def test_clean_tracking_passes(self):
        step = build_click_session_step(week(meta_clicks=110, shopify_sessions=100))
        assert step.status == "pass"

    def test_zero_sessions(self):
        step = build_click_session_step(week(meta_clicks=100, shopify_sessions=0))
        assert step.status == "no_data"

    def test_missing_sessions(self):
        assert build_click_session_step(week(meta_clicks=100)).status == "no_data"


class TestConversionStep:
    """Step 4: site CVR."""

    @pytest.mark.parametrize("cvr,expected", [(1.0, "fail"), (2.0, "warning"), (3.0, "pass")])
    def test_cvr_bands(self, cvr, expected):
        assert build_conversion_step(week(cvr=cvr), None).status == expected

    def test_week_over_week_increase(self):
        step = build_conversion_step(week(cvr=3.0), week(cvr=2.5))
        assert step.finding.endswith("WoW change: +0.50pp.")

    def test_week_over_week_decrease(self):
        step = build_conversion_step(week(cvr=2.0), week(cvr=3.0))
        assert "WoW change: -1.00pp." in step.finding

    def test_no_trend_without_prior_cvr(self):
        step = build_conversion_step(week(cvr=3.0), week())
        assert "WoW" not in step.finding

    def test_no_data(self):
        assert build_conversion_step(week(), None).status == "no_data"


class TestNewCustomerStep:
    """Step 5: tier-1 count vs forecast."""

    @pytest.mark.parametrize("count,expected", [
        (9, "pass"), (8.5, "pass"),
        (6, "warning"), (5, "warning"),
        (4.9, "fail"), (4, "fail"),
    ])
    def test_count_pva_bands(self, count, expected):
        assert build_new_customer_step(week(count_actual=count)).status == expected

    def test_finding(self):
        step = build_new_customer_step(week(count_actual=9))
        assert "9 real new customers vs 10 forecast (90% PvA)" in step.finding

    def test_zero_forecast(self):
        assert build_new_customer_step(week(count_forecast=0)).status == "no_data"

    def test_missing_count(self):
        assert build_new_customer_step(week(count_actual=None)).status == "no_data"


class TestCashLeakStep:
    """Step 6: unit CM and the biggest dollar leak."""

    def test_positive_unit_cm_passes(self):
        assert build_cash_leak_step(week()).status == "pass"

    def test_small_loss_warns(self):
        assert build_cash_leak_step(week(cm_actual=-100)).status == "warning"

    def test_loss_at_threshold_fails(self):
        assert build_cash_leak_step(week(cm_actual=-500)).status == "fail"

    def test_cac_leak_in_finding(self):
        step = build_cash_leak_step(week(cac_actual=80))
        assert "CAC overspend = $300/week" in step.finding
        assert "+$30 over plan" in step.finding

    def test_missing_count_defaults(self):
        """Without a count, unit CM reads as zero and leaks are per single customer."""
        step = build_cash_leak_step(week(count_actual=None, cm_actual=-100, aov_actual=80))

        assert step.status == "pass"
        assert "AOV shortfall = $20/week" in step.finding

    def test_missing_inputs(self):
        assert build_cash_leak_step(week(aov_actual=None)).status == "no_data"


class TestEvaluateFunnel:
    """Full diagnosis and RCA synthesis."""

    def test_six_ordered_steps(self):
        result = diagnose(week())
        assert [s.step for s in result.steps] == [1, 2, 3, 4, 5, 6]

    def test_collect_data_without_tier2(self):
        result = diagnose(week())
        rca = result.rca_summary

        assert rca.kind == RCA_COLLECT_DATA
        assert "CPM, CTR and Frequency (step 2)" in rca.discussion
        assert rca.primary_step is None

    def test_healthy_funnel(self):
        result = diagnose(week(**HEALTHY_TIER2))
        rca = result.rca_summary

        assert rca.kind == RCA_HEALTHY
        assert rca.action.startswith("Monitor")
        assert rca.root_cause == "No economic problem flagged by the governor."

    def test_healthy_funnel_with_cm_problem_points_at_tier1(self):
        result = diagnose(week(cac_actual=150, **HEALTHY_TIER2))
        assert "Tier 1 unit economics" in result.rca_summary.root_cause

    def test_partial_tier2_lists_missing_steps(self):
        result = diagnose(week(cpm=10))
        rca = result.rca_summary

        assert rca.kind == RCA_HEALTHY
        assert "Still missing" in rca.discussion
        assert "Step 3" in rca.discussion

    def test_failure_outranks_warning(self):
        result = diagnose(week(cpm=35, meta_clicks=200, shopify_sessions=100))
        rca = result.rca_summary

        assert rca.kind == RCA_DIAGNOSED
        assert rca.primary_step == 3
        assert rca.other_steps == (2,)
        assert "Also unhealthy: Step 2" in rca.discussion
        assert "Major click leakage" in rca.root_cause

    def test_first_warning_is_primary(self):
        result = diagnose(week(cpm=35, cvr=2.0))
        rca = result.rca_summary

        assert rca.primary_step == 2
        assert rca.other_steps == (4,)

    def test_action_table(self):
        result = diagnose(week(cpm=35, meta_clicks=200, shopify_sessions=100))
        rows = {row.step: row for row in result.action_table}

        assert sorted(rows) == [2, 3, 4]
        assert rows[2].action == "Investigate"
        assert rows[3].action == "Fix immediately"
        assert rows[4].action == "Collect data"
        assert rows[4].solve == "Enter Site CVR."

    def test_allowed_scope_follows_verdict(self):
        both = diagnose(week(cm_actual=-500, count_actual=5))
        volume = diagnose(week(count_actual=5, cm_actual=50))
        neither = diagnose(week())

        assert both.allowed_scope == "Leak hunting ONLY. Do NOT scale."
        assert volume.allowed_scope == "Volume growth allowed. CM is healthy."
        assert neither.allowed_scope == "No funnel issues flagged by economics."
        assert both.allowed is True
        assert neither.allowed is False

    def test_idempotent(self):
        governor = evaluate_economics([week(cpm=35)])
        assert evaluate_funnel(governor) == evaluate_funnel(governor)

    def test_step_lookup(self):
        result = diagnose(week())
        assert result.step(5).title == "New Customer Reality"
        with pytest.raises(KeyError):
            result.step(7)


class TestBundledScorecard:
    """The bundled scorecard has no ad spend and no tier-2 data."""

    def test_diagnosis(self):
        result = diagnose(*parse_scorecard(DEFAULT_SCORECARD_TSV))

        assert result.step(1).status == "no_data"
        assert [result.step(n).status for n in (2, 3, 4)] == ["no_data"] * 3
        assert result.rca_summary.kind == RCA_COLLECT_DATA
        assert result.step(5).status == "fail"
        assert result.step(6).status == "fail"
        assert "CAC overspend = $1,258/week" in result.step(6).finding
