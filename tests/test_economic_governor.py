"""
Tests for the economic governor verdict, scale permission and leak detection.
"""
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from governor.data.defaults import DEFAULT_SCORECARD_TSV
from governor.data.schema import WeekRecord
from governor.data.sheets import parse_scorecard
from governor.metrics.economic_governor import (
    ATTRIBUTION_WARNINGS,
    InsufficientDataError,
    LEAK_AOV,
    LEAK_CAC,
    SCALE_ALLOWED,
    SCALE_DENIED,
    SCALE_PERMISSIONS,
    VERDICT_BOTH,
    VERDICT_CM,
    VERDICT_NEITHER,
    VERDICT_VOLUME,
    VERDICTS,
    classify_verdict,
    evaluate_economics,
    has_usable_weeks,
)


def make_week(label="WK 1", week_num=1, **values):
    return WeekRecord(label=label, week_num=week_num, **values)


def healthy_week(label="WK 1", week_num=1, **overrides):
    """On-plan week: positive unit CM, AOV above CAC, count at plan."""
    values = dict(
        ad_spend=1000,
        cm_actual=100, cm_forecast=100,
        count_actual=10, count_forecast=10,
        aov_actual=100, aov_forecast=100,
        cac_actual=50, cac_forecast=50,
    )
    values.update(overrides)
    return make_week(label, week_num, **values)


class TestPreconditions:
    """Evaluation needs at least one week with data."""

    def test_no_weeks(self):
        assert has_usable_weeks([]) is False
        with pytest.raises(InsufficientDataError):
            evaluate_economics([])

    def test_all_primary_fields_missing(self):
        """Forecasts alone do not count as data."""
        weeks = [make_week(f"W{i}", i, cm_forecast=-1000, count_forecast=50) for i in range(1, 4)]

        assert has_usable_weeks(weeks) is False
        with pytest.raises(InsufficientDataError):
            evaluate_economics(weeks)

    def test_insufficient_data_is_value_error(self):
        assert issubclass(InsufficientDataError, ValueError)

    def test_any_presence_field_counts(self):
        assert has_usable_weeks([make_week(ad_spend=0)]) is True
        assert has_usable_weeks([make_week(count_actual=3)]) is True
        assert has_usable_weeks([make_week(cm_actual=-10)]) is True


class TestVerdict:
    """Tests for the CM/volume verdict."""

    def test_both_problems(self):
        """Unit CM -5 vs -1 plan and count at 50% of plan."""
        weeks = [make_week(
            ad_spend=100, cm_actual=-50, cm_forecast=-10,
            count_actual=10, count_forecast=20,
            aov_actual=50, aov_forecast=80,
            cac_actual=90, cac_forecast=70,
        )]

        result = evaluate_economics(weeks)

        assert result.latest_week.unit_cm_actual == pytest.approx(-5.0)
        assert result.latest_week.unit_cm_forecast == pytest.approx(-1.0)
        assert result.has_cm_problem is True
        assert result.has_volume_problem is True
        assert result.verdict == VERDICT_BOTH
        assert result.scale_permission == SCALE_DENIED

    def test_cac_above_aov_forces_cm_problem(self):
        """Healthy unit CM still fails when CAC exceeds AOV."""
        weeks = [healthy_week(cm_actual=50, cm_forecast=20, cac_actual=120, aov_actual=100)]

        result = evaluate_economics(weeks)

        assert result.latest_week.unit_cm_actual == pytest.approx(5.0)
        assert result.latest_week.unit_cm_forecast == pytest.approx(2.0)
        assert result.verdict == VERDICT_CM
        assert result.scale_permission == SCALE_DENIED
        assert "Cannot scale into these losses" in result.scale_reason

    def test_volume_problem_only(self):
        weeks = [healthy_week(count_actual=5, cm_actual=50)]

        result = evaluate_economics(weeks)

        assert result.verdict == VERDICT_VOLUME
        assert result.scale_permission == SCALE_ALLOWED
        assert result.scale_reason == "CM is healthy. Funnel analysis allowed to grow volume."

    def test_neither(self):
        result = evaluate_economics([healthy_week()])

        assert result.verdict == VERDICT_NEITHER
        assert result.scale_permission == SCALE_ALLOWED
        assert result.scale_reason == "Economics are within acceptable range. Scaling allowed."

    def test_planned_loss_tolerance(self):
        """Up to twice the planned loss per customer is tolerated."""
        at_limit = healthy_week(cm_actual=-200, cm_forecast=-100)      # -20 vs -10
        beyond = healthy_week(cm_actual=-210, cm_forecast=-100)        # -21 vs -10

        assert evaluate_economics([at_limit]).has_cm_problem is False
        assert evaluate_economics([beyond]).has_cm_problem is True

    def test_loss_against_profitable_plan(self):
        result = evaluate_economics([healthy_week(cm_actual=-10, cm_forecast=100)])
        assert result.has_cm_problem is True

    def test_zero_planned_unit_cm(self):
        """A break-even plan treats any actual loss as a CM problem."""
        result = evaluate_economics([healthy_week(cm_actual=-10, cm_forecast=0)])
        assert result.has_cm_problem is True

    def test_tags_are_closed_sets(self):
        for week in (healthy_week(), healthy_week(count_actual=2), healthy_week(cac_actual=500)):
            result = evaluate_economics([week])
            assert result.verdict in VERDICTS
            assert result.scale_permission in SCALE_PERMISSIONS

    def test_verdict_priority(self):
        assert classify_verdict(True, True) == VERDICT_BOTH
        assert classify_verdict(True, False) == VERDICT_CM
        assert classify_verdict(False, True) == VERDICT_VOLUME
        assert classify_verdict(False, False) == VERDICT_NEITHER

    def test_cm_problem_always_denies(self):
        for count in (2, 10):
            result = evaluate_economics([healthy_week(count_actual=count, cac_actual=150)])
            assert result.has_cm_problem is True
            assert result.scale_permission == SCALE_DENIED


class TestVolumeWindow:
    """Volume signal is the mean count PvA over the last three data weeks."""

    def test_uses_trailing_three_weeks(self):
        weeks = [
            healthy_week("W1", 1, count_actual=1),     # 10%, outside window
            healthy_week("W2", 2, count_actual=8),     # 80%
            healthy_week("W3", 3, count_actual=7),     # 70%
            healthy_week("W4", 4, count_actual=9),     # 90%
        ]

        result = evaluate_economics(weeks)

        assert result.volume_signal == pytest.approx(80.0)
        assert result.has_volume_problem is False

    def test_undefined_pva_weeks_are_skipped(self):
        weeks = [
            healthy_week("W1", 1, count_actual=5),                   # 50%
            healthy_week("W2", 2, count_forecast=0),                 # undefined
            healthy_week("W3", 3, count_actual=6),                   # 60%
        ]

        result = evaluate_economics(weeks)

        assert result.volume_signal == pytest.approx(55.0)
        assert result.has_volume_problem is True

    @pytest.mark.parametrize("count,expected", [(7, False), (6.9, True)])
    def test_seventy_percent_is_not_a_volume_problem(self, count, expected):
        result = evaluate_economics([healthy_week(count_actual=count)])
        assert result.has_volume_problem is expected

    def test_no_defined_pva_means_no_volume_problem(self):
        result = evaluate_economics([healthy_week(count_forecast=None)])

        assert result.volume_signal is None
        assert result.has_volume_problem is False


class TestAnchorWeek:
    """Rules are evaluated against the last week with data."""

    def test_trailing_empty_weeks_ignored(self):
        weeks = [
            healthy_week("W1", 1),
            healthy_week("W2", 2, cac_actual=200),
            make_week("W3", 3, count_forecast=10, cm_forecast=100),
            make_week("W4", 4),
        ]

        result = evaluate_economics(weeks)

        assert result.latest_week.label == "W2"
        assert result.anchor_index == 1
        assert result.prior_week.label == "W1"
        assert result.has_cm_problem is True

    def test_single_week_has_no_prior(self):
        result = evaluate_economics([healthy_week()])
        assert result.prior_week is None

    def test_all_weeks_returned_in_order(self):
        weeks = [healthy_week("W1", 1), make_week("W2", 2)]
        result = evaluate_economics(weeks)
        assert [w.label for w in result.weeks] == ["W1", "W2"]

    def test_idempotent(self):
        weeks = [healthy_week("W1", 1), healthy_week("W2", 2, count_actual=4)]
        assert evaluate_economics(weeks) == evaluate_economics(weeks)


class TestMirage:
    """CM beating plan because volume collapsed."""

    def test_mirage_detected(self):
        week = healthy_week(
            cm_actual=-500, cm_forecast=-400,
            count_actual=10, count_forecast=40,
            cac_actual=50, aov_actual=100,
        )

        result = evaluate_economics([week])

        assert result.latest_week.cm_pva == pytest.approx(125.0)
        assert result.cm_mirage is True
        # -50/customer at 40 customers
        assert "-$2,000" in result.cm_mirage_explanation
        assert "40 customers" in result.cm_mirage_explanation

    def test_no_mirage_at_healthy_volume(self):
        result = evaluate_economics([healthy_week(cm_actual=120)])
        assert result.cm_mirage is False
        assert result.cm_mirage_explanation is None

    @pytest.mark.parametrize("cm_actual,count_actual,expected", [
        (-950, 4, False),      # CM PvA exactly 95
        (-960, 4, True),
        (-1200, 5, False),     # count PvA exactly 50
        (-1200, 4.9, True),
    ])
    def test_mirage_thresholds_are_strict(self, cm_actual, count_actual, expected):
        week = healthy_week(cm_actual=cm_actual, cm_forecast=-1000, count_actual=count_actual, count_forecast=10)
        assert evaluate_economics([week]).cm_mirage is expected

    def test_no_mirage_without_forecast(self):
        result = evaluate_economics([healthy_week(cm_forecast=None)])
        assert result.cm_mirage is False


class TestBiggestLeak:
    """CAC overspend vs AOV shortfall in weekly dollars."""

    def test_cac_overspend(self):
        result = evaluate_economics([healthy_week(cac_actual=80, cac_forecast=50)])
        leak = result.biggest_leak

        assert leak.kind == LEAK_CAC
        assert leak.per_customer == pytest.approx(30.0)
        assert leak.weekly_dollars == pytest.approx(300.0)
        assert "CAC overspend" in leak.description

    def test_aov_shortfall(self):
        result = evaluate_economics([healthy_week(aov_actual=80, aov_forecast=100)])
        leak = result.biggest_leak

        assert leak.kind == LEAK_AOV
        assert leak.weekly_dollars == pytest.approx(200.0)

    def test_tie_goes_to_aov(self):
        result = evaluate_economics([healthy_week(cac_actual=60, aov_actual=90)])
        assert result.biggest_leak.kind == LEAK_AOV

    def test_no_leak_without_customers(self):
        assert evaluate_economics([healthy_week(count_actual=0)]).biggest_leak is None
        assert evaluate_economics([make_week(ad_spend=100)]).biggest_leak is None


class TestWarnings:

    def test_warnings_always_present(self):
        result = evaluate_economics([healthy_week()])

        assert result.warnings == ATTRIBUTION_WARNINGS
        assert len(result.warnings) == 3

    def test_caveat_wording(self):
        assert ATTRIBUTION_WARNINGS == (
            'Meta "new customers" include returning customers by default: '
            "do not use Meta attribution for NC count.",
            "Meta attribution over-credits conversions: use Tier 1 (Traction Scorecard) only.",
            'Shopify USA expansion store: "New customers" may be historical Canadian buyers. '
            "NC AOV is directionally useful only.",
        )


class TestBundledScorecard:
    """End-to-end on the bundled scorecard: anchor is week 6 (1 Feb)."""

    @pytest.fixture
    def result(self):
        return evaluate_economics(parse_scorecard(DEFAULT_SCORECARD_TSV))

    def test_anchor(self, result):
        assert result.latest_week.label == "1 Feb"
        assert result.anchor_index == 5
        assert result.prior_week.label == "25 Jan"

    def test_verdict(self, result):
        assert result.latest_week.unit_cm_actual == pytest.approx(-3300 / 37)
        assert result.volume_signal == pytest.approx((25 / 116 + 28 / 125 + 37 / 134) / 3 * 100)
        assert result.verdict == VERDICT_BOTH
        assert result.scale_permission == SCALE_DENIED

    def test_mirage_and_leak(self, result):
        assert result.cm_mirage is True
        assert result.biggest_leak.kind == LEAK_CAC
        assert result.biggest_leak.weekly_dollars == pytest.approx(34 * 37)
