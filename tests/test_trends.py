"""Tests for trend statistics"""

from datetime import date

import pytest

from costlens.analysis.trends import (
    build_periods, classify_volatility, compute_stats, growth_rate_pct,
    has_sufficient_history, trending_services, with_growth_rates,
)
from costlens.core.exceptions import ValidationError
from costlens.core.models import RawCostPoint, TrendDirection, TrendPeriod, Volatility

from conftest import EC2_KEY, S3_KEY, make_periods, make_points


class TestGrowthRates:
    """Test period-over-period growth"""

    def test_growth_rate(self):
        """Test growth percentage"""
        assert growth_rate_pct(110, 100) == pytest.approx(10.0)
        assert growth_rate_pct(50, 100) == pytest.approx(-50.0)

    def test_zero_baseline_is_none(self):
        """Test a zero previous period yields None"""
        assert growth_rate_pct(10, 0) is None

    def test_first_period_is_none(self):
        """Test the first period has no growth rate"""
        periods = with_growth_rates(make_periods([100, 120, 0, 30]))
        rates = [p.growth_rate_pct for p in periods]
        assert rates[0] is None
        assert rates[1] == pytest.approx(20.0)
        assert rates[2] == pytest.approx(-100.0)
        assert rates[3] is None

    def test_single_period_has_null_growth(self):
        """Test one period never reports 0% growth"""
        periods = with_growth_rates(make_periods([100]))
        assert periods[0].growth_rate_pct is None
        assert not has_sufficient_history(periods)

    def test_sufficient_history(self):
        """Test history with a defined growth rate"""
        assert has_sufficient_history(make_periods([100, 110]))
        assert not has_sufficient_history(make_periods([0, 110]))


class TestBuildPeriods:
    """Test period bucketing"""

    def test_monthly_buckets(self):
        """Test daily points are summed per month"""
        points = make_points(EC2_KEY, [10] * 40, start=date(2024, 1, 1))

        periods = build_periods(points, "month")

        assert [p.period_label for p in periods] == ["2024-01", "2024-02"]
        assert periods[0].total_cost == pytest.approx(310.0)
        assert periods[1].total_cost == pytest.approx(90.0)
        assert periods[0].period_start == date(2024, 1, 1)
        assert periods[0].service_breakdown == {"Amazon EC2": pytest.approx(310.0)}
        assert periods[1].growth_rate_pct == pytest.approx((90 - 310) / 310 * 100)

    def test_daily_buckets(self):
        """Test day granularity"""
        points = make_points(EC2_KEY, [1, 2]) + make_points(S3_KEY, [3, 4])

        periods = build_periods(points, "day")

        assert [p.period_label for p in periods] == ["2024-01-01", "2024-01-02"]
        assert [p.total_cost for p in periods] == [4.0, 6.0]
        assert periods[1].service_breakdown == {"Amazon EC2": 2.0, "Amazon S3": 4.0}

    def test_unordered_input(self):
        """Test periods are ordered oldest first regardless of input order"""
        points = list(reversed(make_points(EC2_KEY, [1, 2, 3])))
        labels = [p.period_label for p in build_periods(points, "day")]
        assert labels == sorted(labels)

    def test_invalid_granularity(self):
        """Test unknown granularity is rejected"""
        with pytest.raises(ValidationError):
            build_periods(make_points(EC2_KEY, [1]), "week")

    def test_empty(self):
        """Test no points yields no periods"""
        assert build_periods([], "month") == []


class TestComputeStats:
    """Test summary statistics"""

    def test_empty_series(self):
        """Test empty input returns None"""
        assert compute_stats([]) is None

    def test_basic_statistics(self):
        """Test averages and extremes"""
        stats = compute_stats(make_periods([100, 300, 200]))

        assert stats.avg_monthly_cost == pytest.approx(200.0)
        assert stats.total_cost == pytest.approx(600.0)
        assert stats.highest_period.period_label == "2024-02"
        assert stats.highest_period.cost == 300.0
        assert stats.lowest_period.period_label == "2024-01"
        assert stats.period_count == 3

    def test_trend_boundary_is_stable(self):
        """Test a 5.0% half-over-half change is stable"""
        stats = compute_stats(make_periods([100, 105]))
        assert stats.trend_diff == pytest.approx(5.0)
        assert stats.overall_trend == TrendDirection.STABLE

    def test_trend_above_boundary_is_increasing(self):
        """Test just over 5% is increasing"""
        stats = compute_stats(make_periods([100, 105.01]))
        assert stats.overall_trend == TrendDirection.INCREASING
        assert stats.is_growing

    def test_decreasing_trend(self):
        """Test a drop beyond 5% is decreasing"""
        stats = compute_stats(make_periods([200, 190, 150, 140]))
        assert stats.overall_trend == TrendDirection.DECREASING
        assert stats.trend_diff == pytest.approx((145 - 195) / 195 * 100)

    def test_odd_length_split(self):
        """Test the middle period falls in the second half"""
        stats = compute_stats(make_periods([100, 100, 130]))
        # first half [100], second half [100, 130]
        assert stats.trend_diff == pytest.approx(15.0)

    def test_single_period(self):
        """Test one period is flagged as insufficient"""
        stats = compute_stats(make_periods([250]))
        assert stats.insufficient_data
        assert stats.overall_trend == TrendDirection.STABLE
        assert stats.volatility == Volatility.LOW

    def test_no_defined_growth_is_insufficient(self):
        """Test two periods without a defined growth rate are flagged"""
        stats = compute_stats(make_periods([0, 100]))
        assert stats.insufficient_data
        assert stats.period_count == 2
        assert not compute_stats(make_periods([100, 120])).insufficient_data

    def test_zero_first_half(self):
        """Test a zero baseline yields an undefined trend"""
        stats = compute_stats(make_periods([0, 0, 50, 60]))
        assert stats.overall_trend == TrendDirection.UNDEFINED
        assert stats.trend_diff is None

    def test_all_zero(self):
        """Test all-zero history has undefined trend and low volatility"""
        stats = compute_stats(make_periods([0, 0]))
        assert stats.coefficient_of_variation is None
        assert stats.volatility == Volatility.LOW

    def test_volatility_tiers(self):
        """Test coefficient of variation thresholds"""
        assert compute_stats(make_periods([100, 100, 100])).volatility == Volatility.LOW
        assert compute_stats(make_periods([80, 120])).volatility == Volatility.MEDIUM
        assert compute_stats(make_periods([50, 150])).volatility == Volatility.HIGH

    def test_volatility_monotonic(self):
        """Test scaling deviations never lowers the volatility tier"""
        order = [Volatility.LOW, Volatility.MEDIUM, Volatility.HIGH]
        previous = 0
        for spread in [0, 5, 10, 20, 30, 50, 80]:
            stats = compute_stats(make_periods([100 - spread, 100 + spread, 100 - spread, 100 + spread]))
            tier = order.index(stats.volatility)
            assert tier >= previous
            previous = tier

    def test_classify_volatility_none(self):
        """Test undefined CV handling"""
        assert classify_volatility(None, 0.0) == Volatility.LOW
        assert classify_volatility(None, 3.0) == Volatility.HIGH

    def test_to_dict(self):
        """Test serialization"""
        data = compute_stats(make_periods([100, 120])).to_dict()
        assert data["overallTrend"] == "increasing"
        assert data["highestPeriod"] == {"periodLabel": "2024-02", "cost": 120.0}


class TestTrendingServices:
    """Test per-service trends"""

    def test_ranked_by_average(self):
        """Test services sorted by average cost"""
        periods = [
            TrendPeriod("2024-01", 30, {"EC2": 20, "S3": 10}),
            TrendPeriod("2024-02", 45, {"EC2": 30, "S3": 10, "RDS": 5}),
        ]

        trends = trending_services(periods)

        assert [t.service_name for t in trends] == ["EC2", "S3", "RDS"]
        assert trends[0].avg_cost == pytest.approx(25.0)
        assert trends[0].growth_rate_pct == pytest.approx(50.0)
        assert trends[1].growth_rate_pct == pytest.approx(0.0)
        assert trends[2].growth_rate_pct is None
        assert trends[2].periods_active == 1

    def test_limit(self):
        """Test result limit"""
        periods = [TrendPeriod("2024-01", 6, {"A": 1, "B": 2, "C": 3})]
        assert [t.service_name for t in trending_services(periods, limit=2)] == ["C", "B"]

        with pytest.raises(ValidationError):
            trending_services(periods, limit=0)
