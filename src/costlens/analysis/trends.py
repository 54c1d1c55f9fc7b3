"""
Trend Statistics Calculator
Period bucketing, growth rates, trend direction and volatility classification.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..core.config import CanonicalizationRule
from ..core.exceptions import ValidationError
from ..core.models import (
    PeriodCost, RawCostPoint, ServiceTrend, TrendDirection, TrendPeriod,
    TrendStatistics, Volatility,
)
from ..core.validation import Validator
from .consolidator import ServiceConsolidator

logger = logging.getLogger(__name__)

# Half-over-half change (percent) beyond which a trend is directional
TREND_THRESHOLD_PCT = 5.0

# Coefficient of variation upper bounds for the low and medium tiers
LOW_VOLATILITY_CV = 0.10
MEDIUM_VOLATILITY_CV = 0.25

GRANULARITY_FREQ = {"month": "M", "day": "D"}


def growth_rate_pct(current: float, previous: float) -> Optional[float]:
    """Period-over-period growth in percent, None for a zero baseline"""
    if previous == 0:
        return None
    return (current - previous) / previous * 100


def with_growth_rates(periods: Sequence[TrendPeriod]) -> List[TrendPeriod]:
    """Return copies of the periods with growth rates filled in"""
    result = []
    previous = None
    for period in periods:
        rate = None if previous is None else growth_rate_pct(period.total_cost, previous.total_cost)
        result.append(replace(period, growth_rate_pct=rate))
        previous = period
    return result


def has_sufficient_history(periods: Sequence[TrendPeriod]) -> bool:
    """True when at least one period-over-period growth rate is defined"""
    if len(periods) < 2:
        return False
    return any(p.growth_rate_pct is not None for p in with_growth_rates(periods)[1:])


def build_periods(points: Sequence[RawCostPoint], granularity: str = "month",
                  rules: Optional[Sequence[CanonicalizationRule]] = None) -> List[TrendPeriod]:
    """
    Bucket raw cost points into reporting periods.

    Args:
        points: Normalized cost points
        granularity: 'month' or 'day'
        rules: Canonicalization rules for the service breakdown

    Returns:
        Periods ordered oldest to newest, growth rates filled in
    """
    if granularity not in GRANULARITY_FREQ:
        raise ValidationError(
            f"granularity must be one of {sorted(GRANULARITY_FREQ)}: {granularity!r}"
        )
    if not points:
        return []

    consolidator = ServiceConsolidator(rules=rules)
    df = pd.DataFrame({
        'date': pd.to_datetime([p.date for p in points]),
        'service': [consolidator.canonicalize(p.service_key) for p in points],
        'amount': [p.amount for p in points],
    })
    df['period'] = df['date'].dt.to_period(GRANULARITY_FREQ[granularity])

    periods = []
    for period, frame in df.groupby('period', sort=True):
        breakdown = frame.groupby('service', sort=False)['amount'].sum()
        periods.append(TrendPeriod(
            period_label=str(period),
            total_cost=float(frame['amount'].sum()),
            service_breakdown={name: float(cost) for name, cost in breakdown.items()},
            period_start=period.start_time.date(),
        ))

    logger.debug(f"Built {len(periods)} {granularity} periods from {len(points)} points")
    return with_growth_rates(periods)


def _classify_trend(costs: List[float]):
    half = len(costs) // 2
    first_mean = float(np.mean(costs[:half]))
    second_mean = float(np.mean(costs[half:]))

    if first_mean == 0:
        return TrendDirection.UNDEFINED, None

    trend_diff = (second_mean - first_mean) * 100 / first_mean
    if trend_diff > TREND_THRESHOLD_PCT:
        return TrendDirection.INCREASING, trend_diff
    if trend_diff < -TREND_THRESHOLD_PCT:
        return TrendDirection.DECREASING, trend_diff
    return TrendDirection.STABLE, trend_diff


def classify_volatility(cv: Optional[float], std_dev: float = 0.0) -> Volatility:
    """Map a coefficient of variation to a volatility tier"""
    if cv is None:
        return Volatility.LOW if std_dev == 0 else Volatility.HIGH
    if cv < LOW_VOLATILITY_CV:
        return Volatility.LOW
    if cv < MEDIUM_VOLATILITY_CV:
        return Volatility.MEDIUM
    return Volatility.HIGH


def coefficient_of_variation(costs: Sequence[float]) -> Optional[float]:
    """Population standard deviation over mean, None for a zero mean"""
    mean = float(np.mean(costs))
    if mean == 0:
        return None
    return float(np.std(costs)) / mean


def compute_stats(periods: Sequence[TrendPeriod]) -> Optional[TrendStatistics]:
    """
    Compute summary statistics for periods ordered oldest to newest.

    Returns None for an empty series.
    """
    if not periods:
        return None

    costs = [p.total_cost for p in periods]
    avg_cost = float(np.mean(costs))
    total_cost = float(sum(costs))

    # list.index returns the first occurrence on ties
    max_index = costs.index(max(costs))
    min_index = costs.index(min(costs))

    if len(costs) < 2:
        overall_trend, trend_diff = TrendDirection.STABLE, 0.0
    else:
        overall_trend, trend_diff = _classify_trend(costs)

    cv = coefficient_of_variation(costs)
    volatility = classify_volatility(cv, float(np.std(costs)))

    return TrendStatistics(
        avg_monthly_cost=avg_cost,
        total_cost=total_cost,
        highest_period=PeriodCost(periods[max_index].period_label, costs[max_index]),
        lowest_period=PeriodCost(periods[min_index].period_label, costs[min_index]),
        overall_trend=overall_trend,
        volatility=volatility,
        trend_diff=trend_diff,
        coefficient_of_variation=cv,
        period_count=len(costs),
        insufficient_data=not has_sufficient_history(periods),
    )


def _half_split_growth(costs: List[float]) -> Optional[float]:
    if len(costs) < 2:
        return None
    half = len(costs) // 2
    first_mean = float(np.mean(costs[:half]))
    if first_mean == 0:
        return None
    second_mean = float(np.mean(costs[half:]))
    return (second_mean - first_mean) / first_mean * 100


def trending_services(periods: Sequence[TrendPeriod], limit: int = 10) -> List[ServiceTrend]:
    """Per-service statistics across the periods, highest average cost first"""
    Validator.validate_limit(limit)

    history: Dict[str, List[float]] = {}
    for period in periods:
        for name, cost in period.service_breakdown.items():
            history.setdefault(name, []).append(cost)

    trends = [
        ServiceTrend(
            service_name=name,
            avg_cost=float(np.mean(costs)),
            max_cost=float(max(costs)),
            min_cost=float(min(costs)),
            growth_rate_pct=_half_split_growth(costs),
            periods_active=len(costs),
        )
        for name, costs in history.items()
    ]
    trends.sort(key=lambda t: t.avg_cost, reverse=True)
    return trends[:limit]
