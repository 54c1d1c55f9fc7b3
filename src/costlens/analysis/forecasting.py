"""
Forecast and Scenario Engine
Compounded trend projection with business and seasonal adjustments, plus
independent what-if scenarios evaluated against the base forecast.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..core.config import ForecastConfig
from ..core.exceptions import ValidationError
from ..core.models import (
    ForecastPeriod, ForecastResult, ImpactDirection, Scenario, ScenarioImpact,
    ScenarioInput, ScenarioMetrics, TrendPeriod,
)
from ..core.validation import Validator
from .trends import has_sufficient_history

logger = logging.getLogger(__name__)

# Revenue growth assumed when only one revenue observation is available
DEFAULT_REVENUE_GROWTH = 0.05

# Per-period compounding of revenue growth into the business growth factor
BUSINESS_GROWTH_STEP = 0.1

DATA_QUALITY_SCORE = 0.8

# |cost variance| bounds for scenario risk levels
HIGH_RISK_VARIANCE = 1000
MEDIUM_RISK_VARIANCE = 500


@dataclass
class BusinessContext:
    """
    Business metrics supplied by the caller.

    Attributes:
        growth_factor: Explicit business growth multiplier for every period
        revenue_per_dollar: Revenue earned per dollar of cloud cost
        revenue_history: Revenue per period, oldest first, aligned with cost history
    """
    growth_factor: Optional[float] = None
    revenue_per_dollar: Optional[float] = None
    revenue_history: List[float] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return (self.growth_factor is None and self.revenue_per_dollar is None
                and not self.revenue_history)


@dataclass(frozen=True)
class BusinessCorrelation:
    """How closely cost tracks revenue"""
    revenue_efficiency: float
    correlation_strength: float
    predictive_value: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "revenueEfficiency": self.revenue_efficiency,
            "correlationStrength": self.correlation_strength,
            "predictiveValue": self.predictive_value,
        }


NO_CORRELATION = BusinessCorrelation(0.0, 0.0, "low")


def _predictive_value(strength: float) -> str:
    if strength > 0.7:
        return "high"
    if strength > 0.4:
        return "medium"
    return "low"


def business_correlation(cost_history: Sequence[float],
                         revenue_history: Sequence[float]) -> BusinessCorrelation:
    """
    Relate cost to revenue over aligned periods.

    Only periods where both cost and revenue are positive contribute.
    """
    length = min(len(cost_history), len(revenue_history))
    pairs = [
        (float(cost), float(revenue))
        for cost, revenue in zip(cost_history[:length], revenue_history[:length])
        if cost > 0 and revenue > 0
    ]
    if not pairs:
        return NO_CORRELATION

    costs = np.array([c for c, _ in pairs])
    revenues = np.array([r for _, r in pairs])
    efficiency = float(np.mean(revenues / costs))

    strength = 0.0
    if len(pairs) > 1 and np.std(costs) > 0 and np.std(revenues) > 0:
        strength = abs(float(np.corrcoef(costs, revenues)[0, 1]))

    return BusinessCorrelation(
        revenue_efficiency=efficiency,
        correlation_strength=strength,
        predictive_value=_predictive_value(strength),
    )


def historical_growth_rates(costs: Sequence[float]) -> List[float]:
    """Fractional period-over-period changes, skipping zero baselines"""
    return [
        (current - previous) / previous
        for previous, current in zip(costs, costs[1:])
        if previous > 0
    ]


class Forecaster:
    """Projects monthly cost history over a fixed horizon"""

    def __init__(self, config: Optional[ForecastConfig] = None):
        self.config = config or ForecastConfig()

    def _seasonality(self, target: date, enabled: bool) -> float:
        if not enabled:
            return 1.0
        return self.config.seasonal_factors.get(target.month, 1.0)

    @staticmethod
    def _business_growth(business: Optional[BusinessContext], index: int) -> float:
        if business is None:
            return 1.0
        if business.growth_factor is not None:
            return business.growth_factor
        revenue = business.revenue_history
        if not revenue:
            return 1.0
        if len(revenue) > 1 and revenue[-2] > 0:
            recent_growth = (revenue[-1] - revenue[-2]) / revenue[-2]
        elif len(revenue) > 1:
            recent_growth = 0.0
        else:
            recent_growth = DEFAULT_REVENUE_GROWTH
        return 1 + recent_growth * (1 + index * BUSINESS_GROWTH_STEP)

    @staticmethod
    def _anchor(history: Sequence[TrendPeriod], as_of: Optional[date]) -> date:
        last_start = history[-1].period_start
        if last_start is not None:
            return last_start
        return as_of or date.today()

    def forecast(self, history: Sequence[TrendPeriod], horizon_months: Optional[int] = None,
                 seasonality_enabled: Optional[bool] = None,
                 business: Optional[BusinessContext] = None,
                 as_of: Optional[date] = None) -> ForecastResult:
        """
        Project cost over the horizon.

        Args:
            history: Monthly periods, oldest first
            horizon_months: Number of periods to project
            seasonality_enabled: Apply the calendar-month seasonal factors
            business: Optional business metrics
            as_of: Anchor date when the periods carry no start date

        Returns:
            ForecastResult with one ForecastPeriod per horizon month
        """
        if not history:
            raise ValidationError("Cannot forecast from an empty cost history")

        horizon_months = Validator.validate_horizon(
            horizon_months if horizon_months is not None else self.config.horizon_months,
            self.config.allowed_horizons,
        )
        if seasonality_enabled is None:
            seasonality_enabled = self.config.seasonality_enabled

        costs = [p.total_cost for p in history]
        last_cost = costs[-1]
        # No defined period-over-period growth: flat projection, zero confidence
        insufficient = not has_sufficient_history(history)

        rates = [] if insufficient else historical_growth_rates(costs)
        growth_rate = float(np.mean(rates)) if rates else None

        correlation = NO_CORRELATION
        if business is not None and business.revenue_history:
            correlation = business_correlation(costs, business.revenue_history)

        revenue_per_dollar = None
        if business is not None:
            if business.revenue_per_dollar is not None:
                revenue_per_dollar = Validator.validate_factor(
                    "revenue_per_dollar", business.revenue_per_dollar
                )
            elif correlation.revenue_efficiency > 0:
                revenue_per_dollar = correlation.revenue_efficiency

        if insufficient:
            confidence = 0.0
        else:
            volatility = float(np.std(rates))
            volatility_score = max(0.0, 1 - volatility * 2)
            confidence = (volatility_score + correlation.correlation_strength + DATA_QUALITY_SCORE) / 3 * 100
            confidence = max(0.0, min(100.0, confidence))

        anchor = pd.Timestamp(self._anchor(history, as_of))
        decay = self.config.confidence_decay

        periods = []
        for i in range(1, horizon_months + 1):
            target = (anchor + pd.DateOffset(months=i)).date()
            base_cost = last_cost * (1 + (growth_rate or 0.0)) ** i
            base_cost = max(0.0, base_cost)
            growth_factor = self._business_growth(business, i - 1)
            seasonality = self._seasonality(target, seasonality_enabled)
            adjusted = base_cost * growth_factor * seasonality

            periods.append(ForecastPeriod(
                period_index=i,
                date=target,
                base_cost=base_cost,
                business_adjusted_cost=adjusted,
                revenue_projection=adjusted * revenue_per_dollar if revenue_per_dollar is not None else None,
                confidence_level=confidence * decay ** i,
                business_growth_factor=growth_factor,
                seasonality_multiplier=seasonality,
            ))

        business_metrics = correlation.to_dict()
        business_metrics["revenuePerDollar"] = revenue_per_dollar

        if insufficient:
            logger.warning(f"No growth rate derivable from {len(costs)} periods, "
                           f"projecting flat with zero confidence")
        logger.info(f"Forecast {horizon_months} months from {len(costs)} periods "
                    f"(growth {growth_rate}, confidence {confidence:.1f})",
                    extra={'horizon_months': horizon_months})

        return ForecastResult(
            periods=periods,
            business_metrics=business_metrics,
            confidence=confidence,
            growth_rate=growth_rate,
            insufficient_data=insufficient,
        )

    def run_scenarios(self, base_history: Sequence[TrendPeriod],
                      scenario_defs: Sequence[ScenarioInput],
                      horizon_months: Optional[int] = None,
                      seasonality_enabled: Optional[bool] = None,
                      business: Optional[BusinessContext] = None,
                      as_of: Optional[date] = None,
                      max_workers: int = 1) -> List[Scenario]:
        """Evaluate each scenario independently against one base forecast"""
        scenario_defs = Validator.validate_scenarios(scenario_defs)
        base = self.forecast(base_history, horizon_months, seasonality_enabled, business, as_of)
        base_costs = [p.business_adjusted_cost for p in base.periods]
        base_total = float(sum(base_costs))

        if max_workers > 1 and len(scenario_defs) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                futures = [
                    executor.submit(evaluate_scenario, definition, base_costs, base_total)
                    for definition in scenario_defs
                ]
                scenarios = [future.result() for future in futures]
        else:
            scenarios = [evaluate_scenario(d, base_costs, base_total) for d in scenario_defs]

        logger.info(f"Evaluated {len(scenarios)} scenarios", extra={'scenarios': len(scenarios)})
        return scenarios


def evaluate_scenario(definition: ScenarioInput, base_costs: Sequence[float],
                      base_total: float) -> Scenario:
    """Apply one scenario's multipliers to the base forecast costs"""
    growth = Validator.validate_factor("business_growth_factor", definition.business_growth_factor)
    seasonality = Validator.validate_factor("seasonality_multiplier", definition.seasonality_multiplier)

    projected = tuple(cost * growth * seasonality for cost in base_costs)
    total = float(sum(projected))
    variance = total - base_total

    peak_index = None
    if projected:
        peak_index = projected.index(max(projected)) + 1

    return Scenario(
        name=definition.name,
        business_growth_factor=growth,
        seasonality_multiplier=seasonality,
        external_factors=definition.external_factors,
        metrics=ScenarioMetrics(
            total_projected_cost=total,
            cost_variance=variance,
            average_period_cost=total / len(projected) if projected else 0.0,
            peak_period_index=peak_index,
        ),
        impact=ScenarioImpact(
            direction=ImpactDirection.INCREASE if variance > 0 else ImpactDirection.DECREASE,
            percentage_impact=variance / base_total * 100 if base_total != 0 else None,
        ),
        projected_costs=projected,
    )


def risk_level(cost_variance: float) -> str:
    magnitude = abs(cost_variance)
    if magnitude > HIGH_RISK_VARIANCE:
        return "high"
    if magnitude > MEDIUM_RISK_VARIANCE:
        return "medium"
    return "low"


def compare_scenarios(scenarios: Sequence[Scenario]) -> List[Dict[str, Any]]:
    """Side-by-side comparison matrix, in scenario order"""
    return [
        {
            "name": s.name,
            "totalCost": s.metrics.total_projected_cost,
            "averageCost": s.metrics.average_period_cost,
            "costVariance": s.metrics.cost_variance,
            "direction": s.impact.direction.value,
            "percentageImpact": s.impact.percentage_impact,
            "riskLevel": risk_level(s.metrics.cost_variance),
        }
        for s in scenarios
    ]


def forecast(history: Sequence[TrendPeriod], horizon_months: int, seasonality_enabled: bool,
             business: Optional[BusinessContext] = None, as_of: Optional[date] = None,
             config: Optional[ForecastConfig] = None) -> ForecastResult:
    """Project monthly cost history over the horizon"""
    return Forecaster(config).forecast(history, horizon_months, seasonality_enabled, business, as_of)


def run_scenarios(base_history: Sequence[TrendPeriod], scenario_defs: Sequence[ScenarioInput],
                  horizon_months: int = 6, seasonality_enabled: bool = True,
                  business: Optional[BusinessContext] = None, as_of: Optional[date] = None,
                  max_workers: int = 1, config: Optional[ForecastConfig] = None) -> List[Scenario]:
    """Evaluate what-if scenarios side by side against the base forecast"""
    return Forecaster(config).run_scenarios(
        base_history, scenario_defs, horizon_months, seasonality_enabled,
        business, as_of, max_workers,
    )
