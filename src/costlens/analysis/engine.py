"""
Cost Analytics Engine
Runs the normalize, consolidate, trend, anomaly and suggestion stages over one
billing export and offers forecasting over the same data.
"""

import calendar
import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core.config import Settings
from ..core.exceptions import AnalysisError
from ..core.logging import get_performance_logger
from ..core.models import (
    AnomalyReport, ForecastResult, OptimizationSuggestion, RawCostPoint, Scenario,
    ServiceTrend, TrendPeriod, TrendStatistics,
)
from .anomalies import AnomalyDetector
from .consolidator import ConsolidationResult, ServiceConsolidator
from .forecasting import BusinessContext, Forecaster
from .normalizer import normalize_with_report
from .suggestions import suggest
from .trends import build_periods, compute_stats, trending_services, with_growth_rates

logger = logging.getLogger(__name__)

# Complete months that must remain before a partial trailing month is dropped
MIN_COMPLETE_MONTHS = 2


@dataclass
class AnalysisReport:
    """Everything derived from one billing export"""
    point_count: int
    omitted_count: int
    consolidation: ConsolidationResult
    granularity: str
    periods: List[TrendPeriod]
    statistics: Optional[TrendStatistics]
    service_trends: List[ServiceTrend]
    anomalies: AnomalyReport
    suggestions: List[OptimizationSuggestion]
    month_end_projection: Optional[float]
    window_days: int
    generated_at: date = field(default_factory=date.today)

    @property
    def total_cost(self) -> float:
        return self.consolidation.total_cost

    @property
    def potential_savings(self) -> float:
        return sum(s.potential_savings for s in self.suggestions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generatedAt": self.generated_at.isoformat(),
            "pointCount": self.point_count,
            "omittedCount": self.omitted_count,
            "totalCost": self.total_cost,
            "services": [s.to_dict() for s in self.consolidation.services],
            "serviceCount": self.consolidation.service_count,
            "granularity": self.granularity,
            "periods": [p.to_dict() for p in self.periods],
            "statistics": self.statistics.to_dict() if self.statistics else None,
            "serviceTrends": [t.to_dict() for t in self.service_trends],
            "anomalies": self.anomalies.to_dict(),
            "windowDays": self.window_days,
            "suggestions": [s.to_dict() for s in self.suggestions],
            "potentialSavings": self.potential_savings,
            "monthEndProjection": self.month_end_projection,
        }


def month_end_projection(points: Sequence[RawCostPoint]) -> Optional[float]:
    """Average daily cost extended over the month of the last observed day"""
    if not points:
        return None
    days = {p.date for p in points}
    total = sum(p.amount for p in points)
    last = max(days)
    days_in_month = calendar.monthrange(last.year, last.month)[1]
    return abs(total / len(days) * days_in_month)


def complete_months(periods: Sequence[TrendPeriod],
                    points: Sequence[RawCostPoint]) -> Tuple[List[TrendPeriod], Optional[Dict[str, Any]]]:
    """
    Account for a trailing month the export only partly covers.

    A month whose last observed day is before its final day would read as a
    cost drop. It is dropped when enough complete months remain, otherwise it
    is scaled to a full month at its own daily run-rate.

    Returns:
        The periods to forecast from and a description of the adjustment,
        None when the last month is complete
    """
    if not periods or not points:
        return list(periods), None

    last_day = max(p.date for p in points)
    days_in_month = calendar.monthrange(last_day.year, last_day.month)[1]
    if last_day.day == days_in_month:
        return list(periods), None

    observed_days = len({
        p.date for p in points if (p.date.year, p.date.month) == (last_day.year, last_day.month)
    })
    trailing = periods[-1]
    adjustment = {
        "periodLabel": trailing.period_label,
        "observedDays": observed_days,
        "daysInMonth": days_in_month,
    }

    if len(periods) - 1 >= MIN_COMPLETE_MONTHS:
        logger.info(f"Dropping partial month {trailing.period_label} "
                    f"({observed_days}/{days_in_month} days) from forecast history")
        adjustment["action"] = "dropped"
        return list(periods[:-1]), adjustment

    factor = days_in_month / observed_days
    scaled = replace(
        trailing,
        total_cost=trailing.total_cost * factor,
        service_breakdown={name: cost * factor for name, cost in trailing.service_breakdown.items()},
    )
    logger.info(f"Scaling partial month {trailing.period_label} "
                f"({observed_days}/{days_in_month} days) by {factor:.3f}")
    adjustment["action"] = "scaled"
    adjustment["scaleFactor"] = factor
    return with_growth_rates(list(periods[:-1]) + [scaled]), adjustment


class CostAnalyticsEngine:
    """Stateless analysis pipeline configured from Settings"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.perf = get_performance_logger()
        self.consolidator = ServiceConsolidator.from_config(self.settings.consolidation)
        self.detector = AnomalyDetector(self.settings.anomaly, self.settings.consolidation.rules)
        self.forecaster = Forecaster(self.settings.forecast)

    def _points(self, raw: Any):
        report = normalize_with_report(raw)
        if report.omissions:
            logger.warning(f"Omitted {report.omitted_count} billing groups without usable cost data",
                           extra={'omitted': report.omitted_count, 'points': len(report.points)})
        if not report.points:
            raise AnalysisError("No usable cost data in the billing export")
        return report

    def analyze(self, raw: Any, window_days: Optional[int] = None,
                granularity: str = "day") -> AnalysisReport:
        """
        Analyze one billing export.

        Args:
            raw: Cost Explorer response or list of time buckets
            window_days: Anomaly baseline window, defaults to the configured one
            granularity: 'day' or 'month' period bucketing

        Returns:
            AnalysisReport
        """
        window_days = window_days if window_days is not None else self.settings.anomaly.window_days
        rules = self.settings.consolidation.rules

        with self.perf.timer("analyze", granularity=granularity):
            normalized = self._points(raw)
            points = normalized.points

            with self.perf.timer("consolidate"):
                consolidation = self.consolidator.consolidate_with_total(points)

            with self.perf.timer("trends"):
                periods = build_periods(points, granularity, rules)
                statistics = compute_stats(periods)
                service_trends = trending_services(periods)

            with self.perf.timer("anomalies"):
                anomalies = self.detector.detect(points, window_days)
                anomaly_report = self.detector.summarize(anomalies)

            suggestions = suggest(consolidation.services, consolidation.total_cost,
                                  self.settings.suggestions)

        logger.info(f"Analyzed {len(points)} cost points across "
                    f"{consolidation.service_count} services",
                    extra={'points': len(points), 'anomalies': anomaly_report.total_anomalies})

        return AnalysisReport(
            point_count=len(points),
            omitted_count=normalized.omitted_count,
            consolidation=consolidation,
            granularity=granularity,
            periods=periods,
            statistics=statistics,
            service_trends=service_trends,
            anomalies=anomaly_report,
            suggestions=suggestions,
            month_end_projection=month_end_projection(points),
            window_days=window_days,
        )

    def monthly_history(self, raw: Any) -> Tuple[List[TrendPeriod], Optional[Dict[str, Any]]]:
        """Monthly periods with a partial trailing month dropped or scaled"""
        points = self._points(raw).points
        periods = build_periods(points, "month", self.settings.consolidation.rules)
        return complete_months(periods, points)

    def forecast(self, raw: Any, horizon_months: Optional[int] = None,
                 seasonality_enabled: Optional[bool] = None,
                 business: Optional[BusinessContext] = None,
                 as_of: Optional[date] = None) -> ForecastResult:
        """Forecast from the monthly totals of a billing export"""
        with self.perf.timer("forecast"):
            history, trailing = self.monthly_history(raw)
            result = self.forecaster.forecast(
                history, horizon_months, seasonality_enabled, business, as_of
            )
        result.business_metrics["trailingMonth"] = trailing
        return result

    def run_scenarios(self, raw: Any, scenario_defs: Sequence,
                      horizon_months: Optional[int] = None,
                      seasonality_enabled: Optional[bool] = None,
                      business: Optional[BusinessContext] = None,
                      as_of: Optional[date] = None) -> List[Scenario]:
        """Evaluate scenarios against the monthly totals of a billing export"""
        with self.perf.timer("scenarios", scenarios=len(scenario_defs or [])):
            history, _ = self.monthly_history(raw)
            return self.forecaster.run_scenarios(
                history, scenario_defs, horizon_months,
                seasonality_enabled, business, as_of, self.settings.max_workers,
            )
