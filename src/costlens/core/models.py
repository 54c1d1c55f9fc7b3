"""
Cost analytics data model.
Transient result objects produced by the analysis components.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional


class TrendDirection(str, Enum):
    """Overall trend direction"""
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"
    UNDEFINED = "undefined"  # zero first-half baseline


class Volatility(str, Enum):
    """Volatility tiers by coefficient of variation"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AnomalySeverity(str, Enum):
    """Anomaly severity tiers"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AnomalyDirection(str, Enum):
    SPIKE = "spike"
    DROP = "drop"


class ImpactDirection(str, Enum):
    INCREASE = "increase"
    DECREASE = "decrease"


class SuggestionSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class RawCostPoint:
    """A single (date, service, amount) billing observation"""
    date: date
    service_key: str
    amount: float
    unit: str = "USD"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": _iso(self.date),
            "serviceKey": self.service_key,
            "amount": self.amount,
            "unit": self.unit,
        }


@dataclass
class ConsolidatedService:
    """Per-service cost total under a canonical display name"""
    display_name: str
    total_cost: float
    color_index: int
    color: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "displayName": self.display_name,
            "totalCost": self.total_cost,
            "colorIndex": self.color_index,
            "color": self.color,
        }


@dataclass
class TrendPeriod:
    """Cost total for one reporting period"""
    period_label: str
    total_cost: float
    service_breakdown: Dict[str, float] = field(default_factory=dict)
    growth_rate_pct: Optional[float] = None
    period_start: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "periodLabel": self.period_label,
            "totalCost": self.total_cost,
            "serviceBreakdown": dict(self.service_breakdown),
            "growthRatePct": self.growth_rate_pct,
            "periodStart": _iso(self.period_start),
        }


@dataclass(frozen=True)
class PeriodCost:
    """Label/cost pair identifying the highest or lowest period"""
    period_label: str
    cost: float

    def to_dict(self) -> Dict[str, Any]:
        return {"periodLabel": self.period_label, "cost": self.cost}


@dataclass(frozen=True)
class TrendStatistics:
    """Summary statistics over a window of periods"""
    avg_monthly_cost: float
    total_cost: float
    highest_period: PeriodCost
    lowest_period: PeriodCost
    overall_trend: TrendDirection
    volatility: Volatility
    trend_diff: Optional[float]
    coefficient_of_variation: Optional[float]
    period_count: int
    insufficient_data: bool = False

    @property
    def is_growing(self) -> bool:
        return self.overall_trend == TrendDirection.INCREASING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "avgMonthlyCost": self.avg_monthly_cost,
            "totalCost": self.total_cost,
            "highestPeriod": self.highest_period.to_dict(),
            "lowestPeriod": self.lowest_period.to_dict(),
            "overallTrend": self.overall_trend.value,
            "volatility": self.volatility.value,
            "trendDiff": self.trend_diff,
            "coefficientOfVariation": self.coefficient_of_variation,
            "periodCount": self.period_count,
            "insufficientData": self.insufficient_data,
        }


@dataclass(frozen=True)
class ServiceTrend:
    """Per-service statistics across a period series"""
    service_name: str
    avg_cost: float
    max_cost: float
    min_cost: float
    growth_rate_pct: Optional[float]
    periods_active: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "serviceName": self.service_name,
            "avgCost": self.avg_cost,
            "maxCost": self.max_cost,
            "minCost": self.min_cost,
            "growthRatePct": self.growth_rate_pct,
            "periodsActive": self.periods_active,
        }


@dataclass(frozen=True)
class Anomaly:
    """A service/day cost that breached its trailing baseline"""
    anomaly_id: str
    date: date
    service_name: str
    cost_amount: float
    deviation: float  # z-score against the baseline, signed
    severity: AnomalySeverity
    baseline_mean: float
    baseline_std: float

    @property
    def magnitude(self) -> float:
        return abs(self.deviation)

    @property
    def direction(self) -> AnomalyDirection:
        return AnomalyDirection.SPIKE if self.deviation > 0 else AnomalyDirection.DROP

    @property
    def expected_range(self):
        return (self.baseline_mean - 2 * self.baseline_std,
                self.baseline_mean + 2 * self.baseline_std)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "anomalyId": self.anomaly_id,
            "date": _iso(self.date),
            "serviceName": self.service_name,
            "costAmount": self.cost_amount,
            "deviation": self.deviation,
            "severity": self.severity.value,
            "direction": self.direction.value,
            "baselineMean": self.baseline_mean,
            "baselineStd": self.baseline_std,
        }


@dataclass
class AnomalyReport:
    """Deduplicated summary of detected anomalies"""
    total_anomalies: int
    severity_breakdown: Dict[str, int]
    top_services: List[Dict[str, Any]]
    date_range: Optional[Dict[str, str]]
    recommendations: List[Dict[str, str]]
    anomalies: List[Anomaly] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalAnomalies": self.total_anomalies,
            "severityBreakdown": dict(self.severity_breakdown),
            "topServices": list(self.top_services),
            "dateRange": self.date_range,
            "recommendations": list(self.recommendations),
            "anomalies": [a.to_dict() for a in self.anomalies],
        }


@dataclass(frozen=True)
class ForecastPeriod:
    """One projected period"""
    period_index: int
    date: date
    base_cost: float
    business_adjusted_cost: float
    revenue_projection: Optional[float]
    confidence_level: float
    business_growth_factor: float = 1.0
    seasonality_multiplier: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "periodIndex": self.period_index,
            "date": _iso(self.date),
            "baseCost": self.base_cost,
            "businessAdjustedCost": self.business_adjusted_cost,
            "revenueProjection": self.revenue_projection,
            "confidenceLevel": self.confidence_level,
            "businessGrowthFactor": self.business_growth_factor,
            "seasonalityMultiplier": self.seasonality_multiplier,
        }


@dataclass
class ForecastResult:
    """Projection over a horizon plus the business metrics behind it"""
    periods: List[ForecastPeriod]
    business_metrics: Dict[str, Any]
    confidence: float
    growth_rate: Optional[float]
    insufficient_data: bool = False

    @property
    def total_base_cost(self) -> float:
        return sum(p.base_cost for p in self.periods)

    @property
    def total_projected_cost(self) -> float:
        return sum(p.business_adjusted_cost for p in self.periods)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "periods": [p.to_dict() for p in self.periods],
            "businessMetrics": dict(self.business_metrics),
            "confidence": self.confidence,
            "growthRate": self.growth_rate,
            "insufficientData": self.insufficient_data,
            "totalBaseCost": self.total_base_cost,
            "totalProjectedCost": self.total_projected_cost,
        }


@dataclass(frozen=True)
class ScenarioInput:
    """What-if adjustments applied on top of the base forecast"""
    name: str
    business_growth_factor: float = 1.0
    seasonality_multiplier: float = 1.0
    external_factors: Optional[str] = None


@dataclass(frozen=True)
class ScenarioMetrics:
    total_projected_cost: float
    cost_variance: float
    average_period_cost: float
    peak_period_index: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalProjectedCost": self.total_projected_cost,
            "costVariance": self.cost_variance,
            "averagePeriodCost": self.average_period_cost,
            "peakPeriodIndex": self.peak_period_index,
        }


@dataclass(frozen=True)
class ScenarioImpact:
    direction: ImpactDirection
    percentage_impact: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "direction": self.direction.value,
            "percentageImpact": self.percentage_impact,
        }


@dataclass(frozen=True)
class Scenario:
    """Independent what-if forecast evaluated against the base forecast"""
    name: str
    business_growth_factor: float
    seasonality_multiplier: float
    external_factors: Optional[str]
    metrics: ScenarioMetrics
    impact: ScenarioImpact
    projected_costs: tuple = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "businessGrowthFactor": self.business_growth_factor,
            "seasonalityMultiplier": self.seasonality_multiplier,
            "externalFactors": self.external_factors,
            "metrics": self.metrics.to_dict(),
            "impact": self.impact.to_dict(),
            "projectedCosts": list(self.projected_costs),
        }


@dataclass(frozen=True)
class OptimizationSuggestion:
    """Heuristic savings suggestion"""
    title: str
    description: str
    severity: SuggestionSeverity
    potential_savings: float
    rule: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
            "potentialSavings": self.potential_savings,
            "rule": self.rule,
        }
