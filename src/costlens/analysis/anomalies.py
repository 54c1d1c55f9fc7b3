"""
Anomaly Classifier
Compares each service/day cost against a trailing baseline and assigns a severity tier.
"""

import bisect
import hashlib
import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..core.config import AnomalyConfig, CanonicalizationRule, SeverityBands
from ..core.models import Anomaly, AnomalyReport, AnomalySeverity, RawCostPoint
from ..core.validation import Validator
from .consolidator import ServiceConsolidator

logger = logging.getLogger(__name__)

TOP_SERVICES_LIMIT = 5


def anomaly_id(day: date, service_name: str) -> str:
    """Stable identity of a service/day anomaly"""
    key = f"{day.isoformat()}|{service_name}"
    return hashlib.sha1(key.encode("utf-8")).hexdigest()[:16]


def classify_severity(z_score: float, bands: SeverityBands) -> Optional[AnomalySeverity]:
    """Severity tier for a z-score, None when below the flagging gate"""
    magnitude = abs(z_score)
    if magnitude <= bands.low:
        return None
    if magnitude > bands.high:
        return AnomalySeverity.HIGH
    if magnitude > bands.medium:
        return AnomalySeverity.MEDIUM
    return AnomalySeverity.LOW


def order_anomalies(anomalies: Sequence[Anomaly]) -> List[Anomaly]:
    """Largest deviation first, most recent first on ties"""
    return sorted(
        anomalies,
        key=lambda a: (-a.magnitude, -a.date.toordinal(), a.service_name),
    )


def deduplicate(anomalies: Sequence[Anomaly]) -> List[Anomaly]:
    """Drop repeated service/day anomalies, keeping the first"""
    seen = set()
    unique = []
    for anomaly in anomalies:
        if anomaly.anomaly_id in seen:
            continue
        seen.add(anomaly.anomaly_id)
        unique.append(anomaly)
    return unique


class AnomalyDetector:
    """Trailing-window z-score anomaly detection per service"""

    def __init__(self, config: Optional[AnomalyConfig] = None,
                 rules: Optional[Sequence[CanonicalizationRule]] = None):
        self.config = config or AnomalyConfig()
        self.consolidator = ServiceConsolidator(rules=rules)

    def _daily_series(self, points: Sequence[RawCostPoint]) -> Dict[str, Dict[date, float]]:
        series: Dict[str, Dict[date, float]] = defaultdict(dict)
        for point in points:
            name = self.consolidator.canonicalize(point.service_key)
            daily = series[name]
            daily[point.date] = daily.get(point.date, 0.0) + point.amount
        return series

    def _baseline(self, days: List[date], values: List[float], index: int,
                  window_days: int) -> Optional[Tuple[float, float, int]]:
        day = days[index]
        start = bisect.bisect_left(days, day - timedelta(days=window_days))
        window = values[start:index]
        if len(window) < self.config.min_history_points:
            return None
        return float(np.mean(window)), float(np.std(window)), len(window)

    def detect(self, daily_points: Sequence[RawCostPoint],
               window_days: Optional[int] = None) -> List[Anomaly]:
        """
        Detect anomalous service/day costs.

        Args:
            daily_points: Normalized daily cost points
            window_days: Trailing baseline length in days, excluding the evaluated day

        Returns:
            Anomalies ordered by deviation magnitude, then most recent date
        """
        window_days = Validator.validate_window_days(
            window_days if window_days is not None else self.config.window_days
        )
        bands = self.config.bands

        anomalies = []
        skipped = 0
        for service_name, daily in self._daily_series(daily_points).items():
            days = sorted(daily)
            values = [daily[d] for d in days]

            for i, day in enumerate(days):
                baseline = self._baseline(days, values, i, window_days)
                if baseline is None:
                    skipped += 1
                    continue
                mean, std, _ = baseline
                if std == 0:
                    skipped += 1
                    continue

                z_score = (values[i] - mean) / std
                severity = classify_severity(z_score, bands)
                if severity is None:
                    continue

                anomalies.append(Anomaly(
                    anomaly_id=anomaly_id(day, service_name),
                    date=day,
                    service_name=service_name,
                    cost_amount=values[i],
                    deviation=z_score,
                    severity=severity,
                    baseline_mean=mean,
                    baseline_std=std,
                ))

        if skipped:
            logger.debug(f"Skipped {skipped} service/days with insufficient baseline history")
        logger.info(f"Detected {len(anomalies)} anomalies over a {window_days}-day window",
                    extra={'anomalies': len(anomalies)})

        return order_anomalies(anomalies)

    def summarize(self, anomalies: Sequence[Anomaly],
                  requested_range: Optional[Tuple[date, date]] = None) -> AnomalyReport:
        """Build a deduplicated anomaly report"""
        unique = deduplicate(anomalies)

        breakdown = {severity.value: 0 for severity in
                     (AnomalySeverity.HIGH, AnomalySeverity.MEDIUM, AnomalySeverity.LOW)}
        counts: Dict[str, int] = {}
        for anomaly in unique:
            breakdown[anomaly.severity.value] += 1
            counts[anomaly.service_name] = counts.get(anomaly.service_name, 0) + 1

        top_services = [
            {"service": name, "count": count}
            for name, count in sorted(counts.items(), key=lambda item: item[1], reverse=True)
        ][:TOP_SERVICES_LIMIT]

        if requested_range is not None:
            start, end = Validator.validate_date_range(*requested_range)
            date_range = {"start": start.isoformat(), "end": end.isoformat()}
        elif unique:
            dates = [a.date for a in unique]
            date_range = {"start": min(dates).isoformat(), "end": max(dates).isoformat()}
        else:
            date_range = None

        return AnomalyReport(
            total_anomalies=len(unique),
            severity_breakdown=breakdown,
            top_services=top_services,
            date_range=date_range,
            recommendations=self._recommendations(unique, breakdown),
            anomalies=unique,
        )

    def _recommendations(self, anomalies: List[Anomaly],
                         breakdown: Dict[str, int]) -> List[Dict[str, str]]:
        if not anomalies:
            return []

        recommendations = []
        high = breakdown[AnomalySeverity.HIGH.value]
        medium = breakdown[AnomalySeverity.MEDIUM.value]

        if high:
            recommendations.append({
                "type": "immediate_action",
                "priority": "high",
                "title": "Immediate Cost Investigation Required",
                "description": f"Found {high} high-severity cost anomalies that require immediate investigation.",
                "action": "Review the identified high-cost anomalies and determine if they represent "
                          "unauthorized usage or configuration issues.",
            })

        if medium:
            recommendations.append({
                "type": "review",
                "priority": "medium",
                "title": "Cost Pattern Review",
                "description": f"Found {medium} medium-severity cost anomalies worth reviewing.",
                "action": "Analyze the medium-severity anomalies to identify potential cost "
                          "optimization opportunities.",
            })

        service_costs: Dict[str, float] = {}
        for anomaly in anomalies:
            service_costs[anomaly.service_name] = (
                service_costs.get(anomaly.service_name, 0.0) + anomaly.cost_amount
            )
        top_service = max(service_costs, key=service_costs.get)
        recommendations.append({
            "type": "optimization",
            "priority": "medium",
            "title": "Service Cost Optimization",
            "description": f'The service "{top_service}" has shown significant cost anomalies.',
            "action": f"Review usage patterns for {top_service} and consider rightsizing or "
                      f"optimizing resources.",
        })

        return recommendations


def detect_anomalies(daily_points: Sequence[RawCostPoint], window_days: int,
                     config: Optional[AnomalyConfig] = None,
                     rules: Optional[Sequence[CanonicalizationRule]] = None) -> List[Anomaly]:
    """Detect anomalous service/day costs against a trailing baseline"""
    return AnomalyDetector(config, rules).detect(daily_points, window_days)
