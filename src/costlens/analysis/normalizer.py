"""
Cost Record Normalizer
Flattens provider-shaped time-period/group billing records into RawCostPoints.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from ..core.models import RawCostPoint

logger = logging.getLogger(__name__)


class MetricExtractor:
    """Extracts a cost entry from a group's metric set by metric name"""

    def __init__(self, metric_name: str):
        self.metric_name = metric_name

    def extract(self, metrics: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
        entry = metrics.get(self.metric_name)
        if not entry or not isinstance(entry, Mapping):
            return None
        return entry

    def __repr__(self) -> str:
        return f"MetricExtractor({self.metric_name!r})"


# Ordered by preference
DEFAULT_EXTRACTORS = (
    MetricExtractor("BlendedCost"),
    MetricExtractor("UnblendedCost"),
)


@dataclass(frozen=True)
class Omission:
    """A bucket or group left out of the normalized output"""
    bucket_index: int
    group_index: Optional[int]
    service_key: Optional[str]
    reason: str


@dataclass
class NormalizationReport:
    points: List[RawCostPoint] = field(default_factory=list)
    omissions: List[Omission] = field(default_factory=list)

    @property
    def omitted_count(self) -> int:
        return len(self.omissions)


def parse_amount(raw: Any) -> Optional[float]:
    """Parse a cost amount, returning None for malformed values"""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return None
    try:
        amount = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(amount):
        return None
    return amount


def parse_period_start(bucket: Mapping[str, Any]) -> Optional[date]:
    period = bucket.get("TimePeriod") or {}
    start = period.get("Start") if isinstance(period, Mapping) else None
    if isinstance(start, datetime):
        return start.date()
    if isinstance(start, date):
        return start
    if not isinstance(start, str):
        return None
    try:
        return datetime.fromisoformat(start.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def _buckets(raw_time_series: Any) -> Sequence[Mapping[str, Any]]:
    if raw_time_series is None:
        return []
    if isinstance(raw_time_series, Mapping):
        return raw_time_series.get("ResultsByTime") or []
    return list(raw_time_series)


def normalize_with_report(raw_time_series: Any,
                          extractors: Optional[Iterable[MetricExtractor]] = None) -> NormalizationReport:
    """
    Flatten billing buckets into raw cost points.

    Args:
        raw_time_series: Cost Explorer response (with ResultsByTime) or a list of buckets
        extractors: Ordered metric extractors, first present metric wins

    Returns:
        Points in input order plus every omission
    """
    extractors = tuple(extractors) if extractors is not None else DEFAULT_EXTRACTORS
    report = NormalizationReport()

    for bucket_index, bucket in enumerate(_buckets(raw_time_series)):
        if not isinstance(bucket, Mapping):
            report.omissions.append(Omission(bucket_index, None, None, "malformed bucket"))
            continue

        period_start = parse_period_start(bucket)
        if period_start is None:
            report.omissions.append(Omission(bucket_index, None, None, "missing period start"))
            continue

        for group_index, group in enumerate(bucket.get("Groups") or []):
            keys = (group.get("Keys") or []) if isinstance(group, Mapping) else []
            if not keys:
                report.omissions.append(Omission(bucket_index, group_index, None, "missing service key"))
                continue
            service_key = str(keys[0])

            metrics = group.get("Metrics") or {}
            if not isinstance(metrics, Mapping):
                metrics = {}
            entry = None
            for extractor in extractors:
                entry = extractor.extract(metrics)
                if entry is not None:
                    break

            if entry is None:
                report.omissions.append(
                    Omission(bucket_index, group_index, service_key, "no cost metric")
                )
                continue

            amount = parse_amount(entry.get("Amount"))
            if amount is None:
                report.omissions.append(
                    Omission(bucket_index, group_index, service_key, "malformed amount")
                )
                continue

            report.points.append(RawCostPoint(
                date=period_start,
                service_key=service_key,
                amount=amount,
                unit=entry.get("Unit") or "USD",
            ))

    return report


def normalize(raw_time_series: Any,
              extractors: Optional[Iterable[MetricExtractor]] = None) -> List[RawCostPoint]:
    """Flatten billing buckets into raw cost points, logging omissions"""
    report = normalize_with_report(raw_time_series, extractors)

    if report.omissions:
        logger.warning(
            f"Omitted {report.omitted_count} billing groups without usable cost data",
            extra={'omitted': report.omitted_count, 'points': len(report.points)}
        )
        for omission in report.omissions:
            logger.debug(f"Omitted bucket {omission.bucket_index} group {omission.group_index} "
                         f"({omission.service_key}): {omission.reason}")

    return report.points
