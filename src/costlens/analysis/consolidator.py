"""
Service Consolidator
Merges raw cost points into per-service totals under canonical display names.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from ..core.config import CHART_COLORS, CanonicalizationRule, ConsolidationConfig, default_rules
from ..core.exceptions import ValidationError
from ..core.models import ConsolidatedService, RawCostPoint

logger = logging.getLogger(__name__)


# Broader provider-name table used for service trend breakdowns (opt-in)
EXTENDED_RULES = [
    CanonicalizationRule(pattern="Simple Storage Service", display_name="Amazon S3"),
    CanonicalizationRule(pattern="Amazon S3", display_name="Amazon S3"),
    CanonicalizationRule(pattern="Elastic Compute Cloud", display_name="Amazon EC2"),
    CanonicalizationRule(pattern="Amazon EC2", display_name="Amazon EC2"),
    CanonicalizationRule(pattern="EC2 Container Registry", display_name="Amazon EC2"),
    CanonicalizationRule(pattern="EC2 - Other", display_name="Amazon EC2"),
    CanonicalizationRule(pattern="Relational Database Service", display_name="Amazon RDS"),
    CanonicalizationRule(pattern="Amazon RDS", display_name="Amazon RDS"),
    CanonicalizationRule(pattern="Virtual Private Cloud", display_name="Amazon VPC"),
    CanonicalizationRule(pattern="Amazon VPC", display_name="Amazon VPC"),
    CanonicalizationRule(pattern="Route 53", display_name="Amazon Route 53"),
    CanonicalizationRule(pattern="Lambda", display_name="AWS Lambda"),
    CanonicalizationRule(pattern="CloudFront", display_name="Amazon CloudFront"),
    CanonicalizationRule(pattern="Glue", display_name="AWS Glue"),
    CanonicalizationRule(pattern="Data Transfer", display_name="AWS Data Transfer"),
]


@dataclass
class ConsolidationResult:
    """Consolidated services plus the running total they were summed from"""
    services: List[ConsolidatedService] = field(default_factory=list)
    total_cost: float = 0.0

    def share_pct(self, display_name: str) -> Optional[float]:
        """Percentage of the total attributed to a service"""
        if self.total_cost == 0:
            return None
        for service in self.services:
            if service.display_name == display_name:
                return service.total_cost / self.total_cost * 100
        return None

    @property
    def service_count(self) -> int:
        return len(self.services)

    def to_dict(self) -> Dict:
        return {
            "services": [s.to_dict() for s in self.services],
            "totalCost": self.total_cost,
            "serviceCount": self.service_count,
        }


class ServiceConsolidator:
    """Canonicalizes service keys and sums costs per display name"""

    def __init__(self, rules: Optional[Sequence[CanonicalizationRule]] = None,
                 palette: Optional[Sequence[str]] = None):
        self.rules = list(rules) if rules is not None else default_rules()
        self.palette = list(palette) if palette is not None else list(CHART_COLORS)
        if not self.palette:
            raise ValidationError("Color palette must not be empty")

    @classmethod
    def from_config(cls, config: ConsolidationConfig) -> "ServiceConsolidator":
        return cls(rules=config.rules, palette=config.palette)

    def canonicalize(self, service_key: str) -> str:
        """Apply the rule table, first match wins"""
        for rule in self.rules:
            if rule.matches(service_key):
                return rule.display_name
        return service_key

    def consolidate_with_total(self, points: Iterable[RawCostPoint]) -> ConsolidationResult:
        service_map: Dict[str, float] = {}
        total_cost = 0.0

        for point in points:
            name = self.canonicalize(point.service_key)
            service_map[name] = service_map.get(name, 0.0) + point.amount
            total_cost += point.amount

        # sorted() is stable, so ties keep first-seen order
        ranked = sorted(
            ((name, cost) for name, cost in service_map.items() if cost != 0),
            key=lambda item: abs(item[1]),
            reverse=True,
        )

        services = []
        for i, (name, cost) in enumerate(ranked):
            color_index = i % len(self.palette)
            services.append(ConsolidatedService(
                display_name=name,
                total_cost=cost,
                color_index=color_index,
                color=self.palette[color_index],
            ))

        dropped = len(service_map) - len(services)
        if dropped:
            logger.debug(f"Excluded {dropped} services with zero net cost")

        return ConsolidationResult(services=services, total_cost=total_cost)

    def consolidate(self, points: Iterable[RawCostPoint]) -> List[ConsolidatedService]:
        return self.consolidate_with_total(points).services


def consolidate(points: Iterable[RawCostPoint],
                rules: Optional[Sequence[CanonicalizationRule]] = None,
                palette: Optional[Sequence[str]] = None) -> List[ConsolidatedService]:
    """Merge raw cost points into per-service totals sorted by absolute cost"""
    return ServiceConsolidator(rules, palette).consolidate(points)
