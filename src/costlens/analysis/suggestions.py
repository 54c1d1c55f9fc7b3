"""
Optimization Suggestion Generator
Threshold rules over consolidated service costs.
"""

import logging
from typing import Callable, List, Optional, Sequence

from ..core.config import SuggestionConfig
from ..core.models import ConsolidatedService, OptimizationSuggestion, SuggestionSeverity

logger = logging.getLogger(__name__)

Rule = Callable[[Sequence[ConsolidatedService], float, SuggestionConfig],
                Optional[OptimizationSuggestion]]


def concentration_rule(services: Sequence[ConsolidatedService], total_cost: float,
                       config: SuggestionConfig) -> Optional[OptimizationSuggestion]:
    """A single service dominating spend"""
    if not services or total_cost <= 0:
        return None

    top = max(services, key=lambda s: s.total_cost)
    if top.total_cost <= total_cost * config.concentration_threshold:
        return None

    share = top.total_cost / total_cost * 100
    return OptimizationSuggestion(
        title=f"High {top.display_name} Usage",
        description=f"{top.display_name} accounts for {share:.1f}% of your costs. "
                    f"Consider rightsizing or optimization.",
        severity=SuggestionSeverity.WARNING,
        potential_savings=top.total_cost * config.concentration_savings_ratio,
        rule="concentration",
    )


def reservation_rule(services: Sequence[ConsolidatedService], total_cost: float,
                     config: SuggestionConfig) -> Optional[OptimizationSuggestion]:
    """Spend large enough for reserved capacity"""
    if total_cost <= config.reservation_min_total:
        return None

    return OptimizationSuggestion(
        title="Reserved Instance Opportunity",
        description="Your monthly spend suggests Reserved Instances could provide "
                    "significant savings for consistent workloads.",
        severity=SuggestionSeverity.INFO,
        potential_savings=total_cost * config.reservation_savings_ratio,
        rule="reservation",
    )


def sprawl_rule(services: Sequence[ConsolidatedService], total_cost: float,
                config: SuggestionConfig) -> Optional[OptimizationSuggestion]:
    """Many distinct services in use"""
    if len(services) <= config.sprawl_service_count:
        return None

    return OptimizationSuggestion(
        title="Service Consolidation",
        description=f"You're using {len(services)} services. Consider consolidating similar "
                    f"workloads to reduce complexity and costs.",
        severity=SuggestionSeverity.INFO,
        potential_savings=total_cost * config.sprawl_savings_ratio,
        rule="sprawl",
    )


# Evaluated independently, in this order
RULES: List[Rule] = [concentration_rule, reservation_rule, sprawl_rule]


def suggest(services: Sequence[ConsolidatedService], total_cost: float,
            config: Optional[SuggestionConfig] = None) -> List[OptimizationSuggestion]:
    """
    Generate optimization suggestions.

    Args:
        services: Consolidated services
        total_cost: Total cost the services were summed from
        config: Rule thresholds and savings ratios

    Returns:
        Fired suggestions in rule order
    """
    config = config or SuggestionConfig()

    suggestions = []
    for rule in RULES:
        suggestion = rule(services, total_cost, config)
        if suggestion is not None:
            suggestions.append(suggestion)

    logger.debug(f"Generated {len(suggestions)} optimization suggestions")
    return suggestions
