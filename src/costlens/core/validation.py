"""Input validation at the engine entry points"""

import math
from datetime import date, datetime
from typing import Any, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .exceptions import ValidationError
from .models import ScenarioInput


class Validator:
    """Central validation utility"""

    @classmethod
    def validate_window_days(cls, window_days: Any) -> int:
        """Validate anomaly baseline window"""
        if isinstance(window_days, bool) or not isinstance(window_days, int):
            raise ValidationError(f"window_days must be an integer: {window_days!r}")
        if window_days <= 0:
            raise ValidationError(f"window_days must be positive: {window_days}")
        return window_days

    @classmethod
    def validate_horizon(cls, horizon_months: Any, allowed: Sequence[int] = (3, 6, 12)) -> int:
        """Validate forecast horizon"""
        if isinstance(horizon_months, bool) or not isinstance(horizon_months, int):
            raise ValidationError(f"horizon_months must be an integer: {horizon_months!r}")
        if horizon_months <= 0:
            raise ValidationError(f"horizon_months must be positive: {horizon_months}")
        if horizon_months not in allowed:
            raise ValidationError(
                f"horizon_months must be one of {list(allowed)}: {horizon_months}"
            )
        return horizon_months

    @classmethod
    def validate_factor(cls, name: str, value: Any) -> float:
        """Validate a non-negative finite multiplier"""
        try:
            factor = float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{name} must be a number: {value!r}")
        if not math.isfinite(factor) or factor < 0:
            raise ValidationError(f"{name} must be a finite non-negative number: {value!r}")
        return factor

    @classmethod
    def validate_limit(cls, limit: Any) -> int:
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise ValidationError(f"limit must be a positive integer: {limit!r}")
        return limit

    @classmethod
    def validate_date_range(cls, start_date: Union[str, date],
                            end_date: Union[str, date]) -> Tuple[date, date]:
        """Validate date range"""
        try:
            if isinstance(start_date, str):
                start_date = datetime.fromisoformat(start_date).date()
            if isinstance(end_date, str):
                end_date = datetime.fromisoformat(end_date).date()
        except ValueError as e:
            raise ValidationError(f"Invalid date: {e}")

        if start_date > end_date:
            raise ValidationError("Start date must be before end date")

        return start_date, end_date

    @classmethod
    def validate_scenarios(cls, scenarios: Optional[Sequence[ScenarioInput]]) -> List[ScenarioInput]:
        """Validate a scenario set"""
        if not scenarios:
            raise ValidationError("No scenarios provided. Please provide at least one scenario.")

        validated = []
        for i, scenario in enumerate(scenarios):
            if not isinstance(scenario, ScenarioInput):
                raise ValidationError(f"Scenario {i} is not a ScenarioInput: {scenario!r}")
            if not scenario.name:
                raise ValidationError(f"Scenario {i} has no name")
            cls.validate_factor("business_growth_factor", scenario.business_growth_factor)
            cls.validate_factor("seasonality_multiplier", scenario.seasonality_multiplier)
            validated.append(scenario)
        return validated


class RequestValidator(BaseModel):
    """Base model for request validation"""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class ScenarioSpec(RequestValidator):
    """Scenario definition as read from a YAML/JSON scenario file"""
    name: str = Field(min_length=1)
    business_growth: float = Field(default=1.0, ge=0)
    seasonality_multiplier: float = Field(default=1.0, ge=0)
    external_factors: Optional[str] = None

    @field_validator('external_factors', mode='before')
    @classmethod
    def stringify_factors(cls, value: Any) -> Optional[str]:
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, dict):
            return ", ".join(f"{k}: {v}" for k, v in value.items())
        return str(value)

    def to_input(self) -> ScenarioInput:
        return ScenarioInput(
            name=self.name,
            business_growth_factor=self.business_growth,
            seasonality_multiplier=self.seasonality_multiplier,
            external_factors=self.external_factors,
        )


class ForecastRequest(RequestValidator):
    """Validate forecast request options"""
    horizon_months: int = Field(default=6, gt=0)
    seasonality_enabled: bool = True
    revenue_per_dollar: Optional[float] = Field(default=None, ge=0)
    scenarios: List[ScenarioSpec] = Field(default_factory=list)
