"""Tests for validation module"""

import pytest
from datetime import date

import pydantic

from costlens.core.validation import ForecastRequest, ScenarioSpec, Validator
from costlens.core.exceptions import ValidationError
from costlens.core.models import ScenarioInput


class TestValidator:
    """Test Validator class"""

    def test_validate_window_days(self):
        """Test window validation"""
        assert Validator.validate_window_days(30) == 30

        with pytest.raises(ValidationError):
            Validator.validate_window_days(0)

        with pytest.raises(ValidationError):
            Validator.validate_window_days(-7)

        with pytest.raises(ValidationError):
            Validator.validate_window_days("30")

        with pytest.raises(ValidationError):
            Validator.validate_window_days(True)

    def test_validate_horizon(self):
        """Test horizon validation"""
        assert Validator.validate_horizon(3) == 3
        assert Validator.validate_horizon(12) == 12
        assert Validator.validate_horizon(24, allowed=[24]) == 24

        with pytest.raises(ValidationError):
            Validator.validate_horizon(4)

        with pytest.raises(ValidationError):
            Validator.validate_horizon(-3)

        with pytest.raises(ValidationError):
            Validator.validate_horizon(6.0)

    def test_validate_factor(self):
        """Test multiplier validation"""
        assert Validator.validate_factor("growth", 1.2) == 1.2
        assert Validator.validate_factor("growth", "0.5") == 0.5
        assert Validator.validate_factor("growth", 0) == 0.0

        with pytest.raises(ValidationError):
            Validator.validate_factor("growth", -0.1)

        with pytest.raises(ValidationError):
            Validator.validate_factor("growth", float("nan"))

        with pytest.raises(ValidationError):
            Validator.validate_factor("growth", "fast")

    def test_validate_limit(self):
        """Test limit validation"""
        assert Validator.validate_limit(5) == 5

        with pytest.raises(ValidationError):
            Validator.validate_limit(0)

    def test_validate_date_range(self):
        """Test date range validation"""
        start, end = Validator.validate_date_range("2024-01-01", "2024-12-31")
        assert start == date(2024, 1, 1)
        assert end == date(2024, 12, 31)

        start, end = Validator.validate_date_range(date(2024, 1, 1), date(2024, 1, 1))
        assert start == end

        with pytest.raises(ValidationError):
            Validator.validate_date_range("2024-12-31", "2024-01-01")

        with pytest.raises(ValidationError):
            Validator.validate_date_range("invalid", "2024-01-01")

    def test_validate_scenarios(self):
        """Test scenario set validation"""
        scenarios = [ScenarioInput("Base"), ScenarioInput("Growth", 1.3)]
        assert Validator.validate_scenarios(scenarios) == scenarios

        with pytest.raises(ValidationError):
            Validator.validate_scenarios([])

        with pytest.raises(ValidationError):
            Validator.validate_scenarios(None)

        with pytest.raises(ValidationError):
            Validator.validate_scenarios([{"name": "dict"}])

        with pytest.raises(ValidationError):
            Validator.validate_scenarios([ScenarioInput("")])

        with pytest.raises(ValidationError):
            Validator.validate_scenarios([ScenarioInput("Neg", seasonality_multiplier=-1)])


class TestScenarioSpec:
    """Test ScenarioSpec model"""

    def test_valid_spec(self):
        """Test scenario definitions convert to inputs"""
        spec = ScenarioSpec(name="  Growth  ", business_growth=1.3, seasonality_multiplier=1.1,
                            external_factors="Launch")

        scenario = spec.to_input()

        assert scenario == ScenarioInput("Growth", 1.3, 1.1, "Launch")

    def test_defaults(self):
        """Test neutral multipliers by default"""
        scenario = ScenarioSpec(name="Base").to_input()
        assert scenario.business_growth_factor == 1.0
        assert scenario.seasonality_multiplier == 1.0
        assert scenario.external_factors is None

    def test_external_factors_mapping(self):
        """Test mapping factors are flattened to a label"""
        spec = ScenarioSpec(name="X", external_factors={"market": "expansion", "hiring": "freeze"})
        assert spec.external_factors == "market: expansion, hiring: freeze"

    def test_invalid_spec(self):
        """Test invalid definitions"""
        with pytest.raises(pydantic.ValidationError):
            ScenarioSpec(name="")

        with pytest.raises(pydantic.ValidationError):
            ScenarioSpec(name="Bad", business_growth=-1)


class TestForecastRequest:
    """Test ForecastRequest model"""

    def test_valid_request(self):
        """Test valid forecast request"""
        request = ForecastRequest(
            horizon_months=12,
            seasonality_enabled=False,
            revenue_per_dollar=4.5,
            scenarios=[{"name": "Growth", "business_growth": 1.2}],
        )
        assert request.horizon_months == 12
        assert request.scenarios[0].to_input().business_growth_factor == 1.2

    def test_invalid_request(self):
        """Test invalid forecast request"""
        with pytest.raises(pydantic.ValidationError):
            ForecastRequest(horizon_months=0)

        with pytest.raises(pydantic.ValidationError):
            ForecastRequest(revenue_per_dollar=-1)
