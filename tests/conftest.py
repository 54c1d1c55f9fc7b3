"""Pytest configuration and fixtures"""

import pytest
import tempfile
from datetime import date, timedelta
from pathlib import Path
import yaml

from costlens.core.config import Settings
from costlens.core.models import RawCostPoint, TrendPeriod


EC2_KEY = "Amazon Elastic Compute Cloud - Compute"
S3_KEY = "Amazon Simple Storage Service"
RDS_KEY = "Amazon Relational Database Service"

SPIKE_DAY = date(2024, 2, 10)


def make_group(service_key, amount, metric="UnblendedCost", unit="USD"):
    return {
        "Keys": [service_key],
        "Metrics": {metric: {"Amount": str(amount), "Unit": unit}},
    }


def make_bucket(day, groups):
    return {
        "TimePeriod": {"Start": day.isoformat(), "End": (day + timedelta(days=1)).isoformat()},
        "Groups": groups,
        "Estimated": False,
    }


def make_points(service_key, values, start=date(2024, 1, 1)):
    """Consecutive daily points for one service"""
    return [
        RawCostPoint(date=start + timedelta(days=i), service_key=service_key, amount=float(v))
        for i, v in enumerate(values)
    ]


def make_periods(costs, start_year=2024):
    """Monthly periods with the given totals"""
    periods = []
    for i, cost in enumerate(costs):
        month_start = date(start_year + i // 12, i % 12 + 1, 1)
        periods.append(TrendPeriod(
            period_label=month_start.strftime("%Y-%m"),
            total_cost=float(cost),
            period_start=month_start,
        ))
    return periods


@pytest.fixture
def cost_explorer_response():
    """45 days of EC2/S3/RDS spend with one EC2 spike"""
    buckets = []
    start = date(2024, 1, 1)
    for i in range(45):
        day = start + timedelta(days=i)
        ec2 = 60.0 if day == SPIKE_DAY else 10.0 + (i % 2) * 2
        buckets.append(make_bucket(day, [
            make_group(EC2_KEY, ec2),
            make_group(S3_KEY, 2.0),
            make_group(RDS_KEY, 5.0 + (i % 2) * 0.5, metric="BlendedCost"),
        ]))
    return {"ResultsByTime": buckets, "GroupDefinitions": [{"Type": "DIMENSION", "Key": "SERVICE"}]}


@pytest.fixture
def test_settings():
    """Create test settings"""
    return Settings(
        environment="test",
        debug=True,
        logging={
            "level": "DEBUG",
            "structured": False,
            "console": False
        },
    )


@pytest.fixture
def temp_config_file():
    """Create temporary config file"""
    with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
        config = {
            "app_name": "CostLens Test",
            "environment": "test",
            "anomaly": {
                "window_days": 14
            },
            "forecast": {
                "horizon_months": 3
            }
        }
        yaml.dump(config, f)
        temp_path = Path(f.name)

    yield temp_path

    # Cleanup
    temp_path.unlink(missing_ok=True)


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset singleton instances between tests"""
    import costlens.core.config as config_module
    config_module.settings = None
    yield
    config_module.settings = None


def pytest_configure(config):
    """Configure pytest"""
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
