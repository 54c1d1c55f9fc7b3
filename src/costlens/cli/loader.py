"""Billing export and scenario file loading for the CLI"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd
import pydantic
import yaml

from costlens.core.exceptions import DataFormatError
from costlens.core.models import ScenarioInput
from costlens.core.validation import ScenarioSpec

logger = logging.getLogger(__name__)

CSV_COLUMNS = ("date", "service", "amount")


def load_cost_data(path: Path) -> Any:
    """
    Load a billing export.

    JSON files are passed through as Cost Explorer responses. CSV files with
    date,service,amount[,unit] columns are reshaped into the same bucket layout.
    """
    if path.suffix.lower() == ".csv":
        return _load_csv(path)

    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise DataFormatError(str(path), f"Invalid JSON: {e}")

    if not isinstance(data, (dict, list)):
        raise DataFormatError(str(path), "Expected a Cost Explorer response or a list of time buckets")
    return data


def _load_csv(path: Path) -> List[Dict[str, Any]]:
    try:
        df = pd.read_csv(path, dtype={"service": str, "amount": str})
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise DataFormatError(str(path), f"Invalid CSV: {e}")

    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = [c for c in CSV_COLUMNS if c not in df.columns]
    if missing:
        raise DataFormatError(str(path), f"Missing CSV columns: {', '.join(missing)}")

    if "unit" not in df.columns:
        df["unit"] = "USD"
    df["unit"] = df["unit"].fillna("USD")

    dates = pd.to_datetime(df["date"], errors="coerce")
    bad_rows = int(dates.isna().sum())
    if bad_rows:
        logger.warning(f"Skipping {bad_rows} CSV rows with unparseable dates")
    df = df.assign(date=dates.dt.date).dropna(subset=["date", "service"])

    buckets = []
    for day, frame in df.groupby("date", sort=True):
        buckets.append({
            "TimePeriod": {"Start": day.isoformat()},
            "Groups": [
                {
                    "Keys": [row.service],
                    "Metrics": {"UnblendedCost": {"Amount": row.amount, "Unit": row.unit}},
                }
                for row in frame.itertuples(index=False)
            ],
        })

    logger.debug(f"Loaded {len(df)} CSV rows into {len(buckets)} daily buckets from {path}")
    return buckets


def load_scenarios(path: Path) -> List[ScenarioInput]:
    """Load scenario definitions from a YAML or JSON list"""
    try:
        with open(path, 'r') as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise DataFormatError(str(path), f"Cannot parse scenarios: {e}")

    if isinstance(data, dict):
        data = data.get("scenarios")
    if not isinstance(data, list):
        raise DataFormatError(str(path), "Expected a list of scenarios")

    try:
        return [ScenarioSpec(**item).to_input() for item in data]
    except (pydantic.ValidationError, TypeError) as e:
        raise DataFormatError(str(path), f"Invalid scenario: {e}")
