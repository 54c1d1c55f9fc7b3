"""Configuration management for CostLens"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


# Distinct palette for service charts (20 colors to avoid duplicates)
CHART_COLORS = [
    "#FF6384",  # Pink
    "#36A2EB",  # Blue
    "#FFCE56",  # Yellow
    "#4BC0C0",  # Teal
    "#9966FF",  # Purple
    "#FF9F40",  # Orange
    "#FF6B6B",  # Red
    "#4ECDC4",  # Cyan
    "#45B7D1",  # Sky Blue
    "#FFA07A",  # Light Salmon
    "#98D8C8",  # Mint
    "#F7DC6F",  # Light Yellow
    "#BB8FCE",  # Light Purple
    "#85C1E2",  # Powder Blue
    "#F8B739",  # Gold
    "#52B788",  # Green
    "#E76F51",  # Terracotta
    "#2A9D8F",  # Dark Teal
    "#E9C46A",  # Sand
    "#F4A261",  # Peach
]

# Calendar-month cost multipliers applied when seasonality is enabled
DEFAULT_SEASONAL_FACTORS = {
    1: 0.85,   # Post-holiday reduction
    2: 0.90,   # Q1 budget optimization
    3: 1.05,   # Q1 close activities
    4: 1.10,   # New initiatives
    5: 1.15,   # Spring product launches
    6: 1.20,   # Mid-year scaling
    7: 1.10,   # Summer campaigns
    8: 0.95,   # Summer slowdown
    9: 1.25,   # Back-to-school surge
    10: 1.30,  # Holiday prep
    11: 1.40,  # Black Friday/Cyber Monday
    12: 1.35,  # Holiday season peak
}


class CanonicalizationRule(BaseModel):
    """Maps provider service keys containing `pattern` to `display_name`"""
    pattern: str = Field(min_length=1)
    display_name: str = Field(min_length=1)

    def matches(self, service_key: str) -> bool:
        return self.pattern in service_key


def default_rules() -> List[CanonicalizationRule]:
    return [
        CanonicalizationRule(pattern="Simple Storage Service", display_name="Amazon S3"),
        CanonicalizationRule(pattern="Elastic Compute Cloud", display_name="Amazon EC2"),
        CanonicalizationRule(pattern="Data Transfer", display_name="AWS Data Transfer"),
    ]


class ConsolidationConfig(BaseModel):
    """Service-name consolidation configuration"""
    rules: List[CanonicalizationRule] = Field(default_factory=default_rules)
    palette: List[str] = Field(default_factory=lambda: list(CHART_COLORS), min_length=1)


class SeverityBands(BaseModel):
    """Exclusive z-score lower bounds of each tier; `low` is the flagging gate"""
    low: float = Field(default=1.5, gt=0)
    medium: float = Field(default=2.0, gt=0)
    high: float = Field(default=3.0, gt=0)

    @model_validator(mode="after")
    def check_order(self) -> "SeverityBands":
        if not self.low <= self.medium <= self.high:
            raise ValueError("Severity bands must satisfy low <= medium <= high")
        return self


class AnomalyConfig(BaseModel):
    """Anomaly baselining configuration"""
    window_days: int = Field(default=30, gt=0)
    min_history_points: int = Field(default=3, ge=2)
    bands: SeverityBands = Field(default_factory=SeverityBands)


class ForecastConfig(BaseModel):
    """Forecasting configuration"""
    horizon_months: int = 6
    allowed_horizons: List[int] = Field(default_factory=lambda: [3, 6, 12])
    seasonality_enabled: bool = True
    confidence_decay: float = Field(default=0.9, gt=0, lt=1)
    seasonal_factors: Dict[int, float] = Field(
        default_factory=lambda: dict(DEFAULT_SEASONAL_FACTORS)
    )

    @field_validator("seasonal_factors")
    @classmethod
    def validate_months(cls, factors: Dict[int, float]) -> Dict[int, float]:
        unknown = [m for m in factors if not 1 <= m <= 12]
        if unknown:
            raise ValueError(f"Seasonal factor months must be 1-12, got {unknown}")
        return factors

    @model_validator(mode="after")
    def check_horizon(self) -> "ForecastConfig":
        if self.horizon_months not in self.allowed_horizons:
            raise ValueError(
                f"horizon_months must be one of {self.allowed_horizons}, got {self.horizon_months}"
            )
        return self


class SuggestionConfig(BaseModel):
    """Thresholds of the optimization suggestion rules"""
    concentration_threshold: float = Field(default=0.30, ge=0, le=1)
    concentration_savings_ratio: float = Field(default=0.20, ge=0, le=1)
    reservation_min_total: float = Field(default=100.0, ge=0)
    reservation_savings_ratio: float = Field(default=0.30, ge=0, le=1)
    sprawl_service_count: int = Field(default=5, ge=0)
    sprawl_savings_ratio: float = Field(default=0.15, ge=0, le=1)


class LoggingConfig(BaseModel):
    """Logging configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[Path] = None
    max_bytes: int = 10485760  # 10MB
    backup_count: int = 5
    console: bool = True
    structured: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, level: str) -> str:
        level = level.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {level}")
        return level


class Settings(BaseSettings):
    """Main application settings"""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="COSTLENS_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    app_name: str = "CostLens"
    version: str = "0.1.0"
    environment: str = "development"
    debug: bool = False

    consolidation: ConsolidationConfig = Field(default_factory=ConsolidationConfig)
    anomaly: AnomalyConfig = Field(default_factory=AnomalyConfig)
    forecast: ForecastConfig = Field(default_factory=ForecastConfig)
    suggestions: SuggestionConfig = Field(default_factory=SuggestionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Thread fan-out for scenario evaluation
    max_workers: int = Field(default=1, ge=1)

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from YAML file"""
        if not path.exists():
            logger.warning(f"Configuration file {path} not found, using defaults")
            return cls()

        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Cannot parse {path}: {e}")

        if data is not None and not isinstance(data, dict):
            raise ConfigurationError(f"{path} must contain a mapping")

        return cls(**data if data else {})

    @classmethod
    def from_json(cls, path: Path) -> "Settings":
        """Load settings from JSON file"""
        if not path.exists():
            logger.warning(f"Configuration file {path} not found, using defaults")
            return cls()

        try:
            with open(path, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Cannot parse {path}: {e}")

        if not isinstance(data, dict):
            raise ConfigurationError(f"{path} must contain an object")

        return cls(**data)

    def to_yaml(self, path: Path) -> None:
        """Save settings to YAML file"""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)

    def to_json(self, path: Path) -> None:
        """Save settings to JSON file"""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)


def load_settings(path: Path) -> Settings:
    """Load settings from a YAML or JSON file, chosen by suffix"""
    if path.suffix in (".yaml", ".yml"):
        return Settings.from_yaml(path)
    if path.suffix == ".json":
        return Settings.from_json(path)
    raise ConfigurationError(f"Unsupported configuration file type: {path.suffix or path.name}")


# Settings of the hosting process (CLI). Engine components never read this.
settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get global settings instance"""
    global settings
    if settings is None:
        config_paths = [
            Path.home() / ".costlens" / "config.yaml",
            Path.home() / ".costlens" / "config.json",
            Path("./config.yaml"),
            Path("./config.json"),
        ]

        for path in config_paths:
            if path.exists():
                settings = load_settings(path)
                logger.info(f"Loaded configuration from {path}")
                break
        else:
            settings = Settings()
            logger.info("Using default configuration")

    return settings


def reload_settings(path: Optional[Path] = None) -> Settings:
    """Reload settings from file"""
    global settings

    if path:
        settings = load_settings(path)
    else:
        settings = None
        settings = get_settings()

    return settings
