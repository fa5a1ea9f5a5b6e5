"""
Configuration for the risk assessment service.
Centralizes upstream endpoints, transport settings and interpretation thresholds.
"""

import os
from typing import Dict, Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

# Load .env file (walks up directories to find it)
load_dotenv(find_dotenv())


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class FieldRange(BaseModel):
    """Closed interval a clinical measurement must fall in."""
    min: float
    max: float


class UpstreamConfig(BaseModel):
    """Outbound calculator endpoints and transport behaviour."""

    mdcalc_url: str = Field(
        default_factory=lambda: os.environ.get(
            "MDCALC_URL", "https://www.mdcalc.com/api/v1/calc/10491/calculate"
        ),
        description="MdCalc PREVENT calculate endpoint"
    )

    clincalc_url: str = Field(
        default_factory=lambda: os.environ.get(
            "CLINCALC_URL", "https://clincalc.com/Cardiology/PREVENT/"
        ),
        description="ClinCalc PREVENT calculator page (GET for session state, POST to submit)"
    )

    timeout_seconds: Optional[float] = Field(
        default_factory=lambda: float(os.environ.get("UPSTREAM_TIMEOUT_SECONDS", "30.0")),
        description="Transport timeout applied to every upstream request"
    )

    max_tries: int = Field(
        default_factory=lambda: int(os.environ.get("UPSTREAM_MAX_TRIES", "1")),
        ge=1,
        description="Attempts per upstream call on network failure (1 = no retries)"
    )

    # MdCalc request constants
    mdcalc_uom_system: bool = Field(default=True, description="UOMSYSTEM flag (US units)")
    mdcalc_model: int = Field(default=0, description="PREVENT model selector (0 = base model)")


class InterpretationConfig(BaseModel):
    """Risk category thresholds, expressed as 10-year percentages."""

    borderline_min: float = Field(default=5.0, description="Lower bound of Borderline (inclusive)")
    intermediate_min: float = Field(default=7.5, description="Lower bound of Intermediate (inclusive)")
    high_min: float = Field(default=20.0, description="Lower bound of High (inclusive)")

    progress_scale_max: float = Field(
        default=40.0,
        description="Percentage mapped to a full progress bar"
    )

    top_factor_count: int = Field(default=5, ge=1, description="Number of ranked contributions shown")


class RiskAssessmentConfig(BaseModel):
    """Main configuration for the risk assessment service."""

    upstream: UpstreamConfig = Field(
        default_factory=UpstreamConfig,
        description="Upstream calculator configuration"
    )

    interpretation: InterpretationConfig = Field(
        default_factory=InterpretationConfig,
        description="Interpretation thresholds"
    )

    field_ranges: Dict[str, FieldRange] = Field(
        default_factory=lambda: {
            "total_cholesterol": FieldRange(min=130, max=320),
            "hdl_cholesterol": FieldRange(min=20, max=100),
            "systolic_bp": FieldRange(min=90, max=200),
            "bmi": FieldRange(min=18.5, max=39.9),
            "egfr": FieldRange(min=15, max=150),
        },
        description="Clinically plausible ranges for intake measurements"
    )

    snapshot_store_path: str = Field(
        default_factory=lambda: os.environ.get("SNAPSHOT_STORE_PATH", "data/risk_assessments.jsonl"),
        description="Append-only JSON-lines file for assessment snapshots"
    )

    # Logging
    log_level: str = Field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO"),
        description="Root log level"
    )

    log_json: bool = Field(
        default_factory=lambda: _env_bool("LOG_JSON", False),
        description="Emit structured JSON log lines instead of plain text"
    )


# Global configuration instance
_config: RiskAssessmentConfig = RiskAssessmentConfig()


def get_config() -> RiskAssessmentConfig:
    """Get the global configuration instance."""
    return _config


def update_config(**kwargs):
    """Update configuration parameters."""
    global _config
    current_dict = _config.model_dump()

    # Update nested parameters
    for key, value in kwargs.items():
        if '.' in key:
            # Handle nested keys like 'upstream.max_tries'
            parts = key.split('.')
            current = current_dict
            for part in parts[:-1]:
                current = current[part]
            current[parts[-1]] = value
        else:
            current_dict[key] = value

    _config = RiskAssessmentConfig(**current_dict)
    return _config


def load_config_from_file(filepath: str):
    """Load configuration from a JSON file."""
    import json
    global _config

    with open(filepath, 'r') as f:
        config_dict = json.load(f)

    _config = RiskAssessmentConfig(**config_dict)
    return _config


def save_config_to_file(filepath: str):
    """Save current configuration to a JSON file."""
    import json

    with open(filepath, 'w') as f:
        json.dump(_config.model_dump(), f, indent=2)


# Convenience accessors
def get_upstream_config() -> UpstreamConfig:
    """Get upstream calculator configuration."""
    return _config.upstream


def get_interpretation_config() -> InterpretationConfig:
    """Get interpretation thresholds."""
    return _config.interpretation


def get_field_range(field: str) -> FieldRange:
    """Get the allowed range for an intake measurement."""
    return _config.field_ranges[field]
