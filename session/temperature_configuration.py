"""
Temperature configuration management for the memory temperature service.

This module provides a clean, typed interface to service configuration,
loading directly from pyproject.toml and environment variables.
"""

import tomllib
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TemperatureConfiguration(BaseSettings):
    """
    Typed configuration object for the memory temperature service.

    Thresholds use two units: hot->warm and warm->cool are hours,
    cool->cold and cold->frozen are days. Retention values are tuning hints
    for the compression strategies (only warm text truncation reads its value
    directly), not enforced upper bounds on the compression ratio.
    """

    # Core switches
    enabled: bool = Field(
        default=True, description="Disable to turn every operation into a no-op"
    )
    debug_mode: bool = Field(
        default=False, description="Log every operation timing at info level"
    )
    performance_budget_ms: float = Field(
        default=50.0,
        description="Operations slower than this are logged as budget overruns",
        gt=0,
    )
    create_missing_entities: bool = Field(
        default=True,
        description="Create a fresh hot entry when an unknown id is accessed with a kind",
    )

    # Decay thresholds
    hot_to_warm_hours: float = Field(
        default=1.0, description="Hours since last access before hot becomes warm", gt=0
    )
    warm_to_cool_hours: float = Field(
        default=24.0, description="Hours since last access before warm becomes cool", gt=0
    )
    cool_to_cold_days: float = Field(
        default=7.0, description="Days since last access before cool becomes cold", gt=0
    )
    cold_to_frozen_days: float = Field(
        default=30.0, description="Days since last access before cold becomes frozen", gt=0
    )

    # Retention hints per tier (0.0-1.0)
    warm_retention: float = Field(
        default=0.5, description="Fraction of text kept at warm", ge=0.0, le=1.0
    )
    cool_retention: float = Field(
        default=0.2, description="Target retention at cool", ge=0.0, le=1.0
    )
    cold_retention: float = Field(
        default=0.05, description="Target retention at cold", ge=0.0, le=1.0
    )
    frozen_retention: float = Field(
        default=0.01, description="Target retention at frozen", ge=0.0, le=1.0
    )

    # File paths
    workdir: str = Field(
        default="memory_files", description="Working directory for store and logs"
    )
    store_file: str = Field(
        default="memory_state.json", description="JSON store file, relative to workdir"
    )
    log_file: str = Field(
        default="memory_temperature.log", description="Human-readable log file"
    )
    json_log_file: str = Field(
        default="memory_temperature.jsonl", description="JSON log file"
    )

    model_config = SettingsConfigDict(
        env_prefix="MEMTEMP_",
        env_file=None,
        case_sensitive=False,
        extra="forbid",  # Catch typos in config early
    )

    @model_validator(mode='after')
    def validate_thresholds(self) -> 'TemperatureConfiguration':
        """Thresholds must be strictly increasing once expressed in hours."""
        hours = [
            self.hot_to_warm_hours,
            self.warm_to_cool_hours,
            self.cool_to_cold_days * 24,
            self.cold_to_frozen_days * 24,
        ]
        for earlier, later in zip(hours, hours[1:]):
            if later <= earlier:
                raise ValueError(
                    f"Temperature thresholds must be strictly increasing in hours, got {hours}"
                )
        return self

    @model_validator(mode='after')
    def validate_retention_order(self) -> 'TemperatureConfiguration':
        """Colder tiers cannot retain more than hotter ones."""
        levels = self.retention_levels()
        values = list(levels.values())
        if any(later > earlier for earlier, later in zip(values, values[1:])):
            raise ValueError(
                f"Retention levels must not increase as tiers get colder, got {levels}"
            )
        return self

    def model_post_init(self, __context) -> None:
        """Ensure the working directory exists."""
        workdir = Path(self.workdir)
        if not workdir.exists():
            workdir.mkdir(parents=True, exist_ok=True)

    def retention_levels(self) -> Dict[str, float]:
        return {
            "warm": self.warm_retention,
            "cool": self.cool_retention,
            "cold": self.cold_retention,
            "frozen": self.frozen_retention,
        }

    def get_store_path(self) -> Path:
        return Path(self.workdir) / self.store_file

    @classmethod
    def from_toml(cls, config_file: Optional[Path] = None) -> "TemperatureConfiguration":
        """
        Create TemperatureConfiguration by loading directly from pyproject.toml.

        Args:
            config_file: Path to TOML file (defaults to pyproject.toml)

        Returns:
            TemperatureConfiguration instance loaded from TOML

        Raises:
            FileNotFoundError: If config file doesn't exist
            KeyError: If the [tool.memtemp] section is missing
        """
        # Load .env file if it exists to populate environment variables
        load_dotenv()

        config_file = config_file or Path("pyproject.toml")

        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")

        with open(config_file, "rb") as f:
            toml_data = tomllib.load(f)

        try:
            memtemp_config = toml_data["tool"]["memtemp"]
        except KeyError:
            raise KeyError("Missing [tool.memtemp] section in pyproject.toml")

        service_config = memtemp_config.get("service", {})
        thresholds_config = memtemp_config.get("thresholds", {})
        retention_config = memtemp_config.get("retention", {})
        files_config = memtemp_config.get("files", {})

        candidates = {
            # Core switches
            "enabled": service_config.get("enabled"),
            "debug_mode": service_config.get("debug_mode"),
            "performance_budget_ms": service_config.get("performance_budget_ms"),
            "create_missing_entities": service_config.get("create_missing_entities"),
            # Decay thresholds
            "hot_to_warm_hours": thresholds_config.get("hot_to_warm_hours"),
            "warm_to_cool_hours": thresholds_config.get("warm_to_cool_hours"),
            "cool_to_cold_days": thresholds_config.get("cool_to_cold_days"),
            "cold_to_frozen_days": thresholds_config.get("cold_to_frozen_days"),
            # Retention hints
            "warm_retention": retention_config.get("warm"),
            "cool_retention": retention_config.get("cool"),
            "cold_retention": retention_config.get("cold"),
            "frozen_retention": retention_config.get("frozen"),
            # File paths
            "workdir": files_config.get("workdir"),
            "store_file": files_config.get("store_file"),
            "log_file": files_config.get("log_file"),
            "json_log_file": files_config.get("json_log_file"),
        }

        # Only pass values present in TOML so field defaults apply otherwise
        config_dict = {key: value for key, value in candidates.items() if value is not None}

        return cls.model_validate(config_dict)
