"""
Journal engine configuration.
"""

import logging
import os
from typing import Dict, Optional

import yaml
from pydantic import Field, ConfigDict
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class EvaluationConfig(BaseSettings):
    """Rule evaluation configuration."""

    # Per-trade risk above this multiple of the bound is a critical violation
    critical_risk_multiplier: float = 1.5

    # Trade classification thresholds (R multiples)
    model_min_risk_reward: float = 2.0
    error_max_risk_reward: float = 0.5


class EvolutionConfig(BaseSettings):
    """Trader evolution thresholds."""

    # Drawdown bound used when the trader configured none (percent)
    default_max_drawdown: float = 20.0

    # Operational consistency
    min_consistency_months: int = 3
    cv_ceiling: float = 2.0  # coefficient of variation scored as 0

    # Level gates: all four progress scores >= min score AND months >= min months
    level_2_min_score: float = 35.0
    level_2_min_months: int = 1
    level_3_min_score: float = 55.0
    level_3_min_months: int = 3
    level_4_min_score: float = 75.0
    level_4_min_months: int = 6

    # No bottleneck when every score reaches this
    balanced_threshold: float = 80.0

    # Below this many closed trades the classification is not meaningful
    min_closed_trades: int = 5

    def level_gates(self) -> Dict[int, tuple]:
        """Level -> (min score, min months), ascending."""
        return {
            2: (self.level_2_min_score, self.level_2_min_months),
            3: (self.level_3_min_score, self.level_3_min_months),
            4: (self.level_4_min_score, self.level_4_min_months),
        }


class EngineSettings(BaseSettings):
    """Main journal engine settings."""

    evaluation: EvaluationConfig = Field(default_factory=EvaluationConfig)
    evolution: EvolutionConfig = Field(default_factory=EvolutionConfig)

    # Host-side memoization
    cache_enabled: bool = Field(default=True)
    cache_max_entries: int = Field(default=32)

    # Output settings
    report_output_dir: str = Field(default="./reports")

    # Logging
    log_level: str = Field(default="INFO")

    model_config = ConfigDict(
        env_prefix="JOURNAL_ENGINE_",
        env_nested_delimiter="__",
    )

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "EngineSettings":
        """Load settings from a YAML file; defaults when the file is absent."""
        if not os.path.exists(yaml_path):
            logger.warning(f"Engine config {yaml_path} not found, using defaults")
            return cls()

        with open(yaml_path, "r") as f:
            yaml_config = yaml.safe_load(f) or {}

        if not isinstance(yaml_config, dict):
            raise ValueError(f"Engine config {yaml_path} must be a mapping")

        return cls._parse_yaml_config(yaml_config)

    @classmethod
    def _parse_yaml_config(cls, config: Dict) -> "EngineSettings":
        """Parse YAML config into settings.

        ``evaluation`` and ``evolution`` are nested sections; every other
        field is a top-level scalar. Unknown keys are logged and ignored.
        """
        kwargs = {}

        for key, value in config.items():
            if key not in cls.model_fields:
                logger.warning(f"Ignoring unknown engine config key {key!r}")
            elif key in SECTIONS:
                kwargs[key] = SECTIONS[key](**(value or {}))
            else:
                kwargs[key] = value

        return cls(**kwargs)


SECTIONS = {
    "evaluation": EvaluationConfig,
    "evolution": EvolutionConfig,
}

# Checked in order when no config path is given
CONFIG_SEARCH_PATHS = [
    "journal_engine.yaml",
    "config/journal_engine.yaml",
    "~/.config/journal-engine/config.yaml",
    "/etc/journal-engine/config.yaml",
]

CONFIG_PATH_ENV = "JOURNAL_ENGINE_CONFIG_FILE"


def find_config_file() -> Optional[str]:
    """Config path from the environment, else the first existing search path."""
    from_env = os.environ.get(CONFIG_PATH_ENV)
    if from_env:
        return from_env

    for path in CONFIG_SEARCH_PATHS:
        path = os.path.expanduser(path)
        if os.path.exists(path):
            return path
    return None


def load_settings(config_path: Optional[str] = None) -> EngineSettings:
    """Load engine settings from ``config_path`` or the standard locations."""
    config_path = config_path or find_config_file()
    if config_path:
        logger.debug(f"Loading engine config from {config_path}")
        return EngineSettings.from_yaml(config_path)

    return EngineSettings()
