"""
Engine configuration.

Settings come from the "plagiarism" section of an optional YAML file and can
be overridden by environment variables:

    plagiarism:
      weights:
        jaccard: 0.3
        ngram3: 0.4
        ngram5: 0.3
      flag-threshold: 70
      report-threshold: 50
      workers: 1
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Any

import yaml

from .scorer import ScoreWeights

logger = logging.getLogger(__name__)

DEFAULT_FLAG_THRESHOLD = 70.0
DEFAULT_REPORT_THRESHOLD = 50.0
DEFAULT_CONFIG_PATH = os.path.join("config", "plagiarism.yaml")


def _threshold(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number, got {value!r}")
    if not 0 <= value <= 100:
        raise ValueError(f"{name} must be between 0 and 100, got {value}")
    return float(value)


@dataclass(frozen=True)
class EngineConfig:
    """Tunable parameters of the comparison engine."""
    weights: ScoreWeights = field(default_factory=ScoreWeights)
    flag_threshold: float = DEFAULT_FLAG_THRESHOLD
    report_threshold: float = DEFAULT_REPORT_THRESHOLD  # Used when the caller gives none
    max_workers: int = 1

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "EngineConfig":
        """
        Build config from the "plagiarism" YAML section.

        Args:
            data: Parsed section, may be None or empty

        Returns:
            EngineConfig with defaults for missing keys

        Raises:
            ValueError: If a value has the wrong type or range
        """
        data = data or {}
        weights_data = data.get("weights") or {}
        defaults = ScoreWeights()
        weights = ScoreWeights(
            jaccard=float(weights_data.get("jaccard", defaults.jaccard)),
            ngram3=float(weights_data.get("ngram3", defaults.ngram3)),
            ngram5=float(weights_data.get("ngram5", defaults.ngram5)),
        )

        workers = data.get("workers", 1)
        if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
            raise ValueError(f"workers must be a positive integer, got {workers!r}")

        return cls(
            weights=weights,
            flag_threshold=_threshold(data.get("flag-threshold", DEFAULT_FLAG_THRESHOLD), "flag-threshold"),
            report_threshold=_threshold(data.get("report-threshold", DEFAULT_REPORT_THRESHOLD), "report-threshold"),
            max_workers=workers,
        )


def load_engine_config(path: str | None = None) -> EngineConfig:
    """
    Load engine config from YAML and environment.

    Args:
        path: YAML file path; defaults to $PLAGIARISM_CONFIG or config/plagiarism.yaml.
            A missing file means all defaults.

    Returns:
        EngineConfig
    """
    path = path or os.getenv("PLAGIARISM_CONFIG", DEFAULT_CONFIG_PATH)
    section: dict[str, Any] = {}

    if os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Invalid config structure in {path}")
        section = dict(data.get("plagiarism") or {})
        logger.info(f"Loaded plagiarism config from {path}")
    else:
        logger.debug(f"Config file {path} not found, using defaults")

    # Environment wins over the file
    env_overrides = {
        "flag-threshold": ("PLAGIARISM_FLAG_THRESHOLD", float),
        "report-threshold": ("PLAGIARISM_REPORT_THRESHOLD", float),
        "workers": ("PLAGIARISM_WORKERS", int),
    }
    for key, (env_name, convert) in env_overrides.items():
        value = os.getenv(env_name)
        if value:
            try:
                section[key] = convert(value)
            except ValueError:
                raise ValueError(f"{env_name} has invalid value {value!r}")

    return EngineConfig.from_dict(section)
