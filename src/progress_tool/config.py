"""Configuración explícita y validada para comparación, puntaje y logging."""

from __future__ import annotations

import logging
import math
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from numbers import Real
from pathlib import Path
from typing import Any, cast

import yaml

from progress_tool.errors import InvalidConfigurationError
from progress_tool.model import ComparisonMode, Polarity

logger = logging.getLogger(__name__)

DEFAULT_REGRESSION_THRESHOLD = 0.05
DEFAULT_EPSILON = 1e-6
DEFAULT_SATURATION = 0.25
DEFAULT_ABSOLUTE_SATURATION = 10.0
DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

ENV_LOG_LEVEL = "PROGRESS_TOOL_LOG_LEVEL"
ENV_REGRESSION_THRESHOLD = "PROGRESS_TOOL_REGRESSION_THRESHOLD"


def _is_number(value: object) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def validate_positive(value: object, name: str) -> float:
    """Return ``value`` as float if it is a finite number > 0.

    Raises:
        InvalidConfigurationError: If the value is not a finite positive number.
    """
    if not _is_number(value) or not math.isfinite(float(cast(Real, value))):
        raise InvalidConfigurationError(f"{name} must be a finite number, got {value!r}")
    out = float(cast(Real, value))
    if out <= 0:
        raise InvalidConfigurationError(f"{name} must be positive, got {out}")
    return out


def validate_threshold(value: object) -> float:
    """Validate a regression threshold (finite and strictly positive)."""
    return validate_positive(value, "regression_threshold")


def validate_non_negative(value: object, name: str) -> float:
    """Return ``value`` as float if it is a finite number >= 0."""
    if not _is_number(value) or not math.isfinite(float(cast(Real, value))):
        raise InvalidConfigurationError(f"{name} must be a finite number, got {value!r}")
    out = float(cast(Real, value))
    if out < 0:
        raise InvalidConfigurationError(f"{name} must not be negative, got {out}")
    return out


def _parse_enum(enum_cls: Any, value: object, name: str) -> Any:
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        key = value.strip()
        for member in enum_cls:
            if key.lower() == member.value or key.upper() == member.name:
                return member
    allowed = ", ".join(m.value for m in enum_cls)
    raise InvalidConfigurationError(f"Invalid {name} {value!r} (expected: {allowed})")


def parse_mode(value: object) -> ComparisonMode:
    """Accept a ComparisonMode or its value/name string."""
    return _parse_enum(ComparisonMode, value, "mode")


def parse_polarity(value: object) -> Polarity:
    """Accept a Polarity or its value/name string."""
    return _parse_enum(Polarity, value, "polarity")


def parse_polarity_table(table: Mapping[str, object] | None) -> dict[str, Polarity]:
    """Validate a category -> polarity table. None means an empty table."""
    if table is None:
        return {}
    if not isinstance(table, Mapping):
        raise InvalidConfigurationError("polarities must be a mapping")
    out: dict[str, Polarity] = {}
    for category, raw in table.items():
        if not isinstance(category, str) or not category:
            raise InvalidConfigurationError(f"Invalid category name {category!r}")
        out[category] = parse_polarity(raw)
    return out


def validate_weights(weights: Mapping[str, object]) -> dict[str, float]:
    """Validate a category weight configuration.

    Weights need not sum to 1 but must be finite and non-negative, and at
    least one must be positive.

    Raises:
        InvalidConfigurationError: If the mapping is malformed.
    """
    if not isinstance(weights, Mapping) or not weights:
        raise InvalidConfigurationError("weights must be a non-empty mapping")
    out: dict[str, float] = {}
    for category, raw in weights.items():
        if not isinstance(category, str) or not category:
            raise InvalidConfigurationError(f"Invalid category name {category!r}")
        out[category] = validate_non_negative(raw, f"weight for {category!r}")
    if not any(w > 0 for w in out.values()):
        raise InvalidConfigurationError("at least one weight must be positive")
    return out


def _check_keys(data: Mapping[str, Any], allowed: set[str], section: str) -> None:
    if not isinstance(data, Mapping):
        raise InvalidConfigurationError(f"{section} section must be a mapping")
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise InvalidConfigurationError(
            f"Unknown field(s) in {section}: {', '.join(map(str, unknown))}"
        )


@dataclass(frozen=True)
class ComparisonConfig:
    """Parameters of the comparison engine."""

    mode: ComparisonMode = ComparisonMode.PREVIOUS_VS_LATEST
    regression_threshold: float = DEFAULT_REGRESSION_THRESHOLD
    epsilon: float = DEFAULT_EPSILON
    polarities: dict[str, Polarity] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ComparisonConfig:
        """Build from a plain mapping, rejecting unknown fields."""
        _check_keys(data, {"mode", "regression_threshold", "epsilon", "polarities"}, "comparison")
        return cls(
            mode=parse_mode(data.get("mode", ComparisonMode.PREVIOUS_VS_LATEST)),
            regression_threshold=validate_threshold(
                data.get("regression_threshold", DEFAULT_REGRESSION_THRESHOLD)
            ),
            epsilon=validate_non_negative(data.get("epsilon", DEFAULT_EPSILON), "epsilon"),
            polarities=parse_polarity_table(data.get("polarities")),
        )


@dataclass(frozen=True)
class ScoringConfig:
    """Parameters of the progress scorer.

    An empty ``weights`` mapping lets the caller decide (the CLI weights every
    scorable category equally).
    """

    weights: dict[str, float] = field(default_factory=dict)
    saturation: float = DEFAULT_SATURATION
    absolute_saturation: float = DEFAULT_ABSOLUTE_SATURATION

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ScoringConfig:
        """Build from a plain mapping, rejecting unknown fields."""
        _check_keys(data, {"weights", "saturation", "absolute_saturation"}, "scoring")
        raw_weights = data.get("weights")
        return cls(
            weights=validate_weights(raw_weights) if raw_weights else {},
            saturation=validate_positive(
                data.get("saturation", DEFAULT_SATURATION), "saturation"
            ),
            absolute_saturation=validate_positive(
                data.get("absolute_saturation", DEFAULT_ABSOLUTE_SATURATION),
                "absolute_saturation",
            ),
        )


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = DEFAULT_LOG_FORMAT
    file: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> LoggingConfig:
        """Build from a plain mapping, rejecting unknown fields."""
        _check_keys(data, {"level", "format", "file"}, "logging")
        level = str(data.get("level", "INFO")).upper()
        if not isinstance(logging.getLevelName(level), int):
            raise InvalidConfigurationError(f"Invalid logging level {level!r}")
        file = data.get("file")
        return cls(
            level=level,
            format=str(data.get("format", DEFAULT_LOG_FORMAT)),
            file=str(file) if file else None,
        )


@dataclass(frozen=True)
class AppConfig:
    """Full application configuration."""

    comparison: ComparisonConfig = field(default_factory=ComparisonConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> AppConfig:
        """Build from the top-level config mapping."""
        _check_keys(data, {"comparison", "scoring", "logging"}, "config")
        return cls(
            comparison=ComparisonConfig.from_mapping(data.get("comparison") or {}),
            scoring=ScoringConfig.from_mapping(data.get("scoring") or {}),
            logging=LoggingConfig.from_mapping(data.get("logging") or {}),
        )


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from YAML with environment variable overrides.

    Args:
        config_path: YAML file. None means defaults only.

    Returns:
        Validated AppConfig.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist.
        InvalidConfigurationError: If the file content is malformed.
    """
    config = AppConfig()
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(str(config_path))
        with open(config_path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise InvalidConfigurationError(f"Invalid YAML in {config_path}: {exc}") from exc
        if data:
            if not isinstance(data, Mapping):
                raise InvalidConfigurationError("config root must be a mapping")
            config = AppConfig.from_mapping(data)

    if os.environ.get(ENV_LOG_LEVEL):
        config = replace(
            config,
            logging=LoggingConfig.from_mapping(
                {
                    "level": os.environ[ENV_LOG_LEVEL],
                    "format": config.logging.format,
                    "file": config.logging.file,
                }
            ),
        )
    if os.environ.get(ENV_REGRESSION_THRESHOLD):
        raw = os.environ[ENV_REGRESSION_THRESHOLD]
        try:
            threshold = float(raw)
        except ValueError as exc:
            raise InvalidConfigurationError(
                f"{ENV_REGRESSION_THRESHOLD} must be a number, got {raw!r}"
            ) from exc
        config = replace(
            config,
            comparison=replace(
                config.comparison, regression_threshold=validate_threshold(threshold)
            ),
        )
    return config


def setup_logging(config: LoggingConfig) -> None:
    """Configure root logging from a LoggingConfig.

    Args:
        config: Logging configuration.
    """
    level = getattr(logging, config.level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.file:
        log_path = Path(config.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(config.file))

    logging.basicConfig(level=level, format=config.format, handlers=handlers)
    logger.debug("Logging configured at level %s", config.level)
