from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from .association import DEFAULT_CONDITION, DEFAULT_TOLERANCE_DEG
from .sync import DEFAULT_FOLLOW_DURATION_MS
from .synthetic import DEFAULT_SEED, DEFAULT_YEARS
from .tiers import TierScheme


ENV_PREFIX = "PCI_DASHBOARD_"

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "auto"
DEFAULT_YEAR = 2025
DEFAULT_TIER_SCHEME = TierScheme.THREE_TIER.value
DEFAULT_INITIAL_ZOOM = 13
DEFAULT_INITIAL_CENTER = (51.52, -0.13)

_VALID_LOG_FORMATS = {"auto", "json", "console"}
_VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"}
_VALID_TIER_SCHEMES = {scheme.value for scheme in TierScheme}


@dataclass(frozen=True)
class RuntimeConfig:
    log_level: str = DEFAULT_LOG_LEVEL
    log_format: str = DEFAULT_LOG_FORMAT
    seed: int = DEFAULT_SEED
    years: tuple[int, ...] = DEFAULT_YEARS
    default_year: int = DEFAULT_YEAR
    tier_scheme: str = DEFAULT_TIER_SCHEME
    association_tolerance_deg: float = DEFAULT_TOLERANCE_DEG
    default_condition: float = DEFAULT_CONDITION
    follow_duration_ms: int = DEFAULT_FOLLOW_DURATION_MS
    initial_zoom: int = DEFAULT_INITIAL_ZOOM
    initial_center: tuple[float, float] = DEFAULT_INITIAL_CENTER

    @property
    def scheme(self) -> TierScheme:
        return TierScheme(self.tier_scheme)


def normalize_log_level(value: str) -> str:
    level = str(value).strip().upper()
    if level in _VALID_LOG_LEVELS:
        return level

    try:
        numeric = int(level)
    except ValueError as exc:
        raise ValueError(
            f"Invalid {ENV_PREFIX}LOG_LEVEL '{value}'. "
            f"Expected one of {sorted(_VALID_LOG_LEVELS)} or a numeric level."
        ) from exc
    if numeric < 0:
        raise ValueError(
            f"Invalid {ENV_PREFIX}LOG_LEVEL '{value}'. Numeric levels must be >= 0."
        )
    return str(numeric)


def normalize_log_format(value: str) -> str:
    fmt = str(value).strip().lower()
    if fmt not in _VALID_LOG_FORMATS:
        raise ValueError(
            f"Invalid {ENV_PREFIX}LOG_FORMAT '{value}'. "
            f"Expected one of {sorted(_VALID_LOG_FORMATS)}."
        )
    return fmt


def normalize_tier_scheme(value: str) -> str:
    scheme = str(value).strip().lower()
    if scheme not in _VALID_TIER_SCHEMES:
        raise ValueError(
            f"Invalid {ENV_PREFIX}TIER_SCHEME '{value}'. "
            f"Expected one of {sorted(_VALID_TIER_SCHEMES)}."
        )
    return scheme


def parse_int(value: str, *, env_var: str, minimum: int | None = None) -> int:
    try:
        parsed = int(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"Invalid {env_var} '{value}'. Expected an integer.") from exc
    if minimum is not None and parsed < minimum:
        raise ValueError(f"Invalid {env_var} '{value}'. Value must be >= {minimum}.")
    return parsed


def parse_float_range(
    value: str,
    *,
    env_var: str,
    low: float,
    high: float | None = None,
    inclusive_low: bool = True,
) -> float:
    try:
        parsed = float(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"Invalid {env_var} '{value}'. Expected a number.") from exc
    too_low = parsed < low if inclusive_low else parsed <= low
    if too_low or (high is not None and parsed > high):
        bounds = f"{'>=' if inclusive_low else '>'} {low}"
        if high is not None:
            bounds += f" and <= {high}"
        raise ValueError(f"Invalid {env_var} '{value}'. Value must be {bounds}.")
    return parsed


def parse_years(value: str) -> tuple[int, ...]:
    env_var = f"{ENV_PREFIX}YEARS"
    parts = [item.strip() for item in str(value).split(",") if item.strip()]
    if not parts:
        raise ValueError(f"{env_var} must list at least one year.")
    years = tuple(sorted({parse_int(part, env_var=env_var, minimum=1) for part in parts}))
    return years


def parse_center(value: str) -> tuple[float, float]:
    env_var = f"{ENV_PREFIX}INITIAL_CENTER"
    parts = [item.strip() for item in str(value).split(",")]
    if len(parts) != 2:
        raise ValueError(f"Invalid {env_var} '{value}'. Expected 'lat,lng'.")
    lat = parse_float_range(parts[0], env_var=env_var, low=-90.0, high=90.0)
    lng = parse_float_range(parts[1], env_var=env_var, low=-180.0, high=180.0)
    return lat, lng


def load_runtime_config(env: Mapping[str, str] | None = None) -> RuntimeConfig:
    source = env if env is not None else os.environ

    def get(name: str, default: object) -> str:
        return source.get(f"{ENV_PREFIX}{name}", str(default))

    log_level = normalize_log_level(get("LOG_LEVEL", DEFAULT_LOG_LEVEL))
    log_format = normalize_log_format(get("LOG_FORMAT", DEFAULT_LOG_FORMAT))
    seed = parse_int(get("SEED", DEFAULT_SEED), env_var=f"{ENV_PREFIX}SEED", minimum=0)
    years = parse_years(get("YEARS", ",".join(str(year) for year in DEFAULT_YEARS)))
    default_year = parse_int(
        get("DEFAULT_YEAR", years[-1] if DEFAULT_YEAR not in years else DEFAULT_YEAR),
        env_var=f"{ENV_PREFIX}DEFAULT_YEAR",
    )
    if default_year not in years:
        raise ValueError(
            f"Invalid {ENV_PREFIX}DEFAULT_YEAR '{default_year}'. "
            f"Must be one of {list(years)}."
        )
    tier_scheme = normalize_tier_scheme(get("TIER_SCHEME", DEFAULT_TIER_SCHEME))
    tolerance = parse_float_range(
        get("ASSOCIATION_TOLERANCE_DEG", DEFAULT_TOLERANCE_DEG),
        env_var=f"{ENV_PREFIX}ASSOCIATION_TOLERANCE_DEG",
        low=0.0,
        inclusive_low=False,
    )
    default_condition = parse_float_range(
        get("DEFAULT_CONDITION", DEFAULT_CONDITION),
        env_var=f"{ENV_PREFIX}DEFAULT_CONDITION",
        low=0.0,
        high=100.0,
    )
    follow_duration_ms = parse_int(
        get("FOLLOW_DURATION_MS", DEFAULT_FOLLOW_DURATION_MS),
        env_var=f"{ENV_PREFIX}FOLLOW_DURATION_MS",
        minimum=0,
    )
    initial_zoom = parse_int(
        get("INITIAL_ZOOM", DEFAULT_INITIAL_ZOOM),
        env_var=f"{ENV_PREFIX}INITIAL_ZOOM",
        minimum=0,
    )
    initial_center = parse_center(
        get("INITIAL_CENTER", f"{DEFAULT_INITIAL_CENTER[0]},{DEFAULT_INITIAL_CENTER[1]}")
    )

    return RuntimeConfig(
        log_level=log_level,
        log_format=log_format,
        seed=seed,
        years=years,
        default_year=default_year,
        tier_scheme=tier_scheme,
        association_tolerance_deg=tolerance,
        default_condition=default_condition,
        follow_duration_ms=follow_duration_ms,
        initial_zoom=initial_zoom,
        initial_center=initial_center,
    )
