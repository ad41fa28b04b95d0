"""Configuration helpers for the topic mapping service."""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import TYPE_CHECKING, Final

from dotenv import load_dotenv

if TYPE_CHECKING:
    from .observability import MetricsRecorder
    from .relationships import RelationshipLabeler

load_dotenv()

_DEFAULT_MAX_THEMES: Final[int] = 8
_DEFAULT_MAX_KEY_POINTS: Final[int] = 3
_DEFAULT_MAX_CONNECTIONS: Final[int] = 6
_DEFAULT_ROW_LIMIT: Final[int] = 20
_DEFAULT_ANALYSIS_DELAY: Final[float] = 0.0
_DEFAULT_RELATIONSHIP_STRATEGY: Final[str] = "random"
_DEFAULT_SESSION_MAX_ENTRIES: Final[int] = 64
_DEFAULT_NAMESPACE: Final[str] = "topicmap"
_DEFAULT_LOG_LEVEL: Final[str] = "INFO"


def _env_optional_bool(name: str) -> bool | None:
    """Read an optional boolean environment variable."""

    raw = os.getenv(name)
    if raw is None:
        return None
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    msg = f"Environment variable {name} must be a boolean value (true/false)."
    raise ValueError(msg)


def _env_optional_int(name: str) -> int | None:
    """Read an optional integer environment variable."""

    raw = os.getenv(name)
    if raw is None:
        return None
    value = raw.strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer") from exc


def _env_optional_float(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    value = raw.strip()
    if not value:
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be a float") from exc


def _env_int(name: str, default: int, *, minimum: int = 0) -> int:
    """Read an integer environment variable, clamped to ``minimum``."""

    value = _env_optional_int(name)
    return max(minimum, default if value is None else value)


def _env_float(name: str, default: float) -> float:
    """Read a float environment variable with a fallback (preserving zero)."""

    value = _env_optional_float(name)
    return default if value is None else value


def _env_bool(name: str, default: bool) -> bool:
    value = _env_optional_bool(name)
    if value is None:
        return default
    return value


def _env_strategy(name: str, default: str) -> str:
    """Read the relationship strategy, rejecting names no labeler implements."""

    from .relationships import RELATIONSHIP_STRATEGIES

    value = (os.getenv(name) or default).strip().lower() or default
    if value not in RELATIONSHIP_STRATEGIES:
        options = ", ".join(RELATIONSHIP_STRATEGIES)
        raise ValueError(f"Environment variable {name} must be one of: {options}")
    return value


@dataclass(slots=True)
class Settings:
    """Runtime settings loaded from environment variables."""

    max_themes: int = _DEFAULT_MAX_THEMES
    max_key_points: int = _DEFAULT_MAX_KEY_POINTS
    max_connections: int = _DEFAULT_MAX_CONNECTIONS
    row_limit: int = _DEFAULT_ROW_LIMIT
    analysis_delay_seconds: float = _DEFAULT_ANALYSIS_DELAY
    relationship_strategy: str = _DEFAULT_RELATIONSHIP_STRATEGY
    relationship_seed: int | None = None
    theme_catalog_path: str | None = None
    session_max_entries: int = _DEFAULT_SESSION_MAX_ENTRIES
    observability_metrics_enabled: bool = True
    observability_namespace: str = _DEFAULT_NAMESPACE
    observability_prometheus_enabled: bool = False
    log_level: str = _DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings by reading environment variables."""

        return cls(
            max_themes=_env_int("TOPICMAP_MAX_THEMES", _DEFAULT_MAX_THEMES, minimum=1),
            max_key_points=_env_int("TOPICMAP_MAX_KEY_POINTS", _DEFAULT_MAX_KEY_POINTS),
            max_connections=_env_int("TOPICMAP_MAX_CONNECTIONS", _DEFAULT_MAX_CONNECTIONS),
            row_limit=_env_int("TOPICMAP_ROW_LIMIT", _DEFAULT_ROW_LIMIT),
            analysis_delay_seconds=max(
                0.0,
                _env_float("TOPICMAP_ANALYSIS_DELAY", _DEFAULT_ANALYSIS_DELAY),
            ),
            relationship_strategy=_env_strategy(
                "TOPICMAP_RELATIONSHIP_STRATEGY", _DEFAULT_RELATIONSHIP_STRATEGY
            ),
            relationship_seed=_env_optional_int("TOPICMAP_RELATIONSHIP_SEED"),
            theme_catalog_path=os.getenv("TOPICMAP_THEME_CATALOG") or None,
            session_max_entries=_env_int(
                "TOPICMAP_SESSION_MAX_ENTRIES", _DEFAULT_SESSION_MAX_ENTRIES, minimum=1
            ),
            observability_metrics_enabled=_env_bool("OBSERVABILITY_METRICS_ENABLED", True),
            observability_namespace=os.getenv("OBSERVABILITY_NAMESPACE", _DEFAULT_NAMESPACE),
            observability_prometheus_enabled=_env_bool("OBSERVABILITY_PROMETHEUS_ENABLED", False),
            log_level=os.getenv("TOPICMAP_LOG_LEVEL", _DEFAULT_LOG_LEVEL).strip().upper()
            or _DEFAULT_LOG_LEVEL,
        )

    def build_metrics_recorder(self) -> "MetricsRecorder":
        """Return a metrics recorder configured from these settings."""

        from .observability import MetricsRecorder

        return MetricsRecorder(
            enabled=self.observability_metrics_enabled,
            namespace=self.observability_namespace,
            prometheus_enabled=self.observability_prometheus_enabled,
        )

    def build_labeler(self) -> "RelationshipLabeler":
        """Return the relationship labeler selected by ``relationship_strategy``."""

        from .relationships import build_labeler

        return build_labeler(self.relationship_strategy, seed=self.relationship_seed)


__all__ = ["Settings"]
