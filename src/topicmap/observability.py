"""Metrics and logging helpers for mapping runs, with optional Prometheus export."""

from __future__ import annotations

import logging
import re
import time
from contextlib import contextmanager
from typing import Any, Iterator

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter as PromCounter,
    Gauge as PromGauge,
    Histogram as PromHistogram,
    generate_latest,
)

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_PROM_NAME_RE = re.compile(r"[^a-zA-Z0-9_]")
_LOGGING_CONFIGURED = False


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a single stream handler to the ``topicmap`` logger.

    Reuses uvicorn's handlers when the app runs under uvicorn so request logs and
    mapping logs share one stream. Repeated calls only adjust the level.
    """

    global _LOGGING_CONFIGURED
    package_logger = logging.getLogger("topicmap")
    resolved = getattr(logging, str(level).upper(), None)
    if not isinstance(resolved, int):
        resolved = logging.INFO

    if not _LOGGING_CONFIGURED:
        uvicorn_handlers = list(logging.getLogger("uvicorn.error").handlers)
        if uvicorn_handlers:
            package_logger.handlers = []
            for handler in uvicorn_handlers:
                package_logger.addHandler(handler)
        else:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            package_logger.addHandler(handler)
        package_logger.propagate = False
        _LOGGING_CONFIGURED = True

    package_logger.setLevel(resolved)
    return package_logger


class MetricsRecorder:
    """Emit structured metrics via logging and (optionally) Prometheus."""

    def __init__(
        self,
        *,
        enabled: bool = True,
        namespace: str = "topicmap",
        logger: logging.Logger | None = None,
        prometheus_enabled: bool = False,
        registry: CollectorRegistry | None = None,
    ) -> None:
        self._enabled = enabled
        self._namespace = namespace.strip() or "topicmap"
        self._logger = logger or logging.getLogger("topicmap.metrics")
        self._prometheus_enabled = prometheus_enabled
        if registry is None and prometheus_enabled:
            registry = CollectorRegistry()
        self._registry = registry
        self._collectors: dict[tuple[str, str, tuple[str, ...]], Any] = {}

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def prometheus_enabled(self) -> bool:
        return self._prometheus_enabled and self._registry is not None

    @property
    def prometheus_content_type(self) -> str:
        return CONTENT_TYPE_LATEST

    def render_prometheus(self) -> bytes:
        if not self.prometheus_enabled:
            raise RuntimeError("Prometheus export is disabled")
        return generate_latest(self._registry)

    def increment(self, metric: str, *, value: int = 1, **tags: Any) -> None:
        """Increment a counter metric."""

        if not self._enabled:
            return
        tags = _clean_tags(tags)
        self._emit(metric, {"value": int(value)}, tags)
        collector = self._collector("counter", metric, tags)
        if collector is not None:
            collector.inc(float(max(int(value), 0)))

    def set_gauge(self, metric: str, value: float, **tags: Any) -> None:
        if not self._enabled:
            return
        tags = _clean_tags(tags)
        self._emit(metric, {"value": value}, tags)
        collector = self._collector("gauge", metric, tags)
        if collector is not None:
            collector.set(float(value))

    def record_timing(self, metric: str, duration_seconds: float, **tags: Any) -> None:
        """Emit a timing metric; logs carry milliseconds, Prometheus seconds."""

        if not self._enabled:
            return
        tags = _clean_tags(tags)
        seconds = max(duration_seconds, 0.0)
        self._emit(metric, {"duration_ms": round(seconds * 1000.0, 4)}, tags)
        collector = self._collector("histogram", metric, tags)
        if collector is not None:
            collector.observe(seconds)

    @contextmanager
    def track_timing(self, metric: str, **tags: Any) -> Iterator[None]:
        """Context manager that records execution time for the wrapped block."""

        if not self._enabled:
            yield
            return
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record_timing(metric, time.perf_counter() - start, **tags)

    def _emit(self, metric: str, fields: dict[str, Any], tags: dict[str, Any]) -> None:
        segments = [f"{key}={_stringify(value)}" for key, value in sorted(fields.items())]
        segments.extend(f"{key}={_stringify(value)}" for key, value in sorted(tags.items()))
        message = f"{self._namespace}.{metric}"
        if segments:
            message = f"{message} {' '.join(segments)}"
        self._logger.info(message)

    def _collector(self, kind: str, metric: str, tags: dict[str, Any]):
        if not self.prometheus_enabled:
            return None
        label_keys = tuple(sorted(tags))
        label_names = tuple(_PROM_NAME_RE.sub("_", key) or "label" for key in label_keys)
        key = (kind, metric, label_names)
        collector = self._collectors.get(key)
        if collector is None:
            factory = {"counter": PromCounter, "gauge": PromGauge, "histogram": PromHistogram}[kind]
            collector = factory(
                self._prom_metric_name(metric),
                f"{metric} {kind}",
                labelnames=list(label_names),
                registry=self._registry,
            )
            self._collectors[key] = collector
        if not label_names:
            return collector
        values = {name: _stringify(tags[raw]) for name, raw in zip(label_names, label_keys)}
        return collector.labels(**values)

    def _prom_metric_name(self, metric: str) -> str:
        cleaned = _PROM_NAME_RE.sub("_", metric)
        return f"{_PROM_NAME_RE.sub('_', self._namespace)}_{cleaned}".strip("_")


def _clean_tags(tags: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in tags.items() if value is not None}


def _stringify(value: Any) -> str:
    if isinstance(value, float):
        return f"{int(value)}" if value.is_integer() else f"{value:.4f}"
    return str(value)


__all__ = ["LOG_FORMAT", "MetricsRecorder", "configure_logging"]
