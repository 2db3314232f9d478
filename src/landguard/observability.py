"""Observability helpers for structured logging and lightweight metrics."""

from __future__ import annotations

import json
import logging
import socket
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from landguard.settings import Settings, get_settings

_LOGGER = logging.getLogger("landguard.observability")
_METRICS_BACKEND_LOCK = threading.Lock()
_SHARED_METRICS: "_CompositeMetricsBackend | None" = None


class Observability:
    """Emit structured logs and StatsD-compatible metrics."""

    def __init__(
        self,
        *,
        settings: Settings,
        component: str | None = None,
        metrics_backend: "_CompositeMetricsBackend | None" = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.settings = settings
        self.component = component or "core"
        self._logger = logger or _LOGGER
        self._structured_logging = bool(settings.observability.structured_logging)
        self._metrics = metrics_backend

    def emit_event(self, event: str, **fields: Any) -> None:
        """Emit a structured log if enabled."""

        payload = {
            "event": event,
            "component": self.component,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **_sanitize_dict(fields),
        }
        if self._structured_logging:
            message = json.dumps(payload, default=_serialize)
            self._logger.info(message)
        else:
            self._logger.info("%s | %s", event, payload)

    def increment(self, metric: str, *, value: float = 1.0, tags: Mapping[str, str] | None = None) -> None:
        """Increment a counter-style metric."""

        if not self._metrics:
            return
        self._metrics.increment(metric, value=value, tags=_normalize_tags(tags))

    def record_timing(self, metric: str, value_ms: float, *, tags: Mapping[str, str] | None = None) -> None:
        """Record a timing metric in milliseconds."""

        if not self._metrics:
            return
        self._metrics.record_timing(metric, value_ms=value_ms, tags=_normalize_tags(tags))


def get_observability(*, component: str | None = None, settings: Settings | None = None) -> Observability:
    """Return an :class:`Observability` instance for the requested component."""

    resolved = settings or get_settings()
    backend = _build_shared_metrics_backend(resolved)
    return Observability(settings=resolved, component=component, metrics_backend=backend, logger=_LOGGER)


def configure_logging(settings: Settings | None = None) -> None:
    """Apply the configured log level to the root logger."""

    resolved = settings or get_settings()
    level = getattr(logging, resolved.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s %(message)s")


def reset_observability_cache() -> None:
    """Reset cached metrics backends (used in tests)."""

    global _SHARED_METRICS
    with _METRICS_BACKEND_LOCK:
        _SHARED_METRICS = None


# ---------------------------------------------------------------------------
# Metrics backends
# ---------------------------------------------------------------------------


class _CompositeMetricsBackend:
    """Dispatch metrics to every configured backend."""

    def __init__(self, backends: Iterable["_MetricsBackend"]) -> None:
        self.backends = tuple(backends)

    def increment(self, metric: str, *, value: float, tags: Mapping[str, str] | None) -> None:
        for backend in self.backends:
            backend.increment(metric, value=value, tags=tags)

    def record_timing(self, metric: str, *, value_ms: float, tags: Mapping[str, str] | None) -> None:
        for backend in self.backends:
            backend.record_timing(metric, value_ms=value_ms, tags=tags)


class _MetricsBackend:
    """Interface for metrics backends."""

    def increment(
        self, metric: str, *, value: float, tags: Mapping[str, str] | None
    ) -> None:  # pragma: no cover - interface only
        raise NotImplementedError

    def record_timing(
        self, metric: str, *, value_ms: float, tags: Mapping[str, str] | None
    ) -> None:  # pragma: no cover - interface only
        raise NotImplementedError


@dataclass(slots=True)
class _StatsdBackend(_MetricsBackend):
    """Minimal StatsD client using UDP sockets."""

    host: str
    port: int
    prefix: str

    def __post_init__(self) -> None:
        self._address = (self.host, self.port)
        self._socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)

    def increment(self, metric: str, *, value: float, tags: Mapping[str, str] | None) -> None:
        self._send(metric, value, metric_type="c", tags=tags)

    def record_timing(self, metric: str, *, value_ms: float, tags: Mapping[str, str] | None) -> None:
        self._send(metric, value_ms, metric_type="ms", tags=tags)

    def _send(self, metric: str, value: float, *, metric_type: str, tags: Mapping[str, str] | None) -> None:
        scoped = f"{self.prefix}.{metric}" if self.prefix else metric
        payload = f"{scoped}:{_format_number(value)}|{metric_type}"
        if tags:
            tag_block = ",".join(f"{key}:{val}" for key, val in sorted(tags.items()))
            if tag_block:
                payload = f"{payload}|#{tag_block}"
        try:
            self._socket.sendto(payload.encode("utf-8"), self._address)
        except OSError:  # pragma: no cover - network errors are logged in structured logs
            _LOGGER.debug("StatsD send failed for metric %s", metric, exc_info=True)


def _build_shared_metrics_backend(settings: Settings) -> _CompositeMetricsBackend | None:
    global _SHARED_METRICS
    with _METRICS_BACKEND_LOCK:
        if _SHARED_METRICS is not None:
            return _SHARED_METRICS
        statsd_host = settings.observability.statsd_host
        if not statsd_host:
            return None
        _SHARED_METRICS = _CompositeMetricsBackend(
            [
                _StatsdBackend(
                    host=statsd_host,
                    port=settings.observability.statsd_port,
                    prefix=settings.observability.statsd_prefix,
                )
            ]
        )
        return _SHARED_METRICS


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------


def _serialize(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _serialize(val) for key, val in value.items()}
    return str(value)


def _normalize_tags(tags: Mapping[str, str] | None) -> Mapping[str, str] | None:
    if not tags:
        return None
    normalized: dict[str, str] = {}
    for key, value in tags.items():
        if value is None:
            continue
        normalized[str(key)] = str(value)
    return normalized or None


def _format_number(value: float) -> str:
    formatted = f"{value:.6f}"
    formatted = formatted.rstrip("0").rstrip(".")
    return formatted or "0"


def _sanitize_dict(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    sanitized: dict[str, Any] = {}
    for key, value in payload.items():
        if isinstance(value, Mapping):
            sanitized[str(key)] = _sanitize_dict(value)
        else:
            sanitized[str(key)] = value
    return sanitized


__all__ = ["Observability", "configure_logging", "get_observability", "reset_observability_cache"]
