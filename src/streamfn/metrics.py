"""
Prometheus meters for the counter and analytics consumers.

Meters are created lazily the first time a name is seen and memoized, since
a meter name computed by an expression is only known per message.
"""

import logging
import re
import threading
from typing import Dict, Optional, Sequence, Tuple, Union

from prometheus_client import CollectorRegistry, Counter, Gauge

from core.errors import ConfigurationError

logger = logging.getLogger(__name__)

_INVALID_METRIC_CHARS = re.compile(r"[^a-zA-Z0-9_:]")
_INVALID_LABEL_CHARS = re.compile(r"[^a-zA-Z0-9_]")

_registry: Optional[CollectorRegistry] = None


def get_registry() -> CollectorRegistry:
    """Get the process-wide registry used by streamfn meters."""
    global _registry
    if _registry is None:
        _registry = CollectorRegistry()
    return _registry


def reset_registry() -> None:
    """Drop the registry (useful for testing)."""
    global _registry
    _registry = None


def sanitize_metric_name(name: str) -> str:
    """Map a dotted meter name (``message.counts``) onto the prometheus charset."""
    sanitized = _INVALID_METRIC_CHARS.sub("_", name.strip())
    if not sanitized or sanitized[0].isdigit():
        sanitized = f"_{sanitized}"
    return sanitized


def sanitize_label_name(name: str) -> str:
    # Names starting with "__" are reserved by prometheus
    sanitized = _INVALID_LABEL_CHARS.sub("_", name.strip()).lstrip("_")
    if not sanitized or sanitized[0].isdigit():
        sanitized = f"tag_{sanitized}"
    return sanitized


Meter = Union[Counter, Gauge]


class MeterCache:
    """Creates and memoizes counters and gauges against one registry."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else get_registry()
        self._meters: Dict[Tuple[str, str, Tuple[str, ...]], Meter] = {}
        self._lock = threading.Lock()

    def _get_or_create(self, kind: str, name: str, labelnames: Sequence[str], description: str) -> Meter:
        metric_name = sanitize_metric_name(name)
        labels = tuple(sanitize_label_name(label) for label in labelnames)
        key = (kind, metric_name, labels)

        meter = self._meters.get(key)
        if meter is not None:
            return meter

        with self._lock:
            meter = self._meters.get(key)
            if meter is not None:
                return meter
            meter_cls = Counter if kind == "counter" else Gauge
            try:
                meter = meter_cls(
                    metric_name,
                    description or name,
                    labelnames=labels,
                    registry=self.registry,
                )
            except ValueError as e:
                raise ConfigurationError(
                    f"Cannot register {kind} '{metric_name}': {e}",
                    cause=e,
                    context={"meter_name": metric_name, "meter_type": kind},
                ) from e
            self._meters[key] = meter
            logger.debug(
                "Registered meter",
                extra={"meter_name": metric_name, "meter_type": kind},
            )
            return meter

    def counter(self, name: str, labelnames: Sequence[str] = (), description: str = "") -> Counter:
        return self._get_or_create("counter", name, labelnames, description)

    def gauge(self, name: str, labelnames: Sequence[str] = (), description: str = "") -> Gauge:
        return self._get_or_create("gauge", name, labelnames, description)


__all__ = [
    "get_registry",
    "reset_registry",
    "sanitize_metric_name",
    "sanitize_label_name",
    "MeterCache",
]
