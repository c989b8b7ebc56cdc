"""Request ids, JSON logs and the in-process metrics behind ``/metrics``."""

from __future__ import annotations

import contextvars
import json
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Tuple

from flask import g, has_request_context, request


HTTP_DURATION_BUCKETS_MS = (5.0, 10.0, 25.0, 50.0, 100.0, 250.0, 500.0, 1000.0, 2500.0, 5000.0, 10000.0)
AGGREGATE_DURATION_BUCKETS_MS = (1.0, 5.0, 10.0, 25.0, 50.0, 100.0, 250.0, 500.0, 1000.0, 5000.0)

_request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("dashboard_request_id", default="")

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}


def _clean_request_id(value: str | None) -> str:
    return str(value or "").strip() or "n/a"


def set_log_request_id(request_id: str | None) -> None:
    _request_id_var.set(_clean_request_id(request_id))


def current_request_id(default: str | None = None) -> str:
    if has_request_context():
        bound = str(getattr(g, "request_id", "") or "").strip()
        if bound:
            return bound
    return str(_request_id_var.get() or "").strip() or (default or "n/a")


def ensure_request_id() -> str:
    request_id = str(getattr(g, "request_id", "") or "").strip()
    if not request_id:
        request_id = str(request.headers.get("X-Request-Id") or "").strip() or str(uuid.uuid4())
        g.request_id = request_id
    set_log_request_id(request_id)
    return request_id


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line, with the request id and any ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, object] = {
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if has_request_context():
            entry["request_id"] = current_request_id()
            entry["method"] = request.method
            entry["path"] = request.path
            if request.url_rule is not None:
                entry["route"] = request.url_rule.rule
        else:
            entry["request_id"] = str(getattr(record, "request_id", "") or "").strip() or current_request_id()

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key.startswith("_") or key in entry or callable(value):
                continue
            entry[key] = value

        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=True, separators=(",", ":"), default=str)


def configure_json_logging(app) -> None:
    if not bool(app.config.get("LOG_JSON", True)):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).strip().upper(), logging.INFO))
    app.logger.handlers = []
    app.logger.propagate = True


LabelKey = Tuple[Tuple[str, str], ...]


def _label_key(labels: Dict[str, object]) -> LabelKey:
    return tuple(sorted((name, str(value)) for name, value in labels.items()))


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def _sample(name: str, value: float, labels: Iterable[Tuple[str, str]] = ()) -> str:
    labels = list(labels)
    if not labels:
        return f"{name} {value}"
    rendered = ",".join(f'{key}="{_escape(val)}"' for key, val in labels)
    return f"{name}{{{rendered}}} {value}"


@dataclass
class _Histogram:
    limits: Tuple[float, ...]
    count: int = 0
    total: float = 0.0
    bucket_counts: List[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.bucket_counts:
            self.bucket_counts = [0] * len(self.limits)

    def observe(self, value: float) -> None:
        value = max(0.0, float(value))
        self.count += 1
        self.total += value
        for index, limit in enumerate(self.limits):
            if value <= limit:
                self.bucket_counts[index] += 1

    def samples(self, name: str, labels: LabelKey) -> List[str]:
        lines = []
        for limit, hits in zip(self.limits, self.bucket_counts):
            lines.append(_sample(f"{name}_bucket", hits, sorted(labels + (("le", f"{limit:g}"),))))
        lines.append(_sample(f"{name}_bucket", self.count, sorted(labels + (("le", "+Inf"),))))
        lines.append(_sample(f"{name}_sum", self.total, labels))
        lines.append(_sample(f"{name}_count", self.count, labels))
        return lines


class MetricsRegistry:
    """Counters and latency histograms for HTTP requests and aggregate runs."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._http_total: Dict[LabelKey, int] = {}
        self._http_duration: Dict[LabelKey, _Histogram] = {}
        self._aggregate_total: Dict[LabelKey, int] = {}
        self._aggregate_duration: Dict[LabelKey, _Histogram] = {}

    def observe_http(self, method: str, route: str, status_code: int, duration_ms: float) -> None:
        method = str(method or "GET").strip().upper() or "GET"
        route = str(route or "unknown").strip() or "unknown"
        with self._lock:
            counter_key = _label_key({"method": method, "route": route, "status": int(status_code)})
            self._http_total[counter_key] = self._http_total.get(counter_key, 0) + 1
            histogram_key = _label_key({"method": method, "route": route})
            self._http_duration.setdefault(histogram_key, _Histogram(HTTP_DURATION_BUCKETS_MS)).observe(duration_ms)

    def observe_aggregate(self, aggregate: str, result: str, duration_ms: float) -> None:
        aggregate = str(aggregate or "unknown").strip() or "unknown"
        result = str(result or "unknown").strip().lower() or "unknown"
        with self._lock:
            counter_key = _label_key({"aggregate": aggregate, "result": result})
            self._aggregate_total[counter_key] = self._aggregate_total.get(counter_key, 0) + 1
            histogram_key = _label_key({"aggregate": aggregate})
            self._aggregate_duration.setdefault(
                histogram_key, _Histogram(AGGREGATE_DURATION_BUCKETS_MS)
            ).observe(duration_ms)

    def snapshot(self) -> dict:
        with self._lock:
            requests_total = 0
            errors_total = 0
            for labels, value in self._http_total.items():
                requests_total += value
                if int(dict(labels)["status"]) >= 400:
                    errors_total += value

            by_route = []
            for labels, histogram in self._http_duration.items():
                names = dict(labels)
                avg_ms = histogram.total / histogram.count if histogram.count else 0.0
                by_route.append(
                    {
                        "route": f"{names['method']} {names['route']}",
                        "requests": histogram.count,
                        "avg_latency_ms": round(avg_ms, 2),
                    }
                )
            by_route.sort(key=lambda item: item["requests"], reverse=True)

            aggregates: Dict[str, Dict[str, int]] = {}
            for labels, value in sorted(self._aggregate_total.items()):
                names = dict(labels)
                aggregates.setdefault(names["aggregate"], {})[names["result"]] = value

        return {
            "requests_total": requests_total,
            "errors_total": errors_total,
            "by_route": by_route[:40],
            "aggregates": aggregates,
        }

    def prometheus_text(self) -> str:
        families = (
            ("http_request_total", "counter", "Total HTTP requests by method, route and status.", self._http_total),
            ("http_request_duration_ms", "histogram", "HTTP request duration in milliseconds.", self._http_duration),
            (
                "aggregate_compute_total",
                "counter",
                "Dashboard aggregate computations by result.",
                self._aggregate_total,
            ),
            (
                "aggregate_duration_ms",
                "histogram",
                "Dashboard aggregate computation time in milliseconds.",
                self._aggregate_duration,
            ),
        )
        lines: List[str] = []
        with self._lock:
            for name, kind, help_text, samples in families:
                lines.append(f"# HELP {name} {help_text}")
                lines.append(f"# TYPE {name} {kind}")
                for labels, value in sorted(samples.items()):
                    if isinstance(value, _Histogram):
                        lines.extend(value.samples(name, labels))
                    else:
                        lines.append(_sample(name, value, labels))
        return "\n".join(lines) + "\n"

    def reset(self) -> None:
        with self._lock:
            self._http_total.clear()
            self._http_duration.clear()
            self._aggregate_total.clear()
            self._aggregate_duration.clear()


_METRICS = MetricsRegistry()


def mark_request_start() -> None:
    g._request_started_at = time.perf_counter()


def observe_response(response):
    started = getattr(g, "_request_started_at", None)
    elapsed_ms = (time.perf_counter() - started) * 1000.0 if started is not None else 0.0
    route = request.url_rule.rule if request.url_rule is not None else request.path
    _METRICS.observe_http(request.method, route, response.status_code, elapsed_ms)
    response.headers["X-Response-Time-Ms"] = f"{elapsed_ms:.2f}"
    return response


def observe_aggregate(aggregate: str, result: str, duration_ms: float) -> None:
    _METRICS.observe_aggregate(aggregate, result, duration_ms)


def metrics_snapshot() -> dict:
    return _METRICS.snapshot()


def prometheus_metrics_text() -> str:
    return _METRICS.prometheus_text()


def reset_metrics_for_tests() -> None:
    _METRICS.reset()
    set_log_request_id(None)
