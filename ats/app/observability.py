from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from threading import Lock
from typing import Iterable

from fastapi import Request

logger = logging.getLogger("ats")


@dataclass
class MetricsSnapshot:
    requests_total: int
    requests_5xx: int
    total_latency_ms: float
    by_route_status: dict[tuple[str, int], int] = field(default_factory=dict)
    events: dict[str, int] = field(default_factory=dict)

    @property
    def avg_latency_ms(self) -> float:
        return self.total_latency_ms / self.requests_total if self.requests_total else 0.0


def _family(name: str, help_text: str, kind: str, samples: Iterable[str]) -> list[str]:
    return [f"# HELP {name} {help_text}", f"# TYPE {name} {kind}", *samples]


class MetricsRegistry:
    """Request and domain event counters, rendered in Prometheus text format."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._requests_total = 0
        self._requests_5xx = 0
        self._total_latency_ms = 0.0
        self._by_route_status: Counter[tuple[str, int]] = Counter()
        self._events: Counter[str] = Counter()

    def increment(self, event: str, amount: int = 1) -> None:
        with self._lock:
            self._events[event] += amount

    def record(self, *, route: str, status_code: int, latency_ms: float) -> None:
        with self._lock:
            self._requests_total += 1
            if status_code >= 500:
                self._requests_5xx += 1
            self._total_latency_ms += latency_ms
            self._by_route_status[(route, status_code)] += 1

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            return MetricsSnapshot(
                requests_total=self._requests_total,
                requests_5xx=self._requests_5xx,
                total_latency_ms=self._total_latency_ms,
                by_route_status=dict(self._by_route_status),
                events=dict(self._events),
            )

    def to_prometheus(self) -> str:
        snap = self.snapshot()
        lines: list[str] = []
        lines += _family(
            "ats_requests_total", "Total HTTP requests", "counter",
            [f"ats_requests_total {snap.requests_total}"],
        )
        lines += _family(
            "ats_requests_5xx_total", "Total 5xx HTTP requests", "counter",
            [f"ats_requests_5xx_total {snap.requests_5xx}"],
        )
        lines += _family(
            "ats_request_avg_latency_ms", "Average request latency ms", "gauge",
            [f"ats_request_avg_latency_ms {snap.avg_latency_ms:.2f}"],
        )
        lines += _family(
            "ats_route_requests_total", "HTTP requests by route template and status", "counter",
            (
                f'ats_route_requests_total{{route="{route}",status="{status_code}"}} {count}'
                for (route, status_code), count in sorted(snap.by_route_status.items())
            ),
        )
        lines += _family(
            "ats_events_total", "Pipeline moves, screenings and LLM fallbacks", "counter",
            (
                f'ats_events_total{{event="{event}"}} {count}'
                for event, count in sorted(snap.events.items())
            ),
        )
        return "\n".join(lines) + "\n"


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def route_label(request: Request) -> str:
    # Candidate and job ids would otherwise explode label cardinality.
    route = request.scope.get("route")
    template = getattr(route, "path", None)
    return template if isinstance(template, str) else request.url.path


async def observe_request(
    request: Request,
    call_next,
    *,
    metrics: MetricsRegistry,
):
    start = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        latency_ms = (time.perf_counter() - start) * 1000.0
        metrics.record(route=route_label(request), status_code=500, latency_ms=latency_ms)
        logger.exception(
            "request_failed method=%s path=%s latency_ms=%.2f",
            request.method,
            request.url.path,
            latency_ms,
        )
        raise

    latency_ms = (time.perf_counter() - start) * 1000.0
    metrics.record(route=route_label(request), status_code=response.status_code, latency_ms=latency_ms)
    logger.info(
        "request_complete method=%s path=%s status=%s latency_ms=%.2f",
        request.method,
        request.url.path,
        response.status_code,
        latency_ms,
    )
    return response
