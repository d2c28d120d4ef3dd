"""
Request Timing Middleware
Keeps rolling latency windows, overall and per API area (auth, discover,
matches, ...), and flags requests slower than the configured threshold.
"""

import logging
import time
from collections import defaultdict, deque
from threading import Lock
from typing import Callable, Deque, Dict, List, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ..config import get_settings

logger = logging.getLogger(__name__)


def area_for_path(path: str) -> str:
    """
    Group a request path by its first API segment.

    /api/matches/likes -> "matches", /health -> "health", / -> "root"
    """
    parts = [p for p in path.split("/") if p]
    if parts and parts[0] == "api":
        parts = parts[1:]
    return parts[0] if parts else "root"


def _summarize(window: Deque[float]) -> Dict[str, float]:
    if not window:
        return {"count": 0, "p50": 0.0, "p95": 0.0, "p99": 0.0, "mean": 0.0, "max": 0.0}
    ordered = sorted(window)
    return {
        "count": len(ordered),
        "p50": _percentile(ordered, 50),
        "p95": _percentile(ordered, 95),
        "p99": _percentile(ordered, 99),
        "mean": sum(ordered) / len(ordered),
        "max": ordered[-1],
    }


def _percentile(ordered: List[float], percentile: int) -> float:
    index = min(int(percentile / 100.0 * len(ordered)), len(ordered) - 1)
    return ordered[index]


class LatencyTracker:
    """Rolling latency windows with percentile stats."""

    def __init__(self, window_size: int = 1000, area_window_size: int = 200):
        self.window_size = window_size
        self.latencies: Deque[float] = deque(maxlen=window_size)
        self.by_area: Dict[str, Deque[float]] = defaultdict(lambda: deque(maxlen=area_window_size))
        self.slow_requests = 0
        self.lock = Lock()

    def record(self, latency_ms: float, area: str = "root", slow: bool = False) -> None:
        with self.lock:
            self.latencies.append(latency_ms)
            self.by_area[area].append(latency_ms)
            if slow:
                self.slow_requests += 1

    def get_stats(self) -> Dict[str, float]:
        """Overall count, p50/p95/p99, mean, max and the slow request total."""
        with self.lock:
            stats = _summarize(self.latencies)
            stats["slow_requests"] = self.slow_requests
            return stats

    def get_area_stats(self) -> Dict[str, Dict[str, float]]:
        with self.lock:
            return {area: _summarize(window) for area, window in sorted(self.by_area.items())}

    def reset(self) -> None:
        with self.lock:
            self.latencies.clear()
            self.by_area.clear()
            self.slow_requests = 0


_latency_tracker = LatencyTracker()


def get_latency_tracker() -> LatencyTracker:
    return _latency_tracker


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """
    Sets X-Process-Time on every response and records the latency under the
    request's API area.
    """

    def __init__(self, app, tracker: Optional[LatencyTracker] = None, slow_request_ms: Optional[int] = None):
        super().__init__(app)
        self.tracker = tracker or get_latency_tracker()
        self.slow_request_ms = slow_request_ms or get_settings().slow_request_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        area = area_for_path(request.url.path)
        slow = duration_ms > self.slow_request_ms
        self.tracker.record(duration_ms, area=area, slow=slow)
        response.headers["X-Process-Time"] = f"{duration_ms:.2f}ms"

        if slow:
            logger.warning(
                f"Slow {area} request: {request.method} {request.url.path} took {duration_ms:.0f}ms "
                f"(threshold {self.slow_request_ms}ms)"
            )
        return response
