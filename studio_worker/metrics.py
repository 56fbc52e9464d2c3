"""
Thread-safe in-memory metrics for the worker.

  - counters:  requests.image, submit.fallback, poll.attempts, outcome.timeout, ...
  - latency:   last 100 samples per endpoint (ms)
  - errors:    last 50 failures for debugging

Resets on restart; served as-is at GET /metrics.
"""

import time
import threading
from collections import defaultdict, deque
from typing import Deque, Dict

_lock = threading.Lock()
_started_at = time.time()

MAX_SAMPLES = 100
MAX_ERRORS = 50

_counters: Dict[str, int] = defaultdict(int)
_latency: Dict[str, Deque[float]] = defaultdict(lambda: deque(maxlen=MAX_SAMPLES))
_recent_errors: Deque[dict] = deque(maxlen=MAX_ERRORS)


def inc_counter(name: str, amount: int = 1):
    with _lock:
        _counters[name] += amount


def get_counter(name: str) -> int:
    with _lock:
        return _counters.get(name, 0)


def record_latency(endpoint: str, duration_ms: float):
    with _lock:
        _latency[endpoint].append(duration_ms)


def record_error(endpoint: str, error_type: str, message: str):
    with _lock:
        _recent_errors.append({
            "timestamp": time.time(),
            "endpoint": endpoint,
            "error_type": error_type,
            "message": (message or "")[:300],
        })


def _percentiles(samples) -> dict:
    ordered = sorted(samples)
    n = len(ordered)
    return {
        "p50": ordered[n // 2],
        "p95": ordered[min(n - 1, int(n * 0.95))],
        "max": ordered[-1],
        "avg": sum(ordered) / n,
        "count": n,
    }


def get_snapshot() -> dict:
    with _lock:
        return {
            "timestamp": time.time(),
            "uptime_seconds": time.time() - _started_at,
            "counters": dict(_counters),
            "latency": {name: _percentiles(s) for name, s in _latency.items() if s},
            "recent_errors": list(_recent_errors)[-10:],
        }


def reset():
    """Clear all collected data (tests)."""
    with _lock:
        _counters.clear()
        _latency.clear()
        _recent_errors.clear()
