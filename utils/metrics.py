# User value: counts uploads and request latency so operators can see when posting slows down or fails.
import threading
from collections import defaultdict

_LOCK = threading.Lock()
_COUNTERS: dict[str, int] = defaultdict(int)
_LATENCY: dict[str, dict[str, float]] = {}


def _key(name: str, labels: dict) -> str:
    if not labels:
        return name
    parts = ",".join(f"{k}={labels[k]}" for k in sorted(labels))
    return f"{name}{{{parts}}}"


def incr(name: str, value: int = 1, **labels) -> None:
    with _LOCK:
        _COUNTERS[_key(name, labels)] += value


def observe_ms(name: str, duration_ms: float, **labels) -> None:
    key = _key(name, labels)
    with _LOCK:
        stats = _LATENCY.setdefault(key, {"count": 0, "sum_ms": 0.0, "max_ms": 0.0})
        stats["count"] += 1
        stats["sum_ms"] += float(duration_ms)
        stats["max_ms"] = max(stats["max_ms"], float(duration_ms))


def snapshot() -> dict:
    with _LOCK:
        return {
            "counters": dict(_COUNTERS),
            "latency": {k: dict(v) for k, v in _LATENCY.items()},
        }


def reset() -> None:
    with _LOCK:
        _COUNTERS.clear()
        _LATENCY.clear()
