"""Rolling in-process counters for cascade outcomes.

Counts are per worker process and only cover the last ``RETENTION_HOURS``;
they feed ``/health`` and the healthcheck script, nothing is persisted.
"""

from __future__ import annotations

from collections import defaultdict, deque
from datetime import datetime, timedelta
import threading

from membership_engine.core.time_provider import default_time_provider


RETENTION_HOURS = 25

CASCADE_COMPLETED = 'cascade_completed'
CASCADE_PARTIAL = 'cascade_partial'
CASCADE_CONFLICT = 'cascade_conflict'
CASCADE_RESUMED = 'cascade_resumed'
CASCADE_EVENTS = (CASCADE_COMPLETED, CASCADE_PARTIAL, CASCADE_CONFLICT, CASCADE_RESUMED)

_LOCK = threading.Lock()
_EVENTS: dict[str, deque[datetime]] = defaultdict(deque)


def _normalize(name: str) -> str:
    return str(name or '').strip().lower()


def _prune(bucket: deque[datetime], cutoff: datetime) -> None:
    while bucket and bucket[0] < cutoff:
        bucket.popleft()


def record_observability_event(name: str, *, at: datetime | None = None) -> None:
    event = _normalize(name)
    if not event:
        return
    now = at or default_time_provider.utc_naive()
    with _LOCK:
        bucket = _EVENTS[event]
        bucket.append(now)
        _prune(bucket, now - timedelta(hours=RETENTION_HOURS))


def count_observability_events(name: str, *, window_hours: int = 24, now: datetime | None = None) -> int:
    event = _normalize(name)
    if not event:
        return 0
    current = now or default_time_provider.utc_naive()
    hours = min(RETENTION_HOURS, max(1, int(window_hours or 24)))
    cutoff = current - timedelta(hours=hours)
    with _LOCK:
        bucket = _EVENTS.get(event)
        if not bucket:
            return 0
        return sum(1 for at in bucket if at >= cutoff)


def cascade_counter_snapshot(*, window_hours: int = 24) -> dict[str, int]:
    now = default_time_provider.utc_naive()
    return {
        name: count_observability_events(name, window_hours=window_hours, now=now)
        for name in CASCADE_EVENTS
    }


def clear_observability_events() -> None:
    with _LOCK:
        _EVENTS.clear()
