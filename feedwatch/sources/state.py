"""
Per-source runtime state and the staleness gate.

Each monitored source gets its own record with its own locks, so
unrelated sources never wait on each other:

- ``try_acquire_check()`` is the staleness gate. It runs under a
  ``threading.Lock`` and performs no I/O, so it is safe to call from any
  thread or coroutine.
- ``run_lock`` is an ``asyncio.Lock`` held for the whole fetch, filter,
  notify and mark sequence of one source.
"""

import asyncio
import threading
import time
from collections.abc import Callable, Iterable, Iterator

from feedwatch.sources.schemas import MonitoredSource

Clock = Callable[[], float]


class SourceState:
    """Mutable runtime state of one monitored source."""

    def __init__(
        self,
        source: MonitoredSource,
        needs_baseline: bool = False,
        clock: Clock = time.monotonic,
    ) -> None:
        self.source = source
        self.needs_baseline = needs_baseline
        self.run_lock = asyncio.Lock()
        self._clock = clock
        self._interval = source.poll_interval_seconds
        self._last_checked_at: float | None = None
        self._gate_lock = threading.Lock()

    @property
    def key(self) -> str:
        return self.source.key

    @property
    def last_checked_at(self) -> float | None:
        return self._last_checked_at

    def try_acquire_check(self) -> bool:
        """
        Return True if the source is due for a check, claiming the check.

        A source is due when it was never checked or when at least one poll
        interval has elapsed since the last claimed check. Claiming and
        deciding happen in the same critical section, so the method returns
        True at most once per interval.
        """
        with self._gate_lock:
            now = self._clock()
            last = self._last_checked_at
            if last is None or now - last >= self._interval:
                self._last_checked_at = now
                return True
            return False

    def seconds_until_due(self) -> float:
        """Seconds left before the next check is allowed (0 when due)."""
        with self._gate_lock:
            if self._last_checked_at is None:
                return 0.0
            remaining = self._last_checked_at + self._interval - self._clock()
            return max(0.0, remaining)


class SourceStateRegistry:
    """State records for every monitored source, indexed by source key."""

    def __init__(
        self,
        sources: Iterable[MonitoredSource],
        needs_baseline: bool = False,
        clock: Clock = time.monotonic,
    ) -> None:
        self._states: dict[str, SourceState] = {}
        for source in sources:
            if source.key in self._states:
                raise ValueError(f"Duplicate source key: {source.key}")
            self._states[source.key] = SourceState(
                source, needs_baseline=needs_baseline, clock=clock
            )

    def get(self, key: str) -> SourceState:
        return self._states[key]

    def __contains__(self, key: object) -> bool:
        return key in self._states

    def __iter__(self) -> Iterator[SourceState]:
        return iter(self._states.values())

    def __len__(self) -> int:
        return len(self._states)
