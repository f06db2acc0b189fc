from __future__ import annotations

import threading
import time
from typing import Callable


class DecisionTimeout(RuntimeError):
    """Raised when a decision runs past its time budget or is cancelled."""


Clock = Callable[[], float]


class DecisionRuntime:
    """Deadline + cancellation helper passed through the evaluation layers."""

    def __init__(
        self,
        *,
        time_budget_ms: float | None = None,
        cancel_event: threading.Event | None = None,
        clock: Clock = time.perf_counter,
    ) -> None:
        self._cancel_event = cancel_event if cancel_event is not None else threading.Event()
        self._clock = clock
        self._started_at = clock()
        self._deadline = None if time_budget_ms is None else self._started_at + max(0.0, float(time_budget_ms)) / 1000.0

    def cancel(self) -> None:
        self._cancel_event.set()

    def is_cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def expired(self) -> bool:
        if self.is_cancelled():
            return True
        return self._deadline is not None and self._clock() >= self._deadline

    def remaining_s(self) -> float | None:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def elapsed_ms(self) -> float:
        return (self._clock() - self._started_at) * 1000.0

    def raise_if_expired(self) -> None:
        if self.is_cancelled():
            raise DecisionTimeout("Decision cancelled.")
        if self._deadline is not None and self._clock() >= self._deadline:
            raise DecisionTimeout("Decision time budget exhausted.")
