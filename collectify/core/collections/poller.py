"""Bounded, cancellable polling of a bulk operation's status."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)

BulkFetcher = Callable[[], "dict[str, Any] | None"]


class PollState(str, Enum):
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"


_REMOTE_OUTCOMES: dict[str, PollState] = {
    "COMPLETED": PollState.COMPLETED,
    "FAILED": PollState.FAILED,
    "EXPIRED": PollState.FAILED,
    "CANCELED": PollState.CANCELLED,
}


@dataclass(frozen=True)
class PollOutcome:
    state: PollState
    attempts: int
    operation: dict[str, Any] | None = None


class BulkStatusPoller:
    """Poll ``fetch`` until the bulk operation leaves CREATED/RUNNING.

    The wait between attempts starts at ``initial_interval`` seconds and is
    multiplied by ``backoff`` after every attempt, capped at
    ``max_interval``.  Polling ends in ``TIMED_OUT`` after ``max_attempts``
    fetches, or in ``CANCELLED`` as soon as :meth:`cancel` is called from
    another thread.  A remote ``CANCELED`` status also ends in ``CANCELLED``.
    """

    def __init__(
        self,
        fetch: BulkFetcher,
        *,
        initial_interval: float = 5.0,
        backoff: float = 2.0,
        max_interval: float = 60.0,
        max_attempts: int = 30,
        on_update: Callable[[dict[str, Any] | None], None] | None = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._fetch = fetch
        self.initial_interval = max(0.0, initial_interval)
        self.backoff = max(1.0, backoff)
        self.max_interval = max(self.initial_interval, max_interval)
        self.max_attempts = max_attempts
        self._on_update = on_update
        self._cancelled = threading.Event()
        self.state = PollState.POLLING
        self.attempts = 0
        self.last_operation: dict[str, Any] | None = None

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def interval_after(self, attempt: int) -> float:
        return min(self.initial_interval * (self.backoff ** max(0, attempt - 1)), self.max_interval)

    def _finish(self, state: PollState) -> PollOutcome:
        self.state = state
        logger.info("Bulk status polling ended: %s after %s attempt(s)", state.value, self.attempts)
        return PollOutcome(state=state, attempts=self.attempts, operation=self.last_operation)

    def run(self) -> PollOutcome:
        if self.state is not PollState.POLLING:
            raise RuntimeError(f"Poller already finished ({self.state.value})")
        while True:
            if self.cancelled:
                return self._finish(PollState.CANCELLED)

            self.attempts += 1
            try:
                operation = self._fetch()
            except Exception:
                self.state = PollState.FAILED
                raise
            self.last_operation = operation
            if self._on_update is not None:
                self._on_update(operation)

            status = str((operation or {}).get("status") or "").upper()
            outcome = _REMOTE_OUTCOMES.get(status)
            if outcome is not None:
                return self._finish(outcome)
            if self.attempts >= self.max_attempts:
                return self._finish(PollState.TIMED_OUT)
            if self._cancelled.wait(self.interval_after(self.attempts)):
                return self._finish(PollState.CANCELLED)


__all__ = ["BulkStatusPoller", "PollOutcome", "PollState"]
