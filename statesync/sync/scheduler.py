"""Debounced scheduling of sync cycles."""

import threading
from collections.abc import Callable
from enum import Enum
from typing import Any, Protocol

import structlog

from statesync.models.config import DEFAULT_DEBOUNCE_MS

log = structlog.stdlib.get_logger()


class SchedulerState(str, Enum):
    IDLE = "IDLE"
    PENDING = "PENDING"
    RUNNING = "RUNNING"


class TimerHandle(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


def thread_timer(interval: float, function: Callable[[], None]) -> TimerHandle:
    timer = threading.Timer(interval, function)
    timer.daemon = True
    return timer


class SyncScheduler:
    """Collapses bursts of notifications into one sync cycle.

    The first ``notify()`` arms a timer; further notifications while the timer
    is armed do not push it back, so a cycle starts at most ``debounce_ms``
    after the first unsynced change. Notifications that arrive while a cycle
    is running schedule a follow-up cycle once it finishes.
    """

    def __init__(
        self,
        run_cycle: Callable[[], Any],
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        timer_factory: TimerFactory = thread_timer,
    ) -> None:
        """
        Initialize the scheduler.

        Args:
            run_cycle: Callable executing one sync cycle; exceptions are logged
            debounce_ms: Delay between the first notification and the cycle
            timer_factory: Creates a startable, cancellable timer
        """
        if debounce_ms < 0:
            raise ValueError(f"debounce_ms must be non-negative, got {debounce_ms}")

        self._run_cycle = run_cycle
        self._debounce_seconds: float = debounce_ms / 1000.0
        self._timer_factory = timer_factory

        self._condition = threading.Condition()
        self._state: SchedulerState = SchedulerState.IDLE
        self._timer: TimerHandle | None = None
        self._notified_while_running = False
        self._closed = False

    @property
    def state(self) -> SchedulerState:
        with self._condition:
            return self._state

    def notify(self) -> None:
        """Signal that there are unsynced changes."""
        with self._condition:
            if self._closed:
                return
            if self._state is SchedulerState.RUNNING:
                self._notified_while_running = True
                return
            if self._state is SchedulerState.PENDING:
                return

            self._state = SchedulerState.PENDING
            self._timer = self._timer_factory(self._debounce_seconds, self._on_timer)
            timer = self._timer

        log.debug("sync_scheduled", delay_seconds=self._debounce_seconds)
        timer.start()

    def run_now(self) -> Any:
        """
        Run a cycle immediately on the calling thread.

        An armed timer is cancelled. If a cycle is already running, nothing is
        started and ``None`` is returned.

        Returns:
            Whatever the cycle callable returned, or None
        """
        with self._condition:
            if self._state is SchedulerState.RUNNING:
                self._notified_while_running = True
                log.info("sync_already_running")
                return None
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._state = SchedulerState.RUNNING
            self._notified_while_running = False

        return self._execute()

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """Block until no cycle is pending or running. Returns False on timeout."""
        with self._condition:
            return self._condition.wait_for(
                lambda: self._state is SchedulerState.IDLE, timeout=timeout
            )

    def shutdown(self) -> None:
        """Cancel any armed timer and ignore further notifications."""
        with self._condition:
            self._closed = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            if self._state is SchedulerState.PENDING:
                self._state = SchedulerState.IDLE
                self._condition.notify_all()

        log.info("sync_scheduler_shutdown")

    def _on_timer(self) -> None:
        with self._condition:
            if self._state is not SchedulerState.PENDING:
                return
            self._timer = None
            self._state = SchedulerState.RUNNING
            self._notified_while_running = False

        self._execute()

    def _execute(self) -> Any:
        result = None
        try:
            result = self._run_cycle()
        except Exception as e:
            log.error("sync_cycle_raised", error=str(e), error_type=type(e).__name__)
        finally:
            with self._condition:
                self._state = SchedulerState.IDLE
                rerun = self._notified_while_running and not self._closed
                self._notified_while_running = False
                self._condition.notify_all()

        if rerun:
            log.debug("sync_rescheduled_after_run")
            self.notify()

        return result
