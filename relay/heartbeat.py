"""Cancellable periodic status notifier.

Architectural role:
    Keeps an external "work in progress" signal alive (for example Telegram's
    `upload_photo` chat action) while a slow, unbounded-duration operation is
    in flight. Used by `relay.core.pipeline` around image-generation calls.

Lifecycle:
    1. `start()` invokes the action once immediately and schedules a recurring
       trigger every `interval_seconds`.
    2. Each trigger increments `tick_count` and invokes the action unless the
       previous invocation is still running (the trigger is then skipped but
       still counted).
    3. The session ends on an explicit `cancel()` or once `max_ticks` scheduled
       triggers have fired.

Concurrency model:
    One timer task per session on the running event loop. Action invocations
    are spawned as separate tasks and serialized by the `busy` gate, which is
    set synchronously before each invocation task is created. Sessions share
    no state and there is no registry of active sessions.

Error handling strategy:
    Action failures are caught at the tick boundary, reported to the optional
    `on_error` observer (or logged), and discarded. They never stop the
    session and never reach the caller of `start()`/`cancel()`.

Cancellation:
    `cancel()` is idempotent, never raises, never interrupts an in-flight
    action, and may be called from inside the action, from the event loop, or
    from another thread. The tick's check-and-spawn and `cancel()` share a
    lock, so no invocation is spawned once `cancel()` has returned.
"""

import asyncio
import inspect
import logging
import threading
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable

logger = logging.getLogger(__name__)

Action = Callable[[], Any]
ErrorObserver = Callable[[BaseException], None]
Sleeper = Callable[[float], Awaitable[Any]]

DEFAULT_INTERVAL_SECONDS = 4.5
DEFAULT_MAX_TICKS = 6


@dataclass(frozen=True)
class HeartbeatConfig:
    """Timing limits for one heartbeat session."""

    interval_seconds: float = DEFAULT_INTERVAL_SECONDS
    max_ticks: int = DEFAULT_MAX_TICKS

    def __post_init__(self) -> None:
        if isinstance(self.max_ticks, bool) or not isinstance(self.max_ticks, int):
            raise ValueError("max_ticks must be an integer")
        if self.max_ticks <= 0:
            raise ValueError("max_ticks must be > 0")
        # Also rejects NaN.
        if not self.interval_seconds > 0:
            raise ValueError("interval_seconds must be > 0")


class HeartbeatSession:
    """One in-flight "notify periodically" task.

    States:
        - Active: accepting triggers; may be busy or idle.
        - Cancelled: terminal; no further invocations.

    Attributes exposed read-only:
        tick_count: Scheduled triggers handled so far (skips included).
        invocations: Action invocations started, including the immediate one.
        busy: Whether an action invocation is currently in flight.
        cancelled: Whether the session reached its terminal state.
    """

    def __init__(
        self,
        action: Action,
        config: HeartbeatConfig | None = None,
        *,
        on_error: ErrorObserver | None = None,
        sleep: Sleeper | None = None,
        name: str = "heartbeat",
    ) -> None:
        self._action = action
        self.config = config or HeartbeatConfig()
        self._on_error = on_error
        self._sleep = sleep or asyncio.sleep
        self.name = name

        self._tick_count = 0
        self._invocations = 0
        self._busy = False
        self._cancelled = False
        self._started = False
        # Re-entrant: a tick cancels the session while holding it.
        self._lock = threading.RLock()

        self._loop: asyncio.AbstractEventLoop | None = None
        self._timer: asyncio.Task | None = None
        self._inflight: asyncio.Task | None = None

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def invocations(self) -> int:
        return self._invocations

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    # ============================================================
    # Lifecycle
    # ============================================================

    def start(self) -> Callable[[], None]:
        """Fire the immediate invocation and arm the recurring trigger.

        Must be called from a coroutine running on the event loop that should
        own the session. Returns without waiting for the action.

        Returns:
            The session's `cancel` callable.

        Raises:
            RuntimeError: If the session was already started, or no event loop
                is running.
        """
        if self._started:
            raise RuntimeError(f"{self.name} session already started")
        self._started = True

        if self._cancelled:
            return self.cancel

        self._loop = asyncio.get_running_loop()
        self._spawn_invocation()
        self._timer = self._loop.create_task(self._run_timer(), name=f"{self.name}-timer")
        return self.cancel

    def cancel(self) -> None:
        """Stop future triggers and release the recurring trigger.

        Safe to call any number of times, before or after natural expiry,
        and from any thread.
        """
        with self._lock:
            self._cancelled = True
            timer, self._timer = self._timer, None

        if timer is None or self._loop is None:
            return

        logger.debug(
            "%s status updates cancelled, tick_count=%d, invocations=%d",
            self.name,
            self._tick_count,
            self._invocations,
        )

        try:
            running_loop = asyncio.get_running_loop()
        except RuntimeError:
            running_loop = None

        if running_loop is self._loop:
            # The timer task exits on its own when it cancels itself on expiry.
            if timer is not asyncio.current_task():
                timer.cancel()
        elif not self._loop.is_closed():
            self._loop.call_soon_threadsafe(timer.cancel)

    async def wait_idle(self) -> None:
        """Wait until no action invocation is in flight."""
        while self._inflight is not None and not self._inflight.done():
            await asyncio.wait({self._inflight})

    # ============================================================
    # Trigger handling
    # ============================================================

    async def _run_timer(self) -> None:
        while not self._cancelled:
            await self._sleep(self.config.interval_seconds)
            self._on_tick()

    def _on_tick(self) -> None:
        with self._lock:
            if self._cancelled or self._tick_count >= self.config.max_ticks:
                self.cancel()
                return

            self._tick_count += 1

            if self._busy:
                logger.debug(
                    "%s tick %d skipped, previous invocation still running",
                    self.name,
                    self._tick_count,
                )
            else:
                self._spawn_invocation()

            if self._tick_count >= self.config.max_ticks:
                self.cancel()

    def _spawn_invocation(self) -> None:
        self._busy = True
        self._invocations += 1
        self._inflight = self._loop.create_task(
            self._invoke(self._tick_count), name=f"{self.name}-action"
        )

    async def _invoke(self, tick: int) -> None:
        try:
            logger.debug("%s invoking action, tick_count=%d", self.name, tick)
            result = self._action()
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            self._report(exc)
        finally:
            self._busy = False

    def _report(self, exc: Exception) -> None:
        if self._on_error is None:
            logger.exception("%s action failed", self.name)
            return
        try:
            self._on_error(exc)
        except Exception:
            logger.exception("%s error observer failed", self.name)


def start_heartbeat(
    action: Action,
    config: HeartbeatConfig | None = None,
    *,
    on_error: ErrorObserver | None = None,
    sleep: Sleeper | None = None,
    name: str = "heartbeat",
) -> Callable[[], None]:
    """Start a heartbeat session and return its `cancel` callable."""
    session = HeartbeatSession(action, config, on_error=on_error, sleep=sleep, name=name)
    return session.start()


@asynccontextmanager
async def heartbeat_during(
    action: Action,
    config: HeartbeatConfig | None = None,
    *,
    on_error: ErrorObserver | None = None,
    sleep: Sleeper | None = None,
    name: str = "heartbeat",
) -> AsyncIterator[HeartbeatSession]:
    """Run a heartbeat session for the duration of the `async with` body.

    The session is cancelled on exit, including when the body raises. An
    in-flight action invocation is left to finish on its own.
    """
    session = HeartbeatSession(action, config, on_error=on_error, sleep=sleep, name=name)
    session.start()
    try:
        yield session
    finally:
        session.cancel()
