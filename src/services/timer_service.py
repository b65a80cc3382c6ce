"""
Timer Service - Cancellable per-session timers.

This service handles:
- Scheduling callbacks through a pluggable scheduler (threads by default)
- One turn timer, one game-lifetime timer and one purge timer per session
- Cancelling any prior handle before a new one is armed for the same purpose
"""

import logging
import threading
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

TURN_TIMER = "turn"
GAME_TIMER = "game"
PURGE_TIMER = "purge"


class TimerHandle:
    """A scheduled callback that can be cancelled until it fires."""

    def __init__(self, name: str = ""):
        self.name = name
        self._cancelled = False
        self._fired = False

    @property
    def active(self) -> bool:
        return not self._cancelled and not self._fired

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def fired(self) -> bool:
        return self._fired

    def cancel(self) -> None:
        self._cancelled = True

    def _mark_fired(self) -> bool:
        """Record that the callback is running. False if it was cancelled first."""
        if self._cancelled or self._fired:
            return False
        self._fired = True
        return True


class ThreadingTimerHandle(TimerHandle):
    """Handle backed by a daemon ``threading.Timer``."""

    def __init__(self, delay_seconds: float, callback: Callable[[], None], name: str = ""):
        super().__init__(name)
        self._callback = callback
        self._timer = threading.Timer(delay_seconds, self._run)
        self._timer.daemon = True
        if name:
            self._timer.name = f"timer-{name}"

    def start(self) -> 'ThreadingTimerHandle':
        self._timer.start()
        return self

    def cancel(self) -> None:
        super().cancel()
        self._timer.cancel()

    def _run(self):
        if not self._mark_fired():
            return
        try:
            self._callback()
        except Exception as e:
            logger.error(f"Unhandled error in timer {self.name}: {e}")


class ThreadingTimerScheduler:
    """Default scheduler: one daemon thread per armed timer."""

    def schedule(self, delay_seconds: float, callback: Callable[[], None], name: str = "") -> TimerHandle:
        return ThreadingTimerHandle(delay_seconds, callback, name).start()


class SessionTimers:
    """Owns the timer handles of every session, keyed by session id and purpose."""

    def __init__(self, scheduler=None):
        self.scheduler = scheduler or ThreadingTimerScheduler()
        self._handles: Dict[str, Dict[str, TimerHandle]] = {}
        self._lock = threading.Lock()

    def arm(self, session_id: str, purpose: str, delay_seconds: float, callback: Callable[[], None]) -> TimerHandle:
        """
        Arm a timer, cancelling any previous handle for the same session and purpose.

        Args:
            session_id: Session the timer belongs to
            purpose: One of TURN_TIMER, GAME_TIMER, PURGE_TIMER
            delay_seconds: Seconds until the callback runs
            callback: Zero-argument callable

        Returns:
            The new TimerHandle
        """
        with self._lock:
            previous = self._handles.get(session_id, {}).get(purpose)
            if previous is not None:
                previous.cancel()
            handle = self.scheduler.schedule(delay_seconds, callback, name=f"{session_id}:{purpose}")
            self._handles.setdefault(session_id, {})[purpose] = handle

        logger.debug(f"Armed {purpose} timer for session {session_id} ({delay_seconds:.3f}s)")
        return handle

    def cancel(self, session_id: str, purpose: str) -> bool:
        """Cancel and forget one timer. Returns True if a handle existed."""
        with self._lock:
            handle = self._handles.get(session_id, {}).pop(purpose, None)
        if handle is None:
            return False
        handle.cancel()
        logger.debug(f"Cancelled {purpose} timer for session {session_id}")
        return True

    def clear_session(self, session_id: str, keep=()) -> None:
        """Cancel every timer of a session except the purposes listed in ``keep``."""
        with self._lock:
            handles = self._handles.get(session_id, {})
            purposes = [purpose for purpose in handles if purpose not in keep]
            removed = [handles.pop(purpose) for purpose in purposes]
            if not handles:
                self._handles.pop(session_id, None)
        for handle in removed:
            handle.cancel()

    def get(self, session_id: str, purpose: str) -> Optional[TimerHandle]:
        with self._lock:
            return self._handles.get(session_id, {}).get(purpose)

    def is_armed(self, session_id: str, purpose: str) -> bool:
        """True when a handle exists for the purpose and has neither fired nor been cancelled."""
        handle = self.get(session_id, purpose)
        return handle is not None and handle.active

    def forget(self, session_id: str) -> None:
        """Cancel everything and drop the session's entry entirely."""
        self.clear_session(session_id)
