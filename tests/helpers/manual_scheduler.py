"""
Deterministic timer scheduler for tests.

Timers only fire when the test advances the fake clock, so timeout paths can be
exercised without sleeping or racing real threads.
"""

from src.services.timer_service import TimerHandle


class ManualTimerHandle(TimerHandle):
    def __init__(self, due_at, callback, name=""):
        super().__init__(name)
        self.due_at = due_at
        self.callback = callback


class ManualScheduler:
    """Drop-in replacement for ThreadingTimerScheduler driven by advance()."""

    def __init__(self):
        self.now = 0.0
        self.handles = []

    def schedule(self, delay_seconds, callback, name=""):
        handle = ManualTimerHandle(self.now + delay_seconds, callback, name)
        self.handles.append(handle)
        return handle

    def pending(self, name_suffix=None):
        """Active handles, optionally only those whose name ends with ``name_suffix``."""
        return [
            handle for handle in self.handles
            if handle.active and (name_suffix is None or handle.name.endswith(name_suffix))
        ]

    def advance(self, seconds):
        """Move the clock forward, firing due timers in order. Returns how many fired."""
        target = self.now + seconds
        fired = 0
        while True:
            due = [handle for handle in self.handles if handle.active and handle.due_at <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.due_at)
            self.now = max(self.now, handle.due_at)
            if handle._mark_fired():
                handle.callback()
                fired += 1
        self.now = target
        return fired

    def fire(self, handle):
        """Fire one handle immediately, as if its delay had elapsed."""
        if handle._mark_fired():
            handle.callback()
            return True
        return False
