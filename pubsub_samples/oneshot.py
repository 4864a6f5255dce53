from __future__ import annotations

# Synchronization between the MQTT network thread and main().
#
# The callback thread calls `signal()` once the awaited event happened (a
# message or an error); the main thread blocks in `wait()` and then closes the
# session. Only the first `signal()` counts.
#
# `CountdownGate` is the same idea for N events (one per confirmed publish).

import threading


class OneShotSignal:
    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()

    def signal(self) -> bool:
        """Fire the signal. Returns False if it had already fired."""
        with self._lock:
            if self._event.is_set():
                return False
            self._event.set()
            return True

    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until signalled (forever by default)."""
        return self._event.wait(timeout)


class CountdownGate:
    """Released once `count_down()` has been called `count` times."""

    def __init__(self, count: int) -> None:
        if count < 0:
            raise ValueError("count must be >= 0")
        self._remaining = count
        self._cond = threading.Condition()

    @property
    def remaining(self) -> int:
        with self._cond:
            return self._remaining

    def count_down(self) -> None:
        with self._cond:
            if self._remaining > 0:
                self._remaining -= 1
                if self._remaining == 0:
                    self._cond.notify_all()

    def release(self) -> None:
        """Open the gate whatever the count (e.g. the connection is gone)."""
        with self._cond:
            self._remaining = 0
            self._cond.notify_all()

    def wait(self, timeout: float | None = None) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: self._remaining == 0, timeout=timeout)
