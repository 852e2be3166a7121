"""
Auto-refresh scheduler

One background thread ticking on a fixed wall-clock period. Starting twice
never stacks a second timer; a failing tick is logged and the schedule
carries on unchanged (no backoff, no skipping).
"""

import threading
import time
from typing import Callable, Optional


class RefreshScheduler:

    def __init__(self, tick: Callable[[], object], interval_seconds: float = 30.0, name: str = "auto-refresh"):
        self.tick = tick
        self.interval_seconds = interval_seconds
        self.name = name
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._lock = threading.Lock()

        self.ticks = 0
        self.failures = 0
        self.last_tick: Optional[float] = None  # heartbeat
        self.last_error: Optional[str] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        """Start ticking. Returns False if a timer is already running."""
        with self._lock:
            if self.running:
                return False
            self._stop_event = threading.Event()
            self._thread = threading.Thread(target=self._loop, args=(self._stop_event,),
                                            name=self.name, daemon=True)
            self._thread.start()
        print(f"[SCHEDULER] {self.name} started (every {self.interval_seconds:g}s)")
        return True

    def stop(self, timeout: Optional[float] = 5.0) -> bool:
        """Stop ticking. Returns False if nothing was running."""
        with self._lock:
            thread = self._thread
            if thread is None:
                return False
            self._stop_event.set()
            self._thread = None
        if thread is not threading.current_thread():
            thread.join(timeout)
        print(f"[SCHEDULER] {self.name} stopped after {self.ticks} ticks")
        return True

    def run_once(self):
        """Run one tick, absorbing any failure"""
        try:
            self.tick()
        except Exception as e:
            self.failures += 1
            self.last_error = str(e)
            print(f"[SCHEDULER] {self.name} tick failed: {e}")
        finally:
            self.ticks += 1
            self.last_tick = time.time()

    def _loop(self, stop_event: threading.Event):
        # First tick lands one full period after start
        while not stop_event.wait(self.interval_seconds):
            self.run_once()
