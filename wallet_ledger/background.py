"""
Background Dispatcher Module

Bounded work queue served by daemon worker threads. Post-commit side
effects (audit appends, notifications) are submitted here so that the
caller of a transfer never waits for them. When the queue is full the work
is dropped and a warning is logged.
"""

import threading
from queue import Queue, Empty, Full
from typing import Any, Callable, List, Optional

from .config import get_config
from .logging_config import get_logger


class BackgroundDispatcher:
    """Fire-and-forget executor with a bounded queue"""

    def __init__(self, max_queue_size: Optional[int] = None,
                 workers: Optional[int] = None, name: str = "ledger-background"):
        config = get_config()
        self.max_queue_size = max_queue_size or config.background_queue_size
        self.worker_count = workers or config.background_workers
        self.name = name
        self.running = False
        self.dropped = 0
        self._queue: Queue = Queue(maxsize=self.max_queue_size)
        self._threads: List[threading.Thread] = []
        self._pending = 0
        self._idle = threading.Condition()
        self.logger = get_logger("wallet_ledger.background")

    def start(self) -> None:
        """Start the worker threads"""
        if self.running:
            return
        self.running = True
        for i in range(self.worker_count):
            thread = threading.Thread(target=self._work, name=f"{self.name}-{i}")
            thread.daemon = True
            thread.start()
            self._threads.append(thread)
        self.logger.info(f"Background dispatcher started with {self.worker_count} workers")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop accepting work, drain the queue and join the workers"""
        with self._idle:
            self.running = False
        for thread in self._threads:
            thread.join(timeout=timeout)
        self._threads = []

        # Workers that timed out may leave tasks behind
        while True:
            try:
                _, _, _, label = self._queue.get_nowait()
            except Empty:
                break
            with self._idle:
                self.dropped += 1
            self.logger.warning(f"Background dispatcher stopped, dropped {label}")
            self._task_done()
        self.logger.info("Background dispatcher stopped")

    def is_running(self) -> bool:
        return self.running

    def submit(self, fn: Callable[..., Any], *args: Any,
               description: Optional[str] = None, **kwargs: Any) -> bool:
        """
        Queue ``fn(*args, **kwargs)`` for a worker

        Returns:
            True if queued, False if the work was dropped
        """
        label = description or getattr(fn, '__name__', repr(fn))
        with self._idle:
            if not self.running:
                self.dropped += 1
                reason = "Background dispatcher not running"
            else:
                try:
                    self._queue.put_nowait((fn, args, kwargs, label))
                except Full:
                    self.dropped += 1
                    reason = f"Background queue full ({self.max_queue_size})"
                else:
                    self._pending += 1
                    return True
        self.logger.warning(f"{reason}, dropped {label}")
        return False

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every queued task finished; False on timeout"""
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout)

    def pending(self) -> int:
        with self._idle:
            return self._pending

    def _task_done(self) -> None:
        with self._idle:
            self._pending -= 1
            if self._pending == 0:
                self._idle.notify_all()

    def _work(self) -> None:
        while self.running or not self._queue.empty():
            try:
                fn, args, kwargs, label = self._queue.get(timeout=0.1)
            except Empty:
                continue
            try:
                fn(*args, **kwargs)
            except Exception as e:
                self.logger.error(f"Background task {label} failed: {e}", exc_info=True)
            finally:
                self._task_done()
