"""Serial executor: single writer for the device registry.

Adapted from the paho → worker-pool decoupling: the paho network thread
and the tick trigger only enqueue work (~0.01ms) and return. Exactly one
worker thread drains the queue, so ingest mutations and ticks never run
concurrently and execute in arrival order, with no priority between them.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 10000

Task = Callable[[], object]


class SerialExecutor:
    """Bounded queue + one worker thread.

    - ``submit()`` never blocks; returns False when the queue is full
    - ``stop(drain=True)`` processes everything already queued
    """

    def __init__(self, max_queue_size: int = DEFAULT_QUEUE_SIZE, name: str = "aggregator-worker"):
        self._queue: "queue.Queue[Task]" = queue.Queue(maxsize=max_queue_size)
        self._name = name
        self._stop_event = threading.Event()
        self._worker: Optional[threading.Thread] = None

        # Metrics
        self._submitted = 0
        self._dropped = 0
        self._executed = 0
        self._errors = 0
        self._lock = threading.Lock()

    def start(self) -> None:
        if self._worker is not None:
            return
        self._stop_event.clear()
        self._worker = threading.Thread(target=self._worker_loop, daemon=True, name=self._name)
        self._worker.start()
        logger.info("[EXECUTOR] Started queue_max=%d", self._queue.maxsize)

    def stop(self, drain: bool = True, timeout: float = 5.0) -> None:
        """Stop the worker. If drain=True, run remaining tasks first."""
        if drain and self._worker is not None:
            self._queue.join()
        self._stop_event.set()
        if self._worker is not None:
            self._worker.join(timeout=timeout)
            self._worker = None
        logger.info("[EXECUTOR] Stopped. %s", self.metrics)

    def submit(self, task: Task) -> bool:
        """Enqueue a task. Returns False if the queue is full."""
        try:
            self._queue.put_nowait(task)
        except queue.Full:
            with self._lock:
                self._dropped += 1
            logger.warning("[EXECUTOR] Queue full, task dropped")
            return False
        with self._lock:
            self._submitted += 1
        return True

    def _worker_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                task = self._queue.get(timeout=0.5)
            except queue.Empty:
                continue

            try:
                task()
                with self._lock:
                    self._executed += 1
            except Exception as e:
                with self._lock:
                    self._errors += 1
                logger.exception("[EXECUTOR] Task error: %s", e)
            finally:
                self._queue.task_done()

    @property
    def is_running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    @property
    def metrics(self) -> dict:
        with self._lock:
            return {
                "queue_depth": self._queue.qsize(),
                "queue_max": self._queue.maxsize,
                "submitted": self._submitted,
                "dropped": self._dropped,
                "executed": self._executed,
                "errors": self._errors,
            }
