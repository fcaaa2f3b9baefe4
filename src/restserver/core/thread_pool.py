"""
=============================================================================
WORKER THREAD POOL
=============================================================================

A fixed set of worker threads pulling connections off a bounded queue.

    ┌──────────────┐   submit()   ┌───────────────┐   get()   ┌──────────┐
    │ accept loop  │ ───────────► │  task queue   │ ────────► │ Worker-0 │
    │ (main thread)│              │ (maxsize = N) │ ────────► │ Worker-1 │
    └──────────────┘              └───────────────┘ ────────► │ Worker-2 │
                                                              └──────────┘

The accept loop never blocks on a slow client: it hands the connection to
the queue and goes straight back to accept(). A slow client only ties up
the one worker serving it.

If every worker is busy AND the queue is full, submit() returns False and
the caller drops the connection. Queuing without limit would let a burst
of clients exhaust memory.

Shutdown uses the "poison pill" pattern: one None per worker is queued
behind any pending connections, so queued work finishes before the
workers exit.

=============================================================================
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional


logger = logging.getLogger(__name__)


@dataclass
class Task:
    """A deferred call: func(*args), plus when it was queued."""
    func: Callable[..., Any]
    args: tuple = ()
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """
    Worker thread that runs tasks until it receives the poison pill.

    An exception escaping a task is logged and counted; it never kills the
    worker.
    """

    def __init__(self, task_queue: "queue.Queue[Optional[Task]]", worker_id: int, name_prefix: str):
        # daemon=True: a stuck client must not keep the process alive
        super().__init__(name=f"{name_prefix}-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.busy = False
        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"{self.name} started")

        while True:
            task = self.task_queue.get()
            try:
                if task is None:
                    break
                self._execute(task)
            finally:
                self.task_queue.task_done()

        logger.debug(f"{self.name} stopped")

    def _execute(self, task: Task):
        self.busy = True
        start = time.time()
        try:
            task.func(*task.args)
            self.tasks_completed += 1
        except Exception as e:
            self.tasks_failed += 1
            logger.exception(f"{self.name} task failed after {time.time() - start:.3f}s: {e}")
        finally:
            self.busy = False
            logger.debug(
                f"{self.name} finished task in {time.time() - start:.3f}s "
                f"(queued {start - task.submitted_at:.3f}s)"
            )


class ThreadPool:
    """
    Fixed-size pool of worker threads.

    Usage:
        pool = ThreadPool(max_workers=8, queue_size=128)
        pool.start()
        if not pool.submit(handle, conn):
            conn.close()  # overloaded
        pool.shutdown(wait=True, timeout=30.0)
    """

    def __init__(self, max_workers: int = 8, queue_size: int = 128, name_prefix: str = "Worker"):
        """
        Args:
            max_workers: Number of worker threads started by start().
            queue_size: Tasks allowed to wait for a worker.
            name_prefix: Thread name prefix (shows up in log records).
        """
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")

        self.max_workers = max_workers
        self.queue_size = queue_size
        self.name_prefix = name_prefix

        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutting_down = False

    def start(self):
        """Start the worker threads. Idempotent."""
        with self._lock:
            if self._started:
                return
            logger.info(f"Starting thread pool with {self.max_workers} workers")
            for worker_id in range(self.max_workers):
                worker = Worker(self._task_queue, worker_id, self.name_prefix)
                self._workers.append(worker)
                worker.start()
            self._started = True
            self._shutting_down = False

    def submit(self, func: Callable[..., Any], *args: Any) -> bool:
        """
        Queue func(*args) for a worker.

        Never blocks.

        Returns:
            True if queued, False if the queue is full.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._started or self._shutting_down:
            raise RuntimeError("Thread pool is not running")

        try:
            self._task_queue.put_nowait(Task(func=func, args=args))
        except queue.Full:
            return False
        return True

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None) -> dict:
        """
        Stop the pool.

        Args:
            wait: Join the workers after queueing the poison pills, so
                connections already queued are still served.
            timeout: Upper bound, in seconds, for the whole join.

        Returns:
            The pool stats as of shutdown, or {} if it was not running.
        """
        with self._lock:
            if not self._started:
                return {}
            self._shutting_down = True
            workers = list(self._workers)

        logger.info("Shutting down thread pool...")

        deadline = None if timeout is None else time.time() + timeout

        for _ in workers:
            # Pills must land behind pending tasks; the workers keep draining
            # the queue while we wait for space, up to the deadline.
            remaining = None if deadline is None else max(0.0, deadline - time.time())
            try:
                self._task_queue.put(None, timeout=remaining)
            except queue.Full:
                logger.warning("Task queue still full at shutdown, leaving workers behind")
                break

        if wait:
            for worker in workers:
                remaining = None if deadline is None else max(0.0, deadline - time.time())
                worker.join(remaining)
                if worker.is_alive():
                    logger.warning(f"{worker.name} still busy at shutdown")

        final_stats = self.stats
        with self._lock:
            self._workers.clear()
            self._started = False

        logger.info("Thread pool shutdown complete")
        return final_stats

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.busy)

    @property
    def queue_depth(self) -> int:
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        """Worker and task counters, for logs and tests."""
        return {
            "workers": len(self._workers),
            "busy": self.busy_workers,
            "queued": self.queue_depth,
            "completed": sum(w.tasks_completed for w in self._workers),
            "failed": sum(w.tasks_failed for w in self._workers),
        }
