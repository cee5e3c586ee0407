"""
=============================================================================
THREAD POOL
=============================================================================

Worker threads that serve accepted connections. The accept loop never
serves a connection itself; it hands each one to the pool and goes back to
``accept()``.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept loop ── submit(serve, conn) ──► [ job | job | job ]         │
    │                                            bounded queue             │
    │                                                │                     │
    │                        ┌───────────────────────┼──────────┐          │
    │                        ▼                       ▼          ▼          │
    │                 chirpy-worker-0      chirpy-worker-1    ...          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Sizing: ``min_workers`` threads start with the pool. When a job is queued
while every thread is busy, one more thread is started, up to
``max_workers``. A full queue makes ``submit`` return False so the caller
can answer 503 instead of blocking the accept loop.

Stopping: one ``None`` per thread is queued; a thread exits when it takes
one. A job that raises is logged and counted, and the thread carries on.

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any, Tuple
from enum import Enum


logger = logging.getLogger(__name__)

Job = Tuple[Callable[..., Any], tuple]


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


class Worker(threading.Thread):
    """Runs jobs from the shared queue until it receives ``None``."""

    def __init__(self, pool: "ThreadPool", worker_id: int):
        super().__init__(name=f"chirpy-worker-{worker_id}", daemon=True)
        self.pool = pool
        self.worker_id = worker_id
        self.state = WorkerState.IDLE

    def run(self):
        jobs = self.pool._jobs
        while True:
            job = jobs.get()
            try:
                if job is None:
                    break
                self._run_job(job)
            finally:
                jobs.task_done()
        self.state = WorkerState.STOPPED
        logger.debug("%s stopped", self.name)

    def _run_job(self, job: Job):
        func, args = job
        self.state = WorkerState.BUSY
        started = time.monotonic()
        try:
            func(*args)
        except Exception:
            self.pool._record(failed=True)
            logger.exception("%s: job failed after %.3fs", self.name, time.monotonic() - started)
        else:
            self.pool._record(failed=False)
        finally:
            self.state = WorkerState.IDLE


class ThreadPool:
    """
    Bounded pool of connection workers.

        with ThreadPool(min_workers=2, max_workers=8) as pool:
            if not pool.submit(serve, args=(conn,), block=False):
                reject(conn)

    Raises:
        ValueError: ``min_workers < 1`` or ``max_workers < min_workers``.
    """

    def __init__(self, min_workers: int = 4, max_workers: int = 16, queue_size: int = 100):
        if min_workers < 1:
            raise ValueError("min_workers must be at least 1")
        if max_workers < min_workers:
            raise ValueError("max_workers must be >= min_workers")

        self.min_workers = min_workers
        self.max_workers = max_workers

        self._jobs: "queue.Queue[Optional[Job]]" = queue.Queue(maxsize=queue_size)
        self._workers: list[Worker] = []
        self._lock = threading.Lock()
        self._running = False
        self._completed = 0
        self._failed = 0

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self):
        with self._lock:
            if self._running:
                return
            while len(self._workers) < self.min_workers:
                self._spawn()
            self._running = True
        logger.info("Thread pool started with %d workers (max %d)", self.min_workers, self.max_workers)

    def _spawn(self):
        """Start one more worker. Caller holds ``_lock``."""
        worker = Worker(self, len(self._workers))
        self._workers.append(worker)
        worker.start()

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        block: bool = True,
        queue_timeout: Optional[float] = None
    ) -> bool:
        """
        Queue ``func(*args)`` for a worker.

        Returns:
            False when the queue is full, True once the job is queued.

        Raises:
            RuntimeError: The pool is not running.
        """
        if not self._running:
            raise RuntimeError("Thread pool is not running")

        try:
            self._jobs.put((func, args), block=block, timeout=queue_timeout)
        except queue.Full:
            return False

        with self._lock:
            if len(self._workers) < self.max_workers and self.idle_workers == 0:
                logger.debug("All %d workers busy, adding one", len(self._workers))
                self._spawn()
        return True

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop every worker.

        With ``wait``, jobs already queued are given up to ``timeout``
        seconds (no limit when None) to be picked up first.
        """
        with self._lock:
            if not self._running:
                return
            self._running = False
            workers = list(self._workers)

        logger.info("Shutting down thread pool...")

        if wait:
            deadline = None if timeout is None else time.monotonic() + timeout
            while not self._jobs.empty():
                if deadline is not None and time.monotonic() >= deadline:
                    logger.warning("Queued jobs not drained in %ss, stopping anyway", timeout)
                    break
                time.sleep(0.05)

        for _ in workers:
            try:
                self._jobs.put(None, timeout=1.0)
            except queue.Full:
                logger.warning("Job queue full, a worker may miss its stop signal")
                break

        for worker in workers:
            worker.join(timeout=2.0)

        with self._lock:
            self._workers = [w for w in self._workers if w.is_alive()]

        logger.info("Thread pool shutdown complete")

    def _record(self, failed: bool):
        with self._lock:
            if failed:
                self._failed += 1
            else:
                self._completed += 1

    @property
    def size(self) -> int:
        return len(self._workers)

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state is WorkerState.BUSY)

    @property
    def idle_workers(self) -> int:
        return sum(1 for w in self._workers if w.state is WorkerState.IDLE)

    @property
    def stats(self) -> dict:
        with self._lock:
            completed, failed = self._completed, self._failed
        return {
            "workers": len(self._workers),
            "busy": self.busy_workers,
            "queued": self._jobs.qsize(),
            "completed": completed,
            "failed": failed,
        }

    def __enter__(self) -> "ThreadPool":
        self.start()
        return self

    def __exit__(self, *exc_info):
        self.shutdown()
