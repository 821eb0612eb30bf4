"""
=============================================================================
WORKER POOL
=============================================================================

A fixed number of worker threads pulling jobs from one shared queue.

=============================================================================
WHY A FIXED POOL?
=============================================================================

Thread-per-connection puts no ceiling on concurrency:

    for conn in accept():
        Thread(target=handle, args=(conn,)).start()     # 10k clients,
                                                        # 10k threads

A pool of N workers caps it at N. Connection N+1 is not refused; it waits
in the queue until a worker frees up:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   acceptor ──submit(job)──►  ┌──────────────────────────┐           │
    │                              │ JOB QUEUE (unbounded)    │           │
    │                              │ job job job job ...      │           │
    │                              └────────────┬─────────────┘           │
    │                                           │ get()                   │
    │                  ┌────────────┬───────────┼────────────┐            │
    │                  ▼            ▼           ▼            ▼            │
    │             Worker-0     Worker-1    Worker-2     Worker-3          │
    │              (busy)       (idle)      (busy)       (busy)           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
GUARANTEES
=============================================================================

    EXACTLY ONCE    queue.Queue hands each item to exactly one get() call.

    AT MOST N       Only N threads ever call get(), and each runs one job
                    at a time.

    NEVER DROPPED   The queue has no maxsize, so put() never fails. Even
                    shutdown() only appends sentinels BEHIND queued jobs.

    ISOLATION       A job that raises (even SystemExit) is logged and
                    counted; the worker goes straight back to the
                    queue.

=============================================================================
SHUTDOWN: ONE SENTINEL PER WORKER
=============================================================================

    pool.shutdown()
        └─ queue.put(None) × N      each worker takes exactly one None
        └─ worker.join()    × N     and leaves its loop

Because the queue is FIFO, jobs submitted before shutdown() are all run
before any worker sees its sentinel.

=============================================================================
"""

import threading
import queue
import time
import logging
from enum import Enum
from typing import Callable, Optional


logger = logging.getLogger(__name__)


Job = Callable[[], object]

# Termination signal placed on the queue, one per worker
_SHUTDOWN = None


class WorkerState(Enum):
    """Worker thread states, for monitoring and tests."""
    IDLE = "idle"        # Waiting on the queue
    BUSY = "busy"        # Running a job
    STOPPED = "stopped"  # Loop exited


class Worker(threading.Thread):
    """
    Long-lived thread that runs jobs from the shared queue.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   1. job = queue.get()          blocks until something arrives      │
    │   2. job is the sentinel?  ──►  exit loop                           │
    │   3. job()                      exceptions logged, never raised     │
    │   4. queue.task_done()    ──►   back to 1                           │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(self, job_queue: "queue.Queue[Optional[Job]]", worker_id: int):
        # daemon=True: a stalled client must not keep the process alive
        super().__init__(name=f"Worker-{worker_id}", daemon=True)

        self.job_queue = job_queue
        self.worker_id = worker_id

        self.state = WorkerState.IDLE
        self.jobs_completed = 0
        self.jobs_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while True:
            job = self.job_queue.get()
            try:
                if job is _SHUTDOWN:
                    break
                self._execute(job)
            finally:
                self.job_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute(self, job: Job):
        """Run one job, containing any failure to this job."""
        self.state = WorkerState.BUSY
        start_time = time.monotonic()

        try:
            job()
            self.jobs_completed += 1
            logger.debug(
                f"Worker {self.worker_id} finished job in {time.monotonic() - start_time:.3f}s"
            )
        except KeyboardInterrupt:
            raise
        except BaseException as e:
            # SystemExit too: every worker must live to take its sentinel
            self.jobs_failed += 1
            logger.exception(
                f"Worker {self.worker_id} job failed after "
                f"{time.monotonic() - start_time:.3f}s: {e}"
            )
        finally:
            self.state = WorkerState.IDLE


class WorkerPool:
    """
    Fixed-size pool of worker threads.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   pool = WorkerPool(4)              workers start immediately       │
    │   pool.submit(lambda: handle(c))    returns at once                 │
    │   pool.stats                        {"workers": ..., "jobs": ...}   │
    │   pool.shutdown()                   drain, stop, join               │
    └─────────────────────────────────────────────────────────────────────┘

    Also a context manager:

        with WorkerPool(4) as pool:
            pool.submit(job)
        # all submitted jobs have run, all workers joined
    """

    def __init__(self, size: int):
        """
        Create and start ``size`` workers.

        Raises:
            ValueError: ``size`` is less than 1.
        """
        if size < 1:
            raise ValueError(f"Worker pool size must be at least 1, got {size}")

        self.size = size

        # No maxsize: submit() never blocks on capacity and never drops
        self._job_queue: "queue.Queue[Optional[Job]]" = queue.Queue()

        self._lock = threading.Lock()  # Guards _shutdown against racing submit()
        self._shutdown = False

        self._workers = [Worker(self._job_queue, worker_id=i) for i in range(size)]
        for worker in self._workers:
            worker.start()

        logger.info(f"Started worker pool with {size} workers")

    def submit(self, job: Job) -> None:
        """
        Queue ``job`` for execution by some worker.

        Never runs the job on the calling thread.

        Raises:
            TypeError: ``job`` is not callable.
            RuntimeError: The pool has been shut down.
        """
        if not callable(job):
            raise TypeError(f"Job must be callable, got {type(job).__name__}")

        with self._lock:
            if self._shutdown:
                raise RuntimeError("Worker pool is shut down")
            self._job_queue.put(job)

    def shutdown(self) -> None:
        """
        Stop all workers and wait for them to exit.

        Jobs already queued run first. Safe to call more than once.
        """
        with self._lock:
            if self._shutdown:
                return
            self._shutdown = True

            logger.info("Shutting down worker pool...")
            for _ in self._workers:
                self._job_queue.put(_SHUTDOWN)

        for worker in self._workers:
            worker.join()

        logger.info("Worker pool shutdown complete")

    def __enter__(self) -> "WorkerPool":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()
        return False

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    @property
    def workers(self) -> list[Worker]:
        return list(self._workers)

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def alive_workers(self) -> int:
        return sum(1 for w in self._workers if w.is_alive())

    @property
    def queue_size(self) -> int:
        """Jobs waiting for a worker (approximate, as with any queue)."""
        return self._job_queue.qsize()

    @property
    def stats(self) -> dict:
        return {
            "workers": {
                "total": self.size,
                "alive": self.alive_workers,
                "busy": self.busy_workers,
            },
            "jobs": {
                "queued": self.queue_size,
                "completed": sum(w.jobs_completed for w in self._workers),
                "failed": sum(w.jobs_failed for w in self._workers),
            },
        }
