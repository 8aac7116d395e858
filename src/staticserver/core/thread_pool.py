"""
=============================================================================
BOUNDED THREAD POOL
=============================================================================

Provides the execution units that run one connection each.

=============================================================================
WHY NOT ONE THREAD PER CONNECTION?
=============================================================================

Spawning a fresh thread for every accepted socket has no upper bound:

    1,000 slow clients  →  1,000 threads  →  1,000 stacks (1-8 MB each)

The pool caps concurrency instead:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                     │
    │   accept loop ──submit()──►  ┌─────────────────┐                    │
    │                              │   Task Queue    │  (queue_size)      │
    │                              │ [c5][c4][c3]    │                    │
    │                              └────────┬────────┘                    │
    │                                       │ get()                       │
    │                   ┌───────────────────┼───────────────────┐         │
    │                   ▼                   ▼                   ▼         │
    │             ┌──────────┐        ┌──────────┐        ┌──────────┐    │
    │             │ Worker-0 │        │ Worker-1 │  ...   │ Worker-N │    │
    │             │ handle(c1)        │ handle(c2)        │  idle    │    │
    │             └──────────┘        └──────────┘        └──────────┘    │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

    - min_workers threads are started up front.
    - When every worker is busy and tasks are waiting, one more worker is
      added, up to max_workers.
    - When the queue is full, submit(block=True) waits. The accept loop
      stops accepting and new clients wait in the kernel backlog. That is
      the server's backpressure.

=============================================================================
POISON PILLS
=============================================================================

To stop, the pool puts one None per worker in the queue. A worker that
dequeues None exits its loop.

    shutdown(wait=True)
        └─ queue.join()         every submitted task has finished
        └─ queue.put(None) × N
        └─ worker.join()

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    """Worker thread states, used for scaling decisions and stats."""
    IDLE = "idle"        # Waiting for a task
    BUSY = "busy"        # Executing a task
    STOPPED = "stopped"  # Thread exited


@dataclass
class Task:
    """
    A deferred function call: "call func(*args, **kwargs) later".

    Attributes:
        func: The function to execute.
        args: Positional arguments.
        kwargs: Keyword arguments.
        submitted_at: When the task entered the queue.
    """
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """
    Worker thread that processes tasks from the shared queue.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   1. task = queue.get()        (blocks, wakes every idle_timeout)   │
    │   2. task is None?  → exit                                          │
    │   3. task.func(...)            exceptions are logged, never raised  │
    │   4. queue.task_done()         → go to 1                            │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(
        self,
        task_queue: queue.Queue,
        worker_id: int,
        idle_timeout: float = 60.0
    ):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)

        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout

        self.state = WorkerState.IDLE
        self._shutdown = threading.Event()

        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        """Main worker loop."""
        logger.debug(f"Worker {self.worker_id} started")

        while not self._shutdown.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

            if task is None:
                self.task_queue.task_done()
                break

            try:
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        """
        Execute one task.

        A failing task is logged with its traceback and counted; the
        worker itself keeps running.
        """
        self.state = WorkerState.BUSY
        start_time = time.time()

        try:
            task.func(*task.args, **task.kwargs)

            elapsed = time.time() - start_time
            logger.debug(
                f"Worker {self.worker_id} completed task in {elapsed:.3f}s "
                f"(queued {start_time - task.submitted_at:.3f}s)"
            )
            self.tasks_completed += 1

        except Exception as e:
            elapsed = time.time() - start_time
            logger.exception(
                f"Worker {self.worker_id} task failed after {elapsed:.3f}s: {e}"
            )
            self.tasks_failed += 1

        finally:
            self.state = WorkerState.IDLE

    def shutdown(self):
        """Signal the worker to stop after its current task."""
        self._shutdown.set()


class ThreadPool:
    """
    Bounded thread pool for per-connection work.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   pool = ThreadPool(min_workers=4, max_workers=16, queue_size=64)   │
    │   pool.start()                                                      │
    │   pool.submit(handler.handle, args=(conn,))                         │
    │   pool.shutdown(wait=True)     # returns once every task finished   │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 64,
        idle_timeout: float = 60.0
    ):
        """
        Args:
            min_workers: Threads created by start().
            max_workers: Hard cap on threads.
            queue_size: Tasks allowed to wait for a worker.
            idle_timeout: Seconds an idle worker sleeps before re-checking
                          its shutdown flag.
        """
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.max_queue_size = queue_size
        self.idle_timeout = idle_timeout

        self._task_queue: queue.Queue = queue.Queue(maxsize=queue_size)

        self._workers: list[Worker] = []
        self._lock = threading.Lock()  # Protects _workers
        self._started = False
        self._shutdown = False
        self._next_worker_id = 0

    @property
    def is_running(self) -> bool:
        return self._started and not self._shutdown

    def start(self):
        """Start the minimum number of workers. No-op if already started."""
        if self._started:
            return

        logger.info(f"Starting thread pool with {self.min_workers}-{self.max_workers} workers")

        self._shutdown = False
        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker()

        self._started = True

    def _add_worker(self) -> Worker:
        """Create and start one worker. Caller must hold ``_lock``."""
        worker = Worker(
            task_queue=self._task_queue,
            worker_id=self._next_worker_id,
            idle_timeout=self.idle_timeout
        )
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        block: bool = True,
        queue_timeout: Optional[float] = None
    ) -> bool:
        """
        Submit a task for execution.

        Args:
            func: The function to execute.
            args: Positional arguments for the function.
            kwargs: Keyword arguments for the function.
            block: Wait for queue space if the queue is full.
            queue_timeout: How long to wait for space (None = forever).

        Returns:
            True if the task was queued, False if the queue stayed full.

        Raises:
            RuntimeError: If the pool is not started or is shutting down.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")

        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        task = Task(func=func, args=args, kwargs=kwargs or {})

        try:
            self._task_queue.put(task, block=block, timeout=queue_timeout)
        except queue.Full:
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        """Add a worker if all workers are busy and tasks are waiting."""
        with self._lock:
            if len(self._workers) >= self.max_workers:
                return

            busy_count = sum(1 for w in self._workers if w.state == WorkerState.BUSY)
            if busy_count == len(self._workers) and self._task_queue.qsize() > 0:
                logger.debug(
                    f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers"
                )
                self._add_worker()

    def shutdown(self, wait: bool = True):
        """
        Stop the pool.

        Args:
            wait: Wait for every queued and running task to finish before
                  stopping the workers. There is no timeout: a task blocked
                  on a silent client keeps shutdown waiting.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutdown = True

        if wait:
            self._task_queue.join()

        with self._lock:
            workers = list(self._workers)

        if not wait:
            for worker in workers:
                worker.shutdown()
        for _ in workers:
            try:
                # While waiting, each worker stops only on its own pill and
                # frees a slot as it takes it, so a small queue takes them all
                self._task_queue.put(None, block=wait)
            except queue.Full:
                pass  # Not waiting; idle workers also exit via their shutdown flag

        if wait:
            for worker in workers:
                worker.join()

        with self._lock:
            self._workers.clear()
        self._started = False

        logger.info("Thread pool shutdown complete")

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def worker_count(self) -> int:
        """Number of worker threads (busy or idle)."""
        return len(self._workers)

    @property
    def busy_workers(self) -> int:
        """Number of workers currently executing a task."""
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def idle_workers(self) -> int:
        """Number of workers waiting for a task."""
        return sum(1 for w in self._workers if w.state == WorkerState.IDLE)

    @property
    def queue_size(self) -> int:
        """Tasks waiting for a worker."""
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        """Worker and task counts, for logging and debugging."""
        return {
            "workers": {
                "total": self.worker_count,
                "busy": self.busy_workers,
                "idle": self.idle_workers,
            },
            "tasks": {
                "queued": self.queue_size,
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
            },
        }
