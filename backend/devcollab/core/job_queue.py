"""
In-process Job Queue

Fire-and-forget background jobs keyed by a task id. Each enqueued job runs
as an asyncio task and is retried with exponential backoff and jitter up to
a bounded number of attempts. Jobs are lost on process restart.
"""

import asyncio
import logging
import random
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Set

from devcollab.core.config import settings

logger = logging.getLogger(__name__)

JobHandler = Callable[[Dict[str, Any]], Awaitable[Any]]


class NonRetryableJobError(Exception):
    """Raised by a handler when another attempt cannot succeed"""


class JobEnqueuer(Protocol):
    """What write paths and sweeps depend on"""

    async def enqueue(self, task_id: str, payload: Dict[str, Any]) -> "QueuedJob":
        ...


@dataclass
class RetryPolicy:
    max_attempts: int = 3
    min_delay_seconds: float = 5.0
    max_delay_seconds: float = 60.0
    factor: float = 2.0
    randomize: bool = True

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.JOB_MAX_ATTEMPTS,
            min_delay_seconds=settings.JOB_MIN_BACKOFF_SECONDS,
            max_delay_seconds=settings.JOB_MAX_BACKOFF_SECONDS,
            factor=settings.JOB_BACKOFF_FACTOR,
        )

    def delay_for(self, attempt: int) -> float:
        """Delay before the retry that follows a failed `attempt` (1-based)"""
        delay = self.min_delay_seconds * (self.factor ** (attempt - 1))
        if self.randomize:
            delay *= random.uniform(1.0, 2.0)
        return min(delay, self.max_delay_seconds)


@dataclass
class QueuedJob:
    task_id: str
    payload: Dict[str, Any]
    run_id: str = field(default_factory=lambda: f"run_{uuid.uuid4().hex}")
    status: str = "pending"  # pending, running, retrying, completed, failed
    attempts: int = 0
    error: Optional[str] = None
    result: Any = None
    enqueued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in ("completed", "failed")

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "task_id": self.task_id,
            "status": self.status,
            "attempts": self.attempts,
            "error": self.error,
            "enqueued_at": self.enqueued_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


class JobQueue:
    """Runs registered handlers in the background with bounded retries"""

    def __init__(
        self,
        retry_policy: Optional[RetryPolicy] = None,
        max_concurrency: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        history_limit: int = 1000,
    ):
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self._handlers: Dict[str, JobHandler] = {}
        self._policies: Dict[str, RetryPolicy] = {}
        self._jobs: Dict[str, QueuedJob] = {}
        self._active: Set[asyncio.Task] = set()
        self._semaphore = asyncio.Semaphore(max_concurrency or settings.JOB_MAX_CONCURRENCY)
        self._sleep = sleep
        self._history_limit = history_limit

    def register(self, task_id: str, handler: JobHandler, retry_policy: Optional[RetryPolicy] = None):
        """Register the handler that runs jobs for `task_id`"""
        self._handlers[task_id] = handler
        if retry_policy:
            self._policies[task_id] = retry_policy
        logger.info(f"Registered job handler for '{task_id}'")

    async def enqueue(self, task_id: str, payload: Dict[str, Any]) -> QueuedJob:
        """Schedule a job and return immediately"""
        if task_id not in self._handlers:
            raise KeyError(f"No handler registered for task '{task_id}'")

        job = QueuedJob(task_id=task_id, payload=dict(payload))
        self._remember(job)

        task = asyncio.create_task(self._run(job), name=job.run_id)
        self._active.add(task)
        task.add_done_callback(self._active.discard)

        logger.debug(f"Enqueued {task_id} job {job.run_id}")
        return job

    def get_job(self, run_id: str) -> Optional[QueuedJob]:
        return self._jobs.get(run_id)

    def list_jobs(self, status: Optional[str] = None, limit: int = 100) -> List[QueuedJob]:
        jobs = list(self._jobs.values())
        if status is not None:
            jobs = [job for job in jobs if job.status == status]
        return jobs[-limit:]

    @property
    def pending_count(self) -> int:
        return len(self._active)

    async def drain(self, timeout: Optional[float] = None):
        """Wait for in-flight jobs to finish"""
        if not self._active:
            return
        done, pending = await asyncio.wait(set(self._active), timeout=timeout)
        if pending:
            logger.warning(f"{len(pending)} jobs still running after drain timeout")

    async def shutdown(self, timeout: float = 30.0):
        await self.drain(timeout=timeout)
        for task in list(self._active):
            task.cancel()

    async def _run(self, job: QueuedJob):
        handler = self._handlers[job.task_id]
        policy = self._policies.get(job.task_id, self.retry_policy)

        while True:
            job.attempts += 1
            job.status = "running"
            try:
                async with self._semaphore:
                    job.result = await handler(job.payload)
                job.status = "completed"
                job.error = None
                job.completed_at = datetime.now(timezone.utc)
                logger.info(f"Job {job.run_id} ({job.task_id}) completed after {job.attempts} attempt(s)")
                return

            except asyncio.CancelledError:
                job.status = "failed"
                job.error = "cancelled"
                raise

            except NonRetryableJobError as e:
                self._fail(job, e)
                return

            except Exception as e:
                if job.attempts >= policy.max_attempts:
                    self._fail(job, e)
                    return

                delay = policy.delay_for(job.attempts)
                job.status = "retrying"
                job.error = str(e)
                logger.warning(
                    f"Job {job.run_id} ({job.task_id}) attempt {job.attempts}/{policy.max_attempts} "
                    f"failed: {str(e)}; retrying in {delay:.1f}s"
                )
                await self._sleep(delay)

    def _fail(self, job: QueuedJob, error: Exception):
        job.status = "failed"
        job.error = str(error)
        job.completed_at = datetime.now(timezone.utc)
        logger.error(
            f"Job {job.run_id} ({job.task_id}) failed after {job.attempts} attempt(s): {str(error)}",
            exc_info=error
        )

    def _remember(self, job: QueuedJob):
        self._jobs[job.run_id] = job
        if len(self._jobs) > self._history_limit:
            for run_id in [key for key, value in self._jobs.items() if value.is_terminal]:
                del self._jobs[run_id]
                if len(self._jobs) <= self._history_limit:
                    break
