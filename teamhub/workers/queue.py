from __future__ import annotations

import asyncio
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping

from teamhub.core.errors import EnqueueError, NonRetryableJobError
from teamhub.core.logging import get_logger
from teamhub.domain.jobs import Job, RetryPolicy

logger = get_logger(__name__)

JobHandler = Callable[[Job], Awaitable[Any]]
ExhaustedHandler = Callable[[Job, BaseException], Awaitable[None]]


@dataclass(slots=True)
class TopicRegistration:
    handler: JobHandler
    policy: RetryPolicy
    on_exhausted: ExhaustedHandler | None = None


class JobQueue:
    """In-process work queue with one FIFO worker per topic.

    A topic's worker runs one job at a time, retries included, so two jobs
    on the same topic never overlap. Topics run independently of each other.
    """

    def __init__(
        self,
        policies: Mapping[str, RetryPolicy] | None = None,
        *,
        default_policy: RetryPolicy | None = None,
        history_limit: int = 500,
    ) -> None:
        self._policies = dict(policies or {})
        self._default_policy = default_policy or RetryPolicy()
        self._history_limit = history_limit
        self._topics: dict[str, TopicRegistration] = {}
        self._queues: dict[str, asyncio.Queue[Job]] = {}
        self._workers: dict[str, asyncio.Task[None]] = {}
        self._jobs: OrderedDict[str, Job] = OrderedDict()
        self._running = False

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    @property
    def running(self) -> bool:
        return self._running

    def register(
        self,
        topic: str,
        handler: JobHandler,
        *,
        on_exhausted: ExhaustedHandler | None = None,
        policy: RetryPolicy | None = None,
    ) -> None:
        if topic in self._topics:
            raise ValueError(f"topic {topic} already registered")
        self._topics[topic] = TopicRegistration(
            handler=handler,
            policy=policy or self._policies.get(topic, self._default_policy),
            on_exhausted=on_exhausted,
        )
        if self._running:
            self._spawn(topic)

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        for topic in self._topics:
            self._spawn(topic)
        logger.info("Job queue started with topics: %s", ", ".join(sorted(self._topics)) or "-")

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        workers = list(self._workers.values())
        for task in workers:
            task.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        dropped = sum(queue.qsize() for queue in self._queues.values())
        self._workers.clear()
        self._queues.clear()
        if dropped:
            logger.warning("Job queue stopped with %d unprocessed job(s)", dropped)
        else:
            logger.info("Job queue stopped")

    def _spawn(self, topic: str) -> None:
        queue: asyncio.Queue[Job] = asyncio.Queue()
        self._queues[topic] = queue
        self._workers[topic] = asyncio.create_task(self._run_topic(topic, queue), name=f"queue:{topic}")

    # ------------------------------------------------------------------
    # submission
    # ------------------------------------------------------------------
    async def enqueue(self, topic: str, payload: dict[str, Any]) -> Job:
        """Hand a job to the topic worker and return without waiting for it."""
        if not self._running:
            raise EnqueueError("job queue is not running")
        queue = self._queues.get(topic)
        if queue is None:
            raise EnqueueError(f"no worker registered for topic {topic}")

        job = Job(job_id=uuid.uuid4().hex, topic=topic, payload=dict(payload))
        self._remember(job)
        queue.put_nowait(job)
        logger.info("Enqueued job %s on %s", job.job_id, topic)
        return job

    async def drain(self) -> None:
        """Wait until every job submitted so far has finished."""
        await asyncio.gather(*(queue.join() for queue in list(self._queues.values())))

    def get_job(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    def list_jobs(self, topic: str | None = None) -> list[Job]:
        return [job for job in self._jobs.values() if topic is None or job.topic == topic]

    def _remember(self, job: Job) -> None:
        self._jobs[job.job_id] = job
        while len(self._jobs) > self._history_limit:
            oldest_id = next((key for key, item in self._jobs.items() if item.finished), None)
            if oldest_id is None:
                break
            del self._jobs[oldest_id]

    # ------------------------------------------------------------------
    # execution
    # ------------------------------------------------------------------
    async def _run_topic(self, topic: str, queue: asyncio.Queue[Job]) -> None:
        registration = self._topics[topic]
        while True:
            job = await queue.get()
            try:
                await self._execute(job, registration)
            finally:
                queue.task_done()

    async def _execute(self, job: Job, registration: TopicRegistration) -> None:
        policy = registration.policy
        while True:
            job.attempts += 1
            job.status = "running"
            try:
                await registration.handler(job)
            except NonRetryableJobError as exc:
                logger.error("Job %s on %s failed permanently: %s", job.job_id, job.topic, exc)
                await self._fail(job, registration, exc)
                return
            except Exception as exc:
                if job.attempts >= policy.max_attempts:
                    logger.exception(
                        "Job %s on %s failed after %d attempt(s)", job.job_id, job.topic, job.attempts
                    )
                    await self._fail(job, registration, exc)
                    return
                delay = policy.delay_for(job.attempts)
                job.status = "retrying"
                job.error = str(exc)
                logger.warning(
                    "Job %s on %s attempt %d failed (%s); retrying in %.2fs",
                    job.job_id,
                    job.topic,
                    job.attempts,
                    exc,
                    delay,
                )
                await asyncio.sleep(delay)
            else:
                job.status = "completed"
                job.error = None
                job.finished_at = datetime.now(timezone.utc).isoformat()
                logger.info("Job %s on %s completed", job.job_id, job.topic)
                return

    async def _fail(self, job: Job, registration: TopicRegistration, exc: BaseException) -> None:
        job.status = "failed"
        job.error = str(exc)
        job.finished_at = datetime.now(timezone.utc).isoformat()
        if registration.on_exhausted is None:
            return
        try:
            await registration.on_exhausted(job, exc)
        except Exception:
            # keep the topic worker alive for the jobs behind this one
            logger.exception("Failure handler for job %s on %s raised", job.job_id, job.topic)
