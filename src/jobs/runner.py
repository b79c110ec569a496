"""Job registry and resumable background execution of matching jobs.

One asyncio task runs per running Job and processes its items strictly in
order. Control operations (create/run/pause/resume/remove/list) may be called
at any time from request handlers; they only touch in-memory state under short
lock-guarded sections and never wait on the network.

Pause is cooperative: an execution checks the job status before each item, so
an item already in flight always finishes. Progress is checkpointed after each
item's outcome is written, which is what makes resume exact.

Lock order is always registry lock, then job lock.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable

import structlog

from agent.core import SUPPORTED_PROVIDERS, Catalogs, create_matcher
from agent.errors import MatchError, PersistenceError
from agent.result import MatchResult
from agent.runner import Matcher, run_with_retry
from config.settings import MatcherSettings
from jobs.models import (
    Job,
    JobExistsError,
    JobNotFoundError,
    JobSnapshot,
    JobStatus,
    Platform,
    UnsupportedProviderError,
    WorkItem,
)
from store.base import MappingStore

logger = structlog.get_logger()

MatcherFactory = Callable[[Platform, str, str], Matcher]


class JobRunner:
    """Owns the Job registry, at most one Job per (platform, year)."""

    def __init__(
        self,
        store: MappingStore,
        matcher_factory: MatcherFactory,
        *,
        retry_count: int = 3,
        retry_delay: float = 10.0,
    ) -> None:
        self._store = store
        self._matcher_factory = matcher_factory
        self._retry_count = retry_count
        self._retry_delay = retry_delay
        self._jobs: dict[tuple[Platform, int], Job] = {}
        self._lock = threading.Lock()

    # -- control operations -------------------------------------------------

    async def create_job(
        self, platform: Platform, year: int, provider: str, model: str
    ) -> JobSnapshot:
        """Snapshot the unmatched records for (platform, year) into a new Job.

        Raises:
            UnsupportedProviderError: Unknown provider name.
            JobExistsError: A Job for (platform, year) already exists; it is left untouched.
        """
        if provider not in SUPPORTED_PROVIDERS:
            raise UnsupportedProviderError(provider)
        key = (platform, year)
        with self._lock:
            if key in self._jobs:
                raise JobExistsError(platform, year)

        items = await self._store.list_unmatched(platform, year)
        job = Job(
            platform=platform,
            year=year,
            provider=provider,
            model=model,
            items=tuple(items),
        )
        with self._lock:
            # another create may have won while the store was queried
            if key in self._jobs:
                raise JobExistsError(platform, year)
            self._jobs[key] = job

        logger.info(
            "job.created",
            platform=platform.value,
            year=year,
            provider=provider,
            model=model,
            num_items=len(items),
        )
        return job.snapshot()

    async def run_job(self, platform: Platform, year: int) -> None:
        """Start the Job. A no-op if it is already running."""
        job = self._require(platform, year)
        with job.lock:
            if job.status is JobStatus.RUNNING:
                return
            job.status = JobStatus.RUNNING
            job.last_error = None
            self._spawn_locked(job)
        logger.info("job.run", platform=platform.value, year=year)

    def pause_job(self, platform: Platform, year: int) -> bool:
        """Ask a running Job to stop before its next item. Returns whether it was running."""
        job = self._require(platform, year)
        with job.lock:
            if job.status is not JobStatus.RUNNING:
                return False
            job.status = JobStatus.PAUSED
        logger.info("job.pause_requested", platform=platform.value, year=year)
        return True

    async def resume_job(self, platform: Platform, year: int) -> bool:
        """Continue a paused Job from its checkpoint. Returns whether it was paused."""
        job = self._require(platform, year)
        with job.lock:
            if job.status is not JobStatus.PAUSED:
                return False
            job.status = JobStatus.RUNNING
            self._spawn_locked(job)
        logger.info("job.resumed", platform=platform.value, year=year)
        return True

    def remove_job(self, platform: Platform, year: int) -> bool:
        """Drop the Job from the registry whatever its status. Returns whether it existed.

        An in-flight execution is not cancelled: it finishes its current item
        and then exits without recording progress.
        """
        with self._lock:
            job = self._jobs.pop((platform, year), None)
        if job is None:
            return False
        logger.info("job.removed", platform=platform.value, year=year)
        return True

    def list_jobs(self) -> list[JobSnapshot]:
        with self._lock:
            return [job.snapshot() for job in self._jobs.values()]

    async def join(self, platform: Platform, year: int) -> None:
        """Wait until the Job's current execution, if any, has stopped."""
        task = self._require(platform, year).task
        if task is not None:
            await asyncio.wait({task})

    async def drain(self) -> None:
        """Pause every running Job and wait for the executions to reach an item boundary."""
        with self._lock:
            jobs = list(self._jobs.values())
        tasks = []
        for job in jobs:
            with job.lock:
                if job.status is JobStatus.RUNNING:
                    job.status = JobStatus.PAUSED
                if job.has_active_task:
                    tasks.append(job.task)
        if tasks:
            logger.info("job.drain", executions=len(tasks))
            await asyncio.wait(tasks)

    # -- background execution ------------------------------------------------

    def _require(self, platform: Platform, year: int) -> Job:
        with self._lock:
            job = self._jobs.get((platform, year))
        if job is None:
            raise JobNotFoundError(platform, year)
        return job

    def _spawn_locked(self, job: Job) -> None:
        # the previous execution has not seen the pause yet and will carry on
        if job.has_active_task:
            return
        job.task = asyncio.create_task(
            self._execute(job), name=f"match-job-{job.platform.value}-{job.year}"
        )

    async def _execute(self, job: Job) -> None:
        structlog.contextvars.bind_contextvars(platform=job.platform.value, year=job.year)
        try:
            matcher = self._matcher_factory(job.platform, job.provider, job.model)
            await self._process_items(job, matcher)
        except PersistenceError as exc:
            logger.error("job.persistence_failed", error=str(exc))
            self._fail(job, exc)
        except Exception as exc:
            logger.exception("job.execution_failed", error=str(exc))
            self._fail(job, exc)

    async def _process_items(self, job: Job, matcher: Matcher) -> None:
        with job.lock:
            start = job.current_index
        items = job.items
        logger.info("job.execution_started", start_index=start, num_items=len(items))

        if start >= len(items):
            self._checkpoint(job, None, matched=False)
            return

        for index in range(start, len(items)):
            if not self._should_continue(job):
                return
            item = items[index]
            try:
                matched = await self._process_item(job, matcher, item)
            except Exception:
                # recorded as failed so the item is not retried forever
                self._checkpoint(job, index, matched=False)
                raise
            if not self._checkpoint(job, index, matched=matched):
                return

    async def _process_item(self, job: Job, matcher: Matcher, item: WorkItem) -> bool:
        try:
            result = await run_with_retry(
                matcher,
                item.to_prompt(),
                attempts=self._retry_count,
                delay=self._retry_delay,
            )
        except MatchError as exc:
            logger.warning(
                "job.item.failed",
                anilist_id=item.anilist_id,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return False

        if not result.found:
            logger.info("job.item.not_found", anilist_id=item.anilist_id)
            return False

        await self._persist(job, item, result)
        logger.info(
            "job.item.matched",
            anilist_id=item.anilist_id,
            platform_id=result.id,
            name=result.name,
            season=result.season,
            confidence_score=result.confidence_score,
        )
        return True

    async def _persist(self, job: Job, item: WorkItem, result: MatchResult) -> None:
        await self._store.update_mapping(
            item.anilist_id,
            job.platform,
            str(result.id),
            result.confidence_score or 0,
        )
        if result.season is not None and job.platform.supports_season:
            await self._store.update_season(item.anilist_id, result.season)

    def _should_continue(self, job: Job) -> bool:
        with self._lock:
            if self._jobs.get(job.key) is not job:
                logger.info("job.execution_stopped", reason="removed")
                return False
            with job.lock:
                status = job.status
        if status is not JobStatus.RUNNING:
            logger.info("job.execution_stopped", reason=status.value)
            return False
        return True

    def _checkpoint(self, job: Job, index: int | None, *, matched: bool) -> bool:
        """Record an item outcome and advance current_index past it.

        With index None only the completion check runs. Returns False when the
        execution must stop: the Job was removed or has just completed.
        """
        with self._lock:
            if self._jobs.get(job.key) is not job:
                logger.info("job.execution_stopped", reason="removed")
                return False
            with job.lock:
                if index is not None:
                    if matched:
                        job.num_matched += 1
                    else:
                        job.num_failed += 1
                    job.num_processed += 1
                    job.current_index = index + 1
                completed = job.current_index >= len(job.items)
                if completed:
                    job.status = JobStatus.COMPLETED
                snapshot = (job.current_index, job.num_matched, job.num_failed)

        current_index, num_matched, num_failed = snapshot
        logger.info(
            "job.checkpoint",
            current_index=current_index,
            num_matched=num_matched,
            num_failed=num_failed,
            completed=completed,
        )
        return not completed

    def _fail(self, job: Job, exc: Exception) -> None:
        with job.lock:
            job.status = JobStatus.FAILED
            job.last_error = f"{type(exc).__name__}: {exc}"


def create_job_runner(
    store: MappingStore, catalogs: Catalogs, settings: MatcherSettings
) -> JobRunner:
    """Wire a JobRunner whose matchers are built from settings and catalog clients."""

    def matcher_factory(platform: Platform, provider: str, model: str) -> Matcher:
        return create_matcher(platform, provider, model, settings=settings, catalogs=catalogs)

    return JobRunner(
        store,
        matcher_factory,
        retry_count=settings.retry_count,
        retry_delay=settings.retry_delay,
    )
