"""Domain models for background matching jobs."""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class Platform(str, Enum):
    """External catalog a job resolves matches against."""

    BGM_TV = "bgm_tv"
    TMDB = "tmdb"

    @property
    def supports_season(self) -> bool:
        return self is Platform.TMDB


class MediaType(str, Enum):
    MOVIE = "Movie"
    OVA = "OVA"
    ONA = "ONA"
    SPECIAL = "Special"
    TV = "TV"
    UNKNOWN = "Unknown"


class JobStatus(str, Enum):
    CREATED = "created"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"


class WorkItem(BaseModel):
    """Snapshot of an anime record taken when the job is created.

    Later changes to the stored record are not seen by the job.
    """

    model_config = ConfigDict(frozen=True)

    anilist_id: int
    titles: tuple[str, ...]
    year: int
    media_type: MediaType = MediaType.UNKNOWN
    start_date: str | None = None
    episode_count: int | None = None
    episode_number: int | None = None

    def to_prompt(self) -> str:
        """JSON of the identifying fields, used as the agent's user prompt."""
        return self.model_dump_json(exclude={"anilist_id"}, exclude_none=True)


class JobSnapshot(BaseModel):
    """Serializable view of a Job at one point in time (items excluded)."""

    platform: Platform
    year: int
    status: JobStatus
    provider: str
    model: str
    num_items: int
    current_index: int
    num_processed: int
    num_matched: int
    num_failed: int
    start_time: datetime
    last_error: str | None = None


@dataclass(eq=False)
class Job:
    """Mutable job record. Every read or write of the mutable fields holds `lock`.

    current_index is the resume checkpoint: it always points at the next
    unprocessed item and only moves after that item's outcome is recorded.
    """

    platform: Platform
    year: int
    provider: str
    model: str
    items: tuple[WorkItem, ...]
    status: JobStatus = JobStatus.CREATED
    current_index: int = 0
    num_processed: int = 0
    num_matched: int = 0
    num_failed: int = 0
    start_time: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    last_error: str | None = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    task: asyncio.Task[None] | None = field(default=None, repr=False)

    @property
    def key(self) -> tuple[Platform, int]:
        return (self.platform, self.year)

    @property
    def has_active_task(self) -> bool:
        return self.task is not None and not self.task.done()

    def snapshot(self) -> JobSnapshot:
        with self.lock:
            return JobSnapshot(
                platform=self.platform,
                year=self.year,
                status=self.status,
                provider=self.provider,
                model=self.model,
                num_items=len(self.items),
                current_index=self.current_index,
                num_processed=self.num_processed,
                num_matched=self.num_matched,
                num_failed=self.num_failed,
                start_time=self.start_time,
                last_error=self.last_error,
            )


class JobError(Exception):
    """Base class for job control failures reported to the caller."""


class JobExistsError(JobError):
    def __init__(self, platform: Platform, year: int) -> None:
        super().__init__(f"job for {platform.value}/{year} already exists")


class JobNotFoundError(JobError):
    def __init__(self, platform: Platform, year: int) -> None:
        super().__init__(f"no job for {platform.value}/{year}")


class UnsupportedProviderError(JobError):
    def __init__(self, provider: str) -> None:
        super().__init__(f"unsupported provider: {provider}")
