"""Job control endpoints under /api/job."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.schemas import Resp
from jobs.models import JobSnapshot, Platform
from jobs.runner import JobRunner

router = APIRouter(prefix="/api/job", tags=["jobs"])


def get_runner(request: Request) -> JobRunner:
    return request.app.state.runner


@router.get("/list")
async def list_jobs(runner: JobRunner = Depends(get_runner)) -> Resp[list[JobSnapshot]]:  # noqa: B008
    return Resp.ok(runner.list_jobs())


@router.post("/{platform}/create/{year}/{provider}/{model:path}")
async def create_job(
    platform: Platform,
    year: int,
    provider: str,
    model: str,
    runner: JobRunner = Depends(get_runner),  # noqa: B008
) -> Resp[JobSnapshot]:
    """Snapshot the unmatched records of one year into a new job."""
    return Resp.ok(await runner.create_job(platform, year, provider, model))


@router.post("/{platform}/run/{year}")
async def run_job(
    platform: Platform,
    year: int,
    runner: JobRunner = Depends(get_runner),  # noqa: B008
) -> Resp[None]:
    await runner.run_job(platform, year)
    return Resp.ok()


@router.post("/{platform}/pause/{year}")
async def pause_job(
    platform: Platform,
    year: int,
    runner: JobRunner = Depends(get_runner),  # noqa: B008
) -> Resp[bool]:
    """Takes effect once the item in flight has finished."""
    return Resp.ok(runner.pause_job(platform, year))


@router.post("/{platform}/resume/{year}")
async def resume_job(
    platform: Platform,
    year: int,
    runner: JobRunner = Depends(get_runner),  # noqa: B008
) -> Resp[bool]:
    return Resp.ok(await runner.resume_job(platform, year))


@router.post("/{platform}/remove/{year}")
async def remove_job(
    platform: Platform,
    year: int,
    runner: JobRunner = Depends(get_runner),  # noqa: B008
) -> Resp[bool]:
    return Resp.ok(runner.remove_job(platform, year))
