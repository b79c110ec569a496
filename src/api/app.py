"""FastAPI application exposing the job runner."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.routes import router
from api.schemas import Resp
from config.settings import MatcherSettings
from jobs.models import JobError
from jobs.runner import JobRunner
from utils.logger import configure_logging

logger = structlog.get_logger()


async def job_error_handler(request: Request, exc: JobError) -> JSONResponse:
    """Report job control failures inside the envelope instead of as HTTP errors."""
    logger.warning("api.job_error", path=request.url.path, error=str(exc))
    return JSONResponse(content=Resp.err(str(exc)).model_dump(mode="json"))


def create_app(runner: JobRunner, settings: MatcherSettings | None = None) -> FastAPI:
    """Build the control application around an already wired JobRunner.

    On shutdown every running job is paused and its in-flight item is allowed
    to finish, so the checkpoints stay exact.
    """
    settings = settings or MatcherSettings()
    configure_logging(json_output=settings.json_logs, log_level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("api.startup")
        yield
        await app.state.runner.drain()
        logger.info("api.shutdown")

    app = FastAPI(title="anime-match-agent", lifespan=lifespan)
    app.state.runner = runner
    app.add_exception_handler(JobError, job_error_handler)
    app.include_router(router)
    return app
