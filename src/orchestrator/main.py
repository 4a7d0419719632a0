"""Main service - control API for the watch session."""

import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel

from src.vcs import OperationResult, VcsError

from .config import Settings
from .session import Notice, WatchSession

logger = structlog.get_logger()
settings = Settings()


class CommitRequest(BaseModel):
    """Commit message and push choice from the UI layer."""
    message: str
    push: bool = False


class WatchRequest(BaseModel):
    """New file to watch."""
    path: str


class OperationResponse(BaseModel):
    success: bool
    message: str
    kind: str | None = None

    @classmethod
    def from_result(cls, result: OperationResult) -> "OperationResponse":
        return cls(
            success=result.success,
            message=result.message,
            kind=result.kind.value if result.kind else None,
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info("Starting watch session", path=settings.watched_file_path)

    session = WatchSession(settings)
    session.start()
    app.state.session = session

    yield

    logger.info("Shutting down watch session")
    await session.close()


app = FastAPI(
    title="Git File Watch",
    description="Watches one file and coordinates git commit, pull and push",
    version="0.1.0",
    lifespan=lifespan,
)


def _session(request: Request) -> WatchSession:
    return request.app.state.session


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "git-file-watch"}


@app.get("/status")
async def status(request: Request):
    """Current watch target and prompt state."""
    session = _session(request)
    target = session.target
    return {
        "watched_file": str(target.path) if target else None,
        "repo_root": str(target.repo_root) if target else None,
        "relative_path": target.relative_path if target else None,
        "watching": session.is_watching,
        "suppressed": session.gate.is_suppressed,
        "commit_prompt_pending": session.commit_prompt_pending,
    }


@app.get("/notices")
async def notices(request: Request) -> list[Notice]:
    """Recent notices, oldest first."""
    return _session(request).notices.recent()


@app.post("/pull")
async def pull(request: Request) -> OperationResponse:
    result = await _session(request).pull()
    return OperationResponse.from_result(result)


@app.post("/pull-and-open")
async def pull_and_open(request: Request) -> OperationResponse:
    result = await _session(request).pull_and_open()
    return OperationResponse.from_result(result)


@app.post("/push")
async def push(request: Request) -> OperationResponse:
    result = await _session(request).push()
    return OperationResponse.from_result(result)


@app.post("/commit")
async def commit(body: CommitRequest, request: Request) -> OperationResponse:
    result = await _session(request).commit(body.message, push_after_commit=body.push)
    return OperationResponse.from_result(result)


@app.post("/open")
async def open_file(request: Request):
    return {"opened": _session(request).open_file()}


@app.put("/watch")
async def watch(body: WatchRequest, request: Request):
    """Replace the watched file."""
    session = _session(request)
    try:
        target = session.configure(body.path)
    except (ValueError, VcsError) as e:
        logger.warning("Rejected watch target", path=body.path, error=str(e))
        raise HTTPException(status_code=400, detail=str(e))
    session.notices.add("Watched file updated", str(target.path))
    return {"watched_file": str(target.path)}


def configure_logging(level: str) -> None:
    """Route structlog output through a level filter."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
    )


def cli():
    """CLI entry point."""
    import uvicorn
    configure_logging(settings.log_level)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    cli()
