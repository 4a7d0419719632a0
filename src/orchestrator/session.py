"""Watch session - owns the pipeline for one watched file and the user-facing flows."""

import asyncio
import os
import subprocess
import sys
from collections import deque
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable

import structlog
from pydantic import BaseModel

from src.coordination import LockWaiter, SuppressionGate
from src.vcs import (
    CommandRunner,
    FailureKind,
    OperationResult,
    SerializedVcsOperations,
    WatchTarget,
)

from .config import Settings
from .monitor import ChangeMonitor

logger = structlog.get_logger()


class NoticeLevel(str, Enum):
    """Severity of a user-facing notice."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Notice(BaseModel):
    """Something the UI layer should show the user."""
    timestamp: datetime
    title: str
    message: str
    level: NoticeLevel


class NoticeLog:
    """Bounded history of notices, mirrored to the log."""

    def __init__(self, maxlen: int = 50):
        self._notices: deque[Notice] = deque(maxlen=maxlen)

    def add(self, title: str, message: str, level: NoticeLevel = NoticeLevel.INFO) -> Notice:
        notice = Notice(
            timestamp=datetime.now(timezone.utc),
            title=title,
            message=message,
            level=level,
        )
        self._notices.append(notice)

        log = {
            NoticeLevel.INFO: logger.info,
            NoticeLevel.WARNING: logger.warning,
            NoticeLevel.ERROR: logger.error,
        }[level]
        log("Notice", title=title, message=message)
        return notice

    def recent(self) -> list[Notice]:
        return list(self._notices)


def open_with_default_app(path: Path) -> None:
    """Hand the file to the platform's default application."""
    if sys.platform.startswith("win"):
        os.startfile(path)  # type: ignore[attr-defined]
    elif sys.platform == "darwin":
        subprocess.Popen(["open", str(path)])
    else:
        subprocess.Popen(["xdg-open", str(path)])


def _level_for(result: OperationResult) -> NoticeLevel:
    if result.success:
        return NoticeLevel.INFO
    if result.kind is not None and result.kind.is_warning:
        return NoticeLevel.WARNING
    return NoticeLevel.ERROR


class WatchSession:
    """Coordinates the watcher, the git operations and the suppression gate.

    Replacing the watched file tears down the monitor and the operations
    instance and builds new ones for the new target.
    """

    def __init__(
        self,
        settings: Settings,
        runner: CommandRunner | None = None,
        opener: Callable[[Path], None] = open_with_default_app,
        monitor_factory: Callable[..., ChangeMonitor] = ChangeMonitor,
    ):
        self.settings = settings
        self.runner = runner or CommandRunner(settings.git_executable)
        self.opener = opener
        self.gate = SuppressionGate()
        self.lock_waiter = LockWaiter(settings.lock_poll_interval_seconds)
        self.notices = NoticeLog(settings.notice_history)
        self._monitor_factory = monitor_factory

        self.target: WatchTarget | None = None
        self.operations: SerializedVcsOperations | None = None
        self.monitor: ChangeMonitor | None = None
        self.commit_prompt_pending = False

    @property
    def is_watching(self) -> bool:
        return self.monitor is not None and self.monitor.is_watching

    def start(self) -> None:
        """Start watching the configured file."""
        self.configure(self.settings.watched_file_path)

    def configure(self, path: str | Path) -> WatchTarget:
        """Point the session at a new file and rebuild the pipeline."""
        with self.gate.hold():
            target = WatchTarget.from_path(path)
            operations = SerializedVcsOperations(target, self.runner)

            if self.monitor is not None:
                self.monitor.stop()

            self.target = target
            self.operations = operations
            self.commit_prompt_pending = False
            self.monitor = self._monitor_factory(
                target,
                operations,
                self.gate,
                on_changes_detected=self._on_changes_detected,
                on_warning=self._on_monitor_warning,
                lock_waiter=self.lock_waiter,
                debounce_delay=self.settings.debounce_delay_seconds,
                unlock_timeout=self.settings.unlock_timeout_seconds,
            )
            self.monitor.start()

        logger.info("Watch target configured", path=str(target.path), repo=str(target.repo_root))
        return target

    async def close(self) -> None:
        """Stop watching and wait for the observer thread to exit."""
        if self.monitor is not None:
            monitor, self.monitor = self.monitor, None
            monitor.stop()
            await monitor.wait_stopped()

    def _on_changes_detected(self) -> None:
        self.commit_prompt_pending = True
        self.notices.add(
            "Changes detected",
            f"{self.target.path.name} changed. Enter a commit message to commit it.",
        )

    def _on_monitor_warning(self, title: str, message: str) -> None:
        level = NoticeLevel.ERROR if title == "Watcher error" else NoticeLevel.WARNING
        self.notices.add(title, message, level)

    def _require_operations(self) -> SerializedVcsOperations:
        if self.operations is None:
            raise RuntimeError("Watch session has not been configured")
        return self.operations

    async def pull(self) -> OperationResult:
        """Pull without letting the pull's own file writes prompt a commit."""
        operations = self._require_operations()

        if await self.lock_waiter.is_locked(self.target.path):
            result = OperationResult.failed(
                "Pull blocked: the watched file is currently in use. Save/close it and try again.",
                kind=FailureKind.LOCKED,
            )
            self.notices.add("Pull blocked", result.message, NoticeLevel.WARNING)
            return result

        with self.gate.hold():
            result = await operations.pull()
            # Let events caused by the pull arrive while still suppressed
            await asyncio.sleep(self.settings.debounce_delay_seconds)

        self.notices.add(
            "Pull succeeded" if result.success else "Pull failed",
            result.message,
            _level_for(result),
        )
        return result

    async def pull_and_open(self) -> OperationResult:
        result = await self.pull()
        if result.success:
            self.open_file()
        return result

    def open_file(self) -> bool:
        """Open the watched file in its default application."""
        if self.target is None:
            return False

        if not self.target.path.exists():
            self.notices.add("Open failed", f"File not found: {self.target.path}", NoticeLevel.ERROR)
            return False

        try:
            self.opener(self.target.path)
        except Exception as e:
            logger.warning("Opener failed", path=str(self.target.path), error=str(e))
            self.notices.add("Open failed", str(e), NoticeLevel.ERROR)
            return False
        return True

    async def commit(self, message: str, push_after_commit: bool = False) -> OperationResult:
        operations = self._require_operations()
        result = await operations.commit(message, push_after_commit)

        if result.success:
            self.commit_prompt_pending = False
            self.notices.add("Commit succeeded", result.message)
        else:
            self.notices.add("Git operation failed", result.message, _level_for(result))
        return result

    async def push(self) -> OperationResult:
        operations = self._require_operations()
        result = await operations.push()
        self.notices.add(
            "Push succeeded" if result.success else "Push failed",
            result.message,
            _level_for(result),
        )
        return result
