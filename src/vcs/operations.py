"""Serialized git operations on a single watched file.

Every public operation holds one asyncio.Lock for its whole command sequence
(stage, probe, commit, push), so two requests against the same repository
never interleave at the command level.
"""

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path

import structlog

from .results import (
    FailureKind,
    OperationResult,
    RepositoryNotFoundError,
    StatusQueryError,
)
from .runner import CommandRunner

logger = structlog.get_logger()


@dataclass(frozen=True)
class WatchTarget:
    """The monitored file and the repository it lives in."""
    path: Path

    @classmethod
    def from_path(cls, path: str | Path) -> "WatchTarget":
        if not str(path).strip():
            raise ValueError("Watched file path cannot be empty.")
        resolved = Path(os.path.abspath(Path(path).expanduser()))
        if not resolved.name:
            raise ValueError(f"Invalid watch target: {path}")
        return cls(path=resolved)

    @property
    def repo_root(self) -> Path:
        return self.path.parent

    @property
    def relative_path(self) -> str:
        return self.path.relative_to(self.repo_root).as_posix()


class SerializedVcsOperations:
    """Pull, commit, push and status for one watch target, one at a time."""

    def __init__(self, target: WatchTarget, runner: CommandRunner | None = None):
        if not target.repo_root.is_dir():
            raise RepositoryNotFoundError(
                f"Repository directory not found: {target.repo_root}"
            )
        self.target = target
        self.runner = runner or CommandRunner()
        self._lock = asyncio.Lock()

    async def _git(self, *args: str, check_exit_code: bool = True):
        return await self.runner.run(
            self.target.repo_root,
            args,
            check_exit_code=check_exit_code,
        )

    async def _has_pending_changes(self) -> bool:
        """Status query for the watched path. Caller must hold the lock."""
        result = await self._git("status", "--porcelain", "--", self.target.relative_path)
        if not result.success:
            raise StatusQueryError(f"Unable to read git status: {result.summary}")
        return bool(result.stdout.strip())

    async def has_pending_changes(self) -> bool:
        """True if the watched file has local or staged modifications."""
        async with self._lock:
            return await self._has_pending_changes()

    async def pull(self) -> OperationResult:
        """Fast-forward pull, refused while the watched file is dirty."""
        async with self._lock:
            try:
                dirty = await self._has_pending_changes()
            except StatusQueryError as e:
                return OperationResult.failed(str(e))

            if dirty:
                logger.info("Pull blocked by pending changes", file=self.target.relative_path)
                return OperationResult.failed(
                    "Pull blocked: local or staged changes exist for the watched file. "
                    "Commit/stash/discard them first.",
                    kind=FailureKind.CONFLICT,
                )

            result = await self._git("pull", "--ff-only")
            logger.info("Pull finished", success=result.success, repo=str(self.target.repo_root))
            if not result.success:
                return OperationResult.failed(f"git pull failed: {result.summary}")
            return OperationResult.succeeded("Repository updated successfully.")

    async def commit(self, message: str, push_after_commit: bool = False) -> OperationResult:
        """Stage the watched file, commit it and optionally push."""
        if not message or not message.strip():
            return OperationResult.failed(
                "Commit message cannot be empty.",
                kind=FailureKind.VALIDATION,
            )

        async with self._lock:
            add_result = await self._git("add", "--", self.target.relative_path)
            if not add_result.success:
                return OperationResult.failed(f"git add failed: {add_result.summary}")

            # Exit code is the answer here: 0 = nothing staged, 1 = staged changes
            diff_result = await self._git("diff", "--cached", "--quiet", check_exit_code=False)
            if diff_result.exit_code == 0:
                return OperationResult.failed(
                    "No staged changes detected. Nothing to commit.",
                    kind=FailureKind.CONFLICT,
                )
            if diff_result.exit_code != 1:
                return OperationResult.failed(
                    f"Unable to check staged changes: {diff_result.summary}",
                    kind=FailureKind.AMBIGUOUS_STATE,
                )

            commit_result = await self._git("commit", "-m", message.strip())
            if not commit_result.success:
                return OperationResult.failed(f"git commit failed: {commit_result.summary}")

            logger.info("Committed watched file", file=self.target.relative_path)

            if not push_after_commit:
                return OperationResult.succeeded("Commit completed.")

            push_result = await self._git("push")
            if not push_result.success:
                # History already contains the commit; only the push needs attention
                logger.warning("Push after commit failed", summary=push_result.summary)
                return OperationResult.failed(
                    f"Commit succeeded, but git push failed: {push_result.summary}"
                )
            return OperationResult.succeeded("Commit and push completed.")

    async def push(self) -> OperationResult:
        """Push the current branch."""
        async with self._lock:
            result = await self._git("push")
            logger.info("Push finished", success=result.success, repo=str(self.target.repo_root))
            if not result.success:
                return OperationResult.failed(f"git push failed: {result.summary}")
            return OperationResult.succeeded("Push completed.")
