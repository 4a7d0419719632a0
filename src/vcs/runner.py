"""Git command runner - one external invocation per call."""

import asyncio
import os
from pathlib import Path
from typing import Sequence

import structlog

from .results import CommandOutcome

logger = structlog.get_logger()


class CommandRunner:
    """Runs git as a child process and captures its output."""

    def __init__(self, executable: str = "git"):
        self.executable = executable
        self._env = os.environ.copy()
        # Fail fast instead of waiting on a credential prompt nobody can answer
        self._env.setdefault("GIT_TERMINAL_PROMPT", "0")
        self._env.setdefault("GCM_INTERACTIVE", "never")

    async def run(
        self,
        repo_root: Path,
        args: Sequence[str],
        check_exit_code: bool = True,
    ) -> CommandOutcome:
        """Run `<executable> *args` with cwd set to the repository root.

        With check_exit_code=False the outcome is always successful and the
        caller interprets the raw exit code itself. A process that cannot be
        launched at all is reported as exit code -1, never raised.
        """
        try:
            process = await asyncio.create_subprocess_exec(
                self.executable,
                *args,
                cwd=str(repo_root),
                env=self._env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.warning(
                "Failed to launch command",
                executable=self.executable,
                args=list(args),
                error=str(e),
            )
            return CommandOutcome(exit_code=-1, success=False, stderr=str(e))

        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

        exit_code = process.returncode
        success = exit_code == 0 or not check_exit_code

        logger.debug(
            "Command finished",
            args=list(args),
            exit_code=exit_code,
            repo=str(repo_root),
        )

        return CommandOutcome(
            exit_code=exit_code,
            success=success,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )
