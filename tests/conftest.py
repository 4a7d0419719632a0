"""Shared test doubles."""

import asyncio
from pathlib import Path
from typing import Callable, Sequence

import pytest

from src.vcs import CommandOutcome


class FakeRunner:
    """Stands in for CommandRunner; scripted per git subcommand, records every call."""

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.calls: list[tuple[str, ...]] = []
        self.events: list[tuple[str, tuple[str, ...]]] = []
        self._scripts: dict[str, list[CommandOutcome]] = {}
        self.on_call: Callable[[tuple[str, ...]], None] | None = None

    def script(self, subcommand: str, exit_code: int = 0, stdout: str = "", stderr: str = "") -> None:
        """Queue an outcome for the next call of `subcommand`."""
        self._scripts.setdefault(subcommand, []).append(
            CommandOutcome(exit_code=exit_code, success=exit_code == 0, stdout=stdout, stderr=stderr)
        )

    def subcommands(self) -> list[str]:
        return [call[0] for call in self.calls]

    async def run(
        self,
        repo_root: Path,
        args: Sequence[str],
        check_exit_code: bool = True,
    ) -> CommandOutcome:
        args = tuple(args)
        self.calls.append(args)
        self.events.append(("start", args))
        if self.on_call is not None:
            self.on_call(args)
        if self.delay:
            await asyncio.sleep(self.delay)
        self.events.append(("end", args))

        queued = self._scripts.get(args[0])
        outcome = queued.pop(0) if queued else CommandOutcome(exit_code=0, success=True)
        if not check_exit_code:
            outcome = CommandOutcome(
                exit_code=outcome.exit_code,
                success=True,
                stdout=outcome.stdout,
                stderr=outcome.stderr,
            )
        return outcome


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def workbook(tmp_path):
    """A watched file inside a throwaway repository directory."""
    path = tmp_path / "workbook.xlsx"
    path.write_bytes(b"initial")
    return path
