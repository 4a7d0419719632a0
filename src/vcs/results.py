"""Result and error types shared by the git command layer."""

from dataclasses import dataclass
from enum import Enum


class VcsError(Exception):
    """Base exception for git coordination failures."""


class StatusQueryError(VcsError):
    """The pending-change query itself failed."""


class RepositoryNotFoundError(VcsError):
    """The repository root for a watch target does not exist."""


class FailureKind(str, Enum):
    """Why an operation did not succeed."""
    VALIDATION = "validation"
    CONFLICT = "conflict"
    PROCESS = "process"
    AMBIGUOUS_STATE = "ambiguous_state"
    LOCKED = "locked"

    @property
    def is_warning(self) -> bool:
        """Warnings need user action; everything else is an error."""
        return self in (FailureKind.VALIDATION, FailureKind.CONFLICT, FailureKind.LOCKED)


@dataclass(frozen=True)
class CommandOutcome:
    """Captured result of one external git invocation."""
    exit_code: int
    success: bool
    stdout: str = ""
    stderr: str = ""

    @property
    def summary(self) -> str:
        """Human-readable summary: error text first, then output, else the exit code."""
        parts = [text.strip() for text in (self.stderr, self.stdout) if text.strip()]
        if not parts:
            return f"exit code {self.exit_code}"
        return " | ".join(parts)


@dataclass(frozen=True)
class OperationResult:
    """Uniform result of a serialized git operation."""
    success: bool
    message: str
    kind: FailureKind | None = None

    @classmethod
    def succeeded(cls, message: str) -> "OperationResult":
        return cls(success=True, message=message)

    @classmethod
    def failed(cls, message: str, kind: FailureKind = FailureKind.PROCESS) -> "OperationResult":
        return cls(success=False, message=message, kind=kind)
