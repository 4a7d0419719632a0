"""Git integration - command runner and serialized operations."""

from .operations import SerializedVcsOperations, WatchTarget
from .results import (
    CommandOutcome,
    FailureKind,
    OperationResult,
    RepositoryNotFoundError,
    StatusQueryError,
    VcsError,
)
from .runner import CommandRunner

__all__ = [
    "CommandOutcome",
    "CommandRunner",
    "FailureKind",
    "OperationResult",
    "RepositoryNotFoundError",
    "SerializedVcsOperations",
    "StatusQueryError",
    "VcsError",
    "WatchTarget",
]
