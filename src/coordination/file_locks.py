"""File coordination - waiting for an editor to release the watched file."""

import asyncio
import os
from pathlib import Path

import structlog

try:
    import fcntl
except ImportError:  # Windows: share modes already make a held file fail to open
    fcntl = None

logger = structlog.get_logger()


def try_exclusive_open(path: Path) -> bool:
    """Attempt one exclusive read-write open; True if nobody else holds the file.

    A missing file counts as available.
    """
    try:
        with open(path, "r+b") as handle:
            if fcntl is not None:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
    except FileNotFoundError:
        return True
    except OSError:
        return False
    return True


class LockWaiter:
    """Polls a path until it can be opened exclusively."""

    def __init__(self, poll_interval: float = 0.25):
        self.poll_interval = poll_interval

    async def is_locked(self, path: Path) -> bool:
        """Single probe, used before operations that rewrite the file."""
        return not await asyncio.to_thread(try_exclusive_open, path)

    async def wait_until_unlocked(self, path: Path, timeout: float) -> bool:
        """Wait until the file is free or the timeout elapses.

        Returns False on timeout. Cancellation propagates to the caller.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        attempts = 0

        while loop.time() < deadline:
            attempts += 1
            if await asyncio.to_thread(try_exclusive_open, path):
                if attempts > 1:
                    logger.debug("File unlocked", path=os.fspath(path), attempts=attempts)
                return True
            await asyncio.sleep(self.poll_interval)

        logger.info("File still locked after timeout", path=os.fspath(path), timeout=timeout)
        return False
