"""Change monitor - debounced detection of finished edits to the watched file."""

import asyncio
import inspect
import os
from typing import Any, Awaitable, Callable

import structlog
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from src.coordination import LockWaiter, SuppressionGate
from src.vcs import SerializedVcsOperations, WatchTarget

logger = structlog.get_logger()

# Raw notifications that may mean the editor wrote the file
RELEVANT_EVENTS = {"modified", "created", "moved"}

ChangesDetected = Callable[[], Awaitable[None] | None]
WarningSink = Callable[[str, str], None]


def _same_file(a: str | bytes, b: str) -> bool:
    return os.path.normcase(os.path.abspath(os.fsdecode(a))) == os.path.normcase(b)


class _TargetEventHandler(FileSystemEventHandler):
    """Filters observer events down to the target file and hands them to the loop."""

    def __init__(self, target: WatchTarget, loop: asyncio.AbstractEventLoop, sink: Callable[[str], None]):
        super().__init__()
        self._target = str(target.path)
        self._loop = loop
        self._sink = sink
        self._detached = False

    def detach(self) -> None:
        """Stop forwarding events to the loop."""
        self._detached = True

    def on_any_event(self, event: Any) -> None:
        if self._detached:
            return
        if event.is_directory or event.event_type not in RELEVANT_EVENTS:
            return

        paths = [event.src_path]
        if event.event_type == "moved":
            paths.append(event.dest_path)
        if not any(_same_file(p, self._target) for p in paths):
            return

        if self._loop.is_closed():
            return
        # Observer thread -> coordinating loop
        try:
            self._loop.call_soon_threadsafe(self._sink, event.event_type)
        except RuntimeError:
            # Loop closed after the check above
            return


class ChangeMonitor:
    """Watches one file and reports when it settles with real changes.

    Each raw event opens a new epoch and cancels the previous pipeline. Only a
    pipeline whose epoch is still current may reach the callback.
    """

    def __init__(
        self,
        target: WatchTarget,
        operations: SerializedVcsOperations,
        gate: SuppressionGate,
        on_changes_detected: ChangesDetected,
        on_warning: WarningSink | None = None,
        lock_waiter: LockWaiter | None = None,
        debounce_delay: float = 0.9,
        unlock_timeout: float = 25.0,
        observer_factory: Callable[[], Any] = Observer,
    ):
        self.target = target
        self.operations = operations
        self.gate = gate
        self.on_changes_detected = on_changes_detected
        self.on_warning = on_warning or (lambda title, message: None)
        self.lock_waiter = lock_waiter or LockWaiter()
        self.debounce_delay = debounce_delay
        self.unlock_timeout = unlock_timeout
        self._observer_factory = observer_factory

        self._observer: Any | None = None
        self._handler: _TargetEventHandler | None = None
        self._joining: list[asyncio.Future] = []
        self._epoch = 0
        self._pending: asyncio.Task | None = None

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def is_watching(self) -> bool:
        return self._observer is not None

    @property
    def pending_task(self) -> asyncio.Task | None:
        return self._pending

    def start(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Attach to the file system, replacing any previous observer."""
        self.stop()
        loop = loop or asyncio.get_running_loop()

        if not self.target.path.exists():
            self.on_warning(
                "Watched file not found",
                f"Watcher started, but file is missing: {self.target.path}",
            )

        handler = _TargetEventHandler(self.target, loop, self.handle_raw_event)
        observer = self._observer_factory()
        observer.schedule(handler, str(self.target.repo_root), recursive=False)
        observer.start()
        self._observer = observer
        self._handler = handler

        logger.info("Watching file", path=str(self.target.path))

    def stop(self) -> None:
        """Detach from the file system and drop any pending pipeline.

        Events queued on the loop before this call are ignored. Inside a running
        loop the observer thread is joined in the default executor; await
        ``wait_stopped()`` to wait for it.
        """
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

        if self._observer is None:
            return

        observer = self._observer
        self._observer = None
        self._handler.detach()
        self._handler = None
        observer.stop()

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            observer.join(timeout=1.0)
        else:
            self._joining.append(loop.run_in_executor(None, observer.join, 1.0))
        logger.info("Stopped watching file", path=str(self.target.path))

    async def wait_stopped(self) -> None:
        """Wait for observer threads detached by ``stop()`` to exit."""
        joining, self._joining = self._joining, []
        if joining:
            await asyncio.gather(*joining)

    def handle_raw_event(self, event_type: str = "modified") -> None:
        """Entry point for raw notifications; must run on the event loop."""
        if not self.is_watching:
            logger.debug("Change ignored after stop", event_type=event_type)
            return
        if self.gate.is_suppressed:
            logger.debug("Change ignored while suppressed", event_type=event_type)
            return

        self._epoch += 1
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = asyncio.get_running_loop().create_task(self._verify(self._epoch))

    def _is_current(self, epoch: int) -> bool:
        return epoch == self._epoch and self.is_watching and not self.gate.is_suppressed

    async def _verify(self, epoch: int) -> None:
        """Debounce, wait for the editor to let go, then check git status."""
        try:
            await asyncio.sleep(self.debounce_delay)
            if not self._is_current(epoch):
                return

            unlocked = await self.lock_waiter.wait_until_unlocked(
                self.target.path,
                self.unlock_timeout,
            )
            if not unlocked:
                logger.warning("Watched file still locked", path=str(self.target.path))
                self.on_warning(
                    "File still locked",
                    "The file remained locked after save. Try again after the editor finishes writing.",
                )
                return

            if not await self.operations.has_pending_changes():
                logger.debug("No pending changes after edit", path=str(self.target.path))
                return

            if not self._is_current(epoch):
                return

            logger.info("Changes detected", path=str(self.target.path), epoch=epoch)
            result = self.on_changes_detected()
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            # Superseded by a newer event or the monitor stopped
            logger.debug("Change pipeline cancelled", epoch=epoch)
            raise
        except Exception as e:
            logger.warning("Change pipeline failed", epoch=epoch, error=str(e))
            self.on_warning("Watcher error", str(e))
