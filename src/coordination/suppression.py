"""Suppression gate - silences automatic change detection during programmatic work."""

import threading


class SuppressionScope:
    """Release handle for one held suppression.

    Releases exactly once, whether via the context manager or release().
    """

    def __init__(self, gate: "SuppressionGate"):
        self._gate = gate
        self._released = False
        self._lock = threading.Lock()

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        with self._lock:
            if self._released:
                return
            self._released = True
        self._gate._exit()

    def __enter__(self) -> "SuppressionScope":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.release()
        return False


class SuppressionGate:
    """Reference-counted flag; suppressed while any scope is held."""

    def __init__(self):
        self._count = 0
        self._lock = threading.Lock()

    def hold(self) -> SuppressionScope:
        """Enter a suppressed region. Use as `with gate.hold(): ...`."""
        with self._lock:
            self._count += 1
        return SuppressionScope(self)

    def _exit(self) -> None:
        with self._lock:
            if self._count == 0:
                raise RuntimeError("Suppression released more times than held")
            self._count -= 1

    @property
    def depth(self) -> int:
        return self._count

    @property
    def is_suppressed(self) -> bool:
        return self._count > 0
