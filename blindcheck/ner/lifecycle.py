import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from blindcheck.logging.logger import Log

SetupStatus = Literal["start", "progress", "ready", "error"]


@dataclass(frozen=True)
class SetupEvent:
    """Classifier setup status, published while the model loads."""

    status: SetupStatus
    model: str
    percent: float | None = None
    error: str | None = None


LifecycleListener = Callable[[SetupEvent], None]


class LifecycleChannel:
    """Publish/subscribe channel for classifier setup events.

    Events may be published from the loader thread, so listeners must not
    assume they run on the event loop.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: list[LifecycleListener] = []

    def subscribe(self, listener: LifecycleListener) -> Callable[[], None]:
        """Register *listener* and return a callable that unregisters it."""
        with self._lock:
            self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: LifecycleListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def publish(self, event: SetupEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception as exc:
                Log.warning(f"Lifecycle listener failed on '{event.status}' event: {exc}")


default_channel = LifecycleChannel()
