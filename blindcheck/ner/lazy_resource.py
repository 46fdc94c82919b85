"""Shared, lazily built classifier.

State machine::

    UNINITIALIZED --claim--> INITIALIZING --ok--> READY
                                          \\--err--> FAILED

The first caller claims initialization under a lock and submits the load
to a single-thread executor. Every concurrent caller awaits that same
``concurrent.futures.Future``, so the model is built once no matter how many
event loops or threads ask for it. ``READY`` and ``FAILED`` are terminal
until ``reset()``.

The classifier handed out takes an inference lock, so calls arriving from
several worker threads run one at a time.
"""

import asyncio
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum

from blindcheck.logging.logger import Log
from blindcheck.ner.base import BaseClassifierLoader, Classifier, RawEntity
from blindcheck.ner.exceptions import ModelUnavailableError
from blindcheck.ner.lifecycle import LifecycleChannel, SetupEvent


class ResourceState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class LazyClassifier:
    def __init__(self, loader: BaseClassifierLoader, channel: LifecycleChannel) -> None:
        self._loader = loader
        self._channel = channel
        self._lock = threading.Lock()
        self._inference_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ner-load")
        self._future: Future[Classifier] | None = None
        self._state = ResourceState.UNINITIALIZED
        self._generation = 0

    @property
    def model_id(self) -> str:
        return self._loader.model_id

    @property
    def state(self) -> ResourceState:
        with self._lock:
            return self._state

    async def get(self) -> Classifier:
        """Return the classifier, building it on first use.

        Raises:
            ModelUnavailableError: if the (possibly cached) load failed.
        """
        future = self._claim()
        # Shielded so one cancelled caller cannot cancel the shared load.
        return await asyncio.shield(asyncio.wrap_future(future))

    def reset(self) -> None:
        """Forget the cached classifier or cached failure."""
        with self._lock:
            self._generation += 1
            self._future = None
            self._state = ResourceState.UNINITIALIZED
        Log.info(f"Classifier state for {self.model_id} reset")

    def _claim(self) -> "Future[Classifier]":
        with self._lock:
            if self._future is None:
                self._state = ResourceState.INITIALIZING
                self._future = self._executor.submit(self._load, self._generation)
            return self._future

    def _load(self, generation: int) -> Classifier:
        model = self._loader.model_id
        self._channel.publish(SetupEvent(status="start", model=model))

        def on_progress(percent: float | None) -> None:
            self._channel.publish(SetupEvent(status="progress", model=model, percent=percent))

        try:
            classifier = self._loader.load(on_progress)
        except Exception as exc:
            error = exc if isinstance(exc, ModelUnavailableError) else ModelUnavailableError(str(exc))
            self._finish(generation, ResourceState.FAILED)
            Log.warning(f"Classifier {model} unavailable: {error}")
            self._channel.publish(SetupEvent(status="error", model=model, error=str(error)))
            if error is exc:
                raise
            raise error from exc

        self._finish(generation, ResourceState.READY)
        self._channel.publish(SetupEvent(status="ready", model=model))
        return self._serialized(classifier)

    def _serialized(self, classifier: Classifier) -> Classifier:
        def classify(text: str) -> list[RawEntity]:
            with self._inference_lock:
                return classifier(text)

        return classify

    def _finish(self, generation: int, state: ResourceState) -> None:
        with self._lock:
            # A reset during the load detaches it; the new cell stays untouched.
            if generation == self._generation:
                self._state = state
