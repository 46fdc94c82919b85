from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

# Raw token-classification output for one input string.
RawEntity = dict[str, Any]
Classifier = Callable[[str], list[RawEntity]]
ProgressCallback = Callable[[float | None], None]


class BaseClassifierLoader(ABC):
    """Contract for everything that can build a token classifier."""

    @property
    @abstractmethod
    def model_id(self) -> str:
        """Identifier reported in lifecycle events and results."""

    @abstractmethod
    def load(self, progress: ProgressCallback) -> Classifier:
        """Build the classifier. Runs on a worker thread.

        Args:
            progress: Called with a completion percentage (or ``None`` when
                      unknown) as loading advances.

        Returns:
            A callable mapping text to raw entities. Each entity carries
            ``entity_group`` (or ``entity``), ``word``, ``score`` and, where
            the backend supports it, ``start``/``end`` offsets.

        Raises:
            ModelUnavailableError: if the model cannot be built.
        """
