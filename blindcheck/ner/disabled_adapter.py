from blindcheck.ner.base import BaseClassifierLoader, Classifier, ProgressCallback
from blindcheck.ner.exceptions import ModelUnavailableError


class DisabledClassifierLoader(BaseClassifierLoader):
    """Loader used when NER is switched off; every load fails.

    Callers then take the unavailable path, so author-like metadata is
    still flagged.
    """

    def __init__(self, model_id: str) -> None:
        self._model_id = model_id

    @property
    def model_id(self) -> str:
        return self._model_id

    def load(self, progress: ProgressCallback) -> Classifier:
        _ = progress
        raise ModelUnavailableError("Named entity recognition is disabled by configuration")
