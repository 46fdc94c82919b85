from blindcheck.logging.logger import Log
from blindcheck.ner.base import BaseClassifierLoader, Classifier, ProgressCallback
from blindcheck.ner.exceptions import ModelUnavailableError


class TransformersClassifierLoader(BaseClassifierLoader):
    """Builds a HuggingFace token-classification pipeline.

    The ``transformers`` import is deferred to ``load`` so that importing
    this module stays cheap when the classifier is never used.
    """

    def __init__(self, model_id: str, device: int = -1) -> None:
        self._model_id = model_id
        self._device = device  # -1 for CPU, 0+ for GPU

    @property
    def model_id(self) -> str:
        return self._model_id

    def load(self, progress: ProgressCallback) -> Classifier:
        try:
            from transformers import (
                AutoModelForTokenClassification,
                AutoTokenizer,
                pipeline,
            )

            Log.info(f"Loading token classifier {self._model_id}")
            progress(0.0)
            tokenizer = AutoTokenizer.from_pretrained(self._model_id)
            progress(30.0)
            model = AutoModelForTokenClassification.from_pretrained(self._model_id)
            progress(80.0)
            classifier = pipeline(
                "token-classification",
                model=model,
                tokenizer=tokenizer,
                aggregation_strategy="simple",
                device=self._device,
            )
            progress(100.0)
        except ModelUnavailableError:
            raise
        except Exception as exc:
            raise ModelUnavailableError(
                f"Failed to load token classifier '{self._model_id}': {exc}"
            ) from exc
        Log.info(f"Token classifier {self._model_id} loaded")
        return classifier
