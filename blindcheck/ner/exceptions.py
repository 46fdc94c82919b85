class NerError(Exception):
    """Base exception for named-entity recognition errors."""


class ModelUnavailableError(NerError):
    """Raised when the classification model cannot be loaded or run.

    Never escapes EntityClassificationAdapter; callers see ``available=False``.
    """


class AnalysisCancelledError(NerError):
    """Raised when a batch cancellation is observed between classifier chunks."""
