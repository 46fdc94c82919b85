from blindcheck.config.settings import Settings
from blindcheck.ner.adapter import EntityClassificationAdapter
from blindcheck.ner.base import BaseClassifierLoader
from blindcheck.ner.disabled_adapter import DisabledClassifierLoader
from blindcheck.ner.lazy_resource import LazyClassifier
from blindcheck.ner.lifecycle import LifecycleChannel, default_channel
from blindcheck.ner.transformers_adapter import TransformersClassifierLoader


class NerAdapterFactory:
    """Creates the entity classification adapter from settings."""

    @classmethod
    def create(
        cls,
        settings: Settings,
        channel: LifecycleChannel | None = None,
    ) -> EntityClassificationAdapter:
        resource = LazyClassifier(
            cls.create_loader(settings),
            channel if channel is not None else default_channel,
        )
        return EntityClassificationAdapter(
            resource,
            max_chunk_chars=settings.ner_max_chunk_chars,
            max_chunks=settings.ner_max_chunks,
        )

    @classmethod
    def create_loader(cls, settings: Settings) -> BaseClassifierLoader:
        if not settings.ner_enabled:
            return DisabledClassifierLoader(settings.ner_model_id)
        return TransformersClassifierLoader(settings.ner_model_id, device=settings.ner_device)
