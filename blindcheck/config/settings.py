from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    pdf_engine: str = "pdfplumber"

    ner_enabled: bool = True
    ner_model_id: str = "Davlan/distilbert-base-multilingual-cased-ner-hrl"
    ner_device: int = -1
    ner_max_chunk_chars: int = 800
    ner_max_chunks: int = 32

    batch_concurrency: int = 4
    file_timeout_seconds: float = 120.0
