# portfolio_chat/config.py
from __future__ import annotations
from typing import List, Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, model_validator


class Settings(BaseSettings):
    """
    Globale App-Einstellungen.

    Alle Werte haben Defaults für ein lokales Ollama; Overrides kommen aus .env.
    EMBEDDING_MODEL ist optional und fällt auf LLM_MODEL zurück.
    """
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # LLM (OpenAI-kompatibel, z.B. Ollama unter /v1)
    LLM_BASE_URL: str = "http://localhost:11434/v1"
    LLM_API_KEY: str = "ollama"
    LLM_MODEL: str = "deepseek-r1:1.5b"
    LLM_TEMPERATURE: float = 0.7
    LLM_MAX_TOKENS: int = 600

    # Embeddings: "ollama" (HTTP) oder "local" (sentence-transformers)
    EMBEDDING_BACKEND: Literal["ollama", "local"] = "ollama"
    EMBEDDING_MODEL: Optional[str] = None
    EMBEDDING_BATCH_SIZE: int = 32

    # Quelldokument (Lebenslauf)
    CORPUS_PATH: str = "data/cv.pdf"

    # Retrieval/Chunking
    CHUNK_SIZE: int = 1000
    CHUNK_OVERLAP: int = 200
    TOP_K: int = 4

    # Zeitlimits & Streaming
    REQUEST_TIMEOUT_SECONDS: float = 90.0
    PROBE_TIMEOUT_SECONDS: float = 5.0
    STREAM_DELAY_SECONDS: float = 0.02

    # Antwort-Nachbearbeitung
    PERSONA_NAME: str = "Abdul Mohiz"
    CONCISE_THRESHOLD: int = 600
    STATUS_SENTINEL: str = "system_check"

    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    @field_validator("CHUNK_SIZE", "TOP_K", "EMBEDDING_BATCH_SIZE", mode="after")
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @model_validator(mode="after")
    def _check_overlap(self) -> "Settings":
        if not 0 <= self.CHUNK_OVERLAP < self.CHUNK_SIZE:
            raise ValueError("CHUNK_OVERLAP must be >= 0 and smaller than CHUNK_SIZE")
        return self

    @property
    def embedding_model(self) -> str:
        return self.EMBEDDING_MODEL or self.LLM_MODEL


settings = Settings()
