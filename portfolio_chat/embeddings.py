# portfolio_chat/embeddings.py
from __future__ import annotations
from typing import List, Optional, Protocol
import asyncio
import logging
import time
import httpx

from .config import settings
from .errors import EmbeddingError

log = logging.getLogger(__name__)


class Embedder(Protocol):
    async def embed(self, texts: List[str]) -> List[List[float]]: ...


def native_base_url(url: str) -> str:
    # "http://127.0.0.1:11434/v1" -> "http://127.0.0.1:11434"
    u = (url or "").rstrip("/")
    if u.endswith("/v1"):
        u = u[:-3]
    return u


class OllamaEmbedder:
    """
    Embeddings über die native Ollama-API (/api/embed).
    Ein Request pro Batch, Reihenfolge der Vektoren = Reihenfolge der Texte.
    """

    def __init__(self, _settings: settings.__class__, client: Optional[httpx.AsyncClient] = None) -> None:
        self._settings = _settings
        self._client = client

    async def embed(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        out: List[List[float]] = []
        size = self._settings.EMBEDDING_BATCH_SIZE
        async with self._session() as client:
            for i in range(0, len(texts), size):
                out.extend(await self._embed_batch(client, texts[i:i + size]))
        return out

    def _session(self):
        if self._client is not None:
            return _Borrowed(self._client)
        return httpx.AsyncClient(
            base_url=native_base_url(self._settings.LLM_BASE_URL),
            timeout=httpx.Timeout(self._settings.REQUEST_TIMEOUT_SECONDS),
        )

    async def _embed_batch(self, client: httpx.AsyncClient, batch: List[str]) -> List[List[float]]:
        payload = {"model": self._settings.embedding_model, "input": batch}
        try:
            r = await client.post("/api/embed", json=payload)
            r.raise_for_status()
        except httpx.HTTPError as e:
            raise EmbeddingError(f"Embedding backend request failed: {e}") from e

        vectors = (r.json() or {}).get("embeddings") or []
        if len(vectors) != len(batch):
            raise EmbeddingError(f"Embedding backend returned {len(vectors)} vectors for {len(batch)} texts")
        return vectors


class _Borrowed:
    """Async-Contextmanager um einen fremden Client, der nicht geschlossen wird."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self.client = client

    async def __aenter__(self) -> httpx.AsyncClient:
        return self.client

    async def __aexit__(self, *exc) -> None:
        return None


class LocalEmbedder:
    """
    Lokaler Sentence-Transformer. Das Modell wird erst beim ersten embed()
    geladen, also innerhalb des Index-Builds; Laden und encode() laufen im
    Worker-Thread, damit der Event-Loop frei bleibt.
    """

    def __init__(self, model_path: str) -> None:
        self.model_path = model_path
        self.model = None
        self._loaded_sec: Optional[float] = None

    def _load(self):
        if self.model is not None:
            return self.model
        from sentence_transformers import SentenceTransformer

        t0 = time.perf_counter()
        model = SentenceTransformer(self.model_path)

        # Viele ST-Modelle haben effektiv ~512 Token, konservativ klemmen
        mlen = getattr(getattr(model, "tokenizer", None), "model_max_length", None)
        maxs = [v for v in (getattr(model, "max_seq_length", None), mlen)
                if isinstance(v, int) and 0 < v < 10_000]
        model.max_seq_length = min(maxs + [512])

        model.eval()
        self.model = model
        self._loaded_sec = time.perf_counter() - t0
        log.info("Loaded embedding model %s in %.1fs", self.model_path, self._loaded_sec)
        return model

    def _encode(self, texts: List[str]) -> List[List[float]]:
        vecs = self._load().encode(texts, normalize_embeddings=True, show_progress_bar=False)
        return vecs.tolist()

    async def embed(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        try:
            return await asyncio.to_thread(self._encode, texts)
        except (ImportError, OSError, RuntimeError, ValueError) as e:
            # Modell bleibt ungeladen, der nächste Build versucht es erneut
            raise EmbeddingError(f"Local embedding failed: {e}") from e


def build_embedder(_settings: settings.__class__, client: Optional[httpx.AsyncClient] = None) -> Embedder:
    if _settings.EMBEDDING_BACKEND == "local":
        return LocalEmbedder(_settings.embedding_model)
    return OllamaEmbedder(_settings, client)
