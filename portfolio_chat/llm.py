# portfolio_chat/llm.py
from __future__ import annotations
from typing import AsyncGenerator, AsyncIterator, List, Dict, Optional
import json
import logging
import httpx

from .config import settings
from .embeddings import native_base_url
from .errors import GenerationError

log = logging.getLogger(__name__)

KEEP_ALIVE = "30m"


class LLMAdapter:
    """
    Ein httpx-Client für alles, was mit Ollama spricht:
      - OpenAI-kompatibel (/v1/chat/completions) für die eigentliche Antwort
      - nativ (/api/tags, /api/chat) für Probe und Warmup
    """

    def __init__(self, _settings: settings.__class__) -> None:
        self._settings = _settings
        self.client: Optional[httpx.AsyncClient] = None

    def _native_url(self, path: str) -> str:
        # http://127.0.0.1:11434/v1 + /api/tags -> http://127.0.0.1:11434/api/tags
        return native_base_url(self._settings.LLM_BASE_URL) + "/" + path.lstrip("/")

    async def startup(self) -> None:
        if self.client is not None:
            return
        s = self._settings
        self.client = httpx.AsyncClient(
            base_url=s.LLM_BASE_URL.rstrip("/"),
            timeout=httpx.Timeout(s.REQUEST_TIMEOUT_SECONDS),
            http2=True,
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
            headers={"Authorization": f"Bearer {s.LLM_API_KEY}"},
        )

    async def shutdown(self) -> None:
        if self.client:
            await self.client.aclose()
            self.client = None

    async def _ready_client(self) -> httpx.AsyncClient:
        await self.startup()
        assert self.client is not None
        return self.client

    async def probe(self) -> bool:
        """
        Prüft über /api/tags, ob das Backend läuft und LLM_MODEL installiert ist.
        Verbindungsfehler werden geworfen, ein fehlendes Modell liefert False.
        """
        client = await self._ready_client()
        r = await client.get(self._native_url("/api/tags"), timeout=self._settings.PROBE_TIMEOUT_SECONDS)
        r.raise_for_status()
        installed = {m.get("name") for m in (r.json() or {}).get("models") or []}
        model = self._settings.LLM_MODEL
        if model in installed:
            log.info("Found model: %s", model)
            return True
        log.warning("Model %s not found. Install it with: ollama pull %s", model, model)
        return False

    async def warmup(self) -> None:
        """Modell vorladen, damit die erste echte Frage nicht den Ladevorgang bezahlt."""
        client = await self._ready_client()
        r = await client.post(
            self._native_url("/api/chat"),
            json={
                "model": self._settings.LLM_MODEL,
                "messages": [{"role": "user", "content": "ping"}],
                "stream": False,
                "keep_alive": KEEP_ALIVE,
            },
        )
        r.raise_for_status()

    async def stream(
        self,
        messages: List[Dict],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> AsyncGenerator[str, None]:
        """Text-Deltas der Completion in Empfangsreihenfolge."""
        client = await self._ready_client()
        s = self._settings
        payload = {
            "model": s.LLM_MODEL,
            "messages": messages,
            "temperature": s.LLM_TEMPERATURE if temperature is None else temperature,
            "max_tokens": max_tokens or s.LLM_MAX_TOKENS,
            "stream": True,
            "keep_alive": KEEP_ALIVE,
        }
        async with client.stream("POST", "/chat/completions", json=payload) as r:
            r.raise_for_status()
            async for frame in _data_frames(r.aiter_lines()):
                delta = extract_delta_text(frame)
                if delta:
                    yield delta

    async def complete(self, messages: List[Dict]) -> str:
        """
        RawCompletion: alle Deltas zusammengefügt.
        HTTP-/Transportfehler -> GenerationError.
        """
        try:
            return "".join([delta async for delta in self.stream(messages)])
        except httpx.HTTPStatusError as e:
            raise GenerationError(f"LLM backend returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise GenerationError(f"LLM backend request failed: {e}") from e


async def _data_frames(lines: AsyncIterator[str]) -> AsyncIterator[str]:
    # SSE-Zeilen "data: {...}" bis "data: [DONE]"
    async for line in lines:
        if not line.startswith("data:"):
            continue
        frame = line[len("data:"):].strip()
        if frame == "[DONE]":
            return
        yield frame


def extract_delta_text(chunk: str) -> Optional[str]:
    """
    Erwartet 'chunk' als JSON-Zeile aus dem OpenAI-Stream (data: {...}).
    Extrahiert choices[0].delta.content, wenn vorhanden.
    """
    try:
        obj = json.loads(chunk)
    except ValueError:
        return None
    if not isinstance(obj, dict):
        return None

    choices = obj.get("choices") or []
    if choices:
        delta = choices[0].get("delta") or {}
        text = delta.get("content")
        if text is not None:
            return text
    # manche Anbieter streamen "content" direkt
    return obj.get("content")
