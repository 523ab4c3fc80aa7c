# portfolio_chat/api.py
from __future__ import annotations
from typing import AsyncGenerator, List, Optional, Union
from contextlib import asynccontextmanager
from pathlib import Path
import asyncio
import json
import logging
import httpx

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import AliasChoices, BaseModel, Field
from sse_starlette.sse import EventSourceResponse, ServerSentEvent

from .config import settings
from .corpus import CorpusLoader
from .core import ApplicationCore, IndexBuilder
from .embeddings import build_embedder
from .errors import EmbeddingError, GenerationError, GenerationTimeout, InitializationError
from .lifecycle import InitializationGuard
from .llm import LLMAdapter
from .normalizer import ResponseNormalizer
from .prompting import PromptBuilder
from .retrieval import Chunker, EmbeddingIndex
from .streaming import StreamEmitter

log = logging.getLogger(__name__)


# ---------- App & DI ----------
@asynccontextmanager
async def lifespan(app: FastAPI):
    await llm.startup()
    # Index-Build sofort im Hintergrund starten, erster Request wartet ggf. darauf
    await guard.start()
    try:
        await llm.warmup()     # nutzt nativ /api/chat + keep_alive=30m
    except httpx.HTTPError as e:
        log.warning(f"Warmup failed: {e}")
    yield

    # Shutdown
    await llm.shutdown()

app = FastAPI(title="Portfolio Chat", version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)

llm = LLMAdapter(settings)
embedding_index = EmbeddingIndex(build_embedder(settings))
builder = IndexBuilder(CorpusLoader(Path(settings.CORPUS_PATH)), Chunker.from_settings(settings), embedding_index)
guard = InitializationGuard(builder, probe=llm.probe)
core = ApplicationCore(
    guard,
    embedding_index,
    PromptBuilder(settings.PERSONA_NAME, max_sources=settings.TOP_K),
    llm,
    ResponseNormalizer(settings.PERSONA_NAME, concise_threshold=settings.CONCISE_THRESHOLD),
)
emitter = StreamEmitter(settings.STREAM_DELAY_SECONDS)

STREAM_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}


# ---------- Models ----------
class ChatRequest(BaseModel):
    question: Optional[str] = Field(default=None, validation_alias=AliasChoices("question", "message"))
    stream: bool = Field(default=False, validation_alias=AliasChoices("stream", "wantsStreaming"))


class ChatMessage(BaseModel):
    role: str
    content: str


class StreamPayload(BaseModel):
    messages: List[ChatMessage]


# ---------- Helpers ----------
def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


async def _respond(question: str) -> Union[str, JSONResponse]:
    """NormalizedAnswer oder fertige Fehler-Response (Infrastrukturfehler werden nie zu Antworttext)."""
    try:
        return await core.respond(question)
    except InitializationError as e:
        log.error(f"Initialization failed: {e}")
        return _error(503, "Failed to initialize RAG system. Please make sure Ollama is running with the configured model.")
    except GenerationTimeout as e:
        log.warning(str(e))
        return _error(504, str(e))
    except (GenerationError, EmbeddingError) as e:
        log.error(f"Generation failed: {e}")
        return _error(502, f"Error processing your request: {e}")


async def _typing(text: str, request: Request) -> AsyncGenerator[str, None]:
    cancel = asyncio.Event()
    async for ch in emitter.emit(text, cancel):
        yield ch
        if await request.is_disconnected():
            cancel.set()


# ---------- Endpoints ----------
@app.get("/health")
def health():
    return {"status": "ok", "index": guard.state.value}


@app.post("/chat")
async def chat(payload: ChatRequest, request: Request):
    """
    POST /chat
    Body:
      { "question": "What are your skills?", "stream": false }
    Antwort:
      - stream=false: {"response": "..."}
      - stream=true : text/plain, Zeichen für Zeichen
      - Fehler      : {"error": "..."} mit 400/502/503/504
      - question == STATUS_SENTINEL: {"status": "ready"|"initializing"|"error", ...}
    """
    question = (payload.question or "").strip()
    if not question:
        return _error(400, "Question is required")

    if core.is_status_request(question):
        return await core.status()

    result = await _respond(question)
    if isinstance(result, JSONResponse):
        return result
    if not payload.stream:
        return {"response": result}
    return StreamingResponse(
        _typing(result, request),
        media_type="text/plain; charset=utf-8",
        headers=STREAM_HEADERS,
    )


@app.post("/stream")
async def stream(payload: StreamPayload, request: Request):
    """
    POST /stream
    Body:
      {
        "messages": [{"role":"user","content":"What projects have you built?"}]
      }
    Server-Sent Events:
      - event: message, data: {"delta":"..."}
      - event: status,  data: {...}            (nur für STATUS_SENTINEL)
      - event: error,   data: {"type":"...", "message":"..."}
      - event: done,    data: {"ok": true|false}
    """
    last_user = next((m.content for m in reversed(payload.messages) if m.role == "user"), "").strip()

    async def gen():
        if not last_user:
            yield ServerSentEvent(event="error", data=json.dumps({"type": "invalid_input", "message": "No user message."}))
            yield ServerSentEvent(event="done", data=json.dumps({"ok": False}))
            return

        if core.is_status_request(last_user):
            yield ServerSentEvent(event="status", data=json.dumps(await core.status()))
            yield ServerSentEvent(event="done", data=json.dumps({"ok": True}))
            return

        try:
            answer = await core.respond(last_user)
        except (InitializationError, GenerationTimeout, GenerationError, EmbeddingError) as e:
            yield ServerSentEvent(event="error", data=json.dumps({"type": type(e).__name__, "message": str(e)}))
            yield ServerSentEvent(event="done", data=json.dumps({"ok": False}))
            return

        async for ch in emitter.emit(answer):
            if await request.is_disconnected():
                break
            yield ServerSentEvent(event="message", data=json.dumps({"delta": ch}, ensure_ascii=False))
        else:
            yield ServerSentEvent(event="done", data=json.dumps({"ok": True}))

    return EventSourceResponse(gen(), headers=STREAM_HEADERS)
