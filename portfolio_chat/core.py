# portfolio_chat/core.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional
import asyncio
import json
import logging
import time

from .config import settings
from .corpus import CorpusLoader
from .errors import GenerationTimeout, InitializationError
from .lifecycle import InitializationGuard, InitState
from .llm import LLMAdapter
from .normalizer import ResponseNormalizer
from .prompting import PromptBuilder
from .retrieval import Chunker, EmbeddingIndex, RetrievalIndex

log = logging.getLogger("metrics")
build_log = logging.getLogger(__name__)


@dataclass
class IndexBuilder:
    """Dokument laden -> chunken -> einbetten. Wird vom InitializationGuard genau einmal aufgerufen."""
    loader: CorpusLoader
    chunker: Chunker
    embedding_index: EmbeddingIndex

    async def __call__(self) -> RetrievalIndex:
        segments = await asyncio.to_thread(self.loader.load)
        passages = self.chunker.split_all(segments)
        build_log.info("Split into %d passages", len(passages))
        if not passages:
            raise ValueError("Corpus document contains no text")
        return await self.embedding_index.build(passages)


class ApplicationCore:
    """
    Orchestrierung: Frage -> Index bereit? -> Retrieval -> Prompt -> LLM -> Normalisierung.
    Geteilter Zustand liegt nur im InitializationGuard, alles andere ist pro Request.
    """

    def __init__(
        self,
        guard: InitializationGuard,
        embedding_index: EmbeddingIndex,
        prompting: PromptBuilder,
        llm: LLMAdapter,
        normalizer: ResponseNormalizer,
        _settings: settings.__class__ = settings,
    ) -> None:
        self.guard = guard
        self.embedding_index = embedding_index
        self.prompting = prompting
        self.llm = llm
        self.normalizer = normalizer
        self._settings = _settings

    # ---------- Status ----------
    def is_status_request(self, question: str) -> bool:
        return question == self._settings.STATUS_SENTINEL

    async def status(self) -> Dict:
        """
        Antwort auf die Statusabfrage, ohne LLM-Aufruf:
          ready -> {"status": "ready", "model": ...}
          initializing -> {"status": "initializing"}
          sonst Build versuchen -> ready oder {"status": "error", "error": ...}
        """
        state = self.guard.state
        if state is InitState.READY:
            return {"status": "ready", "model": self._settings.LLM_MODEL}
        if state is InitState.INITIALIZING:
            return {"status": "initializing"}
        try:
            await self.guard.ensure_ready()
        except InitializationError as e:
            build_log.error("Initialization during status check failed: %s", e)
            return {"status": "error", "error": str(e) or "Failed to initialize system"}
        return {"status": "ready", "model": self._settings.LLM_MODEL}

    # ---------- RAG ----------
    async def answer(self, question: str, marks: Optional[Dict[str, float]] = None) -> str:
        """
        RawCompletion für eine Frage. Das Warten auf den Index zählt nicht zum Zeitlimit;
        Retrieval + LLM laufen gegen REQUEST_TIMEOUT_SECONDS, der Verlierer wird abgebrochen.
        """
        marks = marks if marks is not None else {}
        index = await self.guard.ensure_ready()
        marks["ready"] = time.perf_counter()

        timeout = self._settings.REQUEST_TIMEOUT_SECONDS
        try:
            return await asyncio.wait_for(self._generate(question, index, marks), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise GenerationTimeout(timeout) from e

    async def _generate(self, question: str, index: RetrievalIndex, marks: Dict[str, float]) -> str:
        passages = await self.embedding_index.query(index, question, self._settings.TOP_K)
        marks["retrieval"] = time.perf_counter()

        messages = self.prompting.build_messages(question, passages)
        marks["prompt"] = time.perf_counter()

        raw = await self.llm.complete(messages)
        marks["llm"] = time.perf_counter()
        return raw

    async def respond(self, question: str) -> str:
        """NormalizedAnswer: answer() + ResponseNormalizer. Fehler werden weitergereicht."""
        question = (question or "").strip()
        if not question:
            raise ValueError("Question is required")

        marks: Dict[str, float] = {"start": time.perf_counter()}
        ok = False
        answer = ""
        try:
            raw = await self.answer(question, marks)
            answer = self.normalizer.normalize(raw, question)
            marks["normalize"] = time.perf_counter()
            ok = True
            return answer
        finally:
            marks["end"] = time.perf_counter()
            metrics = self._build_metrics(marks, len(answer), ok)
            log.info(json.dumps(metrics, ensure_ascii=False))

    # ---------- Metriken ----------
    @staticmethod
    def _ms(a: Optional[float], b: Optional[float]) -> Optional[float]:
        if a is None or b is None:
            return None
        return round((b - a) * 1000.0, 2)

    def _build_metrics(self, marks: Dict[str, float], answer_chars: int, ok: bool) -> Dict:
        m = marks.get
        return {
            "durations_ms": {
                "index_wait": self._ms(m("start"), m("ready")),
                "retrieval": self._ms(m("ready"), m("retrieval")),
                "prompt_build": self._ms(m("retrieval"), m("prompt")),
                "llm": self._ms(m("prompt"), m("llm")),
                "normalize": self._ms(m("llm"), m("normalize")),
                "total": self._ms(m("start"), m("end")),
            },
            "sizes": {"answer_chars": answer_chars},
            "ok": ok,
        }
