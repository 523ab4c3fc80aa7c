# portfolio_chat/lifecycle.py
from __future__ import annotations
from enum import Enum
from typing import Awaitable, Callable, Optional
import asyncio
import logging
import time

from .errors import InitializationError
from .retrieval import RetrievalIndex

log = logging.getLogger(__name__)


class InitState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


BuildFn = Callable[[], Awaitable[RetrievalIndex]]
ProbeFn = Callable[[], Awaitable[bool]]


class InitializationGuard:
    """
    Besitzt den einzigen Lebenszyklus des Retrieval-Index:
    Uninitialized -> Initializing -> Ready | Failed (-> sofort wieder Uninitialized).

    Es läuft höchstens ein Build. Alle Aufrufer während Initializing warten auf
    denselben Task und bekommen dasselbe Ergebnis bzw. denselben Fehler.
    """

    def __init__(self, build: BuildFn, probe: Optional[ProbeFn] = None) -> None:
        self._build = build
        self._probe = probe
        self._lock = asyncio.Lock()
        self._state = InitState.UNINITIALIZED
        self._index: Optional[RetrievalIndex] = None
        self._task: Optional[asyncio.Task] = None
        self.last_error: Optional[str] = None
        self.builds_started = 0

    @property
    def state(self) -> InitState:
        return self._state

    @property
    def index(self) -> Optional[RetrievalIndex]:
        return self._index

    async def ensure_ready(self) -> RetrievalIndex:
        if self._state is InitState.READY and self._index is not None:
            return self._index

        async with self._lock:
            if self._state is InitState.READY and self._index is not None:
                return self._index
            task = self._task or self._start_locked()

        # shield: Abbruch eines wartenden Requests bricht den gemeinsamen Build nicht ab
        return await asyncio.shield(task)

    async def start(self) -> None:
        """Build im Hintergrund anstoßen (Prozessstart). Fehler werden nur geloggt."""
        async with self._lock:
            if self._state is InitState.READY or self._task is not None:
                return
            task = self._start_locked()
        task.add_done_callback(_log_background_failure)

    def reset(self) -> None:
        """Verwirft den gecachten Index; der nächste Aufruf baut neu."""
        if self._state is InitState.INITIALIZING:
            raise RuntimeError("Cannot reset while a build is in flight")
        self._index = None
        self._state = InitState.UNINITIALIZED

    def _start_locked(self) -> asyncio.Task:
        self._state = InitState.INITIALIZING
        self.builds_started += 1
        self._task = asyncio.create_task(self._run())
        return self._task

    async def _run(self) -> RetrievalIndex:
        t0 = time.perf_counter()
        try:
            await self._check_backend()
            index = await self._build()
        except asyncio.CancelledError:
            self._state = InitState.UNINITIALIZED
            self._task = None
            raise
        except Exception as e:
            self._state = InitState.FAILED
            self.last_error = str(e) or type(e).__name__
            log.error("Index build failed: %s", self.last_error)
            # Failed ist nur ein Durchgangszustand, der nächste Aufruf versucht es erneut
            self._state = InitState.UNINITIALIZED
            self._task = None
            raise InitializationError(self.last_error) from e

        self._index = index
        self._state = InitState.READY
        self._task = None
        self.last_error = None
        log.info("Index ready: %d passages in %.2fs", len(index), time.perf_counter() - t0)
        return index

    async def _check_backend(self) -> None:
        if self._probe is None:
            return
        try:
            ok = await self._probe()
        except Exception as e:
            log.warning("Backend probe failed: %s", e)
            return
        if not ok:
            log.warning("Backend probe reported the model as unavailable; building anyway")


def _log_background_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        log.warning("Background index build failed: %s", exc)
