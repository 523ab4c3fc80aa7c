# portfolio_chat/streaming.py
from __future__ import annotations
from typing import AsyncIterator, Optional
import asyncio


class StreamEmitter:
    """
    Tipp-Effekt: liefert den fertigen Text Zeichen für Zeichen mit fester Pause.
    Kein Backpressure-Mechanismus, die Generierung selbst ist nicht inkrementell.

    Abbruch: gesetztes `cancel`-Event oder aclose() durch den Konsumenten.
    Danach kommt kein weiteres Zeichen, es wird kein Fehler geworfen.
    """

    def __init__(self, delay: float = 0.02) -> None:
        self.delay = delay

    async def emit(self, text: str, cancel: Optional[asyncio.Event] = None) -> AsyncIterator[str]:
        for i, ch in enumerate(text):
            if i and self.delay > 0:
                await asyncio.sleep(self.delay)
            if cancel is not None and cancel.is_set():
                return
            yield ch
