import asyncio
from typing import Dict, List, Sequence

import numpy as np

from portfolio_chat.retrieval import Passage, RetrievalIndex


class FakeEmbedder:
    """Feste Vektoren pro Text; unbekannte Texte bekommen einen Default-Vektor."""

    def __init__(self, table: Dict[str, Sequence[float]] = None, default=(1.0, 0.0), error: Exception = None):
        self.table = dict(table or {})
        self.default = list(default)
        self.error = error
        self.calls: List[List[str]] = []

    async def embed(self, texts):
        self.calls.append(list(texts))
        if self.error is not None:
            raise self.error
        return [list(self.table.get(t, self.default)) for t in texts]


class FakeLLM:
    def __init__(self, raw: str = "", delay: float = 0.0, error: Exception = None):
        self.raw = raw
        self.delay = delay
        self.error = error
        self.calls: List[List[dict]] = []

    async def complete(self, messages):
        self.calls.append(messages)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.raw


def make_index(*texts: str) -> RetrievalIndex:
    texts = texts or ("I build web apps with React.",)
    passages = tuple(Passage(text=t, offset=i) for i, t in enumerate(texts))
    return RetrievalIndex(passages=passages, vectors=np.ones((len(passages), 2), dtype=np.float32) / np.sqrt(2))
