# portfolio_chat/retrieval.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple
import re
import numpy as np

from .config import settings
from .embeddings import Embedder
from .errors import EmbeddingError


_WORD_RE = re.compile(r"\S+")


@dataclass(frozen=True)
class Passage:
    text: str
    segment: int = 0   # Index des Quellsegments (PDF-Seite)
    offset: int = 0    # Zeichen-Offset innerhalb des Segments


def _windows(text: str, size: int, overlap: int) -> List[Tuple[int, int]]:
    """
    Wortgrenzen-Sliding-Window über Zeichen.
    Jedes Fenster ist höchstens `size` Zeichen lang (außer ein einzelnes Wort ist länger),
    aufeinanderfolgende Fenster überlappen um höchstens `overlap` Zeichen.
    """
    words = [(m.start(), m.end()) for m in _WORD_RE.finditer(text)]
    out: List[Tuple[int, int]] = []
    i = 0
    while i < len(words):
        start = words[i][0]
        j = i
        while j < len(words) and words[j][1] - start <= size:
            j += 1
        if j == i:
            j = i + 1  # Überlanges Wort bildet ein eigenes Fenster
        end = words[j - 1][1]
        out.append((start, end))
        if j >= len(words):
            break
        # nächstes Fenster startet so früh wie möglich innerhalb des Overlaps
        k = j
        while k - 1 > i and end - words[k - 1][0] <= overlap:
            k -= 1
        i = k
    return out


def chunk_text(text: str, size: int, overlap: int) -> List[str]:
    return [text[a:b] for a, b in _windows(text, size, overlap)]


@dataclass
class Chunker:
    size: int = 1000
    overlap: int = 200

    @classmethod
    def from_settings(cls, _settings: settings.__class__) -> "Chunker":
        return cls(size=_settings.CHUNK_SIZE, overlap=_settings.CHUNK_OVERLAP)

    def split(self, text: str, segment: int = 0) -> List[Passage]:
        return [
            Passage(text=text[a:b], segment=segment, offset=a)
            for a, b in _windows(text or "", self.size, self.overlap)
        ]

    def split_all(self, segments: Sequence[str]) -> List[Passage]:
        out: List[Passage] = []
        for n, seg in enumerate(segments):
            out.extend(self.split(seg, segment=n))
        return out


@dataclass(frozen=True)
class RetrievalIndex:
    """
    Unveränderliche Sammlung (Passage, Vektor). Vektoren sind zeilenweise L2-normalisiert,
    Score = Kosinus. Exakte Suche, Gleichstand nach Einfügereihenfolge.
    """
    passages: Tuple[Passage, ...]
    vectors: np.ndarray = field(repr=False)

    def __len__(self) -> int:
        return len(self.passages)

    def search(self, query_vector: Sequence[float], k: int) -> List[Tuple[Passage, float]]:
        if k <= 0 or not self.passages:
            return []
        q = _normalize(np.asarray([query_vector], dtype=np.float32))[0]
        if q.shape[0] != self.vectors.shape[1]:
            raise EmbeddingError(
                f"Query vector has dimension {q.shape[0]}, index has {self.vectors.shape[1]}"
            )
        scores = self.vectors @ q
        order = np.argsort(-scores, kind="stable")[:k]
        return [(self.passages[i], float(scores[i])) for i in order]


def _normalize(m: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(m, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return m / norms


@dataclass
class EmbeddingIndex:
    """
    Retrieval-Layer:
    - Passagen einbetten und als RetrievalIndex einfrieren
    - Query einbetten und Top-K per Kosinus liefern
    Backend-Fehler werden als EmbeddingError weitergereicht.
    """
    embedder: Embedder

    async def build(self, passages: Sequence[Passage]) -> RetrievalIndex:
        passages = tuple(passages)
        if not passages:
            return RetrievalIndex(passages=(), vectors=np.zeros((0, 0), dtype=np.float32))

        vectors = await self.embedder.embed([p.text for p in passages])
        if len(vectors) != len(passages):
            raise EmbeddingError(f"Got {len(vectors)} embeddings for {len(passages)} passages")
        try:
            matrix = np.asarray(vectors, dtype=np.float32)
        except ValueError as e:
            raise EmbeddingError(f"Inconsistent embedding dimensions: {e}") from e
        if matrix.ndim != 2:
            raise EmbeddingError("Embeddings must form a 2-D matrix")
        return RetrievalIndex(passages=passages, vectors=_normalize(matrix))

    async def query(self, index: RetrievalIndex, text: str, k: int) -> List[Passage]:
        if k <= 0 or not len(index):
            return []
        vectors = await self.embedder.embed([text])
        if not vectors:
            raise EmbeddingError("Embedding backend returned no vector for the query")
        return [p for p, _ in index.search(vectors[0], k)]
