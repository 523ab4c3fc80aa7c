# portfolio_chat/corpus.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import List
import logging
import fitz  # PyMuPDF
from pypdf import PdfReader

log = logging.getLogger(__name__)


@dataclass
class CorpusLoader:
    """
    Liest das Quelldokument und liefert Roh-Textsegmente.
    PDF: ein Segment pro Seite. .txt/.md: ein Segment.
    """
    path: Path

    def load(self) -> List[str]:
        path = Path(self.path)
        if not path.is_file():
            raise FileNotFoundError(f"Corpus document not found: {path}")

        suffix = path.suffix.lower()
        if suffix in {".txt", ".md"}:
            segments = [path.read_text(encoding="utf-8", errors="ignore")]
        elif suffix == ".pdf":
            segments = self._read_pdf(path)
        else:
            raise ValueError(f"Unsupported file type: {suffix}")

        log.info("Loaded %d segment(s) from %s", len(segments), path.name)
        return segments

    @staticmethod
    def _read_pdf(path: Path) -> List[str]:
        # erst PyMuPDF, Fallback pypdf
        try:
            with fitz.open(path) as doc:
                pages = [page.get_text("text") for page in doc]
            if any(p.strip() for p in pages):
                return pages
        except (RuntimeError, ValueError) as e:
            log.warning("PyMuPDF could not read %s (%s), falling back to pypdf", path.name, e)
        reader = PdfReader(str(path))
        return [page.extract_text() or "" for page in reader.pages]
