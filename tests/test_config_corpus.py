import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

from pydantic import ValidationError

from portfolio_chat.config import Settings
from portfolio_chat.corpus import CorpusLoader


class TestSettings(unittest.TestCase):
    def test_defaults(self):
        s = Settings(_env_file=None)
        self.assertEqual(s.CHUNK_SIZE, 1000)
        self.assertEqual(s.CHUNK_OVERLAP, 200)
        self.assertEqual(s.REQUEST_TIMEOUT_SECONDS, 90.0)
        self.assertEqual(s.STATUS_SENTINEL, "system_check")

    def test_embedding_model_falls_back_to_llm_model(self):
        self.assertEqual(Settings(_env_file=None, LLM_MODEL="llama3").embedding_model, "llama3")
        self.assertEqual(
            Settings(_env_file=None, EMBEDDING_MODEL="nomic-embed-text").embedding_model, "nomic-embed-text"
        )

    def test_overlap_must_be_smaller_than_size(self):
        with self.assertRaises(ValidationError):
            Settings(_env_file=None, CHUNK_SIZE=100, CHUNK_OVERLAP=100)
        with self.assertRaises(ValidationError):
            Settings(_env_file=None, TOP_K=0)


class TestCorpusLoader(unittest.TestCase):
    def test_text_file_is_one_segment(self):
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "cv.md"
            path.write_text("# Abdul Mohiz\nWeb developer", encoding="utf-8")
            self.assertEqual(CorpusLoader(path).load(), ["# Abdul Mohiz\nWeb developer"])

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            CorpusLoader(Path("missing/cv.pdf")).load()

    def test_unsupported_type(self):
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "cv.docx"
            path.write_bytes(b"binary")
            with self.assertRaises(ValueError):
                CorpusLoader(path).load()


if __name__ == "__main__":
    unittest.main()
