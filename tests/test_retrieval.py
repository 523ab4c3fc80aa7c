import unittest

from portfolio_chat.errors import EmbeddingError
from portfolio_chat.retrieval import Chunker, EmbeddingIndex, Passage, chunk_text

from tests.fakes import FakeEmbedder


class TestChunker(unittest.TestCase):
    def test_empty_input_yields_no_passages(self):
        self.assertEqual(chunk_text("", 1000, 200), [])
        self.assertEqual(Chunker().split("   \n\t "), [])

    def test_short_text_is_single_passage(self):
        passages = Chunker(size=1000, overlap=200).split("  Web developer from Islamabad.  ")
        self.assertEqual(len(passages), 1)
        self.assertEqual(passages[0].text, "Web developer from Islamabad.")
        self.assertEqual(passages[0].offset, 2)

    def test_windows_respect_size_and_overlap(self):
        text = " ".join(f"w{i:03d}" for i in range(500))
        passages = Chunker(size=100, overlap=20).split(text)

        self.assertGreater(len(passages), 1)
        self.assertEqual(passages[0].offset, 0)
        self.assertTrue(text.endswith(passages[-1].text))
        for prev, nxt in zip(passages, passages[1:]):
            self.assertLessEqual(len(prev.text), 100)
            prev_end = prev.offset + len(prev.text)
            self.assertGreater(nxt.offset, prev.offset)
            self.assertLess(nxt.offset, prev_end)
            self.assertLessEqual(prev_end - nxt.offset, 20)
            self.assertEqual(text[nxt.offset:nxt.offset + len(nxt.text)], nxt.text)

    def test_word_longer_than_size_is_own_passage(self):
        self.assertEqual(chunk_text("a" * 50 + " b", 10, 2), ["a" * 50, "b"])

    def test_split_all_numbers_segments(self):
        passages = Chunker(size=1000, overlap=200).split_all(["page one", "", "page three"])
        self.assertEqual([(p.segment, p.text) for p in passages], [(0, "page one"), (2, "page three")])


class TestEmbeddingIndex(unittest.IsolatedAsyncioTestCase):
    async def test_query_orders_by_cosine(self):
        embedder = FakeEmbedder({"a": [1, 0], "b": [0, 1], "c": [1, 1], "q": [1, 0]})
        engine = EmbeddingIndex(embedder)
        index = await engine.build([Passage("a"), Passage("b"), Passage("c")])

        hits = await engine.query(index, "q", 3)
        self.assertEqual([p.text for p in hits], ["a", "c", "b"])

    async def test_ties_keep_ingestion_order(self):
        embedder = FakeEmbedder({"y": [2, 0], "x": [1, 0], "z": [0, 1], "q": [1, 0]})
        engine = EmbeddingIndex(embedder)
        index = await engine.build([Passage("z"), Passage("y"), Passage("x")])

        hits = await engine.query(index, "q", 2)
        self.assertEqual([p.text for p in hits], ["y", "x"])

    async def test_query_is_deterministic(self):
        embedder = FakeEmbedder({"a": [0.3, 0.7], "b": [0.7, 0.3], "q": [0.5, 0.5]})
        engine = EmbeddingIndex(embedder)
        index = await engine.build([Passage("a"), Passage("b")])
        first = await engine.query(index, "q", 2)
        second = await engine.query(index, "q", 2)
        self.assertEqual(first, second)

    async def test_k_limits_and_zero(self):
        engine = EmbeddingIndex(FakeEmbedder())
        index = await engine.build([Passage("a"), Passage("b")])
        self.assertEqual(len(await engine.query(index, "q", 1)), 1)
        self.assertEqual(len(await engine.query(index, "q", 10)), 2)
        self.assertEqual(await engine.query(index, "q", 0), [])

    async def test_empty_index_skips_embedding(self):
        embedder = FakeEmbedder()
        engine = EmbeddingIndex(embedder)
        index = await engine.build([])
        self.assertEqual(len(index), 0)
        self.assertEqual(await engine.query(index, "q", 3), [])
        self.assertEqual(embedder.calls, [])

    async def test_backend_error_propagates(self):
        engine = EmbeddingIndex(FakeEmbedder(error=EmbeddingError("unreachable")))
        with self.assertRaises(EmbeddingError):
            await engine.build([Passage("a")])

    async def test_vector_count_mismatch_is_error(self):
        class ShortEmbedder:
            async def embed(self, texts):
                return [[1.0, 0.0]]

        with self.assertRaises(EmbeddingError):
            await EmbeddingIndex(ShortEmbedder()).build([Passage("a"), Passage("b")])


if __name__ == "__main__":
    unittest.main()
