import asyncio
import json
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

from portfolio_chat import persona
from portfolio_chat.config import Settings
from portfolio_chat.core import ApplicationCore, IndexBuilder
from portfolio_chat.corpus import CorpusLoader
from portfolio_chat.errors import GenerationError, GenerationTimeout, InitializationError
from portfolio_chat.lifecycle import InitializationGuard, InitState
from portfolio_chat.normalizer import ResponseNormalizer
from portfolio_chat.prompting import PromptBuilder
from portfolio_chat.retrieval import Chunker, EmbeddingIndex

from tests.fakes import FakeEmbedder, FakeLLM, make_index


def make_core(llm=None, build=None, **overrides):
    _settings = Settings(**{"REQUEST_TIMEOUT_SECONDS": 5, "TOP_K": 2, **overrides})
    embedding_index = EmbeddingIndex(FakeEmbedder())

    async def default_build():
        return await embedding_index.build(
            Chunker(size=60, overlap=10).split(
                "Abdul Mohiz builds e-commerce stores with React. He studies Computer Science at COMSATS."
            )
        )

    guard = InitializationGuard(build or default_build)
    core = ApplicationCore(
        guard,
        embedding_index,
        PromptBuilder(max_sources=_settings.TOP_K),
        llm or FakeLLM("Abdul Mohiz builds stores with React."),
        ResponseNormalizer(),
        _settings,
    )
    return core


class TestIndexBuilder(unittest.IsolatedAsyncioTestCase):
    async def test_builds_index_from_text_corpus(self):
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "cv.txt"
            path.write_text("I build web apps. " * 20, encoding="utf-8")
            builder = IndexBuilder(CorpusLoader(path), Chunker(size=100, overlap=20), EmbeddingIndex(FakeEmbedder()))
            index = await builder()
        self.assertGreater(len(index), 1)

    async def test_empty_corpus_is_error(self):
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "cv.txt"
            path.write_text("   \n", encoding="utf-8")
            builder = IndexBuilder(CorpusLoader(path), Chunker(), EmbeddingIndex(FakeEmbedder()))
            with self.assertRaises(ValueError):
                await builder()

    async def test_missing_corpus_fails_initialization(self):
        builder = IndexBuilder(CorpusLoader(Path("does/not/exist.pdf")), Chunker(), EmbeddingIndex(FakeEmbedder()))
        guard = InitializationGuard(builder)
        with self.assertLogs("portfolio_chat.lifecycle", level="ERROR"):
            with self.assertRaises(InitializationError):
                await guard.ensure_ready()
        self.assertIs(guard.state, InitState.UNINITIALIZED)


class TestApplicationCore(unittest.IsolatedAsyncioTestCase):
    async def test_respond_returns_normalized_answer(self):
        llm = FakeLLM("<think>hmm</think>Abdul Mohiz builds stores with React.")
        core = make_core(llm=llm)
        answer = await core.respond("Which frameworks do you like?")
        self.assertEqual(answer, "I build stores with React.")

    async def test_prompt_contains_persona_context_and_question(self):
        llm = FakeLLM("I use React.")
        core = make_core(llm=llm)
        await core.respond("Which frameworks do you like?")

        (messages,) = llm.calls
        self.assertEqual(len(messages), 1)
        self.assertEqual(messages[0]["role"], "user")
        prompt = messages[0]["content"]
        self.assertIn("You ARE Abdul Mohiz", prompt)
        self.assertIn("e-commerce stores with React", prompt)
        self.assertTrue(prompt.rstrip().endswith("Question: Which frameworks do you like?"))

    async def test_override_still_calls_model(self):
        llm = FakeLLM("something else")
        core = make_core(llm=llm)
        self.assertEqual(await core.respond("hi"), persona.GREETING)
        self.assertEqual(len(llm.calls), 1)

    async def test_blank_question_rejected(self):
        core = make_core()
        with self.assertRaises(ValueError):
            await core.respond("   ")

    async def test_timeout(self):
        core = make_core(llm=FakeLLM("late", delay=1.0), REQUEST_TIMEOUT_SECONDS=0.05)
        with self.assertLogs("metrics", level="INFO"):
            with self.assertRaises(GenerationTimeout) as ctx:
                await core.respond("Which frameworks do you like?")
        self.assertIn("timed out", str(ctx.exception))

    async def test_index_wait_not_counted_in_timeout(self):
        async def slow_build():
            await asyncio.sleep(0.1)
            return make_index()

        core = make_core(llm=FakeLLM("I use React."), build=slow_build, REQUEST_TIMEOUT_SECONDS=0.05)
        self.assertEqual(await core.respond("Which frameworks do you like?"), "I use React.")

    async def test_generation_error_propagates(self):
        core = make_core(llm=FakeLLM(error=GenerationError("LLM backend returned 500")))
        with self.assertRaises(GenerationError):
            await core.respond("Which frameworks do you like?")

    async def test_metrics_logged(self):
        core = make_core(llm=FakeLLM("I use React."))
        with self.assertLogs("metrics", level="INFO") as logs:
            await core.respond("Which frameworks do you like?")
        record = json.loads(logs.records[-1].getMessage())
        self.assertTrue(record["ok"])
        self.assertEqual(record["sizes"]["answer_chars"], len("I use React."))
        self.assertIsNotNone(record["durations_ms"]["total"])
        self.assertIsNotNone(record["durations_ms"]["llm"])


class TestStatus(unittest.IsolatedAsyncioTestCase):
    async def test_sentinel(self):
        core = make_core()
        self.assertTrue(core.is_status_request("system_check"))
        self.assertFalse(core.is_status_request("system check"))

    async def test_status_builds_and_reports_ready(self):
        llm = FakeLLM()
        core = make_core(llm=llm)
        self.assertEqual(await core.status(), {"status": "ready", "model": core._settings.LLM_MODEL})
        self.assertEqual(llm.calls, [])

    async def test_status_while_initializing(self):
        async def slow_build():
            await asyncio.sleep(0.05)
            return make_index()

        core = make_core(build=slow_build)
        await core.guard.start()
        self.assertEqual(await core.status(), {"status": "initializing"})
        await core.guard.ensure_ready()
        self.assertEqual((await core.status())["status"], "ready")

    async def test_status_reports_error(self):
        async def broken_build():
            raise ConnectionError("embedding backend unreachable")

        core = make_core(build=broken_build)
        with self.assertLogs("portfolio_chat", level="ERROR"):
            status = await core.status()
        self.assertEqual(status, {"status": "error", "error": "embedding backend unreachable"})


if __name__ == "__main__":
    unittest.main()
