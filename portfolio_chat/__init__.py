# portfolio_chat/__init__.py
"""
Persona-Chat über einen Lebenslauf (RAG).
Struktur:
- config.py      : Konfiguration via Pydantic Settings
- errors.py      : Fehlerklassen (Init, Embedding, Generation, Timeout)
- corpus.py      : CorpusLoader (PDF/Text -> Segmente)
- embeddings.py  : Embedding-Backends (Ollama HTTP, lokaler Sentence-Transformer)
- retrieval.py   : Chunker, RetrievalIndex, EmbeddingIndex (exakte Kosinus-Suche)
- lifecycle.py   : InitializationGuard (höchstens ein Index-Build)
- prompting.py   : PromptBuilder (Persona-Block + Kontext + Frage)
- llm.py         : LLMAdapter (Probe, Warmup, Completion)
- persona.py     : Identitätsfakten und feste Antworten
- intents.py     : Intent-Overrides (priorisierte Tabelle)
- normalizer.py  : ResponseNormalizer (geordnete Textstufen)
- streaming.py   : StreamEmitter (Tipp-Effekt, abbrechbar)
- core.py        : ApplicationCore (Status, Antwort, Zeitlimit, Metriken)
- api.py         : FastAPI Endpoints (/health, /chat, /stream)
"""
