# portfolio_chat/prompting.py
from __future__ import annotations
from typing import Dict, List, Sequence

from . import persona
from .retrieval import Passage


PERSONA_TEMPLATE = """\
You are not an AI assistant. You ARE {name} yourself.

Key facts about yourself:
{facts}

NEVER refer to yourself in the third person. ALWAYS use first-person pronouns like "I", "me", "my" \
when talking about your experiences, skills, education, or opinions.

{rules}
"""

CONVERSATION_RULES = """\
Important conversation guidelines:
- Don't use phrases like "{name} is" or "He will" - instead use "I am" and "I will"
- Don't start your responses with phrases like "Helpful:" or "I'll be helpful"
- Don't label your responses with prefixes or metadata
- Don't say "Let me help you with that" or similar AI-assistant phrases
- Jump directly into answering the question in a natural, conversational way
- Be personal, conversational, and authentic as if you're having a direct conversation
- Keep answers short: two or three sentences unless a list is asked for
"""

CONTEXT_TEMPLATE = """\
Use the following pieces of context from my CV to answer the question at the end. \
If the context does not contain the answer, say that you don't have that information.

{context}

Question: {question}
"""


def preprocess_input(text: str) -> str:
    return " ".join(text.strip().split())


class PromptBuilder:
    """
    Baut den einen User-Prompt: Persona-Block + Top-K Kontext + wörtliche Frage.
    """
    def __init__(self, name: str = persona.NAME, max_sources: int = 4) -> None:
        self.name = name
        self.max_sources = max_sources

    def persona_block(self) -> str:
        facts = "\n".join(f"- {f}" for f in persona.FACTS)
        return PERSONA_TEMPLATE.format(
            name=self.name,
            facts=facts,
            rules=CONVERSATION_RULES.format(name=self.name),
        )

    def build_prompt(self, question: str, passages: Sequence[Passage]) -> str:
        picked: List[str] = []
        seen = set()
        for p in passages:
            raw = (p.text or "").strip()
            key = " ".join(raw.lower().split())
            if not raw or key in seen:
                continue
            picked.append(raw)
            seen.add(key)
            if len(picked) >= self.max_sources:
                break

        context = "\n\n---\n\n".join(picked) or "No additional context."
        return self.persona_block() + "\n" + CONTEXT_TEMPLATE.format(
            context=context, question=preprocess_input(question)
        )

    def build_messages(self, question: str, passages: Sequence[Passage]) -> List[Dict]:
        return [{"role": "user", "content": self.build_prompt(question, passages)}]
