# portfolio_chat/intents.py
"""
Intent-Overrides: priorisierte Tabelle aus (Name, Prädikat, Antwort).
Ausgewertet wird die ORIGINAL-Frage, der erste Treffer gewinnt.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence, Tuple, Union
import math
import re

from . import persona

Predicate = Callable[[str], bool]
Responder = Callable[[str], str]


@dataclass(frozen=True)
class Intent:
    name: str
    matches: Predicate
    respond: Responder


def _pattern(regex: str) -> Predicate:
    compiled = re.compile(regex, re.IGNORECASE)
    return lambda q: compiled.search(q) is not None


def _all(*predicates: Predicate) -> Predicate:
    return lambda q: all(p(q) for p in predicates)


def _fixed(text: str) -> Responder:
    return lambda _q: text


GREETING_RE = r"^\s*(?:hi|hello|hey|hiya|greetings|howdy|good\s+(?:morning|afternoon|evening))(?:\s+there)?[\s!.,]*$"
HOW_ARE_YOU_RE = r"\bhow\s+are\s+you\b|\bhow(?:'s|\s+is)\s+it\s+going\b|\bwhat'?s\s+up\b"
THANKS_RE = r"^\s*(?:thanks|thank\s+you|thx)(?:\s+(?:a\s+lot|so\s+much|very\s+much))?[\s!.]*$"
GOODBYE_RE = r"^\s*(?:bye|goodbye|good\s+bye|see\s+(?:you|ya))\b"
ABOUT_ME_RE = r"tell.*about\s+yourself|more\s+about\s+you\b|\bwho\s+are\s+you\b|\bintroduce\s+yourself\b"
NAME_RE = r"\bwhat(?:'s|\s+is)\s+your\s+name\b"
GRADUATION_RE = r"\bgraduat\w*|\bdegree\b|\buniversity\b|\bwhere\s+(?:do|did)\s+you\s+study\b"
PHOTOSHOP_RE = r"\bphotoshop\b|\badobe\b"
USAGE_RE = r"\bused\b|\buse\b|\bexperience\b|\bskill\b"
NEXTJS_RE = r"\bnext\.?js\b"
SKILLS_RE = r"\b(?:list|what|your)\b.*\bskills?\b|\bskills\s+you\s+have\b|\btech(?:nology)?\s+stack\b"
PROJECTS_RE = (
    r"\bprojects?\b|\bportfolio\b"
    r"|\b(?:have|did)\s+you\s+(?:built|build|made|make|created|create|developed|develop)\b"
)
CLIENTS_RE = (
    r"\bclients?\b|\bfreelanc\w*|\bfiverr\b"
    r"|\bwork(?:ed)?\s+(?:experience|history|with|for)\b|\bwhere\s+(?:do|have)\s+you\s+work(?:ed)?\b"
)
PERSONAL_INFO_RE = (
    r"\bage\b|\bhow\s+old\b|\bbirth\s*(?:day|date)\b|\bdate\s+of\s+birth\b|\bborn\b"
    r"|\baddress\b|\bwhere\s+do\s+you\s+live\b|\bphone\b|\bmobile\s+number\b|\be-?mail\b|\bcontact\b"
    r"|\bfamily\b|\bparents?\b|\bsiblings?\b|\bbrothers?\b|\bsisters?\b|\bmarried\b|\bwife\b|\bgirlfriend\b"
)
DATETIME_RE = (
    r"\bwhat\s+(?:day|date|time|hour)\b|\bwhich\s+day\b|\btoday'?s\s+date\b"
    r"|\bwhat(?:'s|\s+is)\s+the\s+(?:date|time|day|hour)\b"
    r"|\bcurrent\s+(?:time|date|day|hour)\b|\bwhat\s+year\s+is\s+it\b"
)

# die ganze Frage ist die Rechnung: "2020-2021" oder "1920x1080" im Satz zählt nicht
_ARITHMETIC_RE = re.compile(
    r"^\s*(?:(?:what\s+is|what['’]?s|how\s+much\s+is|calculate|compute|solve)\s+)?"
    r"(-?\d+(?:\.\d+)?)\s*([-+*/x×÷])\s*(-?\d+(?:\.\d+)?)[\s?=!.]*$",
    re.IGNORECASE,
)

Number = Union[int, float]


def _parse(token: str) -> Number:
    return float(token) if "." in token else int(token)


def format_number(value: Number) -> str:
    if isinstance(value, int):
        return str(value)
    if value.is_integer():
        return str(int(value))
    return f"{value:.6f}".rstrip("0").rstrip(".")


def _compute(a: Number, op: str, b: Number) -> Union[Number, str]:
    if op == "+":
        return a + b
    if op == "-":
        return a - b
    if op in {"*", "x", "×"}:
        return a * b
    if b == 0:
        return persona.DIVISION_BY_ZERO
    if isinstance(a, int) and isinstance(b, int) and a % b == 0:
        return a // b
    return a / b


def evaluate_arithmetic(question: str) -> Optional[str]:
    """
    Wertet eine Frage aus, die nur aus einem binären Ausdruck besteht
    (+ - * / bzw. x × ÷, optional mit "what is"/"calculate" davor).
    Liefert das Ergebnis als String oder None, wenn die Frage keine Rechnung ist.
    Zu große Zahlen ergeben einen festen Satz statt einer Exception.
    """
    m = _ARITHMETIC_RE.match(question)
    if not m:
        return None
    try:
        a, op, b = _parse(m.group(1)), m.group(2), _parse(m.group(3))
        result = _compute(a, op, b)
        if isinstance(result, str):
            return result
        if isinstance(result, float) and not math.isfinite(result):
            return persona.NUMBER_TOO_LARGE
        return format_number(result)
    except (OverflowError, ValueError):
        # ValueError: int->str über dem Ziffernlimit des Interpreters
        return persona.NUMBER_TOO_LARGE


def _datetime_responder(clock: Callable[[], datetime]) -> Responder:
    def respond(question: str) -> str:
        now = clock()
        q = question.lower()
        if "time" in q or "hour" in q:
            return f"It's {now:%H:%M} right now."
        if "year" in q:
            return f"It's {now.year}."
        if "date" in q:
            return f"Today is {now:%A}, {now:%B} {now.day}, {now.year}."
        return f"Today is {now:%A}."
    return respond


def build_intents(
    clock: Callable[[], datetime] = datetime.now,
    name: str = persona.NAME,
) -> Tuple[Intent, ...]:
    """Deklarierte Reihenfolge = Priorität. Begrüßung und Namensantwort nennen 'name'."""
    return (
        Intent("greeting", _pattern(GREETING_RE), _fixed(persona.greeting(name))),
        Intent("how_are_you", _pattern(HOW_ARE_YOU_RE), _fixed(persona.HOW_ARE_YOU)),
        Intent("thanks", _pattern(THANKS_RE), _fixed(persona.THANKS)),
        Intent("goodbye", _pattern(GOODBYE_RE), _fixed(persona.GOODBYE)),
        Intent("about_me", _pattern(ABOUT_ME_RE), _fixed(persona.ABOUT_ME)),
        Intent("name", _pattern(NAME_RE), _fixed(persona.name_answer(name))),
        Intent("graduation", _pattern(GRADUATION_RE), _fixed(persona.GRADUATION)),
        Intent("photoshop", _all(_pattern(PHOTOSHOP_RE), _pattern(USAGE_RE)), _fixed(persona.PHOTOSHOP)),
        Intent("nextjs", _pattern(NEXTJS_RE), _fixed(persona.NEXTJS)),
        Intent("skills", _pattern(SKILLS_RE), _fixed(persona.SKILLS)),
        Intent("projects", _pattern(PROJECTS_RE), _fixed(persona.PROJECTS)),
        Intent("clients", _pattern(CLIENTS_RE), _fixed(persona.CLIENTS)),
        Intent("personal_info", _pattern(PERSONAL_INFO_RE), _fixed(persona.PERSONAL_INFO_REFUSAL)),
        Intent("arithmetic", lambda q: _ARITHMETIC_RE.match(q) is not None,
               lambda q: evaluate_arithmetic(q) or ""),
        Intent("datetime", _pattern(DATETIME_RE), _datetime_responder(clock)),
    )


def match_intent(question: str, intents: Sequence[Intent]) -> Optional[Tuple[str, str]]:
    """(Intent-Name, Antwort) des ersten Treffers oder None."""
    q = question or ""
    for intent in intents:
        if intent.matches(q):
            return intent.name, intent.respond(q)
    return None
