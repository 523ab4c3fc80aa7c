# portfolio_chat/normalizer.py
"""
Regelbasierte Nachbearbeitung einer LLM-Antwort.

Jede Stufe ist eine reine Funktion (text, frage) -> text. Die Reihenfolge ist in
ResponseNormalizer deklariert; der Intent-Override sitzt zwischen Deduplizierung
und Kürzung und beendet die Pipeline beim ersten Treffer.
"""
from __future__ import annotations
from dataclasses import dataclass
from re import Match, Pattern
from typing import Callable, List, Optional, Sequence, Tuple, Union
import logging
import re

from . import persona
from .intents import Intent, build_intents, match_intent

log = logging.getLogger(__name__)

I = re.IGNORECASE

Replacement = Union[str, Callable[[Match], str]]
Rule = Tuple[Pattern, Replacement]


def apply_rules(text: str, rules: Sequence[Rule]) -> str:
    """Ein sequenzieller Durchlauf, kein Fixpunkt."""
    for pattern, repl in rules:
        text = pattern.sub(repl, text)
    return text


# ---------- 1) Reasoning ----------
_TAG = r"(?:think|thinking|reasoning)"
_CLOSED_REASONING_RE = re.compile(rf"<(?P<tag>{_TAG})\s*>.*?</(?P=tag)\s*>", I | re.S)
_STRAY_CLOSE_RE = re.compile(rf"^.*</{_TAG}\s*>", I | re.S)
_STRAY_OPEN_RE = re.compile(rf"<{_TAG}\s*>", I)


def strip_reasoning(text: str, question: str = "") -> str:
    text = _CLOSED_REASONING_RE.sub("", text)
    # schließender Tag ohne Öffner: alles davor ist Reasoning
    text = _STRAY_CLOSE_RE.sub("", text)
    text = _STRAY_OPEN_RE.sub("", text)
    return text.strip()


# ---------- 2) Formatierung ----------
FORMATTING_RULES: Tuple[Rule, ...] = (
    (re.compile(r"^[ \t]*#{1,6}[ \t]+", re.M), ""),
    (re.compile(r"\bhelpful\s+answer\s*:\s*", I), ""),
    (re.compile(r"\b(?:final\s+)?answer\s*:\s*", I), ""),
    (re.compile(r"\bthe\s+answer\s+is(?:\s+that)?\s*:?\s*", I), ""),
    (re.compile(r"\bhelpful\s*:\s*", I), ""),
    (re.compile(r"\b(?:i['’]?ll|i\s+will)\s+(?:be\s+)?helpful\s*(?:[.:!]+\s*|$)", I), ""),
    (re.compile(r"\blet\s+me\s+(?:be\s+helpful|help\s+you\s+with\s+that)\s*(?:[.:!]+\s*|$)", I), ""),
    (re.compile(r"\*\*"), ""),
    (re.compile(r"(?<!\w)__(?=\S)(.+?)(?<=\S)__(?!\w)"), r"\1"),
    (re.compile(r"(?<![\w*])\*(?=[^\s*])([^*\n]+?)(?<=[^\s*])\*(?![\w*])"), r"\1"),
    (re.compile(r"[ \t]+\n"), "\n"),
    (re.compile(r"\n{3,}"), "\n\n"),
)


def strip_formatting(text: str, question: str = "") -> str:
    # Regeln entfernen nur Zeichen; wiederholen, bis nichts mehr freigelegt wird
    while True:
        cleaned = apply_rules(text, FORMATTING_RULES)
        if cleaned == text:
            return cleaned.strip()
        text = cleaned


# ---------- 3) Person ----------
_HE_VERBS = {"is": "I am", "has": "I have", "will": "I will", "was": "I was", "does": "I do"}
_IRREGULAR = {"has": "have", "is": "am", "does": "do", "studies": "study", "focuses": "focus"}
_PREPOSITIONS = "in|on|with|using|through|into|from|for|by|and|of|about|at|to"


def _he_verb(m: Match) -> str:
    return _HE_VERBS[m.group(1).lower()]


def _agree(m: Match) -> str:
    verb = m.group(1).lower()
    return "I " + _IRREGULAR.get(verb, verb[:-1])


def _upper(m: Match) -> str:
    return m.group(1) + m.group(2).upper()


def person_rules(name: str = persona.NAME) -> Tuple[Rule, ...]:
    """
    Reihenfolge ist Vertrag: Name+Verb vor nacktem Namen, he+Verb vor nacktem he,
    Verbkongruenz und Kontraktionen nach allen I-erzeugenden Regeln,
    Großschreibung ganz am Ende.
    """
    n = r"\s+".join(re.escape(part) for part in name.split())
    return (
        (re.compile(rf"\b{n}\s+is\s+expected\b", I), "I'm expected"),
        (re.compile(rf"\b{n}\s+is\b", I), "I am"),
        (re.compile(rf"\b{n}\s+has\b", I), "I have"),
        (re.compile(rf"\b{n}\s+will\b", I), "I will"),
        (re.compile(rf"\b{n}\s+was\b", I), "I was"),
        (re.compile(rf"\b{n}['’]s\b", I), "my"),
        (re.compile(rf"\b(about|for|with|to|from|by|contact|hire|ask)\s+{n}\b", I), r"\1 me"),
        # "I'm <Name>" / "name is <Name>" bleibt stehen
        (re.compile(rf"(?<!\bI'm )(?<!\bam )(?<!\bis )\b{n}\b", I), "I"),
        (re.compile(r"\bhe\s+is\s+expected\b", I), "I'm expected"),
        (re.compile(r"\bhe['’]s\b", I), "I'm"),
        (re.compile(r"\bhe\s+(is|has|will|was|does)\b", I), _he_verb),
        (re.compile(r"\bhe\b", I), "I"),
        (re.compile(r"\bhimself\b", I), "myself"),
        (re.compile(r"\bhim\b", I), "me"),
        (re.compile(r"\bhis\b", I), "my"),
        (re.compile(
            r"\bI\s+(works|builds|creates|designs|develops|enjoys|specializes|uses|loves|likes"
            r"|knows|lives|studies|focuses|has|is|does)\b", I), _agree),
        (re.compile(r"\bI\s+amn['’]t\b", I), "I'm not"),
        (re.compile(r"\bI\s+am['’]s\b", I), "my"),
        (re.compile(r"\bI\s+am\b", I), "I'm"),
        (re.compile(
            r"\bI\s+have\s+(been|built|completed|created|developed|done|gained|got|learned"
            r"|provided|used|worked)\b", I), r"I've \1"),
        (re.compile(r"\b(for|to|with|about|from|by|of)\s+I\b(?!['’])", I), r"\1 me"),
        (re.compile(rf"\b({_PREPOSITIONS})\s+My\b"), r"\1 my"),
        (re.compile(r"[ \t]{2,}"), " "),
        (re.compile(r"[ \t]+([,.!?;:])"), r"\1"),
        (re.compile(r"^(?:(?:so|well|okay|ok|basically|alright)\s*[,!]\s+)+", I), ""),
        (re.compile(r"\bi\b(?=\s|['’])"), "I"),
        (re.compile(r"(^\s*|[.!?]\s+)([a-z])"), _upper),
    )


# ---------- 4) Deduplizierung ----------
_SENTENCE_RE = re.compile(r"(\S.*?(?:[.!?]+(?=\s|$)|$))(\s*)", re.S)
_LIST_MARKER_RE = re.compile(r"\d{1,3}[.)]")


def split_sentences(text: str) -> List[Tuple[str, str]]:
    """Liefert (Satz, nachfolgender Whitespace); Text ohne Satzzeichen bleibt ein Satz."""
    return [(m.group(1), m.group(2)) for m in _SENTENCE_RE.finditer(text)]


def sentence_key(sentence: str) -> str:
    return " ".join(sentence.lower().split())


def dedupe_sentences(text: str, question: str = "") -> str:
    seen = set()
    out: List[str] = []
    for sentence, sep in split_sentences(text):
        key = sentence_key(sentence)
        # nackte Listennummern wie "1." werden nie entfernt
        if key in seen and not _LIST_MARKER_RE.fullmatch(key):
            continue
        seen.add(key)
        out.append(sentence + sep)
    return "".join(out).strip()


# ---------- 6) Kürzen ----------
_WORKED_ON_RE = re.compile(r"\bworked\s+on\b", I)
_STOPWORDS = frozenset(
    "what which when where about your yours have does with that this there tell from "
    "into were will would could should been they them their more some than then just "
    "like know also please".split()
)


def _stems(text: str) -> set:
    return {w[:5] for w in re.findall(r"[a-z]{4,}", text.lower()) if w not in _STOPWORDS}


def trim_to_essentials(text: str, question: str, threshold: int = 600) -> str:
    """
    Lange Prosa auf das Wesentliche kürzen: erst die ersten zwei Sätze, wenn sie
    ein Inhaltswort der Frage teilen, sonst der erste "worked on"-Satz, sonst unverändert.
    """
    if len(text) <= threshold or has_list_markers(text):
        return text
    sentences = [s for s, _ in split_sentences(text)]
    lead = " ".join(sentences[:2])
    if _stems(question) & _stems(lead):
        return lead
    for s in sentences:
        if _WORKED_ON_RE.search(s):
            return s
    return text


# ---------- 7) Listen ----------
_LIST_TOPIC_RE = re.compile(
    r"\bskills?\b|\bprojects?\b|\bexperiences?\b|\bexperienced\b|\btechnolog\w*|\bwork(?:ed)?\b|\bclients?\b", I
)
_LINE_BREAK_RE = re.compile(r"(?:\s*<br\s*/?>\s*)+|\s*\n\s*", I)
_NUMBERED_RE = re.compile(r"^(\d+)[.)]\s+(.+)$", re.S)
_LOWER_START_RE = re.compile(r"^[a-z]")
_BULLET_RE = re.compile(r"^[-*•]\s+(.+)$", re.S)
_LEADING_BREAKS_RE = re.compile(r"^(?:<br>)+")


def _lines(text: str) -> List[str]:
    return [line.strip() for line in _LINE_BREAK_RE.split(text) if line.strip()]


def has_list_markers(text: str) -> bool:
    return any(_NUMBERED_RE.match(line) or _BULLET_RE.match(line) for line in _lines(text))


def format_lists(text: str, question: str) -> str:
    if not _LIST_TOPIC_RE.search(question or "") or not has_list_markers(text):
        return text

    parts: List[str] = []
    in_list = False
    for line in _lines(text):
        numbered = _NUMBERED_RE.match(line)
        bullet = _BULLET_RE.match(line)
        if numbered:
            # nach "N." beginnt ein Satz: "3) item" -> "3. Item"
            item = _LOWER_START_RE.sub(lambda m: m.group().upper(), numbered.group(2))
            parts.append(f"<br><br>{numbered.group(1)}. {item}")
            in_list = True
        elif bullet:
            parts.append(f"<br>• {bullet.group(1)}")
            in_list = True
        elif in_list:
            parts.append(f"<br><br>{line}")
            in_list = False
        else:
            parts.append((" " if parts else "") + line)
    return _LEADING_BREAKS_RE.sub("", "".join(parts))


# ---------- 8) Keine Information ----------
_NO_INFORMATION_RE = re.compile(
    r"not\s+provided\s+in\s+the\s+(?:given\s+)?context"
    r"|(?:don['’]t|do\s+not|doesn['’]t|does\s+not)\s+have\s+(?:that|this|any|enough|the)\s+information"
    r"|(?:cannot|can['’]t|can\s+not|unable\s+to)\s+determine"
    r"|no\s+information\s+(?:about|on|regarding|is\s+provided)"
    r"|(?:isn['’]t|is\s+not)\s+(?:mentioned|provided)\s+in\s+the\s+context"
    r"|context\s+(?:does\s+not|doesn['’]t)\s+(?:mention|contain|provide)",
    I,
)


def fallback_when_unanswered(text: str, question: str = "") -> str:
    if not text.strip() or _NO_INFORMATION_RE.search(text):
        return persona.NO_INFORMATION
    return text


# ---------- Pipeline ----------
MAX_PASSES = 4


@dataclass(frozen=True)
class Stage:
    name: str
    apply: Callable[[str, str], str]


class ResponseNormalizer:
    """
    normalize(raw, frage) -> finaler Antworttext.

    Reihenfolge:
      1 strip_reasoning  2 strip_formatting  3 correct_person  4 dedupe_sentences
      5 Intent-Override (Originalfrage, erster Treffer gewinnt)
      6 trim_to_essentials  7 format_lists  8 fallback_when_unanswered
    """

    def __init__(
        self,
        name: str = persona.NAME,
        intents: Optional[Sequence[Intent]] = None,
        concise_threshold: int = 600,
    ) -> None:
        self.rules = person_rules(name)
        self.intents = tuple(intents) if intents is not None else build_intents(name=name)
        self.concise_threshold = concise_threshold
        self.before_override: Tuple[Stage, ...] = (
            Stage("strip_reasoning", strip_reasoning),
            Stage("strip_formatting", strip_formatting),
            Stage("correct_person", self.correct_person),
            Stage("dedupe_sentences", dedupe_sentences),
        )
        self.after_override: Tuple[Stage, ...] = (
            Stage("trim_to_essentials", self.trim),
            Stage("format_lists", format_lists),
            Stage("fallback_when_unanswered", fallback_when_unanswered),
        )

    @property
    def stage_names(self) -> List[str]:
        return [s.name for s in self.before_override] + ["intent_override"] + [s.name for s in self.after_override]

    def correct_person(self, text: str, question: str = "") -> str:
        return apply_rules(text, self.rules)

    def trim(self, text: str, question: str) -> str:
        return trim_to_essentials(text, question, self.concise_threshold)

    def override(self, question: str) -> Optional[str]:
        hit = match_intent(question, self.intents)
        if hit is None:
            return None
        name, answer = hit
        log.debug("Intent override: %s", name)
        return answer

    def _run(self, text: str, question: str) -> str:
        for stage in self.before_override:
            text = stage.apply(text, question)

        overridden = self.override(question)
        if overridden is not None:
            return overridden.strip()

        for stage in self.after_override:
            text = stage.apply(text, question)
        return text.strip()

    def normalize(self, raw: str, question: str) -> str:
        """Pipeline wiederholen, bis sich der Text nicht mehr ändert (normalize(normalize(x)) == normalize(x))."""
        text = self._run(raw or "", question)
        for _ in range(MAX_PASSES - 1):
            again = self._run(text, question)
            if again == text:
                break
            text = again
        return text
