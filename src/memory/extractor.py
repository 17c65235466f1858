"""Heuristic extraction of candidate memories from a user's chat message."""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

import structlog

from .models import CandidateMemory, MemoryType

logger = structlog.get_logger()

# Captured values run to end of message or the next clause punctuation
_CLAUSE = r"[^.!?,]+"
# Names run to clause punctuation, stopping early before a word that starts
# another clause or a spaced dash, colon or parenthesis
_NAME = r"[^.!?,;\s][^.!?,;]*?(?=\s+(?:and|but|so|because|though|i)\b|\s+[-:()]|\s*[.!?,;]|\s*$)"
_APOS = "['’]"
# Letters only, so ages and numbers are never taken for names
_WORD = r"[^\W\d_]+"

_PROFESSIONS = (
    "engineer|developer|designer|manager|teacher|doctor|lawyer|nurse|scientist"
    "|writer|artist|student|consultant|analyst|architect"
)

# Single words that follow "I'm" / "call me" without being a name
NOT_A_NAME = frozenset(
    {
        "a", "an", "the", "from", "in", "at", "on", "into", "based", "not", "so",
        "very", "just", "really", "also", "still", "here", "there", "now", "back",
        "going", "trying", "looking", "working", "living", "staying", "feeling",
        "doing", "getting", "thinking", "sure", "sorry", "fine", "good", "great",
        "ok", "okay", "glad", "happy", "tired", "busy", "done", "new", "interested",
        "currently", "always", "never", "about", "like", "it", "that", "this",
        "later", "tomorrow", "when", "if", "anytime", "whenever",
    }
)


@dataclass(frozen=True)
class ExtractionRule:
    """One phrasing: regex with a ``value`` group, rendered through ``template``."""

    category: str
    pattern: re.Pattern
    memory_type: MemoryType
    template: str
    importance: float
    reject_values: frozenset = frozenset()

    def apply(self, text: str) -> CandidateMemory | None:
        match = self.pattern.search(text)
        if not match:
            return None
        groups = {k: v.strip() for k, v in match.groupdict().items() if v is not None}
        value = groups.get("value", "")
        if not value or value.lower() in self.reject_values:
            return None
        return CandidateMemory(
            type=self.memory_type,
            content=self.template.format(**groups),
            importance=self.importance,
        )


def _rule(category, pattern, memory_type, template, importance, reject_values=frozenset()):
    return ExtractionRule(
        category=category,
        pattern=re.compile(pattern, re.IGNORECASE),
        memory_type=memory_type,
        template=template,
        importance=importance,
        reject_values=reject_values,
    )


# Evaluated in order; every matching phrasing contributes a candidate
DEFAULT_RULES: tuple[ExtractionRule, ...] = (
    # identity
    _rule("identity", rf"\bmy name is (?P<value>{_NAME})", MemoryType.FACT,
          "User's name is {value}", 9),
    _rule("identity", rf"\bi{_APOS}m (?P<value>{_WORD})(?=[\s.!?,]|$)", MemoryType.FACT,
          "User's name is {value}", 9, NOT_A_NAME),
    _rule("identity", rf"\bcall me (?P<value>{_WORD})\b", MemoryType.FACT,
          "User's name is {value}", 9, NOT_A_NAME),
    # location
    _rule("location", rf"\bi (?:live|am|stay) in (?P<value>{_CLAUSE})", MemoryType.FACT,
          "User lives in / is from {value}", 7),
    _rule("location", rf"\bi(?:{_APOS}m| am) from (?P<value>{_CLAUSE})", MemoryType.FACT,
          "User lives in / is from {value}", 7),
    _rule("location", rf"\bbased in (?P<value>{_CLAUSE})", MemoryType.FACT,
          "User lives in / is from {value}", 7),
    # occupation
    _rule("occupation", rf"\bi (?:work|am working) (?:as|at|for) (?P<value>{_CLAUSE})",
          MemoryType.FACT, "User works as/at {value}", 7),
    _rule("occupation",
          rf"\bi(?:{_APOS}m| am) an? (?P<value>(?:[\w-]+\s+){{0,3}}?(?:{_PROFESSIONS}))s?\b",
          MemoryType.FACT, "User works as/at {value}", 7),
    _rule("occupation", rf"\bmy job is (?P<value>{_CLAUSE})", MemoryType.FACT,
          "User works as/at {value}", 7),
    # favorite
    _rule("favorite", rf"\bmy favou?rite (?P<category>\w+) is (?P<value>{_CLAUSE})",
          MemoryType.PREFERENCE, "User's favorite {category} is {value}", 6),
    # like
    _rule("like",
          rf"\bi (?:like|love|prefer|enjoy|am into|am a fan of) (?P<value>{_CLAUSE})",
          MemoryType.PREFERENCE, "User likes/enjoys {value}", 5),
    _rule("like", rf"\bi{_APOS}m (?:into|a fan of) (?P<value>{_CLAUSE})",
          MemoryType.PREFERENCE, "User likes/enjoys {value}", 5),
    # dislike
    _rule("dislike",
          rf"\bi (?:don{_APOS}?t like|do not like|hate|dislike|can{_APOS}?t stand|cannot stand) "
          rf"(?P<value>{_CLAUSE})",
          MemoryType.PREFERENCE, "User dislikes {value}", 5),
    # important dates
    _rule("date", rf"\bmy birthday is (?P<value>{_CLAUSE})", MemoryType.FACT,
          "User's birthday is {value}", 8),
    _rule("date", rf"\b(?:my|our) anniversary is (?P<value>{_CLAUSE})", MemoryType.FACT,
          "User's anniversary is {value}", 8),
)


class Extractor(ABC):
    """Turns one conversation turn into candidate memories."""

    @abstractmethod
    def extract(self, user_message: str, assistant_reply: str = "") -> list[CandidateMemory]:
        """Return zero or more candidates. Must not raise on ordinary text."""


class PatternExtractor(Extractor):
    """Regex rule table over the user's message.

    The assistant reply is accepted for interface parity but no rule reads it.
    """

    def __init__(self, rules: tuple[ExtractionRule, ...] | None = None):
        self.rules = DEFAULT_RULES if rules is None else rules

    def extract(self, user_message: str, assistant_reply: str = "") -> list[CandidateMemory]:
        text = (user_message or "").strip()
        if not text:
            return []

        candidates = []
        for rule in self.rules:
            candidate = rule.apply(text)
            if candidate:
                candidates.append(candidate)

        if candidates:
            logger.debug("memory.candidates_extracted", count=len(candidates))
        return candidates
