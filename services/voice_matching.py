"""
Mapping a spoken transcript onto one of a question's answer options.
"""
import re
import enum
from dataclasses import dataclass
from typing import Optional, Sequence

from core.config import settings

LETTER_PATTERN = re.compile(r"\b([a-d])\b")

HELP_PHRASES = (
    "help",
    "explain",
    "what is",
    "what does",
    "i don't understand",
    "can you explain",
    "tell me about",
    "how does",
    "why",
    "what's",
)


class MatchOutcome(str, enum.Enum):
    matched = "matched"
    no_match = "no_match"
    no_speech = "no_speech"


@dataclass(frozen=True)
class MatchResult:
    outcome: MatchOutcome
    option: Optional[str] = None
    index: Optional[int] = None
    score: Optional[float] = None

    @property
    def matched(self) -> bool:
        return self.outcome == MatchOutcome.matched


def calculate_similarity(first: str, second: str) -> float:
    """
    Score how closely two strings agree, from 0.0 to 1.0.

    Equal after lowercasing and trimming scores 1.0, containment 0.8,
    otherwise the share of ``first``'s words that appear inside (or contain)
    some word of ``second``, over the longer word count.
    """
    s1 = first.lower().strip()
    s2 = second.lower().strip()
    if s1 == s2:
        return 1.0
    if s1 in s2 or s2 in s1:
        return 0.8

    words1 = s1.split()
    words2 = s2.split()
    matching = sum(
        1 for w1 in words1
        if any(w1 in w2 or w2 in w1 for w2 in words2)
    )
    return matching / max(len(words1), len(words2))


def match_answer(transcript: str, options: Sequence[str], threshold: Optional[float] = None) -> MatchResult:
    """Pick the best-scoring option; ties go to the earliest option."""
    if threshold is None:
        threshold = settings.answer_match_threshold
    spoken = (transcript or "").lower().strip()
    if not spoken:
        return MatchResult(MatchOutcome.no_speech)

    best_index = None
    best_score = 0.0
    for index, option in enumerate(options):
        score = calculate_similarity(spoken, option)
        if score > best_score:
            best_index, best_score = index, score

    if best_index is not None and best_score >= threshold:
        return MatchResult(MatchOutcome.matched, options[best_index], best_index, best_score)
    return MatchResult(MatchOutcome.no_match, score=best_score)


def match_session_answer(transcript: str, options: Sequence[str], threshold: Optional[float] = None) -> MatchResult:
    """
    Like ``match_answer``, but a standalone letter a-d picks that option
    by position before any fuzzy scoring.
    """
    spoken = (transcript or "").lower().strip()
    if not spoken:
        return MatchResult(MatchOutcome.no_speech)

    letter = LETTER_PATTERN.search(spoken)
    if letter:
        index = ord(letter.group(1)) - ord("a")
        if index < len(options):
            return MatchResult(MatchOutcome.matched, options[index], index, 1.0)

    return match_answer(spoken, options, threshold)


def is_help_request(transcript: str) -> bool:
    """True when the transcript reads like a question for the assistant."""
    spoken = (transcript or "").lower().strip()
    return any(phrase in spoken for phrase in HELP_PHRASES)
