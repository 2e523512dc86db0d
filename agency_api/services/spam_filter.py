"""
agency_api/services/spam_filter.py — Heuristic spam scoring for contact submissions
Deterministic 0-100 score computed once, before the first write.
Updates to a stored submission never re-score it.

Rules (cumulative, then clamped to [0, 100]):
  - +25 per denylisted keyword present (substring match, lowercase)
  - +30 if "http" appears more than 3 times
  - +20 if uppercase letters make up more than half of all characters
Priority is escalated to high independently when the text says "urgent" or "asap".
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from agency_api.models import Priority
from agency_api.utils.validators import clamp

SPAM_KEYWORDS = (
    "viagra",
    "casino",
    "lottery",
    "winner",
    "click here",
    "buy now",
)
KEYWORD_WEIGHT = 25

LINK_TOKEN = "http"
MAX_LINKS = 3
LINK_WEIGHT = 30

UPPERCASE_RATIO_LIMIT = 0.5
UPPERCASE_WEIGHT = 20

URGENCY_KEYWORDS = ("urgent", "asap")

SPAM_THRESHOLD = 50


@dataclass(frozen=True)
class SpamVerdict:
    score: int
    is_spam: bool


def build_content(fields: Iterable[Optional[str]]) -> str:
    """Join free-text fields (message, subject, services) into one string, original case."""
    return " ".join(f or "" for f in fields)


def uppercase_ratio(text: str) -> float:
    """Share of uppercase letters among all characters. Empty text → 0."""
    if not text:
        return 0.0
    upper = sum(1 for ch in text if ch.isupper())
    return upper / len(text)


def score_text(text: str) -> int:
    """Raw spam score for `text`, clamped to [0, 100]."""
    lowered = text.lower()
    score = 0

    for keyword in SPAM_KEYWORDS:
        if keyword in lowered:
            score += KEYWORD_WEIGHT

    if lowered.count(LINK_TOKEN) > MAX_LINKS:
        score += LINK_WEIGHT

    # Uppercase is measured on the original-case text; lowercasing first would
    # make this rule unreachable.
    if uppercase_ratio(text) > UPPERCASE_RATIO_LIMIT:
        score += UPPERCASE_WEIGHT

    return int(clamp(score, 0, 100))


def classify(text: str) -> SpamVerdict:
    """Score `text`. It is spam exactly when the score reaches SPAM_THRESHOLD."""
    score = score_text(text)
    return SpamVerdict(score=score, is_spam=score >= SPAM_THRESHOLD)


def detect_priority(text: str, default: Priority = Priority.NORMAL) -> Priority:
    """High priority when the sender asks for urgency; otherwise `default`."""
    lowered = text.lower()
    if any(word in lowered for word in URGENCY_KEYWORDS):
        return Priority.HIGH
    return default
