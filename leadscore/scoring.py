"""Deterministic lead scoring over Hebrew transcripts.

The engine is a pure function of (transcript, duration, word count) and the
lexicon version: it normalizes the text, matches each category's phrases and
patterns, turns matches into 0-100 scores, detects objections, and writes a
short Hebrew summary. There is no I/O and no hidden state.
"""

import math
import re
import unicodedata
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from . import lexicon
from .errors import ScoringError
from .models import (
    CategoryScores,
    KeyPhrases,
    ScoringAnalysis,
    ScoringMetadata,
    ScoringResult,
)

# Hebrew points and cantillation marks (letters are U+05D0-U+05EA). Maqaf and
# the Hebrew punctuation signs (U+05BE, U+05C0, U+05C3, U+05C6) are left for
# _PUNCTUATION so they split words.
_HEBREW_MARKS = re.compile(r"[\u0591-\u05BD\u05BF\u05C1\u05C2\u05C4\u05C5\u05C7]")
_PUNCTUATION = re.compile(r"[^\w\s?]")
_WHITESPACE = re.compile(r"\s+")

# Single-letter prefixes that attach to a Hebrew word (ו, ה, ב, ל, כ, ש, מ).
_PREFIXES = "והבלכשמ"

NOTE_TEMPLATES = {
    "high": "לקוח בעל פוטנציאל גבוה לסגירת עסקה - מומלץ לעקוב אחריו באופן מיידי",
    "good": "לקוח בעל פוטנציאל טוב - מומלץ לשמור על קשר",
    "medium": "לקוח עם פוטנציאל בינוני - נדרש מעקב נוסף",
    "low": "לקוח עם פוטנציאל נמוך - מומלץ להתמקד בלקוחות אחרים",
    "objection": "זוהתה התנגדות: {phrases} - נדרש טיפול בהתנגדות",
    "objections": "זוהו התנגדויות: {phrases} - נדרש טיפול בהתנגדויות",
    "long_call": "שיחה ארוכה - סימן לעניין גבוה",
    "talkative": "לקוח דיבר הרבה - סימן למעורבות גבוהה",
}

DOMINANT_TEMPLATES = {
    "urgency": "לקוח עם תחושת דחיפות גבוהה - הזדמנות לסגירה מהירה",
    "budget": "לקוח עם תקציב ברור - פוטנציאל לסגירה בטווח הקצר",
    "interest": "לקוח מתעניין מאוד בנכס - מומלץ להציע צפייה",
    "engagement": "לקוח מעורב מאוד בשיחה - סימן חיובי לכוונה לקנות",
}


class ScoringConfig(BaseModel):
    """Tunable weights and thresholds for the scoring engine."""

    weights: dict[str, float] = Field(
        default_factory=lambda: {
            "urgency": 0.30,
            "budget": 0.25,
            "interest": 0.25,
            "engagement": 0.20,
        }
    )
    # Points per matched phrase, by category and tier.
    tier_weights: dict[str, dict[str, int]] = Field(
        default_factory=lambda: {
            "urgency": {"high": 25, "medium": 10, "pattern": 20},
            "budget": {"high": 20, "medium": 8, "pattern": 15},
            "interest": {"high": 20, "medium": 8, "pattern": 20},
            "engagement": {"high": 15, "medium": 6, "pattern": 15},
        }
    )
    # Added when a category has more than one distinct match.
    multi_match_bonus: dict[str, int] = Field(
        default_factory=lambda: {
            "urgency": 15,
            "budget": 10,
            "interest": 10,
            "engagement": 8,
        }
    )
    extra_word_bonus: int = 2
    question_points: int = 5
    max_questions: int = 4
    floor_score: int = Field(default=10, ge=0, le=100)
    high_potential_threshold: int = 80
    good_potential_threshold: int = 60
    low_potential_threshold: int = 39
    category_high_threshold: int = 70
    long_call_seconds: float = 120
    talkative_word_count: int = 100
    min_reliable_words: int = Field(default=100, gt=0)
    target_match_density: float = Field(default=0.05, gt=0)
    confidence_length_weight: float = 0.5
    confidence_density_weight: float = 0.5

    @field_validator("weights")
    @classmethod
    def _check_weights(cls, value: dict[str, float]) -> dict[str, float]:
        missing = [c for c in lexicon.CATEGORIES if c not in value]
        if missing:
            raise ValueError(f"Missing weights for: {', '.join(missing)}")
        if any(value[c] < 0 for c in lexicon.CATEGORIES):
            raise ValueError("Weights must be non-negative")
        if sum(value[c] for c in lexicon.CATEGORIES) <= 0:
            raise ValueError("Weights must sum to a positive value")
        return value


@dataclass(frozen=True)
class _Entry:
    """One compiled lexicon entry. ``label`` is None for regex patterns."""

    regex: re.Pattern
    weight: int
    label: Optional[str]


@dataclass(frozen=True)
class _Match:
    phrase: str
    position: int
    weight: int


def normalize_text(text: str) -> str:
    """Lower-case, strip Hebrew diacritics and punctuation, collapse spaces.

    Question marks are kept as their own token since they count as an
    interest signal.
    """
    text = unicodedata.normalize("NFKC", text).lower()
    text = _HEBREW_MARKS.sub("", text)
    text = _PUNCTUATION.sub(" ", text)
    text = text.replace("?", " ? ")
    return _WHITESPACE.sub(" ", text).strip()


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp(value: float, low: int = 0, high: int = 100) -> int:
    return max(low, min(high, round_half_up(value)))


def _literal_entry(phrase: str, weight: int) -> _Entry:
    normalized = normalize_text(phrase)
    if " " in normalized:
        regex = re.compile(re.escape(normalized))
    else:
        regex = re.compile(rf"(?<!\S)[{_PREFIXES}]?{re.escape(normalized)}(?!\S)")
    return _Entry(regex=regex, weight=weight, label=phrase)


def _find_matches(entries: list[_Entry], text: str, extra_word_bonus: int = 0) -> list[_Match]:
    """Match entries against text; longer matches claim their span first.

    Returns distinct phrases ordered by first appearance.
    """
    candidates = []
    for order, entry in enumerate(entries):
        for m in entry.regex.finditer(text):
            candidates.append((m.start(), m.end(), order, entry))

    candidates.sort(key=lambda c: (c[0] - c[1], c[0], c[2]))

    claimed: list[tuple[int, int]] = []
    found: dict[str, _Match] = {}
    for start, end, _, entry in candidates:
        if any(start < c_end and c_start < end for c_start, c_end in claimed):
            continue
        claimed.append((start, end))

        phrase = entry.label if entry.label is not None else text[start:end]
        words = len(text[start:end].split())
        weight = entry.weight + extra_word_bonus * max(0, words - 1)

        existing = found.get(phrase)
        if existing is None or start < existing.position:
            found[phrase] = _Match(
                phrase=phrase,
                position=start,
                weight=max(weight, existing.weight if existing else 0),
            )

    return sorted(found.values(), key=lambda m: (m.position, m.phrase))


class ScoringEngine:
    """Scores a transcript for lead quality along four weighted categories."""

    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = config or ScoringConfig()
        self.lexicon_version = lexicon.LEXICON_VERSION
        self._entries = {
            category: self._compile_category(category) for category in lexicon.CATEGORIES
        }
        self._objections = [_literal_entry(p, 0) for p in lexicon.OBJECTION_PHRASES]

    def _compile_category(self, category: str) -> list[_Entry]:
        weights = self.config.tier_weights[category]
        entries = []
        for tier, phrases in lexicon.PHRASES[category].items():
            entries.extend(_literal_entry(p, weights[tier]) for p in phrases)
        entries.extend(
            _Entry(regex=re.compile(p), weight=weights["pattern"], label=None)
            for p in lexicon.PATTERNS.get(category, ())
        )
        return entries

    def score(self, transcript: str, duration: float = 0, word_count: int = 0) -> ScoringResult:
        """
        Score a transcript.

        Args:
            transcript: Transcript text (an empty string is a valid no-signal input)
            duration: Call duration in seconds
            word_count: Number of words spoken

        Returns:
            ScoringResult with scores, key phrases, objections, notes and confidence

        Raises:
            ScoringError: If the transcript is not text or a count is negative
        """
        self._validate(transcript, duration, word_count)

        text = normalize_text(transcript)
        wpm = round_half_up(word_count / duration * 60) if duration > 0 else 0

        matches = {
            category: _find_matches(self._entries[category], text, self.config.extra_word_bonus)
            for category in lexicon.CATEGORIES
        }
        category_scores = {
            category: self._category_score(category, matches[category], text, duration, word_count, wpm)
            for category in lexicon.CATEGORIES
        }
        overall = self.overall_score(category_scores)
        objections = [m.phrase for m in _find_matches(self._objections, text)]
        total_matches = sum(len(m) for m in matches.values())

        notes = self.generate_analysis_notes(
            category_scores, overall, objections, duration, word_count
        )

        return ScoringResult(
            scores=CategoryScores(overall=overall, **category_scores),
            analysis=ScoringAnalysis(
                key_phrases=KeyPhrases(
                    **{c: [m.phrase for m in matches[c]] for c in lexicon.CATEGORIES}
                ),
                objections=objections,
                notes=notes,
                confidence=self.confidence(word_count, total_matches),
            ),
            metadata=ScoringMetadata(
                duration=duration, word_count=word_count, words_per_minute=wpm
            ),
            lexicon_version=self.lexicon_version,
        )

    @staticmethod
    def _validate(transcript, duration, word_count) -> None:
        if not isinstance(transcript, str):
            raise ScoringError(
                "Transcript must be text",
                {"type": type(transcript).__name__},
            )
        if isinstance(duration, bool) or not isinstance(duration, (int, float)) or duration < 0:
            raise ScoringError("Duration must be a non-negative number", {"duration": duration})
        if isinstance(duration, float) and math.isnan(duration):
            raise ScoringError("Duration must be a non-negative number", {"duration": duration})
        if isinstance(word_count, bool) or not isinstance(word_count, int) or word_count < 0:
            raise ScoringError("Word count must be a non-negative integer", {"wordCount": word_count})

    def _category_score(
        self,
        category: str,
        matches: list[_Match],
        text: str,
        duration: float,
        word_count: int,
        wpm: int,
    ) -> int:
        raw = sum(m.weight for m in matches)
        if len(matches) > 1:
            raw += self.config.multi_match_bonus[category]

        if category == "interest":
            questions = min(text.count("?"), self.config.max_questions)
            raw += questions * self.config.question_points

        if category == "engagement":
            if duration > 120:
                raw += 20
            elif duration > 60:
                raw += 10
            if word_count > 100:
                raw += 15
            elif word_count > 50:
                raw += 8
            if wpm > 120:
                raw += 10
            elif wpm > 80:
                raw += 5

        return clamp(max(self.config.floor_score, raw))

    def overall_score(self, category_scores: dict[str, int]) -> int:
        """Weighted average of the category scores, rounded half up."""
        weights = self.config.weights
        total_weight = sum(weights[c] for c in lexicon.CATEGORIES)
        weighted = sum(category_scores[c] * weights[c] for c in lexicon.CATEGORIES)
        return clamp(weighted / total_weight)

    def confidence(self, word_count: int, total_matches: int) -> int:
        """Reliability of the scores given transcript length and match density."""
        if word_count <= 0:
            return 0
        length_signal = min(1.0, word_count / self.config.min_reliable_words)
        density = total_matches / word_count
        density_signal = min(1.0, density / self.config.target_match_density)
        return clamp(
            100
            * (
                self.config.confidence_length_weight * length_signal
                + self.config.confidence_density_weight * density_signal
            )
        )

    def generate_analysis_notes(
        self,
        category_scores: dict[str, int],
        overall: int,
        objections: list[str],
        duration: float = 0,
        word_count: int = 0,
    ) -> str:
        """Build the Hebrew summary. Same inputs always give the same text."""
        cfg = self.config
        notes = []

        if overall >= cfg.high_potential_threshold:
            notes.append(NOTE_TEMPLATES["high"])
        elif overall <= cfg.low_potential_threshold:
            notes.append(NOTE_TEMPLATES["low"])
        elif overall >= cfg.good_potential_threshold:
            notes.append(NOTE_TEMPLATES["good"])
        else:
            notes.append(NOTE_TEMPLATES["medium"])

        if objections:
            template = NOTE_TEMPLATES["objection" if len(objections) == 1 else "objections"]
            notes.append(template.format(phrases=", ".join(objections)))

        # Ties resolve to the first category in lexicon order.
        dominant = max(lexicon.CATEGORIES, key=lambda c: category_scores[c])
        if category_scores[dominant] >= cfg.category_high_threshold:
            notes.append(DOMINANT_TEMPLATES[dominant])

        if duration > cfg.long_call_seconds:
            notes.append(NOTE_TEMPLATES["long_call"])
        if word_count > cfg.talkative_word_count:
            notes.append(NOTE_TEMPLATES["talkative"])

        return ". ".join(notes) + "."

    def describe(self) -> dict:
        """Weights, thresholds and lexicon version, for display."""
        cfg = self.config
        return {
            "lexiconVersion": self.lexicon_version,
            "weights": dict(cfg.weights),
            "thresholds": {
                "highPotential": cfg.high_potential_threshold,
                "goodPotential": cfg.good_potential_threshold,
                "lowPotential": cfg.low_potential_threshold,
                "categoryHigh": cfg.category_high_threshold,
                "floor": cfg.floor_score,
            },
            "categories": {c: lexicon.CATEGORY_LABELS[c] for c in lexicon.CATEGORIES},
        }
