"""Transcript statistics helpers."""

from typing import Optional

from .models import TranscriptionStats

# Words per minute boundaries for the speaking-rate label.
SLOW_WPM = 100
FAST_WPM = 160


def count_words(text: str) -> int:
    """Count whitespace-separated words."""
    return len(text.split())


def speaking_rate(words_per_minute: int) -> str:
    """Qualitative label for a words-per-minute value."""
    if words_per_minute <= 0:
        return "unknown"
    if words_per_minute < SLOW_WPM:
        return "slow"
    if words_per_minute > FAST_WPM:
        return "fast"
    return "normal"


def transcription_stats(text: Optional[str], duration: Optional[float] = None) -> TranscriptionStats:
    """
    Derive word/character statistics from transcript text.

    Args:
        text: Transcript text (None or empty yields zero counts)
        duration: Audio duration in seconds, if known

    Returns:
        TranscriptionStats
    """
    duration = duration or 0.0
    if not text:
        return TranscriptionStats(
            word_count=0,
            character_count=0,
            duration=duration,
            words_per_minute=0,
            speaking_rate="unknown",
        )

    word_count = count_words(text)
    wpm = round(word_count / duration * 60) if duration > 0 else 0
    return TranscriptionStats(
        word_count=word_count,
        character_count=len(text),
        duration=duration,
        words_per_minute=wpm,
        speaking_rate=speaking_rate(wpm),
    )
