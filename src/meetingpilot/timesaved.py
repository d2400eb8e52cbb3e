"""Summary: Estimates of meeting time saved by reading an analysis instead.

Importance: Drives the advisory `hours_saved` usage counter.
Alternatives: Ask users to enter the meeting length by hand.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

SPEAKING_WORDS_PER_MINUTE = 155
DISCUSSION_FACTOR = 1.5
READING_WORDS_PER_MINUTE = 225

# (pattern, minutes per unit)
_DURATION_PATTERNS = (
    (re.compile(r"(\d+)\s*minute\s*meeting"), 1),
    (re.compile(r"(\d+)\s*min\s*meeting"), 1),
    (re.compile(r"(\d+)\s*hour\s*meeting"), 60),
    (re.compile(r"meeting\s*lasted\s*(\d+)\s*minutes?"), 1),
    (re.compile(r"meeting\s*lasted\s*(\d+)\s*hours?"), 60),
    (re.compile(r"(\d+)\s*minute\s*call"), 1),
    (re.compile(r"(\d+)\s*hour\s*call"), 60),
)


@dataclass(frozen=True)
class TimeCalculation:
    """Summary: Result of a time-saved estimate.

    Importance: Keeps the intermediate minutes around for display and tests.
    Alternatives: Return only the hours value.
    """

    meeting_minutes: int
    reading_minutes: int
    hours_saved: float


def count_words(text: str) -> int:
    if not text or not text.strip():
        return 0
    return len(text.split())


def extract_meeting_duration(transcript: str) -> int | None:
    """Summary: Find an explicit duration such as "30 minute meeting" in a transcript.

    Importance: A stated duration beats the word-count estimate.
    Alternatives: Read the duration from calendar metadata.
    """

    text = transcript.lower()
    for pattern, multiplier in _DURATION_PATTERNS:
        match = pattern.search(text)
        if match:
            return int(match.group(1)) * multiplier
    return None


def calculate_time_saved(transcript: str, meeting_minutes: int | None = None) -> TimeCalculation:
    """Summary: Estimate hours saved from transcript length and an optional duration.

    Importance: Produces the value added to `hours_saved` after each analysis.
    Alternatives: Track actual reading time in the client.
    """

    word_count = count_words(transcript)
    duration = meeting_minutes or math.ceil(
        word_count / SPEAKING_WORDS_PER_MINUTE * DISCUSSION_FACTOR
    )
    reading = math.ceil(word_count / READING_WORDS_PER_MINUTE)
    saved_minutes = max(0, duration - reading)
    return TimeCalculation(
        meeting_minutes=duration,
        reading_minutes=reading,
        hours_saved=round(saved_minutes / 60, 2),
    )


def estimate_hours_saved(transcript: str) -> float:
    """Summary: Hours saved for a transcript, honoring any stated duration."""

    return calculate_time_saved(transcript, extract_meeting_duration(transcript)).hours_saved


def format_time_display(hours: float) -> str:
    if hours >= 1:
        return f"{hours:g} {'hour' if hours == 1 else 'hours'}"
    minutes = round(hours * 60)
    return f"{minutes} {'minute' if minutes == 1 else 'minutes'}"
