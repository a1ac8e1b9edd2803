"""
Score capture from recognized display text.

Text recognition itself happens on the capturing device; this module only
turns recognized text into a candidate score and settles on a value once
the same reading has been seen more than once. Readings from a live camera
flicker, so a single frame is never trusted.
"""
from collections import Counter
from datetime import datetime
from typing import Iterable, Optional

from scoreboard.models.score import Score
from scoreboard.utils.scores import normalize_ocr_score

# samples kept before the tally starts over
MAX_SAMPLES = 10


class ScoreConsensus:
    """Tally of candidate scores from successive frames."""

    def __init__(self, max_samples: int = MAX_SAMPLES):
        self.max_samples = max_samples
        self._counts: Counter = Counter()

    @property
    def count(self) -> int:
        return sum(self._counts.values())

    def add(self, candidate: Optional[int]) -> Optional[int]:
        """
        Record a candidate and return the current consensus, if any.

        The tally resets once it holds more than max_samples readings.
        """
        if candidate is None:
            return self.most_frequent()
        self._counts[candidate] += 1
        best = self.most_frequent()
        if self.count > self.max_samples:
            self._counts.clear()
        return best

    def add_text(self, text: Optional[str]) -> Optional[int]:
        return self.add(normalize_ocr_score(text))

    def most_frequent(self) -> Optional[int]:
        """Value seen more than once with the highest count."""
        repeated = [(count, value) for value, count in self._counts.items() if count > 1]
        if not repeated:
            return None
        top = max(count for count, _ in repeated)
        return next(value for value, count in self._counts.items() if count == top)

    def reset(self) -> None:
        self._counts.clear()


def capture_score(text: Optional[str], initials: str, now: Optional[datetime] = None) -> Optional[Score]:
    """Build a manual score entry from recognized text, None when unreadable."""
    value = normalize_ocr_score(text)
    if value is None or value == 0:
        return None
    return Score(initials=initials, score=value, date=now or datetime.now())


def settle_frames(
    frames: Iterable[Optional[str]],
    initials: str,
    now: Optional[datetime] = None,
    max_samples: int = MAX_SAMPLES,
) -> Optional[Score]:
    """
    Feed successive camera readings through a ScoreConsensus.

    Returns a score built from the last consensus reached, or None when no
    reading was seen more than once.
    """
    consensus = ScoreConsensus(max_samples)
    settled: Optional[int] = None
    for text in frames:
        value = consensus.add_text(text)
        if value:
            settled = value
    if settled is None:
        return None
    return Score(initials=initials, score=settled, date=now or datetime.now())
