"""
Reading passages shown during the speech test.

The 'S' in FAST: the user reads a passage aloud and the transcript is
compared against it.
"""

import random
from typing import Optional, Sequence

READING_PASSAGES = (
    "The early bird catches the worm, but the second mouse gets the cheese.",
    "You can't teach an old dog new tricks, but you can teach a new dog old tricks.",
    "The sky is blue in Cincinnati, and the grass is always greener on the other side.",
    "She sells seashells by the seashore, and Peter Piper picked a peck of pickled peppers.",
    "How much wood would a woodchuck chuck if a woodchuck could chuck wood?",
    "Kindly pick the dry red rose. The sky was clear, and the stars were twinkling brightly. "
    "Please fetch my reading glasses from the kitchen table.",
)


class PassageRotation:
    """Cycles through reading passages in order."""

    def __init__(self, passages: Sequence[str] = READING_PASSAGES, start: int = 0):
        if not passages:
            raise ValueError("At least one reading passage is required")
        self.passages = tuple(passages)
        self.index = start % len(self.passages)

    @property
    def current(self) -> str:
        return self.passages[self.index]

    def next(self) -> str:
        self.index = (self.index + 1) % len(self.passages)
        return self.current


def random_passage(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(READING_PASSAGES)
