from enum import IntEnum
from typing import Optional
import numpy as np

from .config import TAP_INSET_RATE, TAP_STD_DEV
from .types import LayoutMatch, Point, Rect


class Answer(IntEnum):
    A = 0
    B = 1
    C = 2
    D = 3

    @classmethod
    def parse(cls, letter: str) -> "Answer":
        key = letter.strip().upper()
        if key not in cls.__members__:
            raise ValueError(f"Not an answer option: {letter!r}")
        return cls[key]


def answer_index(letter: str) -> int:
    return int(Answer.parse(letter))


def random_point(rect: Rect, rng: Optional[np.random.Generator] = None) -> Point:
    """Human-looking tap position inside ``rect``.

    The rect is inset by 1/6 of its size on every side and the point drawn
    from a normal distribution centred in the inset area, so taps cluster
    near the middle without ever touching the border.
    """
    if rect.left < 0 or rect.top < 0:
        raise ValueError(f"Tap area must have a non-negative origin: {rect}")
    if rect.width < 3 or rect.height < 3:
        raise ValueError(f"Tap area must be at least 3x3: {rect}")
    if rect.width < 5 or rect.height < 5:
        return rect.center

    rng = rng or np.random.default_rng()
    dx = rect.width // TAP_INSET_RATE
    dy = rect.height // TAP_INSET_RATE
    inner = Rect(rect.left + dx, rect.top + dy, rect.width - dx * 2, rect.height - dy * 2)

    while True:
        x, y = rng.normal(0.5, TAP_STD_DEV, size=2)
        if 0.0 <= x < 1.0 and 0.0 <= y < 1.0:
            break
    return Point(inner.left + int(inner.width * x), inner.top + int(inner.height * y))


def tap_target(match: LayoutMatch, letter: str, rng: Optional[np.random.Generator] = None) -> Point:
    return random_point(match.choice(answer_index(letter)), rng)
