from dataclasses import dataclass
from typing import Any, Dict, NamedTuple, Tuple


class Point(NamedTuple):
    x: int
    y: int


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle with inclusive pixel bounds.

    right/bottom are the last covered column/row, so a zero sized rect has
    right == left - 1.
    """
    left: int
    top: int
    width: int
    height: int

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Rect size must be non-negative, got {self.width}x{self.height}")

    @property
    def right(self) -> int:
        return self.left + self.width - 1

    @property
    def bottom(self) -> int:
        return self.top + self.height - 1

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def center(self) -> Point:
        return Point(self.left + self.width // 2, self.top + self.height // 2)

    def contains(self, point: Tuple[int, int]) -> bool:
        x, y = point
        return self.left <= x <= self.right and self.top <= y <= self.bottom

    def as_xywh(self) -> Tuple[int, int, int, int]:
        return (self.left, self.top, self.width, self.height)

    def to_dict(self) -> Dict[str, int]:
        return {"left": self.left, "top": self.top, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class LayoutMatch:
    core: Rect                                # question block, full image width
    choices: Tuple[Rect, Rect, Rect, Rect]    # top-to-bottom, index 0 = option A

    def choice(self, index: int) -> Rect:
        return self.choices[index]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matched": True,
            "core": self.core.to_dict(),
            "choices": [c.to_dict() for c in self.choices],
        }


@dataclass(frozen=True)
class DetectionFailure:
    reason: str                               # "count" | "width" | "left" | "gap" | "overlap"
    candidates: Tuple[Rect, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matched": False,
            "reason": self.reason,
            "candidates": [c.to_dict() for c in self.candidates],
        }
