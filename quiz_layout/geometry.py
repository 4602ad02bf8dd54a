from typing import Any, Tuple
import numpy as np

from .types import Point, Rect


def contour_points(cnt: Any) -> np.ndarray:
    """Return contour points as an (N, 2) int64 array of (x, y).

    Accepts the (N, 1, 2) arrays produced by cv2.findContours, plain (N, 2)
    arrays and sequences of (x, y) pairs.
    """
    pts = np.asarray(cnt, dtype=np.int64)
    if pts.size == 0:
        return pts.reshape(0, 2)
    return pts.reshape(-1, 2)


def bounding_rect(cnt: Any) -> Rect:
    """Tight inclusive bounding box of a non-empty contour."""
    pts = contour_points(cnt)
    if len(pts) == 0:
        raise ValueError("bounding_rect() needs a non-empty contour")
    min_x, min_y = pts.min(axis=0)
    max_x, max_y = pts.max(axis=0)
    return Rect(int(min_x), int(min_y), int(max_x - min_x + 1), int(max_y - min_y + 1))


def iou(a: Rect, b: Rect) -> float:
    x1, y1 = max(a.left, b.left), max(a.top, b.top)
    x2, y2 = min(a.right, b.right), min(a.bottom, b.bottom)
    if x1 > x2 or y1 > y2:
        return 0.0
    # python ints do not overflow, only the final ratio is a float
    inter = (x2 - x1 + 1) * (y2 - y1 + 1)
    union = a.area + b.area - inter
    return inter / union if union > 0 else 0.0


def center(rect: Rect) -> Point:
    return rect.center


def contains(rect: Rect, point: Tuple[int, int]) -> bool:
    return rect.contains(point)


def aspect_ratio(rect: Rect) -> float:
    if rect.height <= 0:
        return 0.0
    return rect.width / rect.height
