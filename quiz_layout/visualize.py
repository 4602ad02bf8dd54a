from typing import Sequence, Tuple
import matplotlib.pyplot as plt
import numpy as np
import cv2

from .config import ANSWER_LETTERS
from .types import LayoutMatch, Rect

CORE_COLOR = (0, 0, 255)
CHOICE_COLOR = (0, 255, 0)
REJECT_COLOR = (0, 165, 255)


def _as_bgr(img: np.ndarray) -> np.ndarray:
    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
    if img.shape[2] == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2BGR)
    return img.copy()


def _draw_rect(vis: np.ndarray, rect: Rect, color: Tuple[int, int, int], label: str = "") -> None:
    cv2.rectangle(vis, (rect.left, rect.top), (rect.right, rect.bottom), color, 2)
    if label:
        cv2.putText(
            vis,
            label,
            (rect.left + 4, max(0, rect.top - 6)),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.8,
            color,
            2,
            cv2.LINE_AA,
        )


def draw_layout_on_image(img: np.ndarray, match: LayoutMatch) -> np.ndarray:
    vis = _as_bgr(img)
    _draw_rect(vis, match.core, CORE_COLOR, "core")
    for letter, rect in zip(ANSWER_LETTERS, match.choices):
        _draw_rect(vis, rect, CHOICE_COLOR, letter)
    return vis


def draw_candidates_on_image(
    img: np.ndarray,
    rects: Sequence[Rect],
    label: str = "",
) -> np.ndarray:
    """Outline rejected candidates, e.g. on the edge map of a failed match."""
    vis = _as_bgr(img)
    for i, rect in enumerate(rects):
        _draw_rect(vis, rect, REJECT_COLOR, f"{label}{i}")
    return vis


def preview(img_bgr: np.ndarray, title: str) -> None:
    vis_rgb = cv2.cvtColor(_as_bgr(img_bgr), cv2.COLOR_BGR2RGB)
    plt.figure(figsize=(6, 12))
    plt.imshow(vis_rgb)
    plt.title(title)
    plt.axis("off")
    plt.show()
