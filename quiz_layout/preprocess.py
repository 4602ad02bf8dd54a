from typing import List, Tuple
import cv2
import numpy as np

from .config import EDGE_THRESH


def to_gray(img: np.ndarray) -> np.ndarray:
    if img.ndim == 2:
        return img
    if img.shape[2] == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)


def edge_map(img: np.ndarray, thresholds: Tuple[int, int] = EDGE_THRESH) -> np.ndarray:
    low, high = thresholds
    return cv2.Canny(to_gray(img), low, high)


def trace_contours(edges: np.ndarray) -> List[np.ndarray]:
    """All borders of the edge map, every point kept.

    The matcher counts points per contour and per row, so the chain must not
    be simplified.
    """
    contours, _ = cv2.findContours(edges, cv2.RETR_LIST, cv2.CHAIN_APPROX_NONE)
    return list(contours)
