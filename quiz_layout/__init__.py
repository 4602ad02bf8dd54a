"""Top-level package interface for quiz_layout.

Expose the layout matcher and its result types.
"""
from .page import LayoutInvariantError, match_page  # re-export
from .core import detect_layout, crop_core
from .types import DetectionFailure, LayoutMatch, Point, Rect

__all__ = [
    "match_page",
    "detect_layout",
    "crop_core",
    "LayoutInvariantError",
    "LayoutMatch",
    "DetectionFailure",
    "Point",
    "Rect",
]
