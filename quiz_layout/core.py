import logging
import time
from typing import Any, Callable, Optional, Tuple, Union
import numpy as np

from .page import match_page
from .preprocess import edge_map, trace_contours
from .types import DetectionFailure, LayoutMatch
from .visualize import draw_candidates_on_image, draw_layout_on_image, preview

logger = logging.getLogger(__name__)


def detect_layout(
        image: np.ndarray,
        debug: bool = False,
        log: Optional[logging.Logger] = None,
    ) -> Tuple[np.ndarray, Union[LayoutMatch, DetectionFailure]]:
    """Run edge detection, contour tracing and layout matching on a screenshot.

    Returns the edge map together with the match result so callers can
    persist the rejected candidates of a failure.
    """
    edges = edge_map(image)
    contours = trace_contours(edges)
    result = match_page(edges, contours, log=log)

    if debug:
        if isinstance(result, LayoutMatch):
            preview(draw_layout_on_image(image, result), "Layout match")
        else:
            preview(
                draw_candidates_on_image(edges, result.candidates),
                f"No match ({result.reason}, count={len(result.candidates)})",
            )
    return edges, result


def crop_core(image: np.ndarray, match: LayoutMatch) -> np.ndarray:
    H, W = image.shape[:2]
    core = match.core
    x1, y1 = max(0, core.left), max(0, core.top)
    x2 = min(W, core.left + core.width)
    y2 = min(H, core.top + core.height)
    return image[y1:y2, x1:x2].copy()


def wait_for_question(
        capture: Callable[[], np.ndarray],
        retries: int = 5,
        delay: float = 1.0,
        sleep: Callable[[float], Any] = time.sleep,
    ) -> Optional[Tuple[np.ndarray, LayoutMatch]]:
    """Take screenshots until the quiz layout is recognised.

    Returns None when no attempt matched, meaning no question is on screen.
    """
    for attempt in range(1, retries + 1):
        image = capture()
        _, result = detect_layout(image)
        if isinstance(result, LayoutMatch):
            return image, result
        logger.info(
            f"Attempt {attempt}/{retries}: no layout ({result.reason}, "
            f"{len(result.candidates)} candidates)"
        )
        if attempt < retries:
            sleep(delay)
    return None
