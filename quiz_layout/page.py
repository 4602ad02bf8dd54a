import logging
from typing import Any, List, Optional, Sequence, Union
import numpy as np

from .config import LAYOUT_THRESH
from .geometry import aspect_ratio, bounding_rect, contour_points
from .nms import nms
from .types import DetectionFailure, LayoutMatch, Rect

logger = logging.getLogger(__name__)


class LayoutInvariantError(RuntimeError):
    """The located question block is too small to be a real quiz screen."""


def _wide_contour_rects(contours: Sequence[Any], img_w: int) -> List[Rect]:
    # choice bars and large chrome span most of the screen; glyphs and icons don't
    rects: List[Rect] = []
    for cnt in contours:
        pts = contour_points(cnt)
        if len(pts) < img_w:
            continue
        rect = bounding_rect(pts)
        if rect.width < img_w // 2:
            continue
        rects.append(rect)
    return rects


def _check_consistency(rects: Sequence[Rect]) -> Optional[str]:
    """Reject frames captured while the choice bars are still animating."""
    widths = [r.width for r in rects]
    if max(widths) - min(widths) > LAYOUT_THRESH["max_width_spread"]:
        return "width"

    lefts = [r.left for r in rects]
    if max(lefts) - min(lefts) > LAYOUT_THRESH["max_left_spread"]:
        return "left"

    # first two in scan order, before sorting by top
    if abs(rects[1].right - rects[0].right) >= LAYOUT_THRESH["max_gap"]:
        return "gap"
    return None


def _check_stacking(rects: Sequence[Rect]) -> bool:
    for prev, cur in zip(rects, rects[1:]):
        if prev.bottom >= cur.top:
            return False
    return True


def match_page(
        edges: np.ndarray,
        contours: Sequence[Any],
        log: Optional[logging.Logger] = None,
    ) -> Union[LayoutMatch, DetectionFailure]:
    """Locate the four choice bars and the question block on an edge map.

    ``edges`` is the binary edge image (only its shape is used) and
    ``contours`` every contour traced from it. Returns a LayoutMatch, or a
    DetectionFailure carrying the candidates that were rejected.
    """
    log = log or logger
    img_h, img_w = edges.shape[:2]
    log.debug("contours: %d", len(contours))

    rects = _wide_contour_rects(contours, img_w)
    log.debug("rects: %d", len(rects))

    rects = nms(rects, iou_thresh=LAYOUT_THRESH["nms_iou"])
    log.debug("nms: %d", len(rects))

    rects = [
        r for r in rects
        if LAYOUT_THRESH["aspect_min"] <= aspect_ratio(r) <= LAYOUT_THRESH["aspect_max"]
    ]
    log.debug("aspect: %d", len(rects))

    if len(rects) != LAYOUT_THRESH["choice_count"]:
        log.debug("expected %d choices, found %d", LAYOUT_THRESH["choice_count"], len(rects))
        return DetectionFailure("count", tuple(rects))

    reason = _check_consistency(rects)
    if reason is not None:
        log.warning("inconsistent choice bars (%s): %s", reason, [r.as_xywh() for r in rects])
        return DetectionFailure(reason, tuple(rects))

    rects = sorted(rects, key=lambda r: r.top)
    if not _check_stacking(rects):
        log.warning("choice bars overlap vertically: %s", [r.as_xywh() for r in rects])
        return DetectionFailure("overlap", tuple(rects))

    first = rects[0]
    core = location_core(
        contours,
        center=first.top + first.height,
        box_h=first.height,
        img_w=img_w,
        img_h=img_h,
        log=log,
    )
    return LayoutMatch(core=core, choices=tuple(rects))


def row_histogram(contours: Sequence[Any], img_h: int) -> np.ndarray:
    """Number of contour points on every image row."""
    hist = np.zeros(img_h, dtype=np.int64)
    for cnt in contours:
        pts = contour_points(cnt)
        if len(pts):
            hist += np.bincount(pts[:, 1], minlength=img_h)[:img_h]
    return hist


def location_core(
        contours: Sequence[Any],
        center: int,
        box_h: int,
        img_w: int,
        img_h: int,
        log: Optional[logging.Logger] = None,
    ) -> Rect:
    return core_from_histogram(
        row_histogram(contours, img_h), center, box_h, img_w, log=log
    )


def core_from_histogram(
        hist: np.ndarray,
        center: int,
        box_h: int,
        img_w: int,
        log: Optional[logging.Logger] = None,
    ) -> Rect:
    """Vertical span of the question block around ``center``.

    Dense rows are followed away from ``center`` until a run of sparse rows
    longer than one choice bar; the block is then padded, and its height is
    snapped to the alignment grid.
    """
    log = log or logger
    img_h = len(hist)
    threshold = LAYOUT_THRESH["density_threshold"]
    align = LAYOUT_THRESH["core_align"]
    max_gap = box_h + 1

    top_y = 0
    begin = center
    for i in range(center - 1, -1, -1):
        if hist[i] < threshold:
            continue
        if begin - i > max_gap:
            off = 3 * box_h // 4
            top_y = max(begin, off) - off
            break
        begin = i

    bottom_y = img_h
    begin = center
    for i in range(center, img_h):
        if hist[i] < threshold:
            continue
        if i - begin > max_gap:
            bottom_y = min(begin + box_h // 2, img_h)
            break
        begin = i

    h = bottom_y - top_y
    if h <= align:
        raise LayoutInvariantError(f"core height {h} (rows {top_y}..{bottom_y}) <= {align}")
    h = h // align * align
    top_y = -(-top_y // align) * align
    bottom_y = -(-bottom_y // align) * align
    if bottom_y - top_y > h:
        top_y += align // 2

    log.debug("core: top=%d height=%d", top_y, h)
    return Rect(0, top_y, img_w, h)
