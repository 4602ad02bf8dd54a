from typing import List, Sequence

from .geometry import iou
from .types import Rect


def nms(rects: Sequence[Rect], iou_thresh: float = 0.6) -> List[Rect]:
    """Greedy single-pass suppression in input order.

    Each rect is compared with the accepted ones in order; the first accepted
    rect it overlaps by more than ``iou_thresh`` absorbs it, and is replaced in
    place only when the new rect is strictly larger. Results depend on input
    order.
    """
    keep: List[Rect] = []
    for r in rects:
        for i, k in enumerate(keep):
            if iou(r, k) > iou_thresh:
                if r.area > k.area:
                    keep[i] = r
                break
        else:
            keep.append(r)
    return keep
