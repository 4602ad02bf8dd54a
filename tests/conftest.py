"""Synthetic contours shaped like a 1080x2400 quiz screen."""

import numpy as np
import pytest

SCREEN_W = 1080
SCREEN_H = 2400

BAR_LEFT = 140
BAR_W = 800
BAR_H = 120
BAR_TOPS = (1200, 1340, 1480, 1620)


def outline(left, top, width, height):
    """Every border pixel of a rectangle, in cv2 (N, 1, 2) layout."""
    right, bottom = left + width - 1, top + height - 1
    xs = np.arange(left, right + 1)
    ys = np.arange(top + 1, bottom)
    pts = np.concatenate([
        np.stack([xs, np.full_like(xs, top)], axis=1),
        np.stack([np.full_like(ys, right), ys], axis=1),
        np.stack([xs[::-1], np.full_like(xs, bottom)], axis=1),
        np.stack([np.full_like(ys, left), ys[::-1]], axis=1),
    ])
    return pts.reshape(-1, 1, 2).astype(np.int32)


def band(y0, y1, per_row=50, x0=0):
    """Dense block of points on rows y0..y1, too narrow to be a candidate."""
    ys, xs = np.mgrid[y0:y1 + 1, x0:x0 + per_row]
    return np.stack([xs.ravel(), ys.ravel()], axis=1).reshape(-1, 1, 2).astype(np.int32)


def bars(tops=BAR_TOPS, left=BAR_LEFT, width=BAR_W, height=BAR_H):
    return [outline(left, t, width, height) for t in tops]


@pytest.fixture
def edges():
    return np.zeros((SCREEN_H, SCREEN_W), dtype=np.uint8)


@pytest.fixture
def make_outline():
    return outline


@pytest.fixture
def make_band():
    return band


@pytest.fixture
def make_bars():
    return bars


@pytest.fixture
def quiz_contours():
    """Four stacked choice bars below a question band at rows 900..1180."""
    return bars() + [band(900, 1180)]
