from __future__ import annotations

from typing import Optional, Sequence, Tuple

import cv2
import numpy as np


def to_gray(image: np.ndarray) -> np.ndarray:
    """BGR / BGRA / gray image -> single-channel gray."""
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    if image.shape[2] == 1:
        return image[:, :, 0]
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def clip_xywh(
    x: int, y: int, w: int, h: int, frame_shape: Sequence[int]
) -> Optional[Tuple[int, int, int, int]]:
    """Clip an (x, y, w, h) box to a frame of shape (h, w, ...).

    Returns None when nothing of the box remains inside the frame.
    """
    fh, fw = int(frame_shape[0]), int(frame_shape[1])
    x1 = max(0, int(x))
    y1 = max(0, int(y))
    x2 = min(fw, int(x) + int(w))
    y2 = min(fh, int(y) + int(h))
    if x2 <= x1 or y2 <= y1:
        return None
    return x1, y1, x2 - x1, y2 - y1


def clamp_point(x: int, y: int, frame_shape: Sequence[int]) -> Tuple[int, int]:
    """Clamp a point into [0, w-1] x [0, h-1]."""
    fh, fw = int(frame_shape[0]), int(frame_shape[1])
    return max(0, min(fw - 1, int(x))), max(0, min(fh - 1, int(y)))
