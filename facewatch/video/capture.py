"""Video source handling: webcam index (e.g. "0") or a local video file."""

from __future__ import annotations

from typing import Iterator, Union

import cv2
import numpy as np

from facewatch.errors import CaptureError
from facewatch.utils.log import get_logger

logger = get_logger(__name__)


def open_capture(source: Union[int, str] = 0) -> cv2.VideoCapture:
    """Open a camera (int or digit string) or a video file; CaptureError if it won't open."""
    src: Union[int, str]
    if isinstance(source, int):
        src = source
    elif str(source).strip().isdigit():
        src = int(str(source).strip())
    else:
        src = str(source)

    cap = cv2.VideoCapture(src)
    if not cap.isOpened():
        cap.release()
        raise CaptureError(f"无法打开视频源: {source}")

    w = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH) or 0)
    h = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT) or 0)
    logger.info(f"已打开视频源: {source} ({w}x{h})")
    return cap


def iter_frames(capture) -> Iterator[np.ndarray]:
    """Yield frames until the source reports failure or hands back an empty frame.

    Both mean end of stream, not an error.
    """
    while True:
        ok, frame = capture.read()
        if not ok or frame is None or frame.size == 0:
            return
        yield frame
