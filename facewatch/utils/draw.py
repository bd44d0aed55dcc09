from __future__ import annotations

from functools import lru_cache
from typing import Iterable, Sequence, Tuple

import warnings

import cv2
import numpy as np
from PIL import Image, ImageDraw, ImageFont

from facewatch.config import FONT_LIST


_WARNED_NO_UNICODE_FONT = False

TextItem = Tuple[str, Tuple[int, int], int, Tuple[int, int, int]]


@lru_cache(maxsize=128)
def _load_font(font_path: str, font_size: int) -> ImageFont.FreeTypeFont:
    return ImageFont.truetype(font_path, font_size)


@lru_cache(maxsize=64)
def _get_best_font(font_size: int) -> ImageFont.ImageFont:
    """Return the first loadable font from FONT_LIST (cached), else PIL's default."""
    for p in FONT_LIST:
        try:
            return _load_font(p, int(font_size))
        except OSError:
            continue
    return ImageFont.load_default()


def _is_ascii(text: str) -> bool:
    return all(ord(ch) < 128 for ch in text)


def _warn_once_if_no_font(texts: Iterable[str]) -> None:
    global _WARNED_NO_UNICODE_FONT
    if _WARNED_NO_UNICODE_FONT:
        return
    if all(_is_ascii(t) for t in texts):
        return
    for p in FONT_LIST:
        try:
            _load_font(p, 16)
            return
        except OSError:
            continue
    _WARNED_NO_UNICODE_FONT = True
    warnings.warn(
        "No font from FONT_LIST could be loaded; non-ASCII gallery labels may render as boxes. "
        "Install fonts-noto-cjk or add a font path to facewatch/config.py.",
        RuntimeWarning,
    )


def _put_text_cv2(img: np.ndarray, items: Sequence[TextItem]) -> None:
    # cv2.putText anchors at the baseline; shift down so `org` stays the top-left corner.
    for text, org, font_size, bgr in items:
        font_scale = max(0.3, int(font_size) / 24.0)
        (_, th), _ = cv2.getTextSize(str(text), cv2.FONT_HERSHEY_SIMPLEX, font_scale, 2)
        cv2.putText(
            img,
            str(text),
            (int(org[0]), int(org[1]) + th),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            (int(bgr[0]), int(bgr[1]), int(bgr[2])),
            2,
            cv2.LINE_AA,
        )


def draw_texts(img: np.ndarray, items: Sequence[TextItem]) -> None:
    """Draw several texts onto one BGR frame in place.

    Args:
        img: OpenCV BGR image, modified in-place.
        items: sequence of (text, (x, y) top-left, font_size_px, bgr_color)

    Pure-ASCII batches go straight to cv2.putText; anything else takes a single
    PIL round trip so file names in any script render correctly.
    """
    if img is None or len(items) == 0:
        return

    if all(_is_ascii(str(t)) for (t, _, _, _) in items):
        _put_text_cv2(img, items)
        return

    try:
        _warn_once_if_no_font([str(t) for (t, _, _, _) in items])

        pil_img = Image.fromarray(cv2.cvtColor(img, cv2.COLOR_BGR2RGB))
        draw = ImageDraw.Draw(pil_img)
        for text, org, font_size, bgr in items:
            font = _get_best_font(int(font_size))
            rgb_color = (int(bgr[2]), int(bgr[1]), int(bgr[0]))
            draw.text((int(org[0]), int(org[1])), str(text), font=font, fill=rgb_color)

        img[:] = cv2.cvtColor(np.array(pil_img), cv2.COLOR_RGB2BGR)
    except (OSError, ValueError, cv2.error):
        _put_text_cv2(img, items)


def measure_text(text: str, font_size: int = 14) -> Tuple[int, int]:
    """Return the (width, height) in pixels that draw_texts will use for `text`.

    Called once per matched region per frame, hence the LRU cache.
    """
    return _measure_text_cached(str(text), int(font_size))


@lru_cache(maxsize=4096)
def _measure_text_cached(text: str, font_size: int) -> Tuple[int, int]:
    if not _is_ascii(text):
        try:
            font = _get_best_font(int(font_size))
            dummy = Image.new("RGB", (10, 10))
            draw = ImageDraw.Draw(dummy)
            bbox = draw.textbbox((0, 0), text, font=font)
            return int(bbox[2] - bbox[0]), int(bbox[3] - bbox[1])
        except (OSError, ValueError):
            pass
    font_scale = max(0.3, float(font_size) / 24.0)
    (w, h), baseline = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, font_scale, 2)
    return int(w), int(h + baseline)
