from __future__ import annotations

from pathlib import Path

import sys

import cv2
import numpy as np
import pytest

# Ensure repo root is on sys.path so tests can import `facewatch` and `live_recognizer`.
repo_root = Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))


def make_texture(h: int, w: int, seed: int = 0) -> np.ndarray:
    """Structured grayscale content: blurred noise plus a gradient, uint8."""
    rng = np.random.default_rng(seed)
    noise = rng.integers(0, 256, size=(h, w), dtype=np.uint8)
    blurred = cv2.GaussianBlur(noise, (7, 7), 0).astype(np.float32)
    ramp = np.linspace(0, 60, w, dtype=np.float32)[None, :]
    img = cv2.normalize(blurred + ramp, None, 0, 255, cv2.NORM_MINMAX)
    return img.astype(np.uint8)


@pytest.fixture
def texture():
    return make_texture


@pytest.fixture
def haar_dir() -> Path:
    data = getattr(cv2, "data", None)
    if data is None or not Path(data.haarcascades).is_dir():
        pytest.skip("opencv haarcascades data not bundled")
    return Path(data.haarcascades)
