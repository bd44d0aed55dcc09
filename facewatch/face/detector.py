from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import cv2
import numpy as np

from facewatch.errors import ModelLoadError
from facewatch.utils.image import clip_xywh
from facewatch.utils.log import get_logger, suppress_fds

logger = get_logger(__name__)

# 进程内模型缓存：同一路径的级联分类器只解析一次（pytest 多用例/多次构造 detector）。
_CASCADE_CACHE: Dict[str, cv2.CascadeClassifier] = {}


@dataclass(frozen=True)
class Region:
    """Axis-aligned face candidate in frame pixel coordinates."""

    x: int
    y: int
    w: int
    h: int

    @property
    def xyxy(self) -> Tuple[int, int, int, int]:
        return self.x, self.y, self.x + self.w, self.y + self.h

    def clip(self, frame_shape: Sequence[int]) -> Optional["Region"]:
        """Return this region clipped to the frame, or None if nothing is left."""
        clipped = clip_xywh(self.x, self.y, self.w, self.h, frame_shape)
        if clipped is None:
            return None
        return Region(*clipped)

    def crop(self, image: np.ndarray) -> np.ndarray:
        return image[self.y : self.y + self.h, self.x : self.x + self.w]


@dataclass
class DetectorConfig:
    scale_factor: float = 1.1
    # Neighbouring hits needed to keep a detection.
    min_neighbors: int = 2
    min_size: Tuple[int, int] = (30, 30)
    flags: int = cv2.CASCADE_SCALE_IMAGE


def load_cascade(path: Union[str, Path], name: str = "cascade") -> cv2.CascadeClassifier:
    """Load a Haar/LBP cascade XML, raising ModelLoadError if OpenCV rejects it."""
    key = str(path)
    cached = _CASCADE_CACHE.get(key)
    if cached is not None:
        return cached

    if not key or not Path(key).is_file():
        raise ModelLoadError(f"找不到 {name} 模型文件: {key}")

    classifier = cv2.CascadeClassifier()
    # OpenCV prints its own parse errors straight to stderr
    try:
        with suppress_fds():
            ok = classifier.load(key)
    except cv2.error as e:
        raise ModelLoadError(f"无法加载 {name} 模型: {key} ({e})") from e
    if not ok or classifier.empty():
        raise ModelLoadError(f"无法加载 {name} 模型: {key}")

    _CASCADE_CACHE[key] = classifier
    logger.info(f"已加载级联模型({name}): {key}")
    return classifier


class CascadeDetector:
    """Multi-scale sliding-window face detector on top of cv2.CascadeClassifier.

    detectMultiScale already groups overlapping windows (min_neighbors), so the
    output is not de-duplicated again here.
    """

    def __init__(self, model_path: Union[str, Path], config: DetectorConfig = None):
        self.model_path = str(model_path)
        self.config = config or DetectorConfig()
        self._classifier = load_cascade(self.model_path, name="face cascade")

    def detect(self, gray: np.ndarray) -> List[Region]:
        """
        在灰度图上检测人脸候选框

        Args:
            gray: 单通道灰度图

        Returns:
            regions: 已裁剪到图像范围内的候选框（无顺序保证）
        """
        if gray is None or gray.size == 0:
            return []

        cfg = self.config
        boxes = self._classifier.detectMultiScale(
            gray,
            scaleFactor=float(cfg.scale_factor),
            minNeighbors=int(cfg.min_neighbors),
            flags=int(cfg.flags),
            minSize=tuple(int(v) for v in cfg.min_size),
        )

        regions: List[Region] = []
        for x, y, w, h in np.asarray(boxes, dtype=np.int64).reshape(-1, 4):
            region = Region(int(x), int(y), int(w), int(h)).clip(gray.shape)
            if region is None:
                continue
            regions.append(region)

        logger.debug(f"检测到 {len(regions)} 个候选人脸框")
        return regions
