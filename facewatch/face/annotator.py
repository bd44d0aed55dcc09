from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import cv2
import numpy as np

from facewatch.face.detector import Region
from facewatch.face.matcher import MatchResult
from facewatch.utils.draw import TextItem, draw_texts, measure_text
from facewatch.utils.image import clamp_point

Detection = Tuple[Region, MatchResult]


@dataclass
class AnnotatorConfig:
    detected_color: Tuple[int, int, int] = (255, 0, 0)  # 蓝色：检测到但未匹配
    matched_color: Tuple[int, int, int] = (0, 165, 255)  # 橙色：匹配到图库
    thickness: int = 2
    font_size: int = 22
    # Gap between the label and the top edge of the box.
    label_gap: int = 10
    show_score: bool = False


class FrameAnnotator:
    def __init__(self, config: AnnotatorConfig = None):
        self.config = config or AnnotatorConfig()

    def label_text(self, result: MatchResult) -> str:
        if self.config.show_score:
            return f"{result.label} ({result.score:.2f})"
        return str(result.label)

    def annotate(self, frame: np.ndarray, detections: Sequence[Detection]) -> np.ndarray:
        """
        在帧上绘制检测框和匹配标签（原地修改）

        Args:
            frame: BGR 图像
            detections: (Region, MatchResult) 列表

        Returns:
            frame: 同一个（已绘制的）数组
        """
        cfg = self.config
        labels: List[TextItem] = []

        for region, result in detections:
            x1, y1, x2, y2 = region.xyxy
            color = cfg.matched_color if result.matched else cfg.detected_color
            # cv2.rectangle clips to the image itself, x2/y2 are inclusive there
            cv2.rectangle(frame, (x1, y1), (x2 - 1, y2 - 1), color, int(cfg.thickness))

            if not result.matched:
                continue

            text = self.label_text(result)
            _, text_h = measure_text(text, cfg.font_size)
            org = clamp_point(x1, y1 - cfg.label_gap - text_h, frame.shape)
            labels.append((text, org, int(cfg.font_size), color))

        # One batch so unicode labels cost a single PIL round trip per frame.
        if labels:
            draw_texts(frame, labels)
        return frame
