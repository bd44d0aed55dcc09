from __future__ import annotations

import time

from typing import List, Optional, Tuple

import cv2
import numpy as np

from facewatch.config import Settings
from facewatch.face.annotator import AnnotatorConfig, Detection, FrameAnnotator
from facewatch.face.detector import CascadeDetector, DetectorConfig, load_cascade
from facewatch.face.gallery import Gallery, GalleryConfig
from facewatch.face.matcher import MatcherConfig, TemplateMatcher
from facewatch.utils.image import to_gray
from facewatch.utils.log import get_logger

logger = get_logger(__name__)


class FramePipeline:
    """
    单帧处理流程：灰度化 -> 人脸检测 -> 图库匹配 -> 绘制

    不在帧之间保存任何状态；图库与模型在构造后只读。
    """

    def __init__(
        self,
        detector: CascadeDetector,
        matcher: TemplateMatcher,
        gallery: Gallery,
        annotator: Optional[FrameAnnotator] = None,
    ):
        self.detector = detector
        self.matcher = matcher
        self.gallery = gallery
        self.annotator = annotator or FrameAnnotator()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        threshold: float = 0.1,
        strip_extension: bool = False,
        show_score: bool = False,
    ) -> "FramePipeline":
        """根据配置加载两个级联模型和图库；任何失败都直接抛出（启动期致命错误）。"""
        detector = CascadeDetector(settings.cascade_file_main, DetectorConfig())
        # The eye cascade is only validated; nothing in the matching path uses it.
        load_cascade(settings.cascade_file_eyes, name="eye cascade")
        gallery = Gallery.load(settings.image_dir, GalleryConfig(strip_extension=bool(strip_extension)))
        matcher = TemplateMatcher(MatcherConfig(threshold=float(threshold)))
        annotator = FrameAnnotator(AnnotatorConfig(show_score=bool(show_score)))
        return cls(detector, matcher, gallery, annotator)

    def detect_and_match(self, frame: np.ndarray) -> List[Detection]:
        gray = to_gray(frame)
        detections: List[Detection] = []
        for region in self.detector.detect(gray):
            result = self.matcher.match(gray, region, self.gallery)
            if result is None:
                continue
            if result.matched:
                logger.debug(f"匹配: {result.label} ({result.score:.4f}) at {region.xyxy}, top={list(result.candidates)}")
            detections.append((region, result))
        return detections

    def process(self, frame: np.ndarray) -> Tuple[np.ndarray, List[Detection]]:
        """
        处理一帧

        Args:
            frame: BGR 帧（原地绘制）

        Returns:
            frame: 绘制后的帧
            detections: (Region, MatchResult) 列表
        """
        detections = self.detect_and_match(frame)
        self.annotator.annotate(frame, detections)
        return frame, detections

    def process_image(self, image_path: str, output_path: Optional[str] = None) -> Tuple[np.ndarray, List[Detection]]:
        """
        单张图片识别

        Args:
            image_path: 输入图像路径
            output_path: 输出图像路径（可选）

        Returns:
            result_image: 带标注的结果图像
            detections: 识别结果列表
        """
        image = cv2.imread(image_path)
        if image is None:
            raise ValueError(f"无法读取图像: {image_path}")

        st = time.time()
        result_image, detections = self.process(image.copy())
        ed = time.time()

        if not detections:
            logger.warning(f"在 {image_path} 中未检测到人脸")
        for i, (region, result) in enumerate(detections):
            identity = result.label if result.matched else "未匹配"
            logger.info(f"人脸 {i + 1}: {identity} (相似度: {result.score:.4f}, 位置: {region.xyxy})")
        logger.info(f"人脸识别耗时: {ed - st:.2f} 秒，检测到 {len(detections)} 张人脸")

        if output_path:
            cv2.imwrite(output_path, result_image)
            logger.info(f"结果图像已保存至: {output_path}")

        return result_image, detections
