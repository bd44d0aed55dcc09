from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

import cv2
import numpy as np

from facewatch.face.detector import Region
from facewatch.face.gallery import Gallery
from facewatch.utils.log import get_logger

logger = get_logger(__name__)


@dataclass
class MatcherConfig:
    # Correlation must be strictly above this to count as a match. 0.1 is very
    # permissive (a confident match is closer to 0.8) and lets many faces through.
    threshold: float = 0.1
    # Reference images are force-fit to the region size, aspect ratio is not kept.
    interpolation: int = cv2.INTER_LINEAR
    # How many (label, score) pairs to keep on the result for debug logging.
    topk_debug: int = 3


@dataclass(frozen=True)
class MatchResult:
    score: float
    label: Optional[str] = None
    candidates: Tuple[Tuple[str, float], ...] = ()

    @property
    def matched(self) -> bool:
        return self.label is not None


class TemplateMatcher:
    """Scores a face region against every gallery image with normalized cross-correlation.

    Holds no per-call state: the same region and gallery always give the same result.
    """

    def __init__(self, config: MatcherConfig = None):
        self.config = config or MatcherConfig()

    def score(self, patch: np.ndarray, reference: np.ndarray) -> float:
        """Resize `reference` to the patch size and return TM_CCOEFF_NORMED in [-1, 1].

        Raises cv2.error / ValueError when the two images cannot be compared.
        """
        h, w = patch.shape[:2]
        if w <= 0 or h <= 0:
            raise ValueError(f"空的人脸区域: {w}x{h}")
        resized = cv2.resize(reference, (int(w), int(h)), interpolation=self.config.interpolation)
        # Same size on both sides, so the result map is a single 1x1 value.
        result = cv2.matchTemplate(resized, patch, cv2.TM_CCOEFF_NORMED)
        return float(result.reshape(-1)[0])

    def match(self, gray: np.ndarray, region: Region, gallery: Gallery) -> Optional[MatchResult]:
        """Return the best-scoring reference for `region`, or None for a degenerate region.

        `gray` is the whole grayscale frame; `region` is cropped from it.
        """
        clipped = region.clip(gray.shape)
        if clipped is None:
            logger.debug(f"跳过退化的人脸框: {region}")
            return None

        if not gallery:
            return MatchResult(score=0.0)

        patch = np.ascontiguousarray(clipped.crop(gray))

        scored: List[Tuple[str, float]] = []
        for ref in gallery:
            try:
                s = self.score(patch, ref.image)
            except (cv2.error, ValueError) as e:
                logger.warning(f"模板匹配失败，已跳过 {ref.label}: {e}")
                continue
            if not np.isfinite(s):
                continue
            scored.append((ref.label, s))

        if not scored:
            return MatchResult(score=0.0)

        # max() keeps the first of equal scores, i.e. gallery (file name) order.
        best_label, best_score = max(scored, key=lambda item: item[1])
        topk = int(max(1, self.config.topk_debug))
        candidates = tuple(sorted(scored, key=lambda item: -item[1])[:topk])

        if best_score > float(self.config.threshold):
            return MatchResult(score=best_score, label=best_label, candidates=candidates)
        return MatchResult(score=best_score, candidates=candidates)
