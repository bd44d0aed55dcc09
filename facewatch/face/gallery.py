from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Tuple, Union

import cv2
import numpy as np

from facewatch.errors import GalleryError
from facewatch.utils.image import to_gray
from facewatch.utils.log import get_logger

logger = get_logger(__name__)


@dataclass
class GalleryConfig:
    # Exact, case-sensitive suffix match: "photo.JPG" is not picked up.
    extensions: Tuple[str, ...] = (".jpg", ".jpeg", ".png", ".bmp")
    # Label is the full file name unless this is set.
    strip_extension: bool = False


@dataclass(frozen=True)
class ReferenceImage:
    label: str
    image: np.ndarray  # grayscale, read-only
    path: Path

    @property
    def size(self) -> Tuple[int, int]:
        h, w = self.image.shape[:2]
        return int(w), int(h)


class Gallery:
    """Reference images loaded once at startup.

    Ordered by file name so that ties in the matcher always resolve the same way.
    Shared read-only across every frame and region.
    """

    def __init__(self, references: List[ReferenceImage], directory: Union[str, Path, None] = None):
        self._references: Tuple[ReferenceImage, ...] = tuple(references)
        self.directory = Path(directory) if directory is not None else None

    @classmethod
    def load(cls, directory: Union[str, Path], config: GalleryConfig = None) -> "Gallery":
        config = config or GalleryConfig()
        directory = Path(directory)
        try:
            entries = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise GalleryError(f"无法读取图库目录 {directory}: {e}") from e

        references: List[ReferenceImage] = []
        for entry in entries:
            if not entry.is_file():
                continue
            if entry.suffix not in config.extensions:
                continue

            image = cv2.imread(str(entry))
            if image is None:
                logger.warning(f"无法读取图像: {entry.name}")
                continue

            gray = np.ascontiguousarray(to_gray(image))
            gray.setflags(write=False)
            label = entry.stem if config.strip_extension else entry.name
            references.append(ReferenceImage(label=label, image=gray, path=entry))

        if references:
            logger.info(f"已加载图库: {len(references)} 张参考图像 ({directory})")
        else:
            logger.warning(f"图库为空，所有人脸都将标记为未匹配: {directory}")
        return cls(references, directory=directory)

    def __len__(self) -> int:
        return len(self._references)

    def __iter__(self) -> Iterator[ReferenceImage]:
        return iter(self._references)

    def __bool__(self) -> bool:
        return bool(self._references)

    @property
    def labels(self) -> List[str]:
        return [r.label for r in self._references]
