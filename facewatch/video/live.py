from __future__ import annotations

import time

from typing import Callable, Optional

import cv2
import numpy as np

from facewatch.face.pipeline import FramePipeline
from facewatch.utils.log import get_logger
from facewatch.video.capture import iter_frames

logger = get_logger(__name__)

KEY_ESC = 27
QUIT_KEYS = (KEY_ESC, ord("q"))


class LiveRecognizer:
    """实时识别循环：取帧 -> 处理 -> 显示 -> 检查退出键，单线程逐帧执行。

    `display` / `poll_key` default to cv2.imshow / cv2.waitKey(1); tests pass their own.
    """

    def __init__(
        self,
        pipeline: FramePipeline,
        capture,
        display: Optional[Callable[[np.ndarray], None]] = None,
        poll_key: Optional[Callable[[], int]] = None,
        window_name: str = "Face Detection",
    ):
        self.pipeline = pipeline
        self.capture = capture
        self.window_name = window_name
        self._own_window = display is None
        self.display = display or self._show
        self.poll_key = poll_key or self._wait_key

    def _show(self, frame: np.ndarray) -> None:
        cv2.imshow(self.window_name, frame)

    @staticmethod
    def _wait_key() -> int:
        return cv2.waitKey(1)

    @staticmethod
    def is_quit_key(key: int) -> bool:
        if key is None or key < 0:
            return False
        return (int(key) & 0xFF) in QUIT_KEYS

    def run(self, max_frames: Optional[int] = None) -> int:
        """
        运行直到视频流结束、按下 ESC/q 或达到 max_frames

        Returns:
            processed: 成功处理的帧数
        """
        processed = 0
        skipped = 0
        st = time.time()
        frames = iter_frames(self.capture)
        try:
            while max_frames is None or processed < int(max_frames):
                frame = next(frames, None)
                if frame is None:
                    break

                try:
                    annotated, _ = self.pipeline.process(frame)
                except cv2.error as e:
                    skipped += 1
                    logger.warning(f"处理帧失败，已跳过: {e}")
                else:
                    processed += 1
                    self.display(annotated)

                # 失败的帧也要检查退出键，窗口事件才能得到处理
                if self.is_quit_key(self.poll_key()):
                    logger.info("收到退出键，停止")
                    break
        finally:
            self.capture.release()
            if self._own_window:
                cv2.destroyAllWindows()

        elapsed = time.time() - st
        fps = processed / elapsed if elapsed > 0 else 0.0
        logger.info(f"共处理 {processed} 帧（跳过 {skipped} 帧），平均 {fps:.1f} FPS")
        return processed
