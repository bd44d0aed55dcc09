"""实时人脸检测 + 图库匹配入口。

示例：
    # 摄像头实时识别（ESC 或 q 退出）
    python live_recognizer.py --settings settings.conf --source 0

    # 单张图片
    python live_recognizer.py --image data/group.jpg --output output_group.jpg

settings.conf 格式（每行 KEY="value"）：
    CASCADE_FILE_MAIN="haarcascade_frontalface_default.xml"
    CASCADE_FILE_EYES="haarcascade_eye.xml"
    IMAGE_DIR="gallery"
"""

from __future__ import annotations

import argparse
import logging
import sys

from typing import List, Optional

from facewatch.config import load_settings
from facewatch.errors import FacewatchError
from facewatch.face.pipeline import FramePipeline
from facewatch.utils.log import get_logger, set_level
from facewatch.video.capture import open_capture
from facewatch.video.live import LiveRecognizer

logger = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="实时人脸检测：Haar 级联检测 + 图库模板匹配")
    parser.add_argument(
        "--settings",
        "-s",
        default=None,
        help="配置文件路径（默认 $FACEWATCH_SETTINGS 或 ./settings.conf）",
    )
    parser.add_argument("--source", default="0", help='摄像头编号（如 "0"）或视频文件路径')
    parser.add_argument(
        "--threshold",
        "-t",
        type=float,
        default=0.1,
        help="匹配阈值，相关系数严格大于该值即视为匹配（默认 0.1，非常宽松）",
    )
    parser.add_argument("--strip-extension", action="store_true", help="标签去掉文件扩展名（默认保留完整文件名）")
    parser.add_argument("--show-score", action="store_true", help="在标签后显示相似度")
    parser.add_argument("--image", default=None, help="单张图片模式：输入图片路径")
    parser.add_argument("--output", "-o", default=None, help="单张图片模式：输出标注图片路径")
    parser.add_argument("--max-frames", type=int, default=None, help="最多处理多少帧（用于调试）")
    parser.add_argument("--window-name", default="Face Detection", help="显示窗口标题")
    parser.add_argument("--no-pause", action="store_true", help="致命错误时不等待回车直接退出")
    parser.add_argument("--debug", action="store_true", help="输出调试日志（包含每个人脸的 top-k 相似度）")
    return parser.parse_args(argv)


def _pause(enabled: bool) -> None:
    if not enabled or not sys.stdin or not sys.stdin.isatty():
        return
    try:
        input("按回车键退出...")
    except EOFError:
        pass


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if args.debug:
        set_level(logging.DEBUG)

    try:
        settings = load_settings(args.settings)
        pipeline = FramePipeline.from_settings(
            settings,
            threshold=float(args.threshold),
            strip_extension=bool(args.strip_extension),
            show_score=bool(args.show_score),
        )

        if args.image:
            pipeline.process_image(args.image, args.output)
            return 0

        capture = open_capture(args.source)
    except FacewatchError as e:
        logger.error(str(e))
        _pause(not args.no_pause)
        return 1
    except ValueError as e:
        # 单张图片读取失败
        logger.error(str(e))
        return 1

    live = LiveRecognizer(pipeline, capture, window_name=str(args.window_name))
    live.run(max_frames=args.max_frames)
    return 0


if __name__ == "__main__":
    sys.exit(main())
