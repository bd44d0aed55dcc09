from __future__ import annotations

import os

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Union

from facewatch.errors import SettingsError
from facewatch.utils.log import get_logger

logger = get_logger(__name__)

DEFAULT_SETTINGS_FILE = "settings.conf"
SETTINGS_ENV_VAR = "FACEWATCH_SETTINGS"

# Checked in this order on every line; the first key found on a line wins.
SETTINGS_KEYS = ("CASCADE_FILE_MAIN", "CASCADE_FILE_EYES", "IMAGE_DIR")

# 常见系统字体候选（macOS/Windows/Linux），按需扩展
# Gallery labels are file names and may contain any script, so unicode-capable fonts go first.
FONT_LIST = [
    # macOS
    "/System/Library/Fonts/STHeiti Medium.ttc",
    "/Library/Fonts/Arial Unicode.ttf",
    "/System/Library/Fonts/Supplemental/Arial Unicode.ttf",
    # Windows
    "C:\\Windows\\Fonts\\msyh.ttc",
    "C:\\Windows\\Fonts\\arialuni.ttf",
    "C:\\Windows\\Fonts\\arial.ttf",
    # Linux
    "/usr/share/fonts/opentype/noto/NotoSansCJK-Regular.ttc",
    "/usr/share/fonts/truetype/noto/NotoSansCJK-Regular.ttc",
    "/usr/share/fonts/truetype/wqy/wqy-zenhei.ttc",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/freefont/FreeSans.ttf",
]


@dataclass(frozen=True)
class Settings:
    """Paths read once from settings.conf at startup."""

    cascade_file_main: str
    cascade_file_eyes: str
    image_dir: str


def _quoted_value(line: str, lineno: int) -> str:
    first = line.find('"')
    last = line.rfind('"')
    if first < 0 or last == first:
        raise SettingsError(f"第 {lineno} 行缺少右双引号: {line.strip()!r}")
    return line[first + 1 : last]


def parse_settings(lines: Iterable[str]) -> Settings:
    """Parse key="value" lines into a Settings record.

    A line counts when it contains one of SETTINGS_KEYS anywhere; its value is the text
    strictly between the first and last double quote. Later lines override earlier ones,
    every other line is ignored.
    """
    values = {}
    seen_any = False
    for lineno, raw in enumerate(lines, start=1):
        seen_any = True
        line = raw.rstrip("\r\n")
        for key in SETTINGS_KEYS:
            if key in line:
                values[key] = _quoted_value(line, lineno)
                break

    if not seen_any:
        raise SettingsError("配置文件为空或已损坏")

    missing = [k for k in SETTINGS_KEYS if not values.get(k)]
    if missing:
        raise SettingsError(f"配置文件缺少以下键的值: {', '.join(missing)}")

    return Settings(
        cascade_file_main=values["CASCADE_FILE_MAIN"],
        cascade_file_eyes=values["CASCADE_FILE_EYES"],
        image_dir=values["IMAGE_DIR"],
    )


def resolve_settings_path(path: Union[str, Path, None] = None) -> Path:
    """Explicit path > $FACEWATCH_SETTINGS > ./settings.conf."""
    if path:
        return Path(path)
    env = os.environ.get(SETTINGS_ENV_VAR)
    if env:
        return Path(env)
    return Path(DEFAULT_SETTINGS_FILE)


def load_settings(path: Union[str, Path, None] = None) -> Settings:
    fp = resolve_settings_path(path)
    try:
        with open(fp, "r", encoding="utf-8") as f:
            lines = f.readlines()
    except (OSError, UnicodeDecodeError) as e:
        raise SettingsError(f"无法打开配置文件 {fp}: {e}") from e

    if not lines:
        raise SettingsError(f"配置文件为空或已损坏: {fp}")

    settings = parse_settings(lines)
    logger.info(f"已加载配置: {fp}")
    return settings
