from __future__ import annotations

from pathlib import Path

import pytest

from facewatch.config import Settings, load_settings, parse_settings, resolve_settings_path
from facewatch.errors import SettingsError


VALID = [
    '# facewatch settings\n',
    'CASCADE_FILE_MAIN="models/haarcascade_frontalface_default.xml"\n',
    'CASCADE_FILE_EYES = "models/haarcascade_eye.xml"  \n',
    'IMAGE_DIR="C:\\faces\\gallery"\n',
    'UNRELATED="ignored"\n',
]


def test_values_are_text_between_first_and_last_quote():
    settings = parse_settings(VALID)
    assert settings == Settings(
        cascade_file_main="models/haarcascade_frontalface_default.xml",
        cascade_file_eyes="models/haarcascade_eye.xml",
        image_dir="C:\\faces\\gallery",
    )


def test_inner_quotes_are_kept():
    lines = [
        'CASCADE_FILE_MAIN="a"b".xml"',
        'CASCADE_FILE_EYES="eyes.xml"',
        'IMAGE_DIR=prefix "gallery dir" # trailing',
    ]
    settings = parse_settings(lines)
    assert settings.cascade_file_main == 'a"b".xml'
    assert settings.image_dir == "gallery dir"


def test_later_lines_override_earlier_ones():
    lines = VALID + ['IMAGE_DIR="second"\n']
    assert parse_settings(lines).image_dir == "second"


def test_key_order_decides_lines_with_two_keys():
    # CASCADE_FILE_MAIN is checked first, so this line only sets it.
    lines = [
        'CASCADE_FILE_MAIN IMAGE_DIR "main.xml"',
        'CASCADE_FILE_EYES="eyes.xml"',
        'IMAGE_DIR="gallery"',
    ]
    settings = parse_settings(lines)
    assert settings.cascade_file_main == "main.xml"
    assert settings.image_dir == "gallery"


@pytest.mark.parametrize(
    "bad_line",
    [
        'IMAGE_DIR="gallery',
        "IMAGE_DIR=gallery",
    ],
)
def test_missing_closing_quote_raises(bad_line: str):
    lines = VALID[:3] + [bad_line]
    with pytest.raises(SettingsError, match="第 4 行"):
        parse_settings(lines)


def test_empty_value_is_rejected():
    lines = VALID[:3] + ['IMAGE_DIR=""']
    with pytest.raises(SettingsError, match="IMAGE_DIR"):
        parse_settings(lines)


def test_missing_key_is_rejected():
    with pytest.raises(SettingsError, match="CASCADE_FILE_EYES"):
        parse_settings([VALID[1], VALID[3]])


def test_load_settings_from_file(tmp_path: Path):
    fp = tmp_path / "settings.conf"
    fp.write_text("".join(VALID), encoding="utf-8")
    settings = load_settings(fp)
    assert settings.cascade_file_eyes == "models/haarcascade_eye.xml"


def test_empty_file_is_fatal(tmp_path: Path):
    fp = tmp_path / "settings.conf"
    fp.write_text("", encoding="utf-8")
    with pytest.raises(SettingsError, match="为空"):
        load_settings(fp)


def test_missing_file_is_fatal(tmp_path: Path):
    with pytest.raises(SettingsError, match="无法打开"):
        load_settings(tmp_path / "nope.conf")


def test_settings_path_resolution(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.delenv("FACEWATCH_SETTINGS", raising=False)
    assert resolve_settings_path() == Path("settings.conf")

    monkeypatch.setenv("FACEWATCH_SETTINGS", str(tmp_path / "dev.conf"))
    assert resolve_settings_path() == tmp_path / "dev.conf"
    assert resolve_settings_path("explicit.conf") == Path("explicit.conf")


def test_non_utf8_file_is_a_settings_error(tmp_path: Path):
    fp = tmp_path / "settings.conf"
    fp.write_bytes(b'IMAGE_DIR="\xff\xfe gallery"\n')
    with pytest.raises(SettingsError, match="无法打开"):
        load_settings(fp)
