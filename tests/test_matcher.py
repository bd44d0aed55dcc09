from __future__ import annotations

from pathlib import Path

import logging

import cv2
import numpy as np
import pytest

from facewatch.face.detector import Region
from facewatch.face.gallery import Gallery, ReferenceImage
from facewatch.face.matcher import MatcherConfig, MatchResult, TemplateMatcher


def _ref(label: str, image: np.ndarray) -> ReferenceImage:
    return ReferenceImage(label=label, image=image, path=Path(label))


def _frame_with(patch: np.ndarray, x: int, y: int, shape=(120, 160), seed: int = 99) -> np.ndarray:
    rng = np.random.default_rng(seed)
    gray = rng.integers(0, 256, size=shape, dtype=np.uint8)
    h, w = patch.shape
    gray[y : y + h, x : x + w] = patch
    return gray


class _FixedScoreMatcher(TemplateMatcher):
    def __init__(self, value: float, config: MatcherConfig = None):
        super().__init__(config)
        self.value = value

    def score(self, patch, reference):
        return self.value


def test_identical_reference_scores_one_and_matches(texture):
    face = texture(48, 40, seed=3)
    gray = _frame_with(face, 30, 20)
    gallery = Gallery([_ref("alice.jpg", face)])

    result = TemplateMatcher().match(gray, Region(30, 20, 40, 48), gallery)

    assert result.score == pytest.approx(1.0, abs=1e-4)
    assert result.matched
    assert result.label == "alice.jpg"


def test_reference_is_force_fit_to_region_size(texture):
    face = texture(48, 40, seed=4)
    # Stored at another size and aspect ratio; resizing back must still correlate strongly.
    big = cv2.resize(face, (100, 80), interpolation=cv2.INTER_LINEAR)
    gray = _frame_with(face, 10, 10)

    result = TemplateMatcher().match(gray, Region(10, 10, 40, 48), Gallery([_ref("big.png", big)]))

    assert result.matched
    assert result.score > 0.8


def test_noise_reference_rarely_matches(texture):
    face = texture(64, 64, seed=5)
    gray = _frame_with(face, 20, 20, shape=(128, 128))
    region = Region(20, 20, 64, 64)
    matcher = TemplateMatcher()

    below = 0
    trials = 30
    for seed in range(trials):
        rng = np.random.default_rng(1000 + seed)
        noise = rng.integers(0, 256, size=(64, 64), dtype=np.uint8)
        result = matcher.match(gray, region, Gallery([_ref(f"noise{seed}.png", noise)]))
        if result.score < 0.1:
            below += 1

    assert below >= trials - 1


def test_best_score_wins(texture):
    face = texture(40, 40, seed=6)
    other = texture(40, 40, seed=7)
    gray = _frame_with(face, 0, 0)
    gallery = Gallery([_ref("a_other.png", other), _ref("b_face.png", face)])

    result = TemplateMatcher().match(gray, Region(0, 0, 40, 40), gallery)

    assert result.label == "b_face.png"
    assert result.candidates[0][0] == "b_face.png"
    assert len(result.candidates) == 2


def test_empty_gallery_never_matches(texture):
    gray = _frame_with(texture(40, 40), 0, 0)
    result = TemplateMatcher().match(gray, Region(0, 0, 40, 40), Gallery([]))
    assert result == MatchResult(score=0.0)
    assert not result.matched


@pytest.mark.parametrize(
    "region",
    [
        Region(10, 10, 0, 20),
        Region(10, 10, 20, 0),
        Region(500, 500, 30, 30),
    ],
)
def test_degenerate_region_is_skipped(texture, region: Region):
    gray = _frame_with(texture(40, 40), 0, 0)
    gallery = Gallery([_ref("alice.jpg", texture(40, 40))])
    assert TemplateMatcher().match(gray, region, gallery) is None


def test_failed_comparison_is_skipped(texture, caplog: pytest.LogCaptureFixture):
    face = texture(40, 40, seed=8)
    gray = _frame_with(face, 0, 0)
    broken = np.zeros((0, 0), dtype=np.uint8)
    gallery = Gallery([_ref("a_broken.png", broken), _ref("b_face.png", face)])

    with caplog.at_level(logging.WARNING):
        result = TemplateMatcher().match(gray, Region(0, 0, 40, 40), gallery)

    assert result.label == "b_face.png"
    assert any("a_broken.png" in rec.getMessage() for rec in caplog.records)


def test_all_comparisons_failing_is_unmatched(texture):
    gray = _frame_with(texture(40, 40), 0, 0)
    gallery = Gallery([_ref("broken.png", np.zeros((0, 0), dtype=np.uint8))])
    result = TemplateMatcher().match(gray, Region(0, 0, 40, 40), gallery)
    assert not result.matched
    assert result.score == 0.0


def test_threshold_is_strict(texture):
    gray = _frame_with(texture(40, 40), 0, 0)
    gallery = Gallery([_ref("alice.jpg", texture(40, 40))])
    region = Region(0, 0, 40, 40)

    assert not _FixedScoreMatcher(0.1).match(gray, region, gallery).matched
    assert _FixedScoreMatcher(0.1001).match(gray, region, gallery).matched
    assert not _FixedScoreMatcher(0.5, MatcherConfig(threshold=0.8)).match(gray, region, gallery).matched


def test_ties_resolve_to_gallery_order(texture):
    gray = _frame_with(texture(40, 40), 0, 0)
    gallery = Gallery([_ref("first.png", texture(40, 40)), _ref("second.png", texture(40, 40, seed=2))])
    result = _FixedScoreMatcher(0.5).match(gray, Region(0, 0, 40, 40), gallery)
    assert result.label == "first.png"


def test_matching_is_idempotent(texture):
    face = texture(36, 30, seed=9)
    gray = _frame_with(face, 50, 40)
    gallery = Gallery([_ref("x.png", face), _ref("y.png", texture(50, 50, seed=10))])
    region = Region(48, 38, 34, 40)
    matcher = TemplateMatcher()

    first = matcher.match(gray, region, gallery)
    second = matcher.match(gray, region, gallery)
    assert first == second
