"""
Tests for Landmarks and Finger-State Extraction
================================================
"""

import math

import pytest

from conftest import make_hand
from fingerspell.core.errors import ConfigError, IncompleteLandmarks
from fingerspell.core.types import FINGERS, HandOrientation
from fingerspell.detection.finger_state import ExtractorConfig, FingerStateExtractor
from fingerspell.detection.landmarks import HandLandmarks, Landmark, LandmarkIndex, parse_landmarks
from fingerspell.detection.synthetic import synthetic_hand


FIST = (False, False, False, False, False)
OPEN_PALM = (True, True, True, True, True)
INDEX_ONLY = (False, True, False, False, False)


class TestHandLandmarks:
    """Test suite for landmark validation."""

    def test_accepts_21_points(self):
        hand = HandLandmarks.from_points(synthetic_hand(FIST), handedness="Right")
        assert len(hand.landmarks) == 21
        assert hand.handedness == "Right"
        assert isinstance(hand.get(LandmarkIndex.WRIST), Landmark)

    def test_accepts_objects_with_xyz(self):
        class Point:
            def __init__(self, x, y, z):
                self.x, self.y, self.z = x, y, z

        points = [Point(*p) for p in synthetic_hand(FIST)]
        hand = HandLandmarks.from_points(points)
        assert hand.get(LandmarkIndex.WRIST).x == pytest.approx(0.5)

    def test_input_is_copied(self):
        points = [list(p) for p in synthetic_hand(FIST)]
        hand = HandLandmarks.from_points(points)
        points[0][0] = 99.0
        assert hand.get(LandmarkIndex.WRIST).x == pytest.approx(0.5)

    @pytest.mark.parametrize("count", [0, 20, 22])
    def test_wrong_count_rejected(self, count):
        points = (synthetic_hand(FIST) * 2)[:count]
        with pytest.raises(IncompleteLandmarks) as exc:
            HandLandmarks.from_points(points)
        assert exc.value.count == count

    def test_missing_point_rejected(self):
        points = synthetic_hand(FIST)
        points[8] = None
        with pytest.raises(IncompleteLandmarks, match="Landmark 8"):
            HandLandmarks.from_points(points)

    def test_wrong_arity_rejected(self):
        points = synthetic_hand(FIST)
        points[3] = (0.5, 0.5)
        with pytest.raises(IncompleteLandmarks, match="2 coordinates"):
            HandLandmarks.from_points(points)

    @pytest.mark.parametrize("bad", [math.nan, math.inf, "x"])
    def test_bad_coordinates_rejected(self, bad):
        points = synthetic_hand(FIST)
        points[12] = (bad, 0.5, 0.0)
        with pytest.raises(IncompleteLandmarks):
            HandLandmarks.from_points(points)

    def test_parse_landmarks_none_means_no_hand(self):
        assert parse_landmarks(None) is None

    def test_key_points_shape(self):
        hand = make_hand(OPEN_PALM)
        assert hand.key_points().shape == (6, 3)
        assert hand.to_numpy().shape == (21, 3)


class TestFingerStateExtractor:
    """Test suite for finger extension and orientation."""

    @pytest.fixture
    def extractor(self):
        return FingerStateExtractor()

    def test_closed_fist(self, extractor):
        states = extractor.extract(make_hand(FIST))
        assert states.signature == FIST
        assert states.extended_count == 0

    def test_open_palm(self, extractor):
        states = extractor.extract(make_hand(OPEN_PALM))
        assert states.signature == OPEN_PALM

    @pytest.mark.parametrize("finger", FINGERS)
    def test_single_finger(self, extractor, finger):
        signature = tuple(f == finger for f in FINGERS)
        assert extractor.extract(make_hand(signature)).signature == signature

    @pytest.mark.parametrize("orientation", list(HandOrientation))
    def test_signature_survives_rotation(self, extractor, orientation):
        signature = (True, True, False, False, True)
        states, detected = extractor.analyze(make_hand(signature, orientation))
        assert states.signature == signature
        assert detected == orientation

    def test_extraction_is_pure(self, extractor):
        hand = make_hand(INDEX_ONLY)
        assert extractor.extract(hand) == extractor.extract(hand)

    def test_straight_finger_angle_near_180(self, extractor):
        states = extractor.extract(make_hand(OPEN_PALM))
        assert states.index.angle == pytest.approx(180.0, abs=1.0)

    def test_curled_finger_angle_smaller(self, extractor):
        states = extractor.extract(make_hand(INDEX_ONLY))
        assert states.middle.angle < 120.0
        assert states.index.angle > states.middle.angle

    def test_translation_does_not_change_result(self, extractor):
        base = extractor.extract(make_hand(INDEX_ONLY))
        moved = extractor.extract(make_hand(INDEX_ONLY, offset=(0.1, -0.1)))
        assert base.signature == moved.signature

    def test_stricter_ratio_closes_fingers(self):
        extractor = FingerStateExtractor(ExtractorConfig(extension_ratio=2.0))
        assert extractor.extract(make_hand(OPEN_PALM)).signature[1:] == (False,) * 4

    def test_invalid_config(self):
        with pytest.raises(ConfigError):
            ExtractorConfig(extension_ratio=0.0)

    def test_from_dict_defaults(self):
        config = ExtractorConfig.from_dict({})
        assert config.extension_ratio == 1.1
        assert config.thumb_ratio == 1.2
