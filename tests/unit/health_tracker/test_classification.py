"""
Tests for heart-rate classification.

Band boundaries are checked exhaustively with property-based tests: every
value in a band must map to that band and its attention flag.
"""

from datetime import timedelta

import pytest
from conftest import FIXED_NOW, make_reading
from hypothesis import given
from hypothesis import strategies as st

from health_tracker.domain.models import ClassificationThresholds, HeartRateCategory
from health_tracker.services.classification import any_needs_attention, classify


class TestClassifyBands:
    @given(bpm=st.integers(min_value=1, max_value=59))
    def test_below_sixty_is_bradycardia(self, bpm: int) -> None:
        result = classify(bpm)
        assert result.category is HeartRateCategory.BRADYCARDIA
        assert result.label == "Bradycardia"
        assert result.needs_attention is True

    @given(bpm=st.integers(min_value=60, max_value=100))
    def test_sixty_to_hundred_inclusive_is_normal(self, bpm: int) -> None:
        result = classify(bpm)
        assert result.category is HeartRateCategory.NORMAL
        assert result.needs_attention is False

    @given(bpm=st.integers(min_value=101, max_value=400))
    def test_above_hundred_is_tachycardia(self, bpm: int) -> None:
        result = classify(bpm)
        assert result.category is HeartRateCategory.TACHYCARDIA
        assert result.needs_attention is True

    @pytest.mark.parametrize(
        "bpm,description",
        [(45, "Slower than normal"), (72, "Healthy range"), (130, "Faster than normal")],
    )
    def test_descriptions(self, bpm: int, description: str) -> None:
        assert classify(bpm).description == description


class TestCustomThresholds:
    def test_custom_band(self) -> None:
        thresholds = ClassificationThresholds(bradycardia_below=50, tachycardia_above=90)

        assert classify(55, thresholds).category is HeartRateCategory.NORMAL
        assert classify(95, thresholds).category is HeartRateCategory.TACHYCARDIA

    def test_inverted_band_rejected(self) -> None:
        with pytest.raises(ValueError, match="must not exceed"):
            ClassificationThresholds(bradycardia_below=110, tachycardia_above=90)


class TestWindowAlert:
    def test_all_normal_readings_do_not_alert(self) -> None:
        readings = [make_reading(i, 70 + i, FIXED_NOW - timedelta(hours=i)) for i in range(5)]
        assert any_needs_attention(readings) is False

    def test_single_abnormal_reading_alerts(self) -> None:
        readings = [
            make_reading(1, 72, FIXED_NOW),
            make_reading(2, 120, FIXED_NOW - timedelta(hours=1)),
        ]
        assert any_needs_attention(readings) is True

    def test_empty_window_does_not_alert(self) -> None:
        assert any_needs_attention([]) is False
