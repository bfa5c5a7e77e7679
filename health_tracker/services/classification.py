"""Heart-rate classification into clinical bands."""

from collections.abc import Iterable

from health_tracker.domain.models import (
    Classification,
    ClassificationThresholds,
    HeartRateCategory,
    HeartRateReading,
)

DEFAULT_THRESHOLDS = ClassificationThresholds()

_DESCRIPTIONS = {
    HeartRateCategory.BRADYCARDIA: "Slower than normal",
    HeartRateCategory.NORMAL: "Healthy range",
    HeartRateCategory.TACHYCARDIA: "Faster than normal",
}


def classify(bpm: int, thresholds: ClassificationThresholds = DEFAULT_THRESHOLDS) -> Classification:
    """Map a bpm value to its band; the Normal band is inclusive on both ends."""
    if bpm < thresholds.bradycardia_below:
        category = HeartRateCategory.BRADYCARDIA
    elif bpm > thresholds.tachycardia_above:
        category = HeartRateCategory.TACHYCARDIA
    else:
        category = HeartRateCategory.NORMAL

    return Classification(
        category=category,
        needs_attention=category is not HeartRateCategory.NORMAL,
        description=_DESCRIPTIONS[category],
    )


def any_needs_attention(
    readings: Iterable[HeartRateReading],
    thresholds: ClassificationThresholds = DEFAULT_THRESHOLDS,
) -> bool:
    """Window-level alert flag: true when any reading falls outside Normal."""
    return any(classify(r.bpm, thresholds).needs_attention for r in readings)
