from .features import (
    CHOICES,
    FEATURE_KEYS,
    FEATURE_LABELS,
    ChoiceRecord,
    FeatureVector,
    WeightVector,
    init_weights,
)
from .validation import split_valid, validate_record

__all__ = [
    "CHOICES",
    "FEATURE_KEYS",
    "FEATURE_LABELS",
    "ChoiceRecord",
    "FeatureVector",
    "WeightVector",
    "init_weights",
    "split_valid",
    "validate_record",
]
