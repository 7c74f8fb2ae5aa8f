# pairpref/domain/validation.py
from __future__ import annotations

import math
from typing import Iterable, List, Tuple

from pairpref.domain.features import CHOICES, FEATURE_KEYS, ChoiceRecord
from pairpref.utils.errors import MalformedRecordError


def validate_record(record: ChoiceRecord) -> ChoiceRecord:
    """
    Batch-side validation. The online trainer deliberately skips this.
    """
    if record.choice not in CHOICES:
        raise MalformedRecordError(f"choice must be 'A' or 'B', got {record.choice!r}")

    for side, feat in (("A", record.feat_a), ("B", record.feat_b)):
        for k in FEATURE_KEYS:
            v = feat[k]
            if not isinstance(v, (int, float)) or not math.isfinite(v):
                raise MalformedRecordError(f"{side}_{k} is not a finite number: {v!r}")

    return record


def split_valid(records: Iterable[ChoiceRecord]) -> Tuple[List[ChoiceRecord], List[Tuple[int, str]]]:
    """
    Returns (valid_records, [(index, reason), ...]) without raising.
    """
    valid: List[ChoiceRecord] = []
    rejected: List[Tuple[int, str]] = []

    for i, rec in enumerate(records):
        try:
            valid.append(validate_record(rec))
        except MalformedRecordError as e:
            rejected.append((i, str(e)))

    return valid, rejected
