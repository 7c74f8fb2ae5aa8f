# pairpref/io/records_csv.py
"""
Tabular choice-record format.

    A_<feature> ... B_<feature> ... choice [mode] [userId]

- 缺失的 feature 列按 0 处理
- 缺失 choice 列 → UserInputError
- 非数值单元格 → NaN（由 domain.validation 在 batch 侧拒绝）
- userId 只在 profile 读取时使用（一个文件 = 一个 profile）
"""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from pairpref import logs
from pairpref.domain.features import FEATURE_KEYS, ChoiceRecord, FeatureVector
from pairpref.utils.errors import UserInputError

CHOICE_COLUMN = "choice"
MODE_COLUMN = "mode"
USER_COLUMN = "userId"


def _side_columns(side: str) -> List[str]:
    return [f"{side}_{k}" for k in FEATURE_KEYS]


def _numeric(df: pd.DataFrame, column: str) -> pd.Series:
    if column not in df.columns:
        return pd.Series(0.0, index=df.index)
    return pd.to_numeric(df[column], errors="coerce")


def _mode(value) -> Optional[str]:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    text = str(value).strip()
    return text or None


def frame_to_records(df: pd.DataFrame) -> List[ChoiceRecord]:
    if CHOICE_COLUMN not in df.columns:
        raise UserInputError(f"missing required column '{CHOICE_COLUMN}'")

    df = df.dropna(how="all")

    a = pd.DataFrame({k: _numeric(df, f"A_{k}") for k in FEATURE_KEYS}, index=df.index)
    b = pd.DataFrame({k: _numeric(df, f"B_{k}") for k in FEATURE_KEYS}, index=df.index)
    choices = df[CHOICE_COLUMN].astype(str).str.strip().str.upper()
    modes = df[MODE_COLUMN] if MODE_COLUMN in df.columns else pd.Series(None, index=df.index)

    records: List[ChoiceRecord] = []
    for idx in df.index:
        records.append(
            ChoiceRecord(
                feat_a=FeatureVector(**{k: float(a.at[idx, k]) for k in FEATURE_KEYS}),
                feat_b=FeatureVector(**{k: float(b.at[idx, k]) for k in FEATURE_KEYS}),
                choice=choices.at[idx],
                mode=_mode(modes.at[idx]),
            )
        )
    return records


def _read_frame(path: Path) -> pd.DataFrame:
    if not path.exists():
        raise UserInputError(f"records file not found: {path}")

    try:
        df = pd.read_csv(path, skip_blank_lines=True)
    except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as e:
        raise UserInputError(f"cannot parse {path}: {e}") from e

    missing = [c for c in _side_columns("A") + _side_columns("B") if c not in df.columns]
    if missing:
        logs.warning(f"[RecordsCSV] {path.name}: missing columns {missing} treated as 0")
    return df


def user_id(df: pd.DataFrame) -> Optional[str]:
    """Last non-empty userId in the file, if the column exists."""
    if USER_COLUMN not in df.columns:
        return None
    values = [_mode(v) for v in df[USER_COLUMN]]
    values = [v for v in values if v]
    return values[-1] if values else None


def load_records_csv(path: str | Path) -> List[ChoiceRecord]:
    path = Path(path)
    records = frame_to_records(_read_frame(path))
    logs.info(f"[RecordsCSV] loaded {len(records)} records from {path}")
    return records


def load_records(paths: Iterable[str | Path]) -> List[ChoiceRecord]:
    out: List[ChoiceRecord] = []
    for p in paths:
        out.extend(load_records_csv(p))
    return out


def records_to_frame(records: Sequence[ChoiceRecord]) -> pd.DataFrame:
    columns = _side_columns("A") + _side_columns("B") + [CHOICE_COLUMN, MODE_COLUMN]
    return pd.DataFrame([r.to_row() for r in records], columns=columns)


def write_records_csv(records: Sequence[ChoiceRecord], path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    records_to_frame(records).to_csv(path, index=False)
    return path


def load_profile_csv(path: str | Path) -> Tuple[Optional[str], List[ChoiceRecord]]:
    """One file = one profile: (userId or None, records)."""
    path = Path(path)
    df = _read_frame(path)
    records = frame_to_records(df)
    logs.info(f"[RecordsCSV] profile {path.stem}: {len(records)} records")
    return user_id(df), records
