# pairpref/io/report_writer.py
from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any, Dict

from pairpref import logs
from pairpref.training.result import AnalysisResult
from pairpref.utils.filesystem import FileSystem


def _json_safe(value: Any) -> Any:
    # JSON has no NaN / Infinity
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


def write_report(result: AnalysisResult, path: str | Path) -> Path:
    return write_json(result.to_dict(), path)


def write_json(payload: Dict[str, Any], path: str | Path) -> Path:
    path = Path(path)
    payload = _json_safe(payload)
    FileSystem.safe_write(
        path,
        json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8"),
    )
    logs.info(f"[Report] written → {path}")
    return path
