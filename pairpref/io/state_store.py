# pairpref/io/state_store.py
"""
Persistence port for the online session.

The core never touches storage: the session hands a plain-JSON dict to a
StateStore and gets one back. Durability is whatever the store provides.
"""
from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from pairpref import logs
from pairpref.utils.filesystem import FileSystem

SessionState = Dict[str, Any]


class StateStore(Protocol):
    def load(self) -> Optional[SessionState]: ...

    def save(self, state: SessionState) -> None: ...

    def reset(self) -> None: ...


class InMemoryStateStore:
    """Tests / embedding: keeps a deep copy, never aliases the caller's dict."""

    def __init__(self, initial: Optional[SessionState] = None):
        self._state = copy.deepcopy(initial) if initial is not None else None

    def load(self) -> Optional[SessionState]:
        return copy.deepcopy(self._state)

    def save(self, state: SessionState) -> None:
        self._state = copy.deepcopy(state)

    def reset(self) -> None:
        self._state = None


class JsonFileStateStore:
    """One JSON document per session, written atomically."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> Optional[SessionState]:
        if not self.path.exists():
            return None
        try:
            state = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logs.warning(f"[StateStore] corrupt state file {self.path}: {e}; starting fresh")
            return None

        if not isinstance(state, dict):
            logs.warning(
                f"[StateStore] corrupt state file {self.path}: "
                f"expected an object, got {type(state).__name__}; starting fresh"
            )
            return None
        return state

    def save(self, state: SessionState) -> None:
        data = json.dumps(state, indent=2, ensure_ascii=False).encode("utf-8")
        FileSystem.safe_write(self.path, data)

    def reset(self) -> None:
        FileSystem.remove(self.path)
