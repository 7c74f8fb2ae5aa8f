from .records_csv import (
    load_profile_csv,
    load_records,
    load_records_csv,
    records_to_frame,
    write_records_csv,
)
from .report_writer import write_json, write_report
from .state_store import InMemoryStateStore, JsonFileStateStore, StateStore

__all__ = [
    "load_profile_csv",
    "load_records",
    "load_records_csv",
    "records_to_frame",
    "write_records_csv",
    "write_json",
    "write_report",
    "InMemoryStateStore",
    "JsonFileStateStore",
    "StateStore",
]
