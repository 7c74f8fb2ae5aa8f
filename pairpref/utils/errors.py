# pairpref/utils/errors.py
from __future__ import annotations


class PairprefError(RuntimeError):
    """Base class for every error raised by pairpref."""


class UserInputError(PairprefError):
    """
    Raised for invalid user-provided input (config, CSV files, records).
    Should NOT print traceback.
    """


class InsufficientDataError(UserInputError):
    """Raised before any phase runs when too few valid records are available."""

    def __init__(self, available: int, required: int):
        self.available = available
        self.required = required
        super().__init__(
            f"Too few valid choice records: have {available}, "
            f"need at least {required}"
        )


class MalformedRecordError(UserInputError):
    """A single record failed validation (non-finite feature, bad choice)."""


class AnalysisPhaseError(PairprefError):
    """
    Wraps an exception raised inside one phase of the analysis pipeline.
    """

    def __init__(self, phase: str, phase_index: int, cause: BaseException):
        self.phase = phase
        self.phase_index = phase_index
        self.cause = cause
        super().__init__(
            f"Analysis phase '{phase}' ({phase_index}) failed: "
            f"{type(cause).__name__}: {cause}"
        )


class AnalysisCancelled(PairprefError):
    """Raised at a yield point after the CancelToken was cancelled."""
