# pairpref/config/export_config.py
from pydantic import BaseModel


class ExportPolicy(BaseModel):
    """
    Penalty-weight → production-scorer constants.

    POLICY, not derived: every value here is a hand-tuned convention of the
    downstream scorer and may change without touching the learner.
    """

    covered_min_floor: float = 0.001
    covered_min_default: float = 0.01

    wait_penalty_min: float = -10.0
    wait_penalty_default: float = -1.0

    switch_bonus_default: float = -0.5
    switch_bonus_cap: float = 1.0
    switch_bonus_capped_value: float = 0.5

    stability_scale: float = -2.0
    stability_fallback: float = 0.5

    productive_loss_default: float = -0.2
    preferred_room_bonus: float = 5.0
