from .app_config import AppConfig
from .export_config import ExportPolicy
from .log_config import LogConfig
from .training_config import AnalysisConfig, ProfileConfig, SessionConfig, TrainerConfig

__all__ = [
    "AppConfig",
    "AnalysisConfig",
    "ExportPolicy",
    "LogConfig",
    "ProfileConfig",
    "SessionConfig",
    "TrainerConfig",
]
