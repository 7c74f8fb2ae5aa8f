#!filepath: pairpref/__init__.py

from .utils.logger import Logging, logs
from .config.app_config import AppConfig
from .domain.features import FEATURE_KEYS, ChoiceRecord, FeatureVector

__version__ = "0.1.0"

__all__ = [
    "logs", "Logging",
    "AppConfig",
    "FEATURE_KEYS",
    "ChoiceRecord",
    "FeatureVector",
    "__version__",
]
