# pairpref/pipeline/parallel/types.py
from enum import Enum


class ParallelKind(str, Enum):
    TRIAL = "trial"
    BOOTSTRAP = "bootstrap"
