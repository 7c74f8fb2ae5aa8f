#!filepath: pairpref/config/app_config.py
from __future__ import annotations

import os

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .log_config import LogConfig
from .training_config import AnalysisConfig, ProfileConfig, SessionConfig, TrainerConfig
from .export_config import ExportPolicy


def project_root() -> str:
    """
    返回项目根目录（基于当前文件位置推导）:
    pairpref/config/app_config.py → pairpref/config → pairpref → project_root
    """
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "../../"))


def default_config_path() -> str:
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), "base.yml")


class AppConfig(BaseModel):
    log: LogConfig = Field(default_factory=LogConfig)
    trainer: TrainerConfig = Field(default_factory=TrainerConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    profiles: ProfileConfig = Field(default_factory=ProfileConfig)
    export: ExportPolicy = Field(default_factory=ExportPolicy)

    @classmethod
    def load(cls, path: str | None = None) -> "AppConfig":
        """
        加载 YAML 配置 + .env
        - 默认使用 pairpref/config/base.yml
        - 不依赖当前工作目录
        - PAIRPREF_LOG_LEVEL / PAIRPREF_SEED 覆盖 YAML
        """
        root = project_root()

        # 1) 先加载 .env（在项目根目录下）
        load_dotenv(os.path.join(root, ".env"))

        # 2) 决定配置文件路径
        if path is None:
            path = default_config_path()

        if not os.path.exists(path):
            raise FileNotFoundError(f"Config file not found: {path}")

        # 3) 读取 YAML
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        # 4) env 覆盖
        level = os.getenv("PAIRPREF_LOG_LEVEL")
        if level:
            raw.setdefault("log", {})["level"] = level

        seed = os.getenv("PAIRPREF_SEED")
        if seed:
            raw.setdefault("analysis", {})["seed"] = int(seed)

        return cls(**raw)
