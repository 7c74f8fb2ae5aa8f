#!filepath: pairpref/utils/logger.py
import os
import sys
from loguru import logger
from typing import Optional


class Logging:
    """
    生产级日志模块（loguru facade）
    ---------------------------------------
    - stderr sink 默认开启
    - configure() 追加按日期切割的文件 sink
    ---------------------------------------
    """

    def __init__(self, log_level: str = "INFO"):
        self.level = log_level
        self._file_sink_id: Optional[int] = None
        self._stderr_sink_id: Optional[int] = None
        self._configure_stderr()

    def _configure_stderr(self) -> None:
        logger.remove()
        self._stderr_sink_id = logger.add(
            sys.stderr,
            level=self.level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}",
        )

    def configure(
        self,
        log_dir: str = "logs",
        rotation: str = "1 day",
        retention: str = "30 days",
        level: str = "INFO",
    ) -> None:
        """
        追加文件 sink，只执行一次（重复调用会替换旧的 sink）
        """
        os.makedirs(log_dir, exist_ok=True)

        if self._file_sink_id is not None:
            try:
                logger.remove(self._file_sink_id)
            except ValueError:
                # sink 已被外部（pytest fixture）移除
                pass

        self._file_sink_id = logger.add(
            sink=f"{log_dir}/{{time:YYYY-MM-DD}}.log",
            rotation=rotation,
            retention=retention,
            level=level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}",
            enqueue=True,
            backtrace=True,
            diagnose=False,
        )
        logger.info("-----------Logger file sink initialized-----------")

    # ----------- 日志方法 -----------
    def debug(self, msg: str, *args, **kwargs):
        logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        logger.error(msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        logger.exception(msg, *args, **kwargs)


# 默认全局 logs
logs = Logging()
