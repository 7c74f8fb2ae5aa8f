#!filepath: pairpref/utils/filesystem.py
from pathlib import Path

from pairpref import logs


class FileSystem:
    """
    文件系统工具（只保留 state / report 需要的部分）
    - 自动创建目录
    - 原子写入（tmp → replace）
    - 删除单个文件
    """

    @staticmethod
    def ensure_dir(path: str | Path) -> Path:
        p = Path(path)
        if not p.exists():
            p.mkdir(parents=True, exist_ok=True)
            logs.debug(f"[FS] created dir: {p}")
        return p

    @staticmethod
    def safe_write(path: str | Path, data: bytes) -> None:
        """
        原子写入：先写 tmp 文件，再 replace 成正式文件，
        进程中断时不会留下写了一半的 state。
        """
        path = Path(path)
        FileSystem.ensure_dir(path.parent)

        tmp_path = path.with_suffix(path.suffix + ".tmp")
        with open(tmp_path, "wb") as f:
            f.write(data)

        tmp_path.replace(path)
        logs.debug(f"[FS] atomic write done: {path}")

    @staticmethod
    def remove(path: str | Path) -> None:
        p = Path(path)
        if p.exists():
            p.unlink()
            logs.debug(f"[FS] removed: {p}")
