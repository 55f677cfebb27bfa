import os
import shutil
from pathlib import Path
from typing import Iterable, Union

from loguru import logger


def to_posix(path: Union[str, Path]) -> str:
    """安装记录中统一使用正斜杠路径"""
    return Path(path).as_posix()


def delete_path(path: Union[str, Path]) -> bool:
    """
    删除文件或目录

    Returns:
        路径是否存在并已被删除
    """
    path = Path(path)
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)
    else:
        return False
    return True


def prune_empty_dirs(root: Union[str, Path], keep: Iterable[str] = ()) -> int:
    """
    自底向上删除 root 下的空目录（root 本身保留）

    Args:
        root: 安装目录
        keep: 即使为空也保留的相对目录

    Returns:
        删除的目录数量
    """
    root = Path(root)
    kept = {Path(name) for name in keep}
    removed = 0

    for dirpath, _dirnames, _filenames in os.walk(root, topdown=False):
        directory = Path(dirpath)
        if directory == root or directory.relative_to(root) in kept:
            continue
        try:
            if not any(directory.iterdir()):
                directory.rmdir()
                removed += 1
        except OSError as e:
            logger.warning(f"[警告] 无法删除空目录 {directory}: {e}")

    return removed
