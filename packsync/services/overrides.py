"""
覆盖文件复制

把整合包中的覆盖目录复制到安装目录。文本文件中的占位符会被替换。
"""

import os
import shutil
from pathlib import Path
from typing import Dict, Iterable, List, Union

from loguru import logger

from packsync.utils import delete_path, to_posix

# 需要替换占位符的文件类型
TEXT_EXTENSIONS = (".cfg", ".json", ".txt", ".toml", ".properties")


def substitute(text: str, placeholders: Dict[str, str]) -> str:
    for token, value in placeholders.items():
        text = text.replace(token, value)
    return text


class OverrideCopier:
    """
    覆盖文件复制器

    Args:
        install_to: 安装目录
        placeholders: 占位符及其替换值
        ignored: 需要跳过的相对路径（另一端专属的文件或目录）
        move: 为 True 时移动文件（来源是临时解压目录），否则复制
    """

    def __init__(
        self,
        install_to: Union[str, Path],
        placeholders: Dict[str, str],
        ignored: Iterable[str] = (),
        move: bool = True,
    ):
        self.install_to = Path(install_to)
        self.placeholders = placeholders
        self.ignored = [to_posix(path).strip("/") for path in ignored if path]
        self.move = move

    def is_ignored(self, relative: str) -> bool:
        for ignored in self.ignored:
            if relative == ignored or relative.startswith(ignored + "/"):
                return True
        return False

    def list_files(self, source_dir: Union[str, Path]) -> List[str]:
        """将要复制的文件（相对路径），不修改任何文件"""
        source_dir = Path(source_dir)
        if not source_dir.is_dir():
            return []

        files = []
        for path in source_dir.rglob("*"):
            relative = to_posix(path.relative_to(source_dir))
            if path.is_file() and not self.is_ignored(relative):
                files.append(relative)
        return sorted(files)

    def copy_tree(self, source_dir: Union[str, Path]) -> List[str]:
        """
        复制覆盖目录

        Returns:
            已复制文件的相对路径（正斜杠形式）
        """
        source_dir = Path(source_dir)
        if not source_dir.is_dir():
            logger.info(f"[覆盖] 整合包中没有覆盖目录: {source_dir.name}")
            return []

        installed: List[str] = []
        for dirpath, dirnames, filenames in os.walk(source_dir):
            directory = Path(dirpath)
            relative_dir = directory.relative_to(source_dir)

            # 原地修改 dirnames 以跳过被忽略的子目录
            dirnames[:] = sorted(
                name
                for name in dirnames
                if not self.is_ignored(to_posix(relative_dir / name))
            )
            self._ensure_directory(self.install_to / relative_dir)

            for name in sorted(filenames):
                relative = to_posix(relative_dir / name)
                if self.is_ignored(relative):
                    logger.debug(f"[跳过] {relative}")
                    continue
                self._install_file(directory / name, self.install_to / relative)
                installed.append(relative)

        logger.info(f"[覆盖] 已复制 {len(installed)} 个文件")
        return installed

    def _ensure_directory(self, target: Path):
        if target.exists() and not target.is_dir():
            target.unlink()
        target.mkdir(parents=True, exist_ok=True)

    def _install_file(self, source: Path, target: Path):
        if target.is_dir() and not target.is_symlink():
            delete_path(target)

        if source.suffix.lower() in TEXT_EXTENSIONS:
            try:
                text = source.read_text(encoding="utf-8")
            except UnicodeDecodeError:
                logger.debug(f"[覆盖] 非 UTF-8 文本，按原样复制: {source.name}")
            else:
                target.write_text(substitute(text, self.placeholders), encoding="utf-8")
                logger.debug(f"[写入] {target}")
                return

        if self.move:
            if target.exists():
                target.unlink()
            shutil.move(str(source), str(target))
            logger.debug(f"[移动] {target}")
        else:
            shutil.copy2(source, target)
            logger.debug(f"[复制] {target}")
