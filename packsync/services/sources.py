"""
整合包来源解析

把配置中的整合包来源（平台文件、链接或本地路径）转换为一个包含 manifest.json
的目录。下载和解压产生的临时文件由 ScratchSpace 统一记录并在安装结束时删除。
"""

import os
import shutil
import tempfile
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from loguru import logger

from packsync.download import ModDownloader
from packsync.exceptions import DownloadError, SourceError
from packsync.models import ModpackSource, SourceKind
from packsync.services.provider import MetadataProvider


class ScratchSpace:
    """临时路径管理"""

    def __init__(self, root: Optional[Union[str, Path]] = None):
        self.root = str(root) if root is not None else None
        self.paths: List[Path] = []

    def new_directory(self, prefix: str = "packsync-") -> Path:
        """创建并记录一个临时目录"""
        path = Path(tempfile.mkdtemp(prefix=prefix, dir=self.root))
        self.paths.append(path)
        return path

    def cleanup(self):
        """删除所有临时路径，失败时只记录警告"""
        while self.paths:
            path = self.paths.pop()
            try:
                if path.is_dir():
                    shutil.rmtree(path)
                elif path.exists():
                    os.remove(path)
            except OSError as e:
                logger.warning(f"[警告] 无法删除临时文件 {path}: {e}")
            else:
                logger.debug(f"[清理] {path}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cleanup()


@dataclass
class ResolvedSource:
    """
    解析后的整合包来源

    is_local 为 True 表示目录是用户提供的本地目录，安装过程中不能修改。
    """

    directory: Path
    is_local: bool = False


class SourceResolver:
    """整合包来源解析器"""

    def __init__(
        self,
        provider: MetadataProvider,
        downloader: ModDownloader,
        scratch: ScratchSpace,
    ):
        self.provider = provider
        self.downloader = downloader
        self.scratch = scratch

    async def resolve(self, source: ModpackSource) -> ResolvedSource:
        logger.info(f"[来源] {source.kind.value}: {source.locator}")

        if source.kind is SourceKind.PROJECT_FILE:
            url = await self.provider.resolve_download_url(
                source.project_id, source.file_id
            )
            return self.extract(await self._download(url))

        if source.kind is SourceKind.URL:
            return self.extract(await self._download(source.locator))

        path = Path(source.locator).expanduser()
        if path.is_dir():
            return ResolvedSource(path, is_local=True)
        if path.is_file():
            return self.extract(path)
        raise SourceError(f"整合包路径不存在: {path}", context={"path": str(path)})

    async def _download(self, url: str) -> Path:
        directory = self.scratch.new_directory("packsync-download-")
        try:
            return await self.downloader.download_to_directory(url, directory)
        except DownloadError as e:
            raise SourceError(
                f"整合包下载失败: {e.message}", context={"url": url, **e.context}
            ) from e

    def extract(self, archive: Union[str, Path]) -> ResolvedSource:
        """解压整合包到临时目录"""
        archive = Path(archive)
        if not zipfile.is_zipfile(archive):
            raise SourceError(
                f"不是有效的压缩包: {archive.name}", context={"path": str(archive)}
            )

        directory = self.scratch.new_directory(f"{archive.stem}-")
        try:
            with zipfile.ZipFile(archive) as zf:
                zf.extractall(directory)
        except (zipfile.BadZipFile, OSError) as e:
            raise SourceError(
                f"解压失败: {archive.name}: {e}", context={"path": str(archive)}
            ) from e

        logger.debug(f"[解压] {archive.name} -> {directory}")
        return ResolvedSource(directory)
