"""
下载器

负责把单个远程文件流式写入磁盘。并发控制由 DownloadScheduler 负责，
重试策略不在本层处理。
"""

import os
import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote, urlparse

import aiofiles
import aiohttp
from loguru import logger

from packsync.exceptions import DownloadError, DownloadFileError, DownloadNetworkError

_FILENAME_PATTERN = re.compile(r"filename\*?=(?:UTF-8'')?\"?([^\";]+)\"?", re.I)


@dataclass
class DownloadStats:
    """下载统计"""

    completed: int = 0
    failed: int = 0
    bytes_downloaded: int = 0


def filename_from_response(url: str, content_disposition: Optional[str]) -> str:
    """从 Content-Disposition 或最终 URL 推断文件名"""
    if content_disposition:
        match = _FILENAME_PATTERN.search(content_disposition)
        if match:
            return os.path.basename(unquote(match.group(1).strip()))

    name = os.path.basename(unquote(urlparse(url).path))
    if not name:
        raise DownloadFileError(f"无法从 URL 推断文件名: {url}", context={"url": url})
    return name


class ModDownloader:
    """下载器"""

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: Optional[float] = None,
    ):
        self._session = session
        self._owned_session = session is None
        self._timeout = timeout
        self.stats = DownloadStats()

    @property
    def session(self) -> aiohttp.ClientSession:
        """获取或创建 aiohttp session"""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owned_session = True
        return self._session

    async def download_to_directory(
        self, url: str, directory: Union[str, Path]
    ) -> Path:
        """
        下载文件到目录，文件名由服务器响应决定

        Returns:
            下载后的文件路径
        """
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)

        if url.startswith("file://"):
            src = Path(unquote(urlparse(url).path))
            return self._copy_local_file(src, directory / src.name)

        async with self.session.get(url) as response:
            if response.status != 200:
                raise DownloadNetworkError(
                    f"HTTP {response.status}",
                    context={"url": url, "status": response.status},
                )
            filename = filename_from_response(
                str(response.url), response.headers.get("Content-Disposition")
            )
            file_path = directory / filename
            await self._write_body(response, file_path)

        return file_path

    async def download_to_file(self, url: str, file_path: Union[str, Path]) -> Path:
        """下载文件到指定路径"""
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        if url.startswith("file://"):
            return self._copy_local_file(Path(unquote(urlparse(url).path)), file_path)

        async with self.session.get(url) as response:
            if response.status != 200:
                raise DownloadNetworkError(
                    f"HTTP {response.status}",
                    context={"url": url, "status": response.status},
                )
            await self._write_body(response, file_path)

        return file_path

    async def _write_body(self, response: aiohttp.ClientResponse, file_path: Path):
        """把响应内容写入文件，失败时删除不完整的文件"""
        total_size = int(response.headers.get("Content-Length", 0))
        logger.debug(
            f"[信息] {file_path.name} 文件大小: {total_size / (1024 * 1024):.2f} MB"
        )

        try:
            async with aiofiles.open(file_path, "wb") as f:
                async for chunk in response.content.iter_chunked(8192):
                    await f.write(chunk)
                    self.stats.bytes_downloaded += len(chunk)
        except (aiohttp.ClientError, OSError) as e:
            self.stats.failed += 1
            if file_path.exists():
                try:
                    os.remove(file_path)
                except OSError:
                    logger.warning(f"[警告] 无法删除不完整的文件: {file_path}")
            if isinstance(e, OSError):
                raise DownloadFileError(
                    f"写入文件失败: {file_path.name}", context={"error": str(e)}
                ) from e
            raise DownloadNetworkError(
                f"下载中断: {file_path.name}", context={"error": str(e)}
            ) from e

        self.stats.completed += 1

    def _copy_local_file(self, src_path: Path, dest_path: Path) -> Path:
        """复制本地文件"""
        logger.info(f"[复制] 本地文件: {src_path.name}")
        try:
            shutil.copy2(src_path, dest_path)
        except OSError as e:
            self.stats.failed += 1
            raise DownloadError(
                f"复制文件失败: {src_path}", context={"error": str(e)}
            ) from e
        self.stats.bytes_downloaded += dest_path.stat().st_size
        self.stats.completed += 1
        return dest_path

    async def close(self):
        """关闭下载器"""
        if self._owned_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        """异步上下文管理器入口"""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """异步上下文管理器出口"""
        await self.close()
