"""
模组加载器安装

只负责删除旧版本的加载器目录和记录安装请求，实际的加载器安装流程不在本项目范围内。
"""

from pathlib import Path
from typing import Union

from loguru import logger

from packsync.utils import delete_path


class LoaderInstaller:
    """Forge 加载器安装器"""

    @staticmethod
    def version_directory(
        install_to: Union[str, Path], platform_version: str, loader_version: str
    ) -> Path:
        """客户端 versions 目录下的加载器版本目录"""
        name = f"{platform_version}-forge{loader_version}"
        return Path(install_to) / "versions" / name

    async def install(
        self,
        install_to: Union[str, Path],
        platform_version: str,
        loader_version: str,
        is_server: bool,
    ):
        target = "服务端" if is_server else "客户端"
        logger.info(
            f"[加载器] 需要为{target}安装 Forge {platform_version}-{loader_version}"
        )

    async def remove(
        self,
        install_to: Union[str, Path],
        platform_version: str,
        loader_version: str,
    ):
        directory = self.version_directory(install_to, platform_version, loader_version)
        if delete_path(directory):
            logger.info(f"[加载器] 已删除旧版本: {directory.name}")
        else:
            logger.debug(f"[加载器] 旧版本目录不存在: {directory}")
