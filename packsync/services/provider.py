"""
元数据提供者接口

安装器通过该接口获取下载链接、更新日志、文件目录和加载器版本。
"""

from abc import ABC, abstractmethod
from typing import List

from packsync.models import ArtifactRef


class MetadataProvider(ABC):
    @abstractmethod
    async def resolve_download_url(self, project_id: int, file_id: int) -> str:
        """获取文件的下载链接"""

    @abstractmethod
    async def get_changelog(self, project_id: int, file_id: int) -> str:
        """获取文件的更新日志"""

    @abstractmethod
    async def list_files(self, project_id: int) -> List[ArtifactRef]:
        """获取项目的全部文件（带元数据）"""

    @abstractmethod
    async def get_loader_version(self, platform_version: str, selector: str) -> str:
        """
        把加载器版本选择器解析为具体版本

        selector 为 "latest"、"recommended" 或具体版本号。
        """

    async def close(self):
        """释放连接等资源"""
