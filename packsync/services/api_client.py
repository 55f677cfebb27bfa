"""
API 客户端

基于 CurseForge REST API 的元数据提供者。缓存通过 MetadataCache 对象显式传入。
"""

from typing import Any, Dict, List, Optional, Tuple

import aiohttp
from loguru import logger

from packsync.exceptions import (
    APIError,
    APINotFoundError,
    APIRateLimitError,
    APIServerError,
    MetadataError,
)
from packsync.models import ApiConfig, ArtifactRef, ReleaseType
from packsync.services.provider import MetadataProvider

FORGE_PROMOTIONS_URL = (
    "https://files.minecraftforge.net/net/minecraftforge/forge/promotions_slim.json"
)

LOADER_SELECTORS = ("latest", "recommended")


class MetadataCache:
    """下载链接和文件目录缓存"""

    def __init__(self):
        self._urls: Dict[Tuple[int, int], str] = {}
        self._catalogs: Dict[int, List[ArtifactRef]] = {}
        self._promotions: Optional[Dict[str, str]] = None

    def get_url(self, project_id: int, file_id: int) -> Optional[str]:
        return self._urls.get((project_id, file_id))

    def put_url(self, project_id: int, file_id: int, url: str):
        self._urls[(project_id, file_id)] = url

    def get_catalog(self, project_id: int) -> Optional[List[ArtifactRef]]:
        catalog = self._catalogs.get(project_id)
        return list(catalog) if catalog is not None else None

    def put_catalog(self, project_id: int, files: List[ArtifactRef]):
        self._catalogs[project_id] = list(files)

    def get_promotions(self) -> Optional[Dict[str, str]]:
        return self._promotions

    def put_promotions(self, promotions: Dict[str, str]):
        self._promotions = dict(promotions)

    def invalidate(self, project_id: Optional[int] = None):
        """清除缓存；指定 project_id 时只清除该项目"""
        if project_id is None:
            self._urls.clear()
            self._catalogs.clear()
            self._promotions = None
            return
        self._catalogs.pop(project_id, None)
        for key in [key for key in self._urls if key[0] == project_id]:
            del self._urls[key]


def artifact_from_curseforge(data: Dict[str, Any]) -> ArtifactRef:
    """将 CurseForge API 返回的文件信息转换为 ArtifactRef"""
    release_type = data.get("releaseType")
    return ArtifactRef(
        project_id=int(data["modId"]),
        file_id=int(data["id"]),
        display_name=data.get("displayName"),
        file_name=data.get("fileName"),
        release_type=ReleaseType.from_id(release_type) if release_type else None,
        game_versions=frozenset(data.get("gameVersions") or []),
        download_url=data.get("downloadUrl"),
    )


class CurseForgeClient(MetadataProvider):
    """CurseForge API 客户端"""

    def __init__(
        self,
        config: Optional[ApiConfig] = None,
        cache: Optional[MetadataCache] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.config = config or ApiConfig()
        self.cache = cache if cache is not None else MetadataCache()
        self._session = session
        self._owned_session = session is None

    @property
    def session(self) -> aiohttp.ClientSession:
        """获取或创建 aiohttp session"""
        if self._session is None or self._session.closed:
            headers = {"Accept": "application/json"}
            if self.config.api_key:
                headers["x-api-key"] = self.config.api_key
            self._session = aiohttp.ClientSession(
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
            )
            self._owned_session = True
        return self._session

    async def _request(self, url: str, params: Optional[dict] = None) -> Any:
        """发送 API 请求"""
        async with self.session.get(url, params=params) as response:
            if response.status == 200:
                return await response.json(content_type=None)
            if response.status == 404:
                raise APINotFoundError(f"资源不存在: {url}", response=response)
            if response.status == 429:
                raise APIRateLimitError("API 请求过于频繁", response=response)
            if response.status >= 500:
                raise APIServerError(
                    f"API 服务器错误 (状态码: {response.status})", response=response
                )
            raise APIError(
                f"API 请求失败 (状态码: {response.status})", response=response
            )

    async def resolve_download_url(self, project_id: int, file_id: int) -> str:
        cached = self.cache.get_url(project_id, file_id)
        if cached:
            return cached

        data = await self._request(
            f"{self.config.base_url}/v1/mods/{project_id}/files/{file_id}/download-url"
        )
        url = data.get("data") if isinstance(data, dict) else None
        if not url:
            raise MetadataError(
                f"文件没有可用的下载链接: {project_id}:{file_id}",
                context={"project_id": project_id, "file_id": file_id},
            )
        self.cache.put_url(project_id, file_id, url)
        return url

    async def get_changelog(self, project_id: int, file_id: int) -> str:
        data = await self._request(
            f"{self.config.base_url}/v1/mods/{project_id}/files/{file_id}/changelog"
        )
        return data.get("data") or ""

    async def list_files(self, project_id: int) -> List[ArtifactRef]:
        cached = self.cache.get_catalog(project_id)
        if cached is not None:
            return cached

        files: List[ArtifactRef] = []
        index = 0
        while True:
            data = await self._request(
                f"{self.config.base_url}/v1/mods/{project_id}/files",
                params={"index": index, "pageSize": 50},
            )
            page = data.get("data") or []
            files.extend(artifact_from_curseforge(item) for item in page)

            pagination = data.get("pagination") or {}
            total = pagination.get("totalCount", len(files))
            index += len(page)
            if not page or index >= total:
                break

        logger.debug(f"项目 {project_id} 共有 {len(files)} 个文件")
        self.cache.put_catalog(project_id, files)
        for ref in files:
            if ref.download_url:
                self.cache.put_url(ref.project_id, ref.file_id, ref.download_url)
        return files

    async def get_loader_version(self, platform_version: str, selector: str) -> str:
        if selector not in LOADER_SELECTORS:
            return selector

        promotions = self.cache.get_promotions()
        if promotions is None:
            data = await self._request(FORGE_PROMOTIONS_URL)
            promotions = data.get("promos") or {}
            self.cache.put_promotions(promotions)

        version = promotions.get(f"{platform_version}-{selector}")
        if not version and selector == "recommended":
            # 部分版本没有推荐版本，退回最新版本
            version = promotions.get(f"{platform_version}-latest")
        if not version:
            raise MetadataError(
                f"找不到 Minecraft {platform_version} 的 {selector} 加载器版本",
                context={"platform_version": platform_version, "selector": selector},
            )
        return version

    async def close(self):
        """关闭客户端"""
        if self._owned_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        """异步上下文管理器入口"""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """异步上下文管理器出口"""
        await self.close()
