"""Pytest 配置和公共夹具。"""

import asyncio
import json
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from packsync.download import DownloadStats
from packsync.exceptions import DownloadNetworkError, MetadataError
from packsync.models import ArtifactRef, ReleaseType
from packsync.services.provider import MetadataProvider

MC_VERSION = "1.12.2"
FORGE_VERSION = "14.23.5.2847"


class FakeProvider(MetadataProvider):
    """不访问网络的元数据提供者"""

    def __init__(self, catalogs: Optional[Dict[int, List[ArtifactRef]]] = None):
        self.catalogs = catalogs or {}
        self.url_requests: List[tuple] = []
        self.loader_versions = {"latest": FORGE_VERSION, "recommended": FORGE_VERSION}

    async def resolve_download_url(self, project_id: int, file_id: int) -> str:
        self.url_requests.append((project_id, file_id))
        name = f"mod-{project_id}-{file_id}.jar"
        return f"https://files.example.invalid/{project_id}/{file_id}/{name}"

    async def get_changelog(self, project_id: int, file_id: int) -> str:
        return f"changelog {project_id}:{file_id}"

    async def list_files(self, project_id: int) -> List[ArtifactRef]:
        if project_id not in self.catalogs:
            raise MetadataError(f"unknown project {project_id}")
        return list(self.catalogs[project_id])

    async def get_loader_version(self, platform_version: str, selector: str) -> str:
        return self.loader_versions.get(selector, selector)


class FakeDownloader:
    """把 URL 写入以 URL 末段命名的文件，代替真实下载"""

    def __init__(self, fail_on: tuple = ()):
        self.fail_on = fail_on
        self.calls: List[str] = []
        self.stats = DownloadStats()

    async def download_to_directory(self, url: str, directory) -> Path:
        await asyncio.sleep(0)
        self.calls.append(url)
        if any(marker in url for marker in self.fail_on):
            self.stats.failed += 1
            raise DownloadNetworkError(f"HTTP 503: {url}", context={"url": url})
        path = Path(directory) / url.rsplit("/", 1)[-1]
        path.write_bytes(url.encode("utf-8"))
        self.stats.completed += 1
        self.stats.bytes_downloaded += len(url.encode("utf-8"))
        return path

    async def close(self):
        pass


def make_ref(
    project_id: int,
    file_id: int,
    release_type: Optional[ReleaseType] = ReleaseType.RELEASE,
    game_versions=(MC_VERSION,),
    name: Optional[str] = None,
) -> ArtifactRef:
    return ArtifactRef(
        project_id=project_id,
        file_id=file_id,
        display_name=name or f"mod-{project_id}-{file_id}",
        release_type=release_type,
        game_versions=frozenset(game_versions),
    )


def manifest_data(files: List[dict], **extra) -> dict:
    data = {
        "minecraft": {
            "version": MC_VERSION,
            "modLoaders": [{"id": "forge-latest", "primary": True}],
        },
        "manifestType": "minecraftModpack",
        "manifestVersion": 1,
        "name": "Test Pack",
        "version": "1.0.0",
        "author": "Tester",
        "files": files,
        "overrides": "overrides",
    }
    data.update(extra)
    return data


def write_pack(
    directory: Path,
    files: List[dict],
    overrides: Optional[Dict[str, str]] = None,
    **extra,
) -> Path:
    """在 directory 下生成一个解压后的整合包"""
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "manifest.json").write_text(
        json.dumps(manifest_data(files, **extra)), encoding="utf-8"
    )
    for relative, content in (overrides or {}).items():
        path = directory / "overrides" / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return directory


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def downloader():
    return FakeDownloader()
