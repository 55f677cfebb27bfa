"""
PackSync 服务层

包含 API 客户端、模组解析、清单解析、来源解析和文件比较等服务。
"""

from packsync.services.provider import MetadataProvider
from packsync.services.api_client import CurseForgeClient, MetadataCache
from packsync.services.catalog import CatalogResolver
from packsync.services.diff import FileChange, FileSetDiff
from packsync.services.loader import LoaderInstaller
from packsync.services.manifest_loader import load_manifest, parse_manifest
from packsync.services.overrides import OverrideCopier
from packsync.services.sources import ResolvedSource, ScratchSpace, SourceResolver

__all__ = [
    "MetadataProvider",
    "CurseForgeClient",
    "MetadataCache",
    "CatalogResolver",
    "FileChange",
    "FileSetDiff",
    "LoaderInstaller",
    "load_manifest",
    "parse_manifest",
    "OverrideCopier",
    "ResolvedSource",
    "ScratchSpace",
    "SourceResolver",
]
