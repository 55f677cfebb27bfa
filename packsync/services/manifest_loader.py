"""
清单解析服务

读取整合包中的 manifest.json 并转换为 Modpack 模型。
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Union

from loguru import logger

from packsync.exceptions import ManifestError, ValidationError
from packsync.models import FileRole, ManifestEntry, Modpack, ReleaseType

MANIFEST_NAME = "manifest.json"

LOADER_PREFIX = "forge-"


def _parse_role(data: Dict[str, Any]) -> FileRole:
    """条目适用端，兼容 type 字段和 clientOnly/serverOnly 标志两种写法"""
    role_name = data.get("type")
    if role_name:
        try:
            return FileRole(role_name)
        except ValueError:
            raise ManifestError(
                f"未知的文件类型: {role_name}", context={"type": role_name}
            ) from None

    role = FileRole.from_flags(
        bool(data.get("clientOnly")), bool(data.get("serverOnly"))
    )
    if role is None:
        raise ManifestError(
            "文件不能同时为 clientOnly 和 serverOnly",
            context={"projectID": data.get("projectID")},
        )
    return role


def parse_entry(data: Dict[str, Any]) -> ManifestEntry:
    """解析单个模组条目"""
    try:
        project_id = int(data["projectID"])
        file_id = int(data.get("fileID", 0))
    except (KeyError, TypeError, ValueError) as e:
        raise ManifestError(f"无效的模组条目: {data!r}") from e

    return ManifestEntry(
        project_id=project_id,
        file_id=file_id,
        title=data.get("title") or "Unknown Name",
        role=_parse_role(data),
        related_files=list(data.get("relatedFiles") or []),
        alternatives=[parse_entry(alt) for alt in data.get("alternatives") or []],
    )


def _primary_loader(loaders: List[Dict[str, Any]]) -> str:
    if not loaders:
        raise ManifestError("清单中没有指定模组加载器")

    if not isinstance(loaders, list) or not all(
        isinstance(item, dict) for item in loaders
    ):
        raise ManifestError("minecraft.modLoaders 必须是对象列表")

    loader = next((item for item in loaders if item.get("primary")), loaders[0])
    loader_id = str(loader.get("id", ""))
    if not loader_id.startswith(LOADER_PREFIX):
        raise ManifestError(
            f"不支持的模组加载器: {loader_id}", context={"loader": loader_id}
        )
    return loader_id[len(LOADER_PREFIX) :]


def parse_manifest(data: Dict[str, Any]) -> Modpack:
    """把清单字典转换为 Modpack"""
    if not isinstance(data, dict):
        raise ManifestError("清单内容必须是 JSON 对象")

    minecraft = data.get("minecraft") or {}
    if not isinstance(minecraft, dict):
        raise ManifestError("清单中的 minecraft 必须是 JSON 对象")
    platform_version = minecraft.get("version")
    if not platform_version:
        raise ManifestError("清单中缺少 minecraft.version")

    stability = data.get("minimumStability")
    try:
        minimum_stability = (
            ReleaseType.from_name(stability) if stability else ReleaseType.RELEASE
        )
    except ValidationError as e:
        raise ManifestError(e.message, context=e.context) from e

    return Modpack(
        name=data.get("name") or "Unnamed",
        version=str(data.get("version") or "1.0.0"),
        platform_version=str(platform_version),
        loader_version=_primary_loader(minecraft.get("modLoaders") or []),
        author=data.get("author") or "",
        description=data.get("description") or "",
        minimum_stability=minimum_stability,
        overrides=data.get("overrides") or "overrides",
        entries=[parse_entry(item) for item in data.get("files") or []],
        client_only_files=list(data.get("clientOnlyFiles") or []),
        server_only_files=list(data.get("serverOnlyFiles") or []),
    )


def load_manifest(path: Union[str, Path]) -> Modpack:
    """
    读取清单文件

    Args:
        path: manifest.json 路径，或包含 manifest.json 的目录

    Returns:
        Modpack
    """
    path = Path(path)
    if path.is_dir():
        path = path / MANIFEST_NAME

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ManifestError(f"找不到清单文件: {path}") from e
    except (OSError, ValueError) as e:
        raise ManifestError(f"无法读取清单文件: {e}", context={"path": str(path)}) from e

    modpack = parse_manifest(data)
    logger.info(
        f"[清单] {modpack.full_name} (Minecraft {modpack.platform_version}, "
        f"Forge {modpack.loader_version}, {len(modpack.entries)} 个模组)"
    )
    return modpack
