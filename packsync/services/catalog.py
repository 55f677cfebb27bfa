"""
模组解析服务

把清单中未指定文件的条目（file_id 为 0）解析为具体文件。
"""

from typing import Dict, List

from loguru import logger

from packsync.exceptions import MetadataError
from packsync.models import FileFilter, FileSet, ManifestEntry, Modpack
from packsync.services.provider import MetadataProvider


class CatalogResolver:
    """模组解析器"""

    def __init__(self, provider: MetadataProvider):
        self.provider = provider

    async def candidates(self, project_id: int, file_filter: FileFilter) -> FileSet:
        """获取项目中满足过滤条件的文件，按 ID 从新到旧排列"""
        files = FileSet(await self.provider.list_files(project_id))
        files.filter(file_filter)
        return files.sort_by_id(descending=True)

    async def resolve(
        self, entry: ManifestEntry, file_filter: FileFilter
    ) -> ManifestEntry:
        """
        解析单个条目

        Args:
            entry: 清单条目
            file_filter: 游戏版本和稳定性过滤器

        Returns:
            file_id 已确定的条目；原本已指定文件的条目原样返回
        """
        if not entry.needs_resolution:
            return entry

        ref = (await self.candidates(entry.project_id, file_filter)).newest()
        if ref is None:
            raise MetadataError(
                f"找不到满足条件的文件: {entry.title} ({entry.project_id})",
                context={"project_id": entry.project_id, "filter": repr(file_filter)},
            )

        logger.debug(f"[解析] {entry.title} -> {ref}")
        return ManifestEntry(
            project_id=entry.project_id,
            file_id=ref.file_id,
            title=ref.display_name or entry.title,
            role=entry.role,
            related_files=list(entry.related_files),
        )

    async def resolve_many(
        self, modpack: Modpack, entries: List[ManifestEntry]
    ) -> List[ManifestEntry]:
        """按整合包的游戏版本和最低稳定性批量解析条目"""
        file_filter = FileFilter(
            game_versions={modpack.platform_version},
            minimum_stability=modpack.minimum_stability,
        )
        pending = sum(1 for entry in entries if entry.needs_resolution)
        if pending:
            logger.info(f"[解析] {pending} 个模组需要查询文件目录")

        resolved = []
        for entry in entries:
            resolved.append(await self.resolve(entry, file_filter))
        return resolved


def to_file_set(entries: List[ManifestEntry]) -> FileSet:
    """把已解析的条目转换为文件集合"""
    return FileSet(entry.to_ref() for entry in entries)


def index_by_project(entries: List[ManifestEntry]) -> Dict[int, ManifestEntry]:
    """按项目索引条目，同一项目出现多次时保留文件 ID 最大的一个"""
    by_project: Dict[int, ManifestEntry] = {}
    for entry in entries:
        current = by_project.get(entry.project_id)
        if current is None or entry.file_id > current.file_id:
            by_project[entry.project_id] = entry
    return by_project


__all__ = ["CatalogResolver", "to_file_set", "index_by_project"]
