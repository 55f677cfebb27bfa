"""
整合包清单模型

定义清单中的模组条目、条目适用端以及整合包元数据。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional

from packsync.models.files import ArtifactRef, ReleaseType

# clientOnlyFiles / serverOnlyFiles 中的名称都相对于覆盖目录下的 config 目录
CONFIG_DIRECTORY = "config"


class FileRole(Enum):
    """条目适用端"""

    NORMAL = "normal"
    CLIENT_ONLY = "clientOnly"
    SERVER_ONLY = "serverOnly"

    def applies_to(self, is_server: bool) -> bool:
        if self is FileRole.NORMAL:
            return True
        if is_server:
            return self is FileRole.SERVER_ONLY
        return self is FileRole.CLIENT_ONLY

    @classmethod
    def from_flags(cls, client_only: bool, server_only: bool) -> Optional["FileRole"]:
        """两个标志同时为真时无法确定适用端，返回 None"""
        if client_only and server_only:
            return None
        if client_only:
            return cls.CLIENT_ONLY
        if server_only:
            return cls.SERVER_ONLY
        return cls.NORMAL


@dataclass
class ManifestEntry:
    """
    清单中的一个模组条目

    file_id 为 0 表示需要通过目录 API 和过滤器解析具体文件。
    alternatives 为当前端不适用时的替代条目。
    """

    project_id: int
    file_id: int = 0
    title: str = "Unknown Name"
    role: FileRole = FileRole.NORMAL
    related_files: List[str] = field(default_factory=list)
    alternatives: List["ManifestEntry"] = field(default_factory=list)

    @property
    def needs_resolution(self) -> bool:
        return self.file_id == 0

    def for_target(self, is_server: bool) -> Optional["ManifestEntry"]:
        """获取适用于目标端的条目（自身或第一个适用的替代条目）"""
        if self.role.applies_to(is_server):
            return self
        for alternative in self.alternatives:
            if alternative.role.applies_to(is_server):
                return alternative
        return None

    def to_ref(self) -> ArtifactRef:
        return ArtifactRef(self.project_id, self.file_id, display_name=self.title)


@dataclass
class Modpack:
    """整合包"""

    name: str
    version: str
    platform_version: str
    loader_version: str
    author: str = ""
    description: str = ""
    minimum_stability: ReleaseType = ReleaseType.RELEASE
    overrides: str = "overrides"
    entries: List[ManifestEntry] = field(default_factory=list)
    client_only_files: List[str] = field(default_factory=list)
    server_only_files: List[str] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.version}"

    def entries_for(
        self, is_server: bool, excluded_project_ids: Iterable[int] = ()
    ) -> List[ManifestEntry]:
        """按适用端和排除列表过滤条目"""
        excluded = set(excluded_project_ids)
        entries = []
        for entry in self.entries:
            target = entry.for_target(is_server)
            if target is None or target.project_id in excluded:
                continue
            entries.append(target)
        return entries

    def ignored_files(self, is_server: bool) -> List[str]:
        """另一端专属的覆盖文件（相对覆盖目录），复制时跳过"""
        names = self.client_only_files if is_server else self.server_only_files
        ignored = []
        for name in names:
            name = name.replace("\\", "/").strip("/")
            if name:
                ignored.append(f"{CONFIG_DIRECTORY}/{name}")
        return ignored

    def placeholders(self) -> dict:
        """覆盖文件中可替换的占位符"""
        return {
            "::MODPACK_NAME::": self.name,
            "::MODPACK_VERSION::": self.version,
            "::FULL_MODPACK_NAME::": self.full_name,
            "::MODPACK_AUTHOR::": self.author,
            "::MINECRAFT_VERSION::": self.platform_version,
        }
