"""
PackSync 数据模型包

包含配置模型、文件集合、清单模型和安装记录。
"""

from packsync.models.config import (
    ApiConfig,
    InstallerConfig,
    ModpackSource,
    SourceKind,
    DEFAULT_MAX_WORKERS,
)
from packsync.models.files import (
    ArtifactRef,
    FileFilter,
    FileSet,
    ReleaseType,
)
from packsync.models.manifest import (
    FileRole,
    ManifestEntry,
    Modpack,
)
from packsync.models.state import (
    InstalledState,
    ModRecord,
)

__all__ = [
    # 配置模型
    "ApiConfig",
    "InstallerConfig",
    "ModpackSource",
    "SourceKind",
    "DEFAULT_MAX_WORKERS",
    # 文件模型
    "ArtifactRef",
    "FileFilter",
    "FileSet",
    "ReleaseType",
    # 清单模型
    "FileRole",
    "ManifestEntry",
    "Modpack",
    # 安装记录
    "InstalledState",
    "ModRecord",
]
