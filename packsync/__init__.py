"""
PackSync - Minecraft 整合包同步工具

根据整合包清单同步安装目录：增量更新模组、复制覆盖文件并记录安装结果。
"""

__version__ = "0.1.0"
__author__ = "PackSync Team"

from packsync.exceptions import PackSyncError
from packsync.installer import ModpackInstaller
from packsync.models import InstalledState, InstallerConfig

__all__ = [
    "__version__",
    "PackSyncError",
    "ModpackInstaller",
    "InstalledState",
    "InstallerConfig",
]
