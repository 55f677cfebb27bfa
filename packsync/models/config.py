"""
配置模型

定义安装器配置、API 配置和整合包来源。
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from packsync.exceptions import ConfigValidationError

CURSEFORGE_BASE_URL = "https://api.curseforge.com"

# 默认并发下载数
DEFAULT_MAX_WORKERS = 5

MIN_PROJECT_ID = 10


class SourceKind(Enum):
    """整合包来源类型"""

    PROJECT_FILE = "project_file"
    URL = "url"
    PATH = "path"


@dataclass(frozen=True)
class ModpackSource:
    """
    整合包来源

    支持三种写法：
    - "<projectID>:<fileID>" 平台上的整合包文件
    - http(s) 链接，指向整合包压缩包
    - 本地路径，可以是解压后的目录或压缩包
    """

    kind: SourceKind
    locator: str
    project_id: int = 0
    file_id: int = 0

    @classmethod
    def parse(cls, locator: str) -> "ModpackSource":
        locator = (locator or "").strip()
        if not locator:
            raise ConfigValidationError("请配置 modpack（整合包来源）")

        ids = locator.split(":")
        if len(ids) == 2 and all(part.isdigit() for part in ids):
            project_id, file_id = int(ids[0]), int(ids[1])
            if project_id >= MIN_PROJECT_ID and file_id > MIN_PROJECT_ID:
                return cls(SourceKind.PROJECT_FILE, locator, project_id, file_id)

        parsed = urlparse(locator)
        if parsed.scheme in ("http", "https") and parsed.netloc:
            return cls(SourceKind.URL, locator)

        return cls(SourceKind.PATH, locator)


@dataclass
class ApiConfig:
    """API 配置"""

    base_url: str = CURSEFORGE_BASE_URL
    api_key: Optional[str] = None
    timeout: float = 30.0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ApiConfig":
        data = data or {}
        return cls(
            base_url=data.get("base_url", CURSEFORGE_BASE_URL).rstrip("/"),
            api_key=data.get("api_key") or os.environ.get("CURSEFORGE_API_KEY"),
            timeout=float(data.get("timeout", 30.0)),
        )


@dataclass
class InstallerConfig:
    """安装器配置"""

    install_to: str
    modpack: str
    data_file: str = "packsync.json"
    is_server: bool = False
    install_loader: bool = True
    delete_old_loader: bool = True
    # 以下两项暂未实现，保留配置项
    create_eula: bool = True
    create_server_starters: bool = True
    redownload_all: bool = False
    excluded_project_ids: List[int] = field(default_factory=list)
    max_workers: int = 0
    fail_fast: bool = False
    api: ApiConfig = field(default_factory=ApiConfig)

    def __post_init__(self):
        self.validate()

    @property
    def source(self) -> ModpackSource:
        return ModpackSource.parse(self.modpack)

    @property
    def data_path(self) -> str:
        return os.path.join(self.install_to, self.data_file)

    @property
    def worker_count(self) -> int:
        return self.max_workers if self.max_workers > 0 else DEFAULT_MAX_WORKERS

    def validate(self):
        """验证配置"""
        if not self.install_to:
            raise ConfigValidationError("请配置 install_to（安装目录）")
        if not self.data_file or os.path.isabs(self.data_file):
            raise ConfigValidationError(
                "data_file 必须是安装目录下的相对路径",
                context={"data_file": self.data_file},
            )
        if self.max_workers < 0:
            raise ConfigValidationError(
                "max_workers 不能为负数", context={"max_workers": self.max_workers}
            )
        # 来源格式错误时在此处抛出
        ModpackSource.parse(self.modpack)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InstallerConfig":
        try:
            excluded = [int(idx) for idx in data.get("excluded_project_ids", [])]
            max_workers = int(data.get("max_workers", 0))
        except (TypeError, ValueError) as e:
            raise ConfigValidationError(f"配置项类型错误: {e}") from e

        return cls(
            install_to=data.get("install_to", ""),
            modpack=str(data.get("modpack", "")),
            data_file=data.get("data_file", "packsync.json"),
            is_server=bool(data.get("is_server", False)),
            install_loader=bool(data.get("install_loader", True)),
            delete_old_loader=bool(data.get("delete_old_loader", True)),
            create_eula=bool(data.get("create_eula", True)),
            create_server_starters=bool(data.get("create_server_starters", True)),
            redownload_all=bool(data.get("redownload_all", False)),
            excluded_project_ids=excluded,
            max_workers=max_workers,
            fail_fast=bool(data.get("fail_fast", False)),
            api=ApiConfig.from_dict(data.get("api")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "install_to": self.install_to,
            "modpack": self.modpack,
            "data_file": self.data_file,
            "is_server": self.is_server,
            "install_loader": self.install_loader,
            "delete_old_loader": self.delete_old_loader,
            "create_eula": self.create_eula,
            "create_server_starters": self.create_server_starters,
            "redownload_all": self.redownload_all,
            "excluded_project_ids": list(self.excluded_project_ids),
            "max_workers": self.max_workers,
            "fail_fast": self.fail_fast,
            "api": {
                "base_url": self.api.base_url,
                "timeout": self.api.timeout,
            },
        }
