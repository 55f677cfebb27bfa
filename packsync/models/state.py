"""
安装记录

保存上一次成功安装的结果：加载器版本、已下载的模组和复制的覆盖文件。
记录只在整次安装成功后整体写入，不做增量修改。
"""

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from loguru import logger

from packsync.exceptions import StateError
from packsync.models.files import ArtifactRef, FileSet


@dataclass
class ModRecord:
    """已安装模组"""

    project_id: int
    file_id: int
    location: str
    related_files: List[str] = field(default_factory=list)

    def to_ref(self) -> ArtifactRef:
        return ArtifactRef(
            self.project_id, self.file_id, file_name=Path(self.location).name
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "projectID": self.project_id,
            "fileID": self.file_id,
            "location": self.location,
            "relatedFiles": list(self.related_files),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModRecord":
        return cls(
            project_id=int(data["projectID"]),
            file_id=int(data["fileID"]),
            location=data["location"],
            related_files=list(data.get("relatedFiles") or []),
        )


@dataclass
class InstalledState:
    """安装记录"""

    loader_version: str = ""
    platform_version: str = ""
    mods: List[ModRecord] = field(default_factory=list)
    override_files: List[str] = field(default_factory=list)

    def as_file_set(self) -> FileSet:
        return FileSet(mod.to_ref() for mod in self.mods)

    def find_mod(self, project_id: int) -> Optional[ModRecord]:
        for mod in self.mods:
            if mod.project_id == project_id:
                return mod
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "loaderVersion": self.loader_version,
            "platformVersion": self.platform_version,
            "mods": [mod.to_dict() for mod in self.mods],
            "overrideFiles": list(self.override_files),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InstalledState":
        return cls(
            loader_version=data.get("loaderVersion", ""),
            platform_version=data.get("platformVersion", ""),
            mods=[ModRecord.from_dict(mod) for mod in data.get("mods", [])],
            override_files=list(data.get("overrideFiles", [])),
        )

    @classmethod
    def load(cls, path: Union[str, Path]) -> Optional["InstalledState"]:
        """
        读取安装记录

        Returns:
            安装记录；文件不存在时返回 None（首次安装）
        """
        path = Path(path)
        if not path.exists():
            logger.debug(f"安装记录不存在: {path}")
            return None

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise StateError(
                    f"安装记录必须是 JSON 对象，实际为 {type(data).__name__}",
                    context={"path": str(path)},
                )
            return cls.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise StateError(
                f"无法读取安装记录: {e}", context={"path": str(path)}
            ) from e

    def save(self, path: Union[str, Path]) -> None:
        """整体写入安装记录（先写临时文件再替换）"""
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(self.to_dict(), f, indent=4)
                os.replace(temp_path, path)
            except BaseException:
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise
        except OSError as e:
            raise StateError(
                f"无法写入安装记录: {e}", context={"path": str(path)}
            ) from e
        logger.debug(f"安装记录已写入: {path}")
