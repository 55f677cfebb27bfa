"""
文件集合模型

定义模组文件引用、发布类型、文件集合与过滤器。
"""

import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterable, Iterator, List, Optional, Set

from packsync.exceptions import ValidationError


class ReleaseType(Enum):
    """
    发布类型

    数值越小越稳定：RELEASE(1) > BETA(2) > ALPHA(3)。
    """

    RELEASE = 1
    BETA = 2
    ALPHA = 3

    def matches_minimum_stability(self, minimum: "ReleaseType") -> bool:
        """是否达到指定的最低稳定性"""
        return self.value <= minimum.value

    @classmethod
    def from_id(cls, idx: int) -> "ReleaseType":
        """通过 API 中的数字 ID 获取发布类型"""
        if not 1 <= idx <= 3:
            raise ValidationError(
                f"无效的发布类型 ID: {idx}", context={"release_type": idx}
            )
        return cls(idx)

    @classmethod
    def from_name(cls, name: str) -> "ReleaseType":
        """通过名称获取发布类型（不区分大小写）"""
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValidationError(
                f"无效的发布类型: {name}", context={"release_type": name}
            ) from None


@dataclass(frozen=True)
class ArtifactRef:
    """
    模组文件引用

    由 (project_id, file_id) 唯一确定。只有 id 的引用视为未解析的占位引用，
    从目录 API 获取的引用会带有名称、发布类型、游戏版本等元数据。
    """

    project_id: int
    file_id: int
    display_name: Optional[str] = field(default=None, compare=False)
    file_name: Optional[str] = field(default=None, compare=False)
    release_type: Optional[ReleaseType] = field(default=None, compare=False)
    game_versions: FrozenSet[str] = field(default=frozenset(), compare=False)
    download_url: Optional[str] = field(default=None, compare=False)

    @property
    def resolved(self) -> bool:
        """是否带有 id 以外的元数据"""
        return bool(
            self.display_name
            or self.file_name
            or self.release_type is not None
            or self.game_versions
            or self.download_url
        )

    def same_project(self, other: "ArtifactRef") -> bool:
        return self.project_id == other.project_id

    def newer_than(self, other: "ArtifactRef") -> bool:
        return self.file_id > other.file_id

    def older_than(self, other: "ArtifactRef") -> bool:
        return self.file_id < other.file_id

    def __str__(self) -> str:
        name = self.display_name or self.file_name
        if name:
            return f"{name} ({self.project_id}:{self.file_id})"
        return f"{self.project_id}:{self.file_id}"


class FileFilter:
    """
    文件过滤器

    三个条件取交集：
    - 游戏版本：集合为空表示不限制，否则文件至少要支持其中一个版本
    - 文件 ID：newer_than < file_id <= older_than
    - 稳定性：发布类型不低于 minimum_stability

    未解析的引用没有版本和发布类型信息，只能通过未设置限制的条件。
    """

    def __init__(
        self,
        game_versions: Iterable[str] = (),
        newer_than: int = 0,
        older_than: int = sys.maxsize,
        minimum_stability: ReleaseType = ReleaseType.ALPHA,
    ):
        if newer_than >= older_than:
            raise ValidationError(
                "newer_than 必须小于 older_than",
                context={"newer_than": newer_than, "older_than": older_than},
            )
        self.game_versions: Set[str] = set(game_versions)
        self.newer_than = newer_than
        self.older_than = older_than
        self.minimum_stability = minimum_stability

    def test(self, ref: ArtifactRef) -> bool:
        if self.game_versions and self.game_versions.isdisjoint(ref.game_versions):
            return False

        if not self.newer_than < ref.file_id <= self.older_than:
            return False

        if self.minimum_stability is ReleaseType.ALPHA:
            return True
        if ref.release_type is None:
            return False
        return ref.release_type.matches_minimum_stability(self.minimum_stability)

    def __call__(self, ref: ArtifactRef) -> bool:
        return self.test(ref)

    def __repr__(self) -> str:
        return (
            f"FileFilter(game_versions={sorted(self.game_versions)!r}, "
            f"newer_than={self.newer_than}, older_than={self.older_than}, "
            f"minimum_stability={self.minimum_stability.name})"
        )


class FileSet:
    """
    文件集合

    以 file_id 去重的有序集合。构造时遇到重复 ID：已解析的引用优先于
    占位引用，否则保留先出现的那个。
    """

    def __init__(self, files: Iterable[ArtifactRef] = ()):
        self._files: Dict[int, ArtifactRef] = {}
        for ref in files:
            self.add(ref)

    def add(self, ref: ArtifactRef) -> bool:
        """
        添加文件

        Returns:
            是否改变了集合
        """
        existing = self._files.get(ref.file_id)
        if existing is None:
            self._files[ref.file_id] = ref
            return True
        if ref.resolved and not existing.resolved:
            self._files[ref.file_id] = ref
            return True
        return False

    def remove(self, ref: ArtifactRef) -> bool:
        return self._files.pop(ref.file_id, None) is not None

    def get(self, file_id: int) -> Optional[ArtifactRef]:
        return self._files.get(file_id)

    def copy(self) -> "FileSet":
        copied = FileSet()
        copied._files = dict(self._files)
        return copied

    def project_ids(self) -> Set[int]:
        return {ref.project_id for ref in self._files.values()}

    def newest(self) -> Optional[ArtifactRef]:
        """获取 ID 最大（最新）的文件"""
        if not self._files:
            return None
        return self._files[max(self._files)]

    def filter(self, predicate: Callable[[ArtifactRef], bool]) -> bool:
        """
        原地移除不满足条件的文件

        需要保留过滤前内容的调用方应先 copy()。

        Returns:
            是否有文件被移除
        """
        removed = [idx for idx, ref in self._files.items() if not predicate(ref)]
        for idx in removed:
            del self._files[idx]
        return bool(removed)

    def sort_by_id(self, descending: bool = False) -> "FileSet":
        self._reorder(
            sorted(
                self._files.values(), key=lambda ref: ref.file_id, reverse=descending
            )
        )
        return self

    def sort_by_name(self, key: Callable[[ArtifactRef], str]) -> "FileSet":
        """按外部提供的显示名称排序（稳定排序）"""
        self._reorder(sorted(self._files.values(), key=key))
        return self

    def _reorder(self, ordered: List[ArtifactRef]):
        self._files = {ref.file_id: ref for ref in ordered}

    def __iter__(self) -> Iterator[ArtifactRef]:
        return iter(list(self._files.values()))

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, ref: object) -> bool:
        if isinstance(ref, ArtifactRef):
            return ref.file_id in self._files
        return False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FileSet):
            return NotImplemented
        return set(self._files) == set(other._files)

    def __repr__(self) -> str:
        return f"FileSet({list(self._files.values())!r})"
