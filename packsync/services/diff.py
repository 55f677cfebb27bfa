"""
文件集合比较

按项目比较新旧两个文件集合，分为未变化、更新、降级、移除和新增五类。
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Set

from packsync.models.files import ArtifactRef, FileSet


@dataclass(frozen=True)
class FileChange:
    """同一项目的文件变化"""

    old: ArtifactRef
    new: ArtifactRef

    def __post_init__(self):
        if not self.old.same_project(self.new):
            raise ValueError("old 和 new 必须属于同一项目")
        if self.old.file_id == self.new.file_id:
            raise ValueError("old 和 new 必须是不同的文件")

    @property
    def project_id(self) -> int:
        return self.old.project_id

    @property
    def is_downgrade(self) -> bool:
        return self.old.newer_than(self.new)


@dataclass
class FileSetDiff:
    """两个文件集合的比较结果"""

    unchanged: FileSet = field(default_factory=FileSet)
    updated: List[FileChange] = field(default_factory=list)
    downgraded: List[FileChange] = field(default_factory=list)
    removed: FileSet = field(default_factory=FileSet)
    added: FileSet = field(default_factory=FileSet)

    @classmethod
    def of(cls, old_files: Iterable[ArtifactRef], new_files: Iterable[ArtifactRef]):
        """
        比较新旧文件集合

        同一集合中同一项目有多个文件时只取最新的一个。
        """
        old_by_project = _newest_per_project(old_files)
        new_by_project = _newest_per_project(new_files)

        diff = cls()
        for project_id, old in old_by_project.items():
            new = new_by_project.get(project_id)
            if new is None:
                diff.removed.add(old)
            elif new.file_id == old.file_id:
                diff.unchanged.add(new)
            elif new.newer_than(old):
                diff.updated.append(FileChange(old, new))
            else:
                diff.downgraded.append(FileChange(old, new))

        for project_id, new in new_by_project.items():
            if project_id not in old_by_project:
                diff.added.add(new)

        return diff

    def projects(self) -> Set[int]:
        """所有分类中出现的项目 ID"""
        projects = self.unchanged.project_ids()
        projects |= self.removed.project_ids()
        projects |= self.added.project_ids()
        projects |= {change.project_id for change in self.updated}
        projects |= {change.project_id for change in self.downgraded}
        return projects

    def is_empty(self) -> bool:
        """新旧集合是否完全相同"""
        return not (self.updated or self.downgraded or self.removed or self.added)


def _newest_per_project(files: Iterable[ArtifactRef]) -> Dict[int, ArtifactRef]:
    by_project: Dict[int, ArtifactRef] = {}
    for ref in files:
        current = by_project.get(ref.project_id)
        if current is None or ref.newer_than(current):
            by_project[ref.project_id] = ref
    return by_project
