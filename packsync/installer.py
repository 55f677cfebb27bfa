"""
整合包安装器

把安装目录同步到整合包描述的状态：
1. 解析整合包来源
2. 读取清单，按适用端和排除列表过滤模组，解析未指定文件的模组
3. 与上次的安装记录比较，保留未变化的模组，删除其余旧模组和旧覆盖文件
4. 复制覆盖文件
5. 下载需要下载的模组
6. 按需安装加载器
7. 删除空目录
8. 写入新的安装记录
9. 删除临时文件（无论成功与否）

任一步骤失败都会中止安装，不写入安装记录，也不回滚已经做出的修改。
重新运行即可恢复。
"""

import asyncio
import zipfile
from pathlib import Path
from typing import Dict, List, Optional, Set

import aiohttp
from loguru import logger

from packsync.download import DownloadScheduler, ModDownloader
from packsync.exceptions import (
    DownloadNetworkError,
    InstallError,
    PackSyncError,
    SourceError,
)
from packsync.models import (
    InstalledState,
    InstallerConfig,
    ManifestEntry,
    Modpack,
    ModRecord,
)
from packsync.services import (
    CatalogResolver,
    CurseForgeClient,
    FileSetDiff,
    LoaderInstaller,
    MetadataProvider,
    OverrideCopier,
    ScratchSpace,
    SourceResolver,
    load_manifest,
)
from packsync.services.catalog import index_by_project, to_file_set
from packsync.utils import delete_path, prune_empty_dirs, to_posix

MODS_DIRECTORY = "mods"


class ModpackInstaller:
    """整合包安装器"""

    def __init__(
        self,
        config: InstallerConfig,
        provider: Optional[MetadataProvider] = None,
        downloader: Optional[ModDownloader] = None,
        loader_installer: Optional[LoaderInstaller] = None,
        scratch: Optional[ScratchSpace] = None,
    ):
        self.config = config
        self.install_to = Path(config.install_to)

        self._owns_provider = provider is None
        self._owns_downloader = downloader is None
        self.provider = provider or CurseForgeClient(config.api)
        self.downloader = downloader or ModDownloader()
        self.loader_installer = loader_installer or LoaderInstaller()
        self.scratch = scratch or ScratchSpace()
        self.scheduler = DownloadScheduler(config.worker_count, config.fail_fast)

        self._stats = {"retained": 0, "downloaded": 0, "deleted": 0, "overrides": 0}

    def get_stats(self) -> dict:
        """获取统计信息（包含下载器的失败次数和下载字节数）"""
        stats = dict(self._stats)
        stats["failed"] = self.downloader.stats.failed
        stats["bytes_downloaded"] = self.downloader.stats.bytes_downloaded
        return stats

    async def install(self) -> InstalledState:
        """
        执行安装

        Returns:
            新的安装记录

        Raises:
            PackSyncError: 安装失败
        """
        logger.info(f"开始安装整合包到 {self.install_to}...")

        try:
            state = await self._install()
        except PackSyncError as e:
            logger.error(f"[错误] 安装失败: {e}")
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"[错误] 安装失败: {e}")
            raise DownloadNetworkError(f"网络请求失败: {e}") from e
        except (OSError, zipfile.BadZipFile) as e:
            logger.error(f"[错误] 安装失败: {e}")
            if isinstance(e, zipfile.BadZipFile):
                raise SourceError(f"整合包不是有效的压缩包: {e}") from e
            raise InstallError(
                f"文件操作失败: {e}", context={"path": getattr(e, "filename", None)}
            ) from e
        finally:
            self.scratch.cleanup()
            await self._close()

        logger.success(
            f"[完成] 保留 {self._stats['retained']} 个模组，"
            f"下载 {self._stats['downloaded']} 个模组"
        )
        return state

    async def _install(self) -> InstalledState:
        # 1. 解析来源
        source = await SourceResolver(
            self.provider, self.downloader, self.scratch
        ).resolve(self.config.source)

        # 2. 读取清单并解析模组
        modpack = load_manifest(source.directory)
        entries = modpack.entries_for(
            self.config.is_server, self.config.excluded_project_ids
        )
        entries = await CatalogResolver(self.provider).resolve_many(modpack, entries)
        entries = list(index_by_project(entries).values())
        loader_version = await self.provider.get_loader_version(
            modpack.platform_version, modpack.loader_version
        )
        previous = InstalledState.load(self.config.data_path)

        state = InstalledState(
            loader_version=loader_version, platform_version=modpack.platform_version
        )
        copier = OverrideCopier(
            self.install_to,
            modpack.placeholders(),
            ignored=modpack.ignored_files(self.config.is_server),
            move=not source.is_local,
        )
        override_dir = source.directory / modpack.overrides

        # 3. 清理旧文件
        install_loader = self.config.install_loader
        retained: Dict[int, ModRecord] = {}
        if previous is None:
            logger.info("[调度] 没有找到安装记录，执行全新安装")
        else:
            install_loader = install_loader and await self._check_loader(
                previous, state
            )
            retained = self._retain_mods(previous, entries)
            self._delete_old_mods(previous, retained)
            self._delete_old_overrides(previous, set(copier.list_files(override_dir)))

        # 4. 复制覆盖文件
        self.install_to.mkdir(parents=True, exist_ok=True)
        state.override_files = copier.copy_tree(override_dir)
        self._stats["overrides"] = len(state.override_files)

        # 5. 下载模组
        pending = [entry for entry in entries if entry.project_id not in retained]
        downloaded = await self._download_mods(pending)
        state.mods = self._ordered_records(entries, {**retained, **downloaded})

        # 6. 加载器
        if install_loader:
            await self.loader_installer.install(
                self.install_to,
                modpack.platform_version,
                loader_version,
                self.config.is_server,
            )
        self._server_files(modpack)

        # 7. 删除空目录
        prune_empty_dirs(self.install_to, keep=(MODS_DIRECTORY,))

        # 8. 写入安装记录
        state.save(self.config.data_path)
        return state

    async def _check_loader(
        self, previous: InstalledState, state: InstalledState
    ) -> bool:
        """判断是否需要安装加载器，需要时删除旧版本"""
        if previous.loader_version == state.loader_version:
            logger.info(f"[加载器] Forge {state.loader_version} 已安装，跳过")
            return False

        if (
            not self.config.is_server
            and self.config.delete_old_loader
            and previous.loader_version
        ):
            await self.loader_installer.remove(
                self.install_to, previous.platform_version, previous.loader_version
            )
        return True

    def _retain_mods(
        self, previous: InstalledState, entries: List[ManifestEntry]
    ) -> Dict[int, ModRecord]:
        """找出可以保留的模组：文件 ID 完全一致且文件仍然存在"""
        if self.config.redownload_all:
            logger.info("[调度] 已启用 redownload_all，重新下载所有模组")
            return {}

        current = to_file_set(entries)
        diff = FileSetDiff.of(previous.as_file_set(), current)
        logger.info(
            f"[比较] 未变化 {len(diff.unchanged)}，更新 {len(diff.updated)}，"
            f"降级 {len(diff.downgraded)}，移除 {len(diff.removed)}，"
            f"新增 {len(diff.added)}"
        )

        retained = {}
        for ref in diff.unchanged:
            record = next(
                (
                    mod
                    for mod in previous.mods
                    if mod.project_id == ref.project_id and mod.file_id == ref.file_id
                ),
                None,
            )
            if record is None:
                continue
            if not (self.install_to / record.location).is_file():
                logger.warning(f"[警告] 模组文件已丢失，重新下载: {record.location}")
                continue
            retained[record.project_id] = record

        self._stats["retained"] = len(retained)
        return retained

    def _delete_old_mods(
        self, previous: InstalledState, retained: Dict[int, ModRecord]
    ):
        """删除未保留的旧模组及其相关文件"""
        for record in previous.mods:
            if retained.get(record.project_id) is record:
                continue
            for relative in [record.location, *record.related_files]:
                if delete_path(self.install_to / relative):
                    self._stats["deleted"] += 1
                    logger.debug(f"[删除] {relative}")

    def _delete_old_overrides(self, previous: InstalledState, current: Set[str]):
        """删除新的覆盖目录中已经不存在的旧覆盖文件"""
        for relative in previous.override_files:
            if relative in current:
                continue
            if delete_path(self.install_to / relative):
                self._stats["deleted"] += 1
                logger.debug(f"[删除] {relative}")

    async def _download_mods(
        self, entries: List[ManifestEntry]
    ) -> Dict[int, ModRecord]:
        if not entries:
            logger.info("[调度] 没有需要下载的模组")
            return {}

        mods_dir = self.install_to / MODS_DIRECTORY
        mods_dir.mkdir(parents=True, exist_ok=True)

        async def download(entry: ManifestEntry) -> ModRecord:
            logger.info(f"[下载] {entry.title} ({entry.project_id}:{entry.file_id})")
            url = await self.provider.resolve_download_url(
                entry.project_id, entry.file_id
            )
            path = await self.downloader.download_to_directory(url, mods_dir)
            logger.success(f"[完成] {path.name}")
            return ModRecord(
                project_id=entry.project_id,
                file_id=entry.file_id,
                location=to_posix(path.relative_to(self.install_to)),
                related_files=list(entry.related_files),
            )

        records = await self.scheduler.gather(entries, download)
        self._stats["downloaded"] = len(records)
        return {record.project_id: record for record in records}

    @staticmethod
    def _ordered_records(
        entries: List[ManifestEntry], records: Dict[int, ModRecord]
    ) -> List[ModRecord]:
        """按清单顺序排列模组记录"""
        return [
            records[entry.project_id]
            for entry in entries
            if entry.project_id in records
        ]

    def _server_files(self, modpack: Modpack):
        if not self.config.is_server:
            return
        # TODO: 生成 eula.txt 和启动脚本，目前只保留配置项
        if self.config.create_eula:
            logger.debug("[服务端] 暂不生成 eula.txt")
        if self.config.create_server_starters:
            logger.debug(f"[服务端] 暂不生成 {modpack.name} 的启动脚本")

    async def _close(self):
        if self._owns_provider:
            await self.provider.close()
        if self._owns_downloader:
            await self.downloader.close()
