"""
CLI 模块

命令行接口实现。
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Optional

import click
import toml
import yaml
from loguru import logger

from packsync import __version__
from packsync.exceptions import ConfigParseError, PackSyncError
from packsync.installer import ModpackInstaller
from packsync.logger import setup_logger
from packsync.models import InstallerConfig


def load_config(config_path: str) -> Dict[str, Any]:
    """加载配置文件"""
    path = Path(config_path)

    if not path.exists():
        raise ConfigParseError(f"配置文件不存在: {config_path}")

    suffix = path.suffix.lower()

    try:
        if suffix == ".toml":
            data = toml.load(config_path)
        elif suffix == ".json":
            data = json.loads(path.read_text(encoding="utf-8"))
        elif suffix in (".yaml", ".yml"):
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        else:
            raise ConfigParseError(f"不支持的配置文件格式: {suffix}")
    except (toml.TomlDecodeError, ValueError, yaml.YAMLError) as e:
        raise ConfigParseError(
            f"配置文件解析失败: {e}", context={"path": config_path}
        ) from e

    if not isinstance(data, dict):
        raise ConfigParseError("配置文件内容必须是键值对", context={"path": config_path})
    return data


def apply_overrides(
    data: Dict[str, Any],
    install_to: Optional[str] = None,
    modpack: Optional[str] = None,
    server: bool = False,
    redownload_all: bool = False,
    workers: Optional[int] = None,
    fail_fast: bool = False,
    exclude: tuple = (),
) -> Dict[str, Any]:
    """用命令行参数覆盖配置文件中的值"""
    data = dict(data)
    if install_to:
        data["install_to"] = install_to
    if modpack:
        data["modpack"] = modpack
    if server:
        data["is_server"] = True
    if redownload_all:
        data["redownload_all"] = True
    if workers is not None:
        data["max_workers"] = workers
    if fail_fast:
        data["fail_fast"] = True
    if exclude:
        data["excluded_project_ids"] = [
            *data.get("excluded_project_ids", []),
            *exclude,
        ]
    return data


async def run_async(config: InstallerConfig, dry_run: bool = False):
    """异步运行"""
    if dry_run:
        source = config.source
        logger.info("[干运行模式] 配置验证通过")
        logger.info(f"  安装目录: {config.install_to}")
        logger.info(f"  整合包来源: {source.kind.value} ({source.locator})")
        logger.info(f"  目标: {'服务端' if config.is_server else '客户端'}")
        logger.info(f"  并发下载数: {config.worker_count}")
        return

    installer = ModpackInstaller(config)
    state = await installer.install()

    stats = installer.get_stats()
    logger.success(
        f"完成! 共 {len(state.mods)} 个模组（下载 {stats['downloaded']}，"
        f"保留 {stats['retained']}），{stats['overrides']} 个覆盖文件"
    )
    logger.info(f"共下载 {stats['bytes_downloaded'] / (1024 * 1024):.2f} MB")
    if stats["deleted"]:
        logger.info(f"删除了 {stats['deleted']} 个旧文件")


@click.command()
@click.argument("config", type=click.Path(exists=True), default="packsync.toml")
@click.option("--install-to", help="安装目录")
@click.option("--modpack", help="整合包来源（projectID:fileID、链接或本地路径）")
@click.option("--server", is_flag=True, help="安装服务端")
@click.option("--redownload-all", is_flag=True, help="重新下载所有模组")
@click.option("--workers", type=click.IntRange(min=0), help="并发下载数")
@click.option("--fail-fast", is_flag=True, help="任一下载失败后跳过剩余下载")
@click.option("--exclude", multiple=True, type=int, help="排除的项目 ID（可多次使用）")
@click.option("--dry-run", is_flag=True, help="干运行模式（只验证配置）")
@click.option("--debug", is_flag=True, help="启用调试模式")
@click.option("--log-file", type=click.Path(dir_okay=False), help="安装日志文件")
@click.version_option(version=__version__)
def main(
    config: str,
    install_to: Optional[str],
    modpack: Optional[str],
    server: bool,
    redownload_all: bool,
    workers: Optional[int],
    fail_fast: bool,
    exclude: tuple,
    dry_run: bool,
    debug: bool,
    log_file: Optional[str],
):
    """PackSync - Minecraft 整合包同步工具"""
    setup_logger(level="DEBUG" if debug else None, log_file=log_file)

    try:
        data = apply_overrides(
            load_config(config),
            install_to=install_to,
            modpack=modpack,
            server=server,
            redownload_all=redownload_all,
            workers=workers,
            fail_fast=fail_fast,
            exclude=exclude,
        )
        installer_config = InstallerConfig.from_dict(data)
        asyncio.run(run_async(installer_config, dry_run))
    except PackSyncError as e:
        logger.error(f"安装失败: {e}")
        raise click.ClickException(str(e))


if __name__ == "__main__":
    main()
