"""
PackSync 下载层

包含单文件下载器与并发下载调度器。
"""

from packsync.download.manager import ModDownloader, DownloadStats
from packsync.download.scheduler import (
    DownloadScheduler,
    TaskResult,
    raise_for_failures,
    split_chunks,
)

__all__ = [
    "ModDownloader",
    "DownloadStats",
    "DownloadScheduler",
    "TaskResult",
    "raise_for_failures",
    "split_chunks",
]
