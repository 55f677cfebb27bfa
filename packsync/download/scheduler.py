"""
并发下载调度器

把 N 个互不相关的下载任务按索引切成连续的若干段，每段由一个工作协程顺序处理。
所有工作协程结束后再统一汇总结果；任一任务失败时抛出其中一个错误。
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

from loguru import logger

from packsync.exceptions import DownloadError, PackSyncError
from packsync.models.config import DEFAULT_MAX_WORKERS

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class TaskResult(Generic[T, R]):
    """单个任务的结果"""

    index: int
    item: T
    value: Optional[R] = None
    error: Optional[BaseException] = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.skipped


def split_chunks(total: int, workers: int) -> List[range]:
    """
    把 [0, total) 切成 workers 段连续区间，最后一段包含余数

    >>> split_chunks(7, 3)
    [range(0, 2), range(2, 4), range(4, 7)]
    """
    if total <= 0 or workers <= 0:
        return []
    workers = min(workers, total)
    size = total // workers
    chunks = []
    for i in range(workers):
        start = i * size
        end = total if i == workers - 1 else start + size
        chunks.append(range(start, end))
    return chunks


class DownloadScheduler:
    """
    下载调度器

    每次调用 run() 都会重新创建工作协程，结束后即丢弃，不维护常驻池。
    fail_fast 为 True 时，任一任务失败后其余工作协程跳过尚未开始的任务；
    已经开始的任务不会被打断。
    """

    def __init__(self, max_workers: int = 0, fail_fast: bool = False):
        self.max_workers = max_workers if max_workers > 0 else DEFAULT_MAX_WORKERS
        self.fail_fast = fail_fast

    async def run(
        self,
        items: Sequence[T],
        handler: Callable[[T], Awaitable[R]],
    ) -> List[TaskResult[T, R]]:
        """
        执行所有任务并等待全部结束

        Returns:
            按索引排列的任务结果
        """
        total = len(items)
        if total == 0:
            return []

        chunks = split_chunks(total, self.max_workers)
        results: List[Optional[TaskResult[T, R]]] = [None] * total
        failed = asyncio.Event()

        logger.info(f"[调度] {total} 个任务，{len(chunks)} 个工作协程")

        async def worker(chunk: range):
            for index in chunk:
                item = items[index]
                if self.fail_fast and failed.is_set():
                    results[index] = TaskResult(index, item, skipped=True)
                    continue
                try:
                    value = await handler(item)
                except Exception as e:
                    results[index] = TaskResult(index, item, error=e)
                    failed.set()
                    logger.error(f"[错误] 任务 #{index + 1} 失败: {e}")
                else:
                    results[index] = TaskResult(index, item, value=value)

        workers = [
            asyncio.create_task(worker(chunk), name=f"downloader-{i}")
            for i, chunk in enumerate(chunks)
        ]
        await asyncio.gather(*workers)

        return [result for result in results if result is not None]

    async def gather(
        self,
        items: Sequence[T],
        handler: Callable[[T], Awaitable[R]],
    ) -> List[R]:
        """执行所有任务，全部成功时按索引返回结果，否则抛出错误"""
        results = await self.run(items, handler)
        raise_for_failures(results)
        return [result.value for result in results]  # type: ignore[misc]


def raise_for_failures(results: List[TaskResult[Any, Any]]) -> None:
    """
    存在失败任务时抛出第一个错误

    PackSyncError 原样抛出，其他异常包装为 DownloadError。抛出的 DownloadError
    会在 results 上附带全部任务结果。
    """
    failures = [result for result in results if result.error is not None]
    if not failures:
        return

    first = failures[0]
    skipped = sum(1 for result in results if result.skipped)
    logger.error(f"[错误] {len(failures)} 个任务失败，{skipped} 个任务被跳过")

    if isinstance(first.error, DownloadError):
        first.error.results = results
        raise first.error
    if isinstance(first.error, PackSyncError):
        raise first.error

    raise DownloadError(
        f"{len(failures)} 个下载任务失败: {first.error}",
        context={"failed": len(failures), "skipped": skipped},
        results=results,
    ) from first.error
