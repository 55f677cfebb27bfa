"""
下载器测试（只覆盖本地文件和文件名推断，不访问网络）
"""

import asyncio

import pytest

from packsync.download import ModDownloader
from packsync.download.manager import filename_from_response
from packsync.exceptions import DownloadError, DownloadFileError


class TestFilenameFromResponse:
    def test_content_disposition(self):
        assert (
            filename_from_response(
                "https://edge.example/download?id=1",
                'attachment; filename="jei_1.12.2-4.16.1.301.jar"',
            )
            == "jei_1.12.2-4.16.1.301.jar"
        )

    def test_encoded_content_disposition(self):
        assert (
            filename_from_response(
                "https://edge.example/download",
                "attachment; filename*=UTF-8''Mod%20Name%201.0.jar",
            )
            == "Mod Name 1.0.jar"
        )

    def test_url_path(self):
        assert (
            filename_from_response("https://edge.example/files/Mod%2B%2B.jar?x=1", None)
            == "Mod++.jar"
        )

    def test_no_name(self):
        with pytest.raises(DownloadFileError):
            filename_from_response("https://edge.example/", None)


class TestLocalFiles:
    def test_download_to_directory(self, tmp_path):
        source = tmp_path / "source" / "mod.jar"
        source.parent.mkdir()
        source.write_bytes(b"jar")

        async def run():
            async with ModDownloader() as downloader:
                path = await downloader.download_to_directory(
                    source.as_uri(), tmp_path / "mods"
                )
                return path, downloader.stats

        path, stats = asyncio.run(run())

        assert path == tmp_path / "mods" / "mod.jar"
        assert path.read_bytes() == b"jar"
        assert stats.completed == 1
        assert stats.bytes_downloaded == 3

    def test_download_to_file(self, tmp_path):
        source = tmp_path / "pack.zip"
        source.write_bytes(b"zip")

        async def run():
            async with ModDownloader() as downloader:
                return await downloader.download_to_file(
                    source.as_uri(), tmp_path / "out" / "renamed.zip"
                )

        assert asyncio.run(run()).read_bytes() == b"zip"

    def test_missing_local_file(self, tmp_path):
        async def run():
            async with ModDownloader() as downloader:
                await downloader.download_to_directory(
                    (tmp_path / "missing.jar").as_uri(), tmp_path / "mods"
                )

        with pytest.raises(DownloadError):
            asyncio.run(run())
