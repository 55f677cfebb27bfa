"""
模组解析和 API 客户端缓存测试
"""

import asyncio

import pytest

from conftest import MC_VERSION, FakeProvider, make_ref, manifest_data
from packsync.exceptions import MetadataError
from packsync.models import ArtifactRef, FileFilter, ManifestEntry, ReleaseType
from packsync.services import (
    CatalogResolver,
    CurseForgeClient,
    MetadataCache,
    parse_manifest,
)
from packsync.services.api_client import artifact_from_curseforge


@pytest.fixture
def catalog_provider():
    return FakeProvider(
        {
            100: [
                make_ref(100, 1001, ReleaseType.RELEASE),
                make_ref(100, 1003, ReleaseType.BETA),
                make_ref(100, 1002, ReleaseType.RELEASE),
                make_ref(100, 1004, ReleaseType.RELEASE, game_versions=("1.16.5",)),
            ],
            200: [make_ref(200, 2001, ReleaseType.ALPHA)],
        }
    )


class TestCatalogResolver:
    def test_newest_matching_file(self, catalog_provider):
        resolver = CatalogResolver(catalog_provider)
        file_filter = FileFilter(
            game_versions={MC_VERSION}, minimum_stability=ReleaseType.RELEASE
        )

        entry = asyncio.run(
            resolver.resolve(ManifestEntry(100, title="Mod"), file_filter)
        )

        assert entry.file_id == 1002
        assert entry.project_id == 100
        assert entry.title == "mod-100-1002"

    def test_beta_allowed(self, catalog_provider):
        resolver = CatalogResolver(catalog_provider)
        file_filter = FileFilter(
            game_versions={MC_VERSION}, minimum_stability=ReleaseType.BETA
        )

        entry = asyncio.run(resolver.resolve(ManifestEntry(100), file_filter))

        assert entry.file_id == 1003

    def test_no_match(self, catalog_provider):
        resolver = CatalogResolver(catalog_provider)
        file_filter = FileFilter(minimum_stability=ReleaseType.BETA)

        with pytest.raises(MetadataError):
            asyncio.run(resolver.resolve(ManifestEntry(200), file_filter))

    def test_concrete_entry_untouched(self, catalog_provider):
        resolver = CatalogResolver(catalog_provider)
        entry = ManifestEntry(300, 3001)
        assert asyncio.run(resolver.resolve(entry, FileFilter())) is entry

    def test_resolve_many_uses_modpack_settings(self, catalog_provider):
        modpack = parse_manifest(
            manifest_data(
                [{"projectID": 100}, {"projectID": 300, "fileID": 3001}],
                minimumStability="release",
            )
        )
        resolver = CatalogResolver(catalog_provider)

        entries = asyncio.run(resolver.resolve_many(modpack, modpack.entries))

        assert [(e.project_id, e.file_id) for e in entries] == [
            (100, 1002),
            (300, 3001),
        ]


class TestMetadataCache:
    def test_invalidate_project(self):
        cache = MetadataCache()
        cache.put_url(1, 10, "a")
        cache.put_url(2, 20, "b")
        cache.put_catalog(1, [ArtifactRef(1, 10)])

        cache.invalidate(1)

        assert cache.get_url(1, 10) is None
        assert cache.get_catalog(1) is None
        assert cache.get_url(2, 20) == "b"

    def test_invalidate_all(self):
        cache = MetadataCache()
        cache.put_url(1, 10, "a")
        cache.put_promotions({"1.12.2-latest": "14.23.5.2860"})

        cache.invalidate()

        assert cache.get_url(1, 10) is None
        assert cache.get_promotions() is None

    def test_catalog_copy(self):
        cache = MetadataCache()
        cache.put_catalog(1, [ArtifactRef(1, 10)])
        cache.get_catalog(1).clear()
        assert cache.get_catalog(1) == [ArtifactRef(1, 10)]


class TestCurseForgeClient:
    """只使用缓存数据，不发送网络请求"""

    def test_cached_download_url(self):
        cache = MetadataCache()
        cache.put_url(238222, 2916002, "https://edge.example/jei.jar")
        client = CurseForgeClient(cache=cache)

        url = asyncio.run(client.resolve_download_url(238222, 2916002))

        assert url == "https://edge.example/jei.jar"

    def test_cached_catalog(self):
        cache = MetadataCache()
        cache.put_catalog(238222, [make_ref(238222, 2916002)])
        client = CurseForgeClient(cache=cache)

        files = asyncio.run(client.list_files(238222))

        assert [ref.file_id for ref in files] == [2916002]

    def test_explicit_loader_version(self):
        client = CurseForgeClient()
        assert asyncio.run(client.get_loader_version("1.12.2", "14.23.5.2847")) == (
            "14.23.5.2847"
        )

    def test_loader_selectors(self):
        cache = MetadataCache()
        cache.put_promotions(
            {
                "1.12.2-latest": "14.23.5.2860",
                "1.12.2-recommended": "14.23.5.2859",
                "1.16.5-latest": "36.2.39",
            }
        )
        client = CurseForgeClient(cache=cache)

        assert (
            asyncio.run(client.get_loader_version("1.12.2", "latest"))
            == "14.23.5.2860"
        )
        assert (
            asyncio.run(client.get_loader_version("1.12.2", "recommended"))
            == "14.23.5.2859"
        )
        # 没有推荐版本时使用最新版本
        assert (
            asyncio.run(client.get_loader_version("1.16.5", "recommended"))
            == "36.2.39"
        )
        with pytest.raises(MetadataError):
            asyncio.run(client.get_loader_version("1.7.10", "latest"))


class TestArtifactFromCurseForge:
    def test_fields(self):
        ref = artifact_from_curseforge(
            {
                "id": 2916002,
                "modId": 238222,
                "displayName": "jei_1.12.2-4.16.1.301.jar",
                "fileName": "jei_1.12.2-4.16.1.301.jar",
                "releaseType": 2,
                "gameVersions": ["1.12.2", "Forge"],
                "downloadUrl": "https://edge.forgecdn.net/files/2916/2/jei.jar",
            }
        )
        assert (ref.project_id, ref.file_id) == (238222, 2916002)
        assert ref.release_type is ReleaseType.BETA
        assert ref.game_versions == frozenset({"1.12.2", "Forge"})
        assert ref.download_url.endswith("jei.jar")
        assert ref.resolved

    def test_missing_optional_fields(self):
        ref = artifact_from_curseforge({"id": 10, "modId": 20})
        assert ref.release_type is None
        assert ref.game_versions == frozenset()
