"""
配置测试

包括整合包来源解析、安装器配置验证和命令行配置加载。
"""

import json

import pytest
import toml
import yaml

from packsync.cli import apply_overrides, load_config
from packsync.exceptions import ConfigParseError, ConfigValidationError
from packsync.models import InstallerConfig, ModpackSource, SourceKind
from packsync.models.config import CURSEFORGE_BASE_URL


class TestModpackSource:
    def test_project_and_file_id(self):
        source = ModpackSource.parse("285109:2935316")
        assert source.kind is SourceKind.PROJECT_FILE
        assert (source.project_id, source.file_id) == (285109, 2935316)

    def test_small_ids_are_paths(self):
        assert ModpackSource.parse("5:2935316").kind is SourceKind.PATH
        assert ModpackSource.parse("285109:10").kind is SourceKind.PATH

    def test_url(self):
        source = ModpackSource.parse("https://example.com/pack.zip")
        assert source.kind is SourceKind.URL
        assert source.locator == "https://example.com/pack.zip"

    def test_path(self):
        assert ModpackSource.parse("./packs/my pack").kind is SourceKind.PATH
        assert ModpackSource.parse("ftp://example.com/x.zip").kind is SourceKind.PATH

    def test_empty_rejected(self):
        with pytest.raises(ConfigValidationError):
            ModpackSource.parse("  ")


class TestInstallerConfig:
    def test_defaults(self):
        config = InstallerConfig.from_dict({"install_to": "/srv/mc", "modpack": "pack"})
        assert config.data_file == "packsync.json"
        assert not config.is_server
        assert config.install_loader
        assert config.delete_old_loader
        assert not config.redownload_all
        assert config.excluded_project_ids == []
        assert config.worker_count == 5
        assert not config.fail_fast
        assert config.api.base_url == CURSEFORGE_BASE_URL

    def test_from_dict(self):
        config = InstallerConfig.from_dict(
            {
                "install_to": "/srv/mc",
                "modpack": "285109:2935316",
                "is_server": True,
                "excluded_project_ids": ["238222", 32274],
                "max_workers": "8",
                "api": {"base_url": "https://cf.example/", "timeout": 10},
            }
        )
        assert config.is_server
        assert config.excluded_project_ids == [238222, 32274]
        assert config.worker_count == 8
        assert config.source.kind is SourceKind.PROJECT_FILE
        assert config.api.base_url == "https://cf.example"
        assert config.api.timeout == 10.0

    def test_data_path(self, tmp_path):
        config = InstallerConfig(install_to=str(tmp_path), modpack="pack")
        assert config.data_path == str(tmp_path / "packsync.json")

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("CURSEFORGE_API_KEY", "secret")
        config = InstallerConfig.from_dict({"install_to": "/srv/mc", "modpack": "p"})
        assert config.api.api_key == "secret"
        assert "api_key" not in config.to_dict()["api"]

    @pytest.mark.parametrize(
        "data",
        [
            {"modpack": "pack"},
            {"install_to": "/srv/mc"},
            {"install_to": "/srv/mc", "modpack": "p", "max_workers": -1},
            {"install_to": "/srv/mc", "modpack": "p", "max_workers": "many"},
            {"install_to": "/srv/mc", "modpack": "p", "data_file": "/abs/state.json"},
            {"install_to": "/srv/mc", "modpack": "p", "excluded_project_ids": ["x"]},
        ],
    )
    def test_invalid(self, data):
        with pytest.raises(ConfigValidationError):
            InstallerConfig.from_dict(data)

    def test_to_dict_round_trip(self):
        config = InstallerConfig.from_dict(
            {"install_to": "/srv/mc", "modpack": "pack", "redownload_all": True}
        )
        assert InstallerConfig.from_dict(config.to_dict()) == config


class TestLoadConfig:
    DATA = {"install_to": "/srv/mc", "modpack": "285109:2935316", "is_server": True}

    def test_toml(self, tmp_path):
        path = tmp_path / "packsync.toml"
        path.write_text(toml.dumps(self.DATA), encoding="utf-8")
        assert load_config(str(path)) == self.DATA

    def test_json(self, tmp_path):
        path = tmp_path / "packsync.json"
        path.write_text(json.dumps(self.DATA), encoding="utf-8")
        assert load_config(str(path)) == self.DATA

    def test_yaml(self, tmp_path):
        path = tmp_path / "packsync.yml"
        path.write_text(yaml.safe_dump(self.DATA), encoding="utf-8")
        assert load_config(str(path)) == self.DATA

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "packsync.ini"
        path.write_text("[x]", encoding="utf-8")
        with pytest.raises(ConfigParseError):
            load_config(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigParseError):
            load_config(str(tmp_path / "missing.toml"))

    def test_invalid_content(self, tmp_path):
        path = tmp_path / "packsync.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ConfigParseError):
            load_config(str(path))

    def test_command_line_overrides(self):
        data = apply_overrides(
            {"install_to": "/srv/mc", "excluded_project_ids": [1]},
            modpack="./pack",
            server=True,
            workers=2,
            exclude=(2, 3),
        )
        assert data["modpack"] == "./pack"
        assert data["is_server"]
        assert data["max_workers"] == 2
        assert data["excluded_project_ids"] == [1, 2, 3]
        assert data["install_to"] == "/srv/mc"
