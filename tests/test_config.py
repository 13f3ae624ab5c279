# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.13
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ------
# tests/test_config.py

from pathlib import Path

import pytest
import yaml

from shadowdiff.config.manager import (
    Config, ProjectConfig, UserConfig, find_project_root, load_merged_user_config,
    load_user_config_or_default, validate_config
)
from shadowdiff.system.exceptions import ConfigError


@pytest.fixture
def user_config_dir(tmp_path, monkeypatch) -> Path:
    """Point every user config location at empty temp dirs; return the override dir."""
    home = tmp_path / "home"
    home.mkdir()
    override = tmp_path / "override"
    override.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.setenv("SHADOWDIFF_CONFIG_HOME", str(override))
    return override


def write_yaml(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data))
    return path


class TestProjectConfig:
    def test_defaults(self):
        config = ProjectConfig()
        assert config.package_dir == Path("force-app")
        assert config.workspace.path == Path(".sfdx/tools/conflicts")
        assert config.commands.executable == "sfdx"
        assert config.commands.env == {"SFDX_JSON_TO_STDOUT": "true"}
        assert config.diff.fold_case is False

    def test_load_from_file(self, tmp_path):
        path = write_yaml(tmp_path / ".shadowdiff.yml", {
            "package_dir": "src/main",
            "commands": {"executable": "sf", "terminate_timeout": 1.5},
            "diff": {"fold_case": True},
        })

        config = ProjectConfig.load(path)

        assert config.package_dir == Path("src/main")
        assert config.commands.executable == "sf"
        assert config.commands.terminate_timeout == 1.5
        assert config.diff.fold_case is True

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / ".shadowdiff.yml"
        path.write_text("")
        assert ProjectConfig.load(path) == ProjectConfig()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / ".shadowdiff.yml"
        path.write_text("package_dir: [unclosed")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            ProjectConfig.load(path)

    def test_unknown_key_rejected(self, tmp_path):
        path = write_yaml(tmp_path / ".shadowdiff.yml", {"packge_dir": "typo"})
        with pytest.raises(ConfigError):
            ProjectConfig.load(path)

    @pytest.mark.parametrize("workspace_path", ["/tmp/ws", "../outside", "."])
    def test_workspace_path_must_stay_inside_project(self, workspace_path):
        with pytest.raises(ValueError):
            ProjectConfig.model_validate({"workspace": {"path": workspace_path}})

    @pytest.mark.parametrize("data", [
        {"workspace": {"path": "force-app"}},
        {"workspace": {"path": "force-app/tmp"}},
        {"workspace": {"path": "build"}, "package_dir": "build/src"},
        {"workspace": {"path": "./force-app/"}},
        {"package_dir": "."},
    ])
    def test_workspace_must_not_overlap_package_dir(self, data):
        with pytest.raises(ValueError, match="overlaps package_dir"):
            ProjectConfig.model_validate(data)

    def test_sibling_workspace_and_package_dir_accepted(self):
        config = ProjectConfig.model_validate({"workspace": {"path": "force-app-conflicts"}})
        assert config.workspace.path == Path("force-app-conflicts")

    def test_overlapping_config_file_is_a_config_error(self, tmp_path):
        path = write_yaml(tmp_path / ".shadowdiff.yml", {"package_dir": "src", "workspace": {"path": "src/.ws"}})
        with pytest.raises(ConfigError, match="overlaps"):
            ProjectConfig.load(path)

    def test_workspace_names_must_be_plain(self):
        with pytest.raises(ValueError):
            ProjectConfig.model_validate({"workspace": {"raw_dir": "a/b"}})

    def test_terminate_timeout_must_be_positive(self):
        with pytest.raises(ValueError):
            ProjectConfig.model_validate({"commands": {"terminate_timeout": 0}})

    def test_workspace_relpath_uses_forward_slashes(self):
        config = ProjectConfig()
        assert config.workspace_relpath("unpackaged") == ".sfdx/tools/conflicts/unpackaged"
        assert config.workspace_relpath() == ".sfdx/tools/conflicts"


class TestUserConfig:
    def test_missing_user_config(self, user_config_dir):
        with pytest.raises(FileNotFoundError):
            load_merged_user_config()
        assert load_user_config_or_default() == UserConfig()

    def test_override_dir_is_read(self, user_config_dir):
        write_yaml(user_config_dir / "shadowdiff.yml", {"default_target": "DevHub"})
        assert load_merged_user_config().default_target == "DevHub"

    def test_later_locations_override_earlier(self, tmp_path, user_config_dir):
        write_yaml(tmp_path / "home" / ".config" / "shadowdiff" / "shadowdiff.yml", {
            "default_target": "from-home",
            "local_log": "/var/log/shadowdiff",
        })
        write_yaml(user_config_dir / "shadowdiff.yml", {"default_target": "from-override"})

        config = load_merged_user_config()

        assert config.default_target == "from-override"
        assert config.local_log == Path("/var/log/shadowdiff")


class TestFindProjectRoot:
    def test_finds_shadowdiff_yml(self, tmp_path):
        write_yaml(tmp_path / "proj" / ".shadowdiff.yml", {})
        nested = tmp_path / "proj" / "force-app" / "classes"
        nested.mkdir(parents=True)

        root, config_path = find_project_root(nested)

        assert root == (tmp_path / "proj").resolve()
        assert config_path == root / ".shadowdiff.yml"

    def test_sfdx_project_json_marks_root(self, project):
        root, config_path = find_project_root(project / "force-app")
        assert root == project.resolve()
        assert config_path is None

    def test_not_found(self, tmp_path):
        empty = tmp_path / "nothing-here"
        empty.mkdir()
        with pytest.raises(FileNotFoundError):
            find_project_root(empty)


class TestConfigLoad:
    def test_load_with_sfdx_project_only(self, project, user_config_dir):
        config = Config.load(project)
        assert config.project_root == project.resolve()
        assert config.project == ProjectConfig()
        assert config.user == UserConfig()

    def test_load_without_project(self, tmp_path, user_config_dir):
        empty = tmp_path / "nothing-here"
        empty.mkdir()
        with pytest.raises(ConfigError):
            Config.load(empty)


class TestValidateConfig:
    def test_valid_project(self, project, user_config_dir):
        assert validate_config(project) == []

    def test_missing_package_dir(self, project, user_config_dir):
        write_yaml(project / ".shadowdiff.yml", {"package_dir": "missing-app"})
        errors = validate_config(project)
        assert len(errors) == 1
        assert "package_dir does not exist" in errors[0]

    def test_relative_local_log(self, project, user_config_dir):
        write_yaml(user_config_dir / "shadowdiff.yml", {"local_log": "logs"})
        errors = validate_config(project)
        assert any("must be absolute" in e for e in errors)

    def test_no_project(self, tmp_path, user_config_dir):
        empty = tmp_path / "nothing-here"
        empty.mkdir()
        errors = validate_config(empty)
        assert errors and errors[0].startswith("Missing project config")
