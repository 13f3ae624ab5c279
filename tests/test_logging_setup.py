# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.13
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ------
# tests/test_logging_setup.py

import pytest
import yaml
from loguru import logger

from shadowdiff.core.commands import Command
from shadowdiff.core.sinks import LoggingSink
from shadowdiff.system.logging_setup import detect_project_name, setup_logging


@pytest.fixture
def user_config_dir(tmp_path, monkeypatch):
    home = tmp_path / "home"
    home.mkdir()
    override = tmp_path / "override"
    override.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.setenv("SHADOWDIFF_CONFIG_HOME", str(override))
    yield override
    logger.remove()


class TestDetectProjectName:
    def test_uses_project_root(self, project, monkeypatch):
        monkeypatch.chdir(project / "force-app")
        assert detect_project_name() == "conflict-proj"

    def test_falls_back_to_cwd(self, tmp_path, monkeypatch):
        somewhere = tmp_path / "loose-dir"
        somewhere.mkdir()
        monkeypatch.chdir(somewhere)
        assert detect_project_name() == "loose-dir"


def write_user_config(config_dir, **values):
    (config_dir / "shadowdiff.yml").write_text(yaml.safe_dump(values))


class TestSetupLogging:
    def test_without_user_config(self, user_config_dir, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert setup_logging() is None
        assert not list(tmp_path.rglob("shadowdiff-*.log"))

    def test_file_logging_when_local_log_set(self, user_config_dir, project, tmp_path, monkeypatch):
        log_dir = tmp_path / "logs"
        write_user_config(user_config_dir, local_log=str(log_dir))
        monkeypatch.chdir(project)

        log_file = setup_logging(debug=True)
        logger.debug("hello from the test")
        logger.remove()

        assert log_file == log_dir / "shadowdiff-conflict-proj.log"
        assert "hello from the test" in log_file.read_text()

    def test_file_lines_carry_run_id(self, user_config_dir, project, tmp_path, monkeypatch):
        write_user_config(user_config_dir, local_log=str(tmp_path / "logs"))
        monkeypatch.chdir(project)

        log_file = setup_logging()
        logger.info("first")
        logger.info("second")
        logger.remove()

        lines = [line for line in log_file.read_text().splitlines() if "first" in line or "second" in line]
        run_ids = {line.split(" | ")[1] for line in lines}
        assert len(lines) == 2
        assert len(run_ids) == 1
        assert len(run_ids.pop()) == 8

    def test_tool_output_goes_to_file_not_console(self, user_config_dir, project, tmp_path, monkeypatch, capsys):
        write_user_config(user_config_dir, local_log=str(tmp_path / "logs"))
        monkeypatch.chdir(project)
        command = Command(argv=("sfdx", "force:mdapi:retrieve"), log_name="retrieve")

        log_file = setup_logging(debug=True)
        LoggingSink().command_output(command, "stdout", "Retrieving metadata")
        logger.remove()

        assert "Retrieving metadata" not in capsys.readouterr().err
        assert "[retrieve:stdout] Retrieving metadata" in log_file.read_text()

    def test_invalid_rotation_disables_file_logging(self, user_config_dir, project, tmp_path, monkeypatch, capsys):
        log_dir = tmp_path / "logs"
        write_user_config(user_config_dir, local_log=str(log_dir), log_rotation="whenever")
        monkeypatch.chdir(project)

        assert setup_logging() is None
        assert "File logging disabled" in capsys.readouterr().err

    def test_invalid_user_config_keeps_console_logging(self, user_config_dir, tmp_path, monkeypatch, capsys):
        write_user_config(user_config_dir, log_retention=0)
        monkeypatch.chdir(tmp_path)

        assert setup_logging() is None
        assert "Ignoring user config for logging" in capsys.readouterr().err

    def test_console_level_follows_debug_flag(self, user_config_dir, tmp_path, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)

        setup_logging(debug=False)
        logger.info("quiet info")
        logger.warning("loud warning")
        captured = capsys.readouterr()

        assert "quiet info" not in captured.err
        assert "loud warning" in captured.err
