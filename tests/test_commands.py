# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.12
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ------
# tests/test_commands.py

from pathlib import Path

from shadowdiff.config.manager import ProjectConfig
from shadowdiff.core.commands import CommandBuilder, build_convert_command, build_retrieve_command


class TestCommandBuilder:
    def test_builds_argv_in_order(self):
        command = (
            CommandBuilder("tool")
            .with_arg("sub:cmd")
            .with_flag("--dir", "some dir")
            .with_description("Doing things")
            .with_log_name("do_things")
            .build()
        )

        assert command.argv == ("tool", "sub:cmd", "--dir", "some dir")
        assert command.description == "Doing things"
        assert command.log_name == "do_things"
        assert command.to_command() == "tool sub:cmd --dir 'some dir'"

    def test_log_name_defaults_to_executable(self):
        assert CommandBuilder("tool").build().log_name == "tool"


class TestDefaultCommands:
    def test_retrieve_command(self):
        command = build_retrieve_command(ProjectConfig(), "MyOrg")

        assert command.to_command() == (
            "sfdx force:mdapi:retrieve --retrievetargetdir .sfdx/tools/conflicts "
            "--unpackaged .sfdx/tools/conflicts/package.xml --targetusername MyOrg"
        )
        assert command.log_name == "conflict_detect_retrieve_org_source"
        assert command.description

    def test_convert_command(self):
        command = build_convert_command(ProjectConfig())

        assert command.to_command() == (
            "sfdx force:mdapi:convert --rootdir .sfdx/tools/conflicts/unpackaged "
            "--outputdir .sfdx/tools/conflicts/converted"
        )
        assert command.log_name == "conflict_detect_convert_org_source"

    def test_commands_follow_workspace_settings(self):
        settings = ProjectConfig.model_validate({
            "workspace": {"path": "tmp/check", "raw_dir": "raw", "converted_dir": "norm"},
            "commands": {"executable": "sf"},
        })

        retrieve = build_retrieve_command(settings, "admin@example.org")
        convert = build_convert_command(settings)

        assert retrieve.argv[0] == "sf"
        assert "tmp/check" in retrieve.argv
        assert convert.argv[-3:] == ("tmp/check/raw", "--outputdir", "tmp/check/norm")
        assert settings.workspace.path == Path("tmp/check")
