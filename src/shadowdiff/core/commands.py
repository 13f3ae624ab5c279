# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.06
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ------
# src/shadowdiff/core/commands.py

"""Descriptions of the external commands run during a conflict check."""

import shlex
from dataclasses import dataclass
from typing import Optional

from shadowdiff.config.manager import ProjectConfig


@dataclass(frozen=True)
class Command:
    """An external command: argv plus human-facing labels."""
    argv: tuple[str, ...]
    description: str = ""
    log_name: str = ""

    def to_command(self) -> str:
        return shlex.join(self.argv)

    def __str__(self) -> str:
        return self.to_command()


class CommandBuilder:
    """Fluent builder for Command.

    Example:
        CommandBuilder("sfdx").with_arg("force:mdapi:convert")
            .with_flag("--rootdir", "raw").build()
    """

    def __init__(self, executable: str) -> None:
        self._argv: list[str] = [executable]
        self._description = ""
        self._log_name: Optional[str] = None

    def with_arg(self, arg: str) -> "CommandBuilder":
        self._argv.append(arg)
        return self

    def with_flag(self, name: str, value: str) -> "CommandBuilder":
        self._argv.extend([name, str(value)])
        return self

    def with_description(self, description: str) -> "CommandBuilder":
        self._description = description
        return self

    def with_log_name(self, log_name: str) -> "CommandBuilder":
        self._log_name = log_name
        return self

    def build(self) -> Command:
        return Command(
            argv=tuple(self._argv),
            description=self._description,
            log_name=self._log_name or self._argv[0],
        )


def build_retrieve_command(project: ProjectConfig, target_identifier: str) -> Command:
    """Retrieve remote metadata selected by the staged manifest into the workspace."""
    return (
        CommandBuilder(project.commands.executable)
        .with_description("Retrieving remote metadata")
        .with_arg("force:mdapi:retrieve")
        .with_flag("--retrievetargetdir", project.workspace_relpath())
        .with_flag("--unpackaged", project.workspace_relpath(project.workspace.manifest_name))
        .with_flag("--targetusername", target_identifier)
        .with_log_name("conflict_detect_retrieve_org_source")
        .build()
    )


def build_convert_command(project: ProjectConfig) -> Command:
    """Convert the extracted metadata layout into the local source layout."""
    return (
        CommandBuilder(project.commands.executable)
        .with_description("Converting remote metadata to source format")
        .with_arg("force:mdapi:convert")
        .with_flag("--rootdir", project.workspace_relpath(project.workspace.raw_dir))
        .with_flag("--outputdir", project.workspace_relpath(project.workspace.converted_dir))
        .with_log_name("conflict_detect_convert_org_source")
        .build()
    )
