# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.11
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ------
# tests/conftest.py

"""
Shared test fixtures for the shadowdiff test suite.
"""

import zipfile
from pathlib import Path
from typing import Callable, Optional

import pytest

from shadowdiff.config.manager import ProjectConfig
from shadowdiff.core.commands import Command
from shadowdiff.core.runner import CommandExecutionResult
from shadowdiff.system.exceptions import CommandFailedError


def write_tree(root: Path, files: dict[str, str | bytes]) -> Path:
    """Create files (relative POSIX path -> content) under root."""
    root.mkdir(parents=True, exist_ok=True)
    for rel_path, content in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content)
    return root


def write_zip(archive_path: Path, files: dict[str, str]) -> Path:
    """Write a zip archive containing files (archive member name -> content)."""
    archive_path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(archive_path, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return archive_path


class FakeRunner:
    """Stands in for CommandRunner; each call runs a scripted action.

    An action receives the Command and may write files, raise, or return a
    CommandExecutionResult. Returning None means success.
    """

    def __init__(self) -> None:
        self.calls: list[Command] = []
        self.actions: dict[int, Callable[[Command], Optional[CommandExecutionResult]]] = {}

    def on_call(self, index: int, action: Callable[[Command], Optional[CommandExecutionResult]]) -> "FakeRunner":
        self.actions[index] = action
        return self

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def execute(self, command, working_dir, env_overrides=None, token=None, check=True):
        index = len(self.calls)
        self.calls.append(command)
        action = self.actions.get(index)
        result = action(command) if action else None
        if result is None:
            result = CommandExecutionResult(command, 0, "", "", 0.01)
        return result


def failing(exit_code: int = 1, stderr: str = "boom") -> Callable[[Command], None]:
    """Action that fails the way CommandRunner reports a non-zero exit."""
    def action(command: Command) -> None:
        raise CommandFailedError(
            f"{command.log_name} failed with exit code {exit_code}",
            exit_code=exit_code, stderr_tail=stderr, command=command.to_command()
        )
    return action


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def settings() -> ProjectConfig:
    return ProjectConfig()


@pytest.fixture
def project(tmp_path) -> Path:
    """A project with a local package tree and a manifest outside the workspace."""
    root = tmp_path / "conflict-proj"
    (root).mkdir()
    (root / "sfdx-project.json").write_text('{"packageDirectories": [{"path": "force-app"}]}')
    write_tree(root / "force-app", {
        "classes/A.cls": "X",
        "classes/C.cls": "local only",
        "classes/Same.cls": "unchanged",
    })
    (root / "manifest").mkdir()
    (root / "manifest" / "package.xml").write_text("<Package><types><name>ApexClass</name></types></Package>")
    return root


@pytest.fixture
def remote_files() -> dict[str, str]:
    """Remote tree as the conversion command would produce it."""
    return {
        "classes/A.cls": "Y",
        "classes/B.cls": "remote only",
        "classes/Same.cls": "unchanged",
    }
