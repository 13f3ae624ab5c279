# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.05
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ------
# src/shadowdiff/config/manager.py

from __future__ import annotations

import os
from pathlib import Path, PurePosixPath
from typing import Optional, Final

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from shadowdiff.system.exceptions import ConfigError


# ---- Constants ----

USER_CFG: Final = "shadowdiff.yml"
PROJECT_CFG: Final = ".shadowdiff.yml"
SFDX_PROJECT_FILE: Final = "sfdx-project.json"


def _get_user_config_search_paths() -> tuple[Path, ...]:
    """Get config file search paths (ordered by priority: lowest to highest).

    Evaluated at call time so environment overrides set by tests are honoured.
    """
    return (
        Path("/etc/shadowdiff") / USER_CFG,  # System defaults
        Path.home() / ".config" / "shadowdiff" / USER_CFG,  # User config
        Path(os.getenv("XDG_CONFIG_HOME", "")) / "shadowdiff" / USER_CFG,  # XDG override
        Path(os.getenv("SHADOWDIFF_CONFIG_HOME", "")) / USER_CFG,  # Explicit override (highest priority)
    )


def _load_merged_config_data(candidates: tuple[Path, ...]) -> dict:
    """Load and merge config data from candidate paths.

    Args:
        candidates: Paths to check for config files

    Returns:
        Merged configuration data

    Raises:
        FileNotFoundError: If no config files found
    """
    merged_data = {}
    found_configs = []

    for candidate in candidates:
        # Unset env vars collapse to a bare relative filename; skip those
        if not candidate.is_absolute():
            continue
        if candidate.exists():
            try:
                with candidate.open("r", encoding="utf-8") as f:
                    data = yaml.safe_load(f) or {}
                if not isinstance(data, dict):
                    raise ConfigError(f"Expected a mapping, got {type(data).__name__}")
                merged_data.update(data)  # Later configs override earlier ones
                found_configs.append(str(candidate))
                logger.debug(f"Loaded config from {candidate}")
            except Exception as e:
                logger.warning(f"Failed to load config from {candidate}: {e}")

    if not found_configs:
        raise FileNotFoundError(f"No {USER_CFG} found in any standard location")

    logger.debug(f"Merged config from: {', '.join(found_configs)}")
    return merged_data


# ---- Project Settings ----

class WorkspaceSettings(BaseModel):
    """Layout of the temporary workspace used by one conflict check."""
    path: Path = Path(".sfdx") / "tools" / "conflicts"
    manifest_name: str = "package.xml"
    archive_name: str = "unpackaged.zip"
    raw_dir: str = "unpackaged"
    converted_dir: str = "converted"

    @field_validator("path")
    @classmethod
    def path_must_be_relative(cls, value: Path) -> Path:
        if value.is_absolute() or ".." in value.parts:
            raise ValueError(f"workspace path must be relative to the project root: {value}")
        if value == Path("."):
            raise ValueError("workspace path must not be the project root")
        return value

    @field_validator("manifest_name", "archive_name", "raw_dir", "converted_dir")
    @classmethod
    def names_must_be_plain(cls, value: str) -> str:
        if not value or value in {".", ".."} or "/" in value or "\\" in value:
            raise ValueError(f"expected a plain file or directory name, got {value!r}")
        return value


class CommandSettings(BaseModel):
    """How the external retrieval and conversion tools are invoked."""
    executable: str = "sfdx"
    env: dict[str, str] = Field(default_factory=lambda: {"SFDX_JSON_TO_STDOUT": "true"})
    terminate_timeout: float = Field(default=5.0, gt=0)


class DiffSettings(BaseModel):
    """Directory differ options."""
    fold_case: bool = False


class ProjectConfig(BaseModel):
    """Project configuration, read from .shadowdiff.yml."""
    model_config = ConfigDict(extra="forbid")

    package_dir: Path = Path("force-app")
    workspace: WorkspaceSettings = Field(default_factory=WorkspaceSettings)
    commands: CommandSettings = Field(default_factory=CommandSettings)
    diff: DiffSettings = Field(default_factory=DiffSettings)

    @model_validator(mode="after")
    def workspace_must_not_overlap_package_dir(self) -> "ProjectConfig":
        """The workspace is deleted after every run, so it must not hold local source."""
        if self.package_dir.is_absolute():
            return self
        workspace = Path(os.path.normpath(self.workspace.path))
        package_dir = Path(os.path.normpath(self.package_dir))
        if package_dir == Path(".") or workspace == package_dir \
                or workspace.is_relative_to(package_dir) or package_dir.is_relative_to(workspace):
            raise ValueError(
                f"workspace path {self.workspace.path} overlaps package_dir {self.package_dir}"
            )
        return self

    @classmethod
    def load(cls, config_path: Path) -> "ProjectConfig":
        """Load project config from file."""
        try:
            with config_path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

        try:
            return cls.model_validate(data)
        except Exception as e:
            raise ConfigError(str(e)) from e

    def workspace_relpath(self, *parts: str) -> str:
        """Workspace-relative path rendered with forward slashes for command lines."""
        return str(PurePosixPath(self.workspace.path.as_posix(), *parts))


# ---- User Config ----

class UserConfig(BaseModel):
    """Per-user settings; every field is optional."""
    local_log: Optional[Path] = None
    default_target: Optional[str] = None
    # loguru rotation size or interval, and how many rotated files to keep
    log_rotation: str = "5 MB"
    log_retention: int = Field(default=5, ge=1)

    @classmethod
    def load(cls, config_path: Path) -> "UserConfig":
        """Load user config from file."""
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls.model_validate(data)


def load_merged_user_config() -> UserConfig:
    """Load and merge user config from all locations (system defaults + user overrides)."""
    candidates = _get_user_config_search_paths()
    merged_data = _load_merged_config_data(candidates)
    try:
        return UserConfig.model_validate(merged_data)
    except Exception as e:
        raise ConfigError(f"Invalid user config: {e}") from e


def load_user_config_or_default() -> UserConfig:
    """Like load_merged_user_config, but a missing user config means defaults."""
    try:
        return load_merged_user_config()
    except FileNotFoundError:
        logger.debug("No user config found, using defaults")
        return UserConfig()


# ---- Config Finders ----

def find_project_root(start: Path | None = None) -> tuple[Path, Optional[Path]]:
    """Walk up from start looking for .shadowdiff.yml or sfdx-project.json.

    Returns:
        (project_root, config_path). config_path is None when the root was
        identified by sfdx-project.json alone.
    """
    current = (start or Path.cwd()).resolve()
    for parent in [current] + list(current.parents):
        candidate = parent / PROJECT_CFG
        if candidate.exists():
            return parent, candidate
        if (parent / SFDX_PROJECT_FILE).exists():
            return parent, None

    raise FileNotFoundError(
        f"No {PROJECT_CFG} or {SFDX_PROJECT_FILE} found in this or any parent directory"
    )


# ---- Main Config Class ----

class Config(BaseModel):
    """Combined user and project configuration."""
    user: UserConfig
    project: ProjectConfig
    project_root: Path = Field(exclude=True)

    @classmethod
    def load(cls, start_path: Path | None = None) -> Config:
        """Load both user and project configs."""
        user_config = load_user_config_or_default()

        try:
            project_root, project_config_path = find_project_root(start_path)
        except FileNotFoundError as e:
            raise ConfigError(str(e)) from e

        if project_config_path is None:
            logger.debug(f"No {PROJECT_CFG} in {project_root}, using defaults")
            project_config = ProjectConfig()
        else:
            project_config = ProjectConfig.load(project_config_path)

        return cls(
            user=user_config,
            project=project_config,
            project_root=project_root
        )


# ---- Validation Function ----

def validate_config(start_path: Path | None = None) -> list[str]:
    """Return a list of validation errors. Empty list means config is valid."""
    errors = []

    try:
        project_root, project_config_path = find_project_root(start_path)
    except FileNotFoundError as e:
        errors.append(f"Missing project config: {e}")
        return errors

    project_config = ProjectConfig()
    if project_config_path is not None:
        try:
            project_config = ProjectConfig.load(project_config_path)
        except ConfigError as e:
            errors.append(f"Error reading project config: {e}")
            return errors

    package_dir = project_root / project_config.package_dir
    if not package_dir.is_dir():
        errors.append(f"package_dir does not exist: {package_dir}")

    user_config = None
    try:
        user_config = load_merged_user_config()
    except FileNotFoundError:
        pass  # user config is optional
    except Exception as e:
        errors.append(f"Error in user config: {e}")

    if user_config and user_config.local_log:
        log_path = user_config.local_log
        if not log_path.is_absolute():
            errors.append(f"local_log path must be absolute: {log_path}")
        elif log_path.exists() and not log_path.is_dir():
            errors.append(f"local_log path exists but is not a directory: {log_path}")

    return errors
