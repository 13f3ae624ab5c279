# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.05
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ------
# src/shadowdiff/system/logging_setup.py

"""
loguru configuration for the shadowdiff CLI.

The console gets warnings only, or everything but raw tool output with
--debug (the console sink already echoes tool output under --verbose). When
the user config sets local_log, every record of the run, tool output
included, also goes to a per-project file. Each process tags its records
with a short run id so overlapping checks in one file can be told apart.
"""

import sys
import uuid
from pathlib import Path
from typing import Optional

from loguru import logger

from shadowdiff.config.manager import UserConfig, find_project_root, load_user_config_or_default
from shadowdiff.system.exceptions import ConfigError

CONSOLE_FORMAT = "<level>{level}</level>: {message}"
DEBUG_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> <level>{level: <7}</level> <cyan>{name}</cyan>: {message}"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {extra[run_id]} | {level: <8} | {name}:{line} - {message}"


def detect_project_name() -> Optional[str]:
    """Detect current project name from the project root or cwd.

    Returns:
        Project directory name or None if not detected
    """
    try:
        project_root, _ = find_project_root()
        return project_root.name

    except FileNotFoundError:
        pass
    cwd = Path.cwd()
    if cwd.name and cwd.name != "/":
        return cwd.name

    return None


def is_command_output(record) -> bool:
    """True for lines echoed from a retrieval or conversion tool."""
    return record["extra"].get("command_output", False)


def log_file_path(user_config: UserConfig) -> Optional[Path]:
    """Where this project's log goes, or None when file logging is off."""
    if not user_config.local_log:
        return None
    project_name = detect_project_name() or "global"
    return Path(user_config.local_log) / f"shadowdiff-{project_name}.log"


def setup_logging(debug: bool = False) -> Optional[Path]:
    """Replace loguru's default handler with shadowdiff's console and file handlers.

    Returns:
        The log file in use, or None when file logging is off or failed.
    """
    logger.remove()
    logger.configure(extra={"run_id": uuid.uuid4().hex[:8]})

    logger.add(
        sys.stderr,
        level="DEBUG" if debug else "WARNING",
        format=DEBUG_CONSOLE_FORMAT if debug else CONSOLE_FORMAT,
        filter=lambda record: not is_command_output(record),
        colorize=True
    )

    try:
        user_config = load_user_config_or_default()
    except ConfigError as e:
        logger.warning(f"Ignoring user config for logging: {e}")
        return None

    log_file = log_file_path(user_config)
    if log_file is None:
        return None

    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level="DEBUG",
            format=FILE_FORMAT,
            rotation=user_config.log_rotation,
            retention=user_config.log_retention,
        )
    except (OSError, ValueError, TypeError) as e:
        # loguru rejects a bad rotation or retention value with ValueError/TypeError
        logger.warning(f"File logging disabled: {e}")
        return None

    logger.debug(f"File logging enabled: {log_file}")
    return log_file
