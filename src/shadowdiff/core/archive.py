# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.07
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ------
# src/shadowdiff/core/archive.py

"""Extraction of the archive produced by the retrieval command."""

import shutil
import zipfile
from pathlib import Path
from typing import Optional, Protocol

import loguru

from shadowdiff.core.cancellation import CancellationToken
from shadowdiff.system.exceptions import ValidationError

logger = loguru.logger


class ArchiveExtractor(Protocol):
    """Extract every entry of an archive into a destination directory."""

    def extract(self, archive_path: Path, dest_dir: Path, token: Optional[CancellationToken] = None) -> int:
        """Extract archive_path into dest_dir, overwriting files. Returns entry count."""
        ...


class ZipArchiveExtractor:
    """Zip extraction, checking the token between members.

    Runs synchronously; callers on the event loop wrap it in asyncio.to_thread.
    """

    def extract(self, archive_path: Path, dest_dir: Path, token: Optional[CancellationToken] = None) -> int:
        dest_root = dest_dir.resolve()
        count = 0
        with zipfile.ZipFile(archive_path) as zf:
            for info in zf.infolist():
                if token is not None:
                    token.raise_if_cancelled("extracting")

                target = (dest_root / info.filename).resolve()
                if not target.is_relative_to(dest_root):
                    raise ValidationError(f"Archive entry escapes destination: {info.filename}")

                if info.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue

                target.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as src, open(target, "wb") as dst:
                    shutil.copyfileobj(src, dst)
                count += 1

        logger.debug(f"Extracted {count} files from {archive_path} into {dest_dir}")
        return count
