# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.06
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ------
# src/shadowdiff/core/differ.py

"""
Directory tree differ.

Classifies every regular file under two roots as identical, different,
local-only or remote-only. Relative paths are keyed with forward slashes and
NFC-normalised, so a tree written on macOS compares equal to the same tree
written on Linux or Windows. Neither tree is modified.
"""

from __future__ import annotations

import os
import unicodedata
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional, Protocol

import loguru
import xxhash
from pydantic import BaseModel, Field

from shadowdiff.system.exceptions import PathNotFoundError, ValidationError

logger = loguru.logger

HASH_CHUNK_SIZE = 64 * 1024


class DiffStatus(str, Enum):
    IDENTICAL = "identical"
    DIFFERENT = "different"
    LOCAL_ONLY = "local_only"
    REMOTE_ONLY = "remote_only"


class FileInfo(BaseModel):
    """Size and (when computed) content hash of one file."""
    size: int
    hash: Optional[str] = None


class DiffDetail(BaseModel):
    """What the differ saw on each side for one relative path."""
    local: Optional[FileInfo] = None
    remote: Optional[FileInfo] = None

    def swapped(self) -> "DiffDetail":
        return DiffDetail(local=self.remote, remote=self.local)


class DiffEntry(BaseModel):
    path: str
    status: DiffStatus


class DirectoryDiffResult(BaseModel):
    """Four disjoint buckets keyed by relative POSIX path."""
    local_root: Path
    remote_root: Path
    identical: dict[str, DiffDetail] = Field(default_factory=dict)
    different: dict[str, DiffDetail] = Field(default_factory=dict)
    local_only: dict[str, DiffDetail] = Field(default_factory=dict)
    remote_only: dict[str, DiffDetail] = Field(default_factory=dict)

    def bucket(self, status: DiffStatus) -> dict[str, DiffDetail]:
        return getattr(self, status.value)

    @property
    def has_conflicts(self) -> bool:
        """True when anything would be overwritten or lost by a deploy."""
        return bool(self.different or self.remote_only)

    def entries(self) -> list[DiffEntry]:
        """All paths with their classification, sorted by path."""
        result = [
            DiffEntry(path=path, status=status)
            for status in DiffStatus
            for path in self.bucket(status)
        ]
        return sorted(result, key=lambda e: e.path)

    def counts(self) -> dict[str, int]:
        return {status.value: len(self.bucket(status)) for status in DiffStatus}

    def swapped(self) -> "DirectoryDiffResult":
        """The result diff(remote_root, local_root) would produce."""
        return DirectoryDiffResult(
            local_root=self.remote_root,
            remote_root=self.local_root,
            identical={k: v.swapped() for k, v in self.identical.items()},
            different={k: v.swapped() for k, v in self.different.items()},
            local_only={k: v.swapped() for k, v in self.remote_only.items()},
            remote_only={k: v.swapped() for k, v in self.local_only.items()},
        )


class DirectoryDiffer(Protocol):
    def diff(self, local_root: Path, remote_root: Path) -> DirectoryDiffResult:
        ...


def hash_file(path: Path) -> str:
    """Calculate xxh3-128 of a file's content."""
    h = xxhash.xxh3_128()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(HASH_CHUNK_SIZE), b""):
            h.update(chunk)
    return h.hexdigest()


def relative_key(path: Path, root: Path) -> str:
    """Root-relative path with '/' separators, NFC-normalised."""
    relative = path.relative_to(root)
    return unicodedata.normalize("NFC", "/".join(relative.parts))


def iter_files(root: Path) -> Iterator[tuple[str, Path]]:
    """Yield (relative_key, path) for every regular file under root.

    Symlinks are followed. A symlinked directory that points back to one of
    its own ancestors is skipped, as are broken symlinks.
    """
    stack = [(root, frozenset({os.path.realpath(root)}))]
    while stack:
        directory, ancestors = stack.pop()
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
        for entry in entries:
            path = Path(entry.path)
            if entry.is_dir(follow_symlinks=True):
                real = os.path.realpath(entry.path)
                if real in ancestors:
                    logger.warning(f"Skipping symlink cycle at {path}")
                    continue
                stack.append((path, ancestors | {real}))
            elif entry.is_file(follow_symlinks=True):
                yield relative_key(path, root), path
            elif entry.is_symlink():
                logger.warning(f"Skipping broken symlink {path}")


class TreeDiffer:
    """Content differ for two directory trees.

    Args:
        fold_case: match relative paths case-insensitively. Changes the
            classification on case-insensitive filesystems, so it is opt-in.
    """

    def __init__(self, fold_case: bool = False) -> None:
        self.fold_case = fold_case

    def diff(self, local_root: Path, remote_root: Path) -> DirectoryDiffResult:
        local_root = Path(local_root)
        remote_root = Path(remote_root)
        for label, root in (("Local", local_root), ("Remote", remote_root)):
            if not root.is_dir():
                raise PathNotFoundError(f"{label} directory not found: {root}", path=root)

        local_files = self._collect(local_root)
        remote_files = self._collect(remote_root)
        result = DirectoryDiffResult(local_root=local_root, remote_root=remote_root)

        for match_key, (key, local_path) in local_files.items():
            remote = remote_files.get(match_key)
            if remote is None:
                result.local_only[key] = DiffDetail(local=FileInfo(size=local_path.stat().st_size))
                continue
            detail = self._compare(local_path, remote[1])
            if detail.local == detail.remote:
                result.identical[key] = detail
            else:
                result.different[key] = detail

        for match_key, (key, remote_path) in remote_files.items():
            if match_key not in local_files:
                result.remote_only[key] = DiffDetail(remote=FileInfo(size=remote_path.stat().st_size))

        logger.debug(f"Diffed {local_root} against {remote_root}: {result.counts()}")
        return result

    def _collect(self, root: Path) -> dict[str, tuple[str, Path]]:
        """Map match key -> (reported key, path) for every file under root.

        Keys are NFC-normalised even without fold_case, so two names that
        differ only in Unicode normalisation (NFC vs NFD, both allowed on
        Linux) collide and raise ValidationError.
        """
        files: dict[str, tuple[str, Path]] = {}
        for key, path in iter_files(root):
            match_key = key.casefold() if self.fold_case else key
            if match_key in files:
                other = files[match_key][1].relative_to(root).as_posix()
                kind = "case or Unicode normalisation (NFC/NFD)" if self.fold_case \
                    else "Unicode normalisation (NFC/NFD)"
                raise ValidationError(
                    f"Ambiguous paths under {root}: {other!r} and {path.relative_to(root).as_posix()!r} "
                    f"differ only in {kind}"
                )
            files[match_key] = (key, path)
        return files

    def _compare(self, local_path: Path, remote_path: Path) -> DiffDetail:
        local_size = local_path.stat().st_size
        remote_size = remote_path.stat().st_size
        if local_size != remote_size:
            return DiffDetail(local=FileInfo(size=local_size), remote=FileInfo(size=remote_size))
        return DiffDetail(
            local=FileInfo(size=local_size, hash=hash_file(local_path)),
            remote=FileInfo(size=remote_size, hash=hash_file(remote_path)),
        )


def diff_directories(local_root: Path, remote_root: Path, fold_case: bool = False) -> DirectoryDiffResult:
    """Convenience wrapper around TreeDiffer."""
    return TreeDiffer(fold_case=fold_case).diff(local_root, remote_root)
