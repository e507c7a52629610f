"""Filesystem access used by the ingestion layer.

Everything that touches ``~/.claude`` goes through a ``FileSystem`` so the
readers can be exercised against a fake in tests (and so blocking calls stay
off the event loop).
"""
from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class DirEntry:
    name: str
    is_dir: bool
    is_file: bool


@dataclass(frozen=True)
class FileStat:
    size: int
    mtime: float  # seconds since epoch
    birthtime: float  # st_birthtime where available, else st_ctime


def _stat(path: Path) -> FileStat:
    stats = path.stat()
    birth = getattr(stats, "st_birthtime", 0.0) or stats.st_ctime
    return FileStat(size=stats.st_size, mtime=stats.st_mtime, birthtime=float(birth))


def _list_dir(path: Path) -> list[DirEntry]:
    entries: list[DirEntry] = []
    with os.scandir(path) as it:
        for entry in it:
            entries.append(DirEntry(entry.name, entry.is_dir(), entry.is_file()))
    return entries


def _read_head(path: Path, size: int) -> bytes:
    with path.open("rb") as handle:
        return handle.read(size)


class FileSystem:
    """Local filesystem. Raises ``OSError`` like the underlying calls do."""

    async def list_dir(self, path: Path) -> list[DirEntry]:
        return await asyncio.to_thread(_list_dir, path)

    async def stat(self, path: Path) -> FileStat:
        return await asyncio.to_thread(_stat, path)

    async def read_head(self, path: Path, size: int) -> bytes:
        return await asyncio.to_thread(_read_head, path, size)

    async def read_text(self, path: Path) -> str:
        return await asyncio.to_thread(path.read_text, encoding="utf-8", errors="replace")

    async def exists(self, path: Path | str) -> bool:
        return await asyncio.to_thread(os.path.exists, path)

    def path_exists(self, path: Path | str) -> bool:
        """Blocking probe, for callers already running in a worker thread."""
        return os.path.exists(path)
