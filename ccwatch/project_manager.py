"""Discover projects from ``~/.claude/projects``."""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

from ccwatch import config
from ccwatch.date_utils import format_epoch
from ccwatch.filesystem import FileSystem
from ccwatch.models import Project
from ccwatch.parsers.session_index import is_session_log_name
from ccwatch.project_paths import decode_project_path, display_name

logger = logging.getLogger("ccwatch.projects")


class ProjectManager:
    """Lists projects straight from disk; nothing is persisted."""

    def __init__(self, projects_dir: Path | None = None, fs: FileSystem | None = None):
        self.projects_dir = projects_dir or config.PROJECTS_DIR
        self.fs = fs or FileSystem()

    async def _last_activity(self, project_dir: Path) -> Optional[float]:
        """Index mtime, else the newest session log mtime, else None."""
        try:
            return (await self.fs.stat(project_dir / config.SESSIONS_INDEX_FILENAME)).mtime
        except OSError:
            pass

        try:
            entries = await self.fs.list_dir(project_dir)
        except OSError:
            return None

        latest: Optional[float] = None
        for entry in entries:
            if not entry.is_file or not is_session_log_name(entry.name):
                continue
            try:
                mtime = (await self.fs.stat(project_dir / entry.name)).mtime
            except OSError:
                continue
            if latest is None or mtime > latest:
                latest = mtime
        return latest

    async def list_projects(self) -> list[Project]:
        try:
            entries = await self.fs.list_dir(self.projects_dir)
        except OSError:
            logger.debug("Projects dir %s not found", self.projects_dir)
            return []

        found: list[tuple[float, Project]] = []
        for entry in entries:
            if not entry.is_dir:
                continue
            last_activity = await self._last_activity(self.projects_dir / entry.name)
            if last_activity is None:
                continue
            decoded = await asyncio.to_thread(decode_project_path, entry.name, self.fs.path_exists)
            found.append((last_activity, Project(
                id=entry.name,
                name=display_name(decoded.path),
                rootPath=decoded.path,
                rootPathVerified=decoded.verified,
                lastActivity=format_epoch(last_activity),
            )))

        found.sort(key=lambda item: item[0], reverse=True)
        return [project for _, project in found]

    async def get_project(self, project_id: str) -> Optional[Project]:
        for project in await self.list_projects():
            if project.id == project_id:
                return project
        return None
