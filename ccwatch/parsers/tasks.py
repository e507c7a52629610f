"""Read Claude native task files from ``~/.claude/tasks/<sessionId>/*.json``."""
from __future__ import annotations

import json
import logging
from pathlib import Path

from ccwatch import config
from ccwatch.filesystem import FileSystem
from ccwatch.models import ClaudeTask

logger = logging.getLogger("ccwatch.tasks")


class TaskReader:
    def __init__(self, tasks_dir: Path | None = None, fs: FileSystem | None = None):
        self.tasks_dir = tasks_dir or config.TASKS_DIR
        self.fs = fs or FileSystem()

    async def parse_task_file(self, file_path: Path, session_id: str) -> ClaudeTask | None:
        try:
            raw = json.loads(await self.fs.read_text(file_path))
            if not isinstance(raw, dict):
                raise ValueError("task file is not a JSON object")
            return ClaudeTask(**{**raw, "id": str(raw.get("id") or file_path.stem), "sessionId": session_id})
        except (OSError, ValueError) as exc:
            logger.warning("Failed to parse task file %s: %s", file_path, exc)
            return None

    async def get_session_tasks(self, session_id: str) -> list[ClaudeTask]:
        session_dir = self.tasks_dir / session_id
        try:
            entries = await self.fs.list_dir(session_dir)
        except OSError:
            return []

        tasks: list[ClaudeTask] = []
        for entry in sorted(entries, key=lambda e: e.name):
            if not entry.is_file or entry.name.startswith(".") or not entry.name.endswith(".json"):
                continue
            task = await self.parse_task_file(session_dir / entry.name, session_id)
            if task:
                tasks.append(task)
        return tasks

    async def get_all_tasks(self) -> list[ClaudeTask]:
        try:
            entries = await self.fs.list_dir(self.tasks_dir)
        except OSError:
            return []

        tasks: list[ClaudeTask] = []
        for entry in sorted(entries, key=lambda e: e.name):
            if entry.is_dir:
                tasks.extend(await self.get_session_tasks(entry.name))
        return tasks
