"""Merge sessions-index.json entries with unindexed JSONL logs."""
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

from ccwatch import config
from ccwatch.date_utils import iso_to_epoch, normalize_iso_date
from ccwatch.filesystem import FileSystem
from ccwatch.models import Session
from ccwatch.parsers.sessions import SessionLogReader
from ccwatch.project_paths import decode_project_dir

logger = logging.getLogger("ccwatch.index")


def parse_index(raw: str) -> list[dict[str, Any]]:
    """Return index entries carrying a sessionId.

    Accepts both ``{"version": n, "entries": [...]}`` and a bare list.
    """
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return []
    if isinstance(parsed, dict):
        entries = parsed.get("entries") or []
    elif isinstance(parsed, list):
        entries = parsed
    else:
        return []
    if not isinstance(entries, list):
        return []
    return [entry for entry in entries if isinstance(entry, dict) and entry.get("sessionId")]


def session_from_index_entry(entry: dict[str, Any], preview_chars: int = config.PREVIEW_CHARS) -> Session:
    return Session(
        id=str(entry["sessionId"]),
        projectPath=str(entry.get("projectPath") or ""),
        startedAt=normalize_iso_date(entry.get("created")),
        lastMessageAt=normalize_iso_date(entry.get("modified")),
        preview=str(entry.get("firstPrompt") or "")[:preview_chars],
        messageCount=int(entry.get("messageCount") or 0),
        gitBranch=entry.get("gitBranch") or None,
        source="index",
    )


def is_session_log_name(name: str) -> bool:
    """Top-level session logs only; ``agent-*`` sidechain logs are excluded."""
    return name.endswith(config.SESSION_LOG_SUFFIX) and not name.startswith("agent-")


class SessionIndexMerger:
    def __init__(
        self,
        reader: SessionLogReader,
        projects_dir: Path | None = None,
        fs: FileSystem | None = None,
    ):
        self.reader = reader
        self.projects_dir = projects_dir or reader.projects_dir
        self.fs = fs or reader.fs

    async def _project_dirs(self) -> list[str]:
        try:
            entries = await self.fs.list_dir(self.projects_dir)
        except OSError:
            return []
        return sorted(entry.name for entry in entries if entry.is_dir)

    async def load_index(self, project_dir: Path) -> list[dict[str, Any]]:
        try:
            raw = await self.fs.read_text(project_dir / config.SESSIONS_INDEX_FILENAME)
        except OSError:
            return []
        return parse_index(raw)

    async def list_sessions(self, project_id: Optional[str] = None) -> list[Session]:
        sessions: dict[str, Session] = {}

        for dir_name in await self._project_dirs():
            if project_id and dir_name != project_id:
                continue
            project_dir = self.projects_dir / dir_name

            for entry in await self.load_index(project_dir):
                try:
                    session = session_from_index_entry(entry, self.reader.preview_chars)
                except (TypeError, ValueError) as exc:
                    logger.debug("Skipping malformed index entry in %s: %s", project_dir, exc)
                    continue
                sessions[session.id] = session

            try:
                files = await self.fs.list_dir(project_dir)
            except OSError:
                continue

            decoded_path: str | None = None
            for entry in files:
                if not entry.is_file or not is_session_log_name(entry.name):
                    continue
                session_id = entry.name[: -len(config.SESSION_LOG_SUFFIX)]
                if session_id in sessions:
                    continue
                if decoded_path is None:
                    decoded_path = await asyncio.to_thread(decode_project_dir, dir_name, self.fs.path_exists)
                session = await self.reader.read_header(project_dir / entry.name, decoded_path)
                if session:
                    sessions[session_id] = session

        return sorted(sessions.values(), key=lambda s: iso_to_epoch(s.lastMessageAt), reverse=True)

    async def valid_session_ids(self) -> set[str]:
        """Session ids named by any project's index file."""
        session_ids: set[str] = set()
        for dir_name in await self._project_dirs():
            for entry in await self.load_index(self.projects_dir / dir_name):
                session_ids.add(str(entry["sessionId"]))
        return session_ids
