"""Derive subagent status from TodoWrite snapshots.

Two sources describe overlapping subagents:

- ``projects/<dir>/<sessionId>/subagents/agent-<agentId>.jsonl``: the
  agent's own transcript; the last ``TodoWrite`` call holds its todo list.
- ``todos/<sessionId>-agent-<agentId>.json``: the CLI's current todo list.

Transcripts win; the flat files only add agents the transcripts don't know.
Status is never stored, it is recomputed from the todo list and the file's
mtime on every read.
"""
from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from ccwatch import config
from ccwatch.date_utils import format_epoch, normalize_iso_date
from ccwatch.filesystem import FileSystem
from ccwatch.models import Subagent, SubagentStatus, Todo
from ccwatch.parsers.session_index import SessionIndexMerger

logger = logging.getLogger("ccwatch.subagents")

_SESSION_DIR_PATTERN = re.compile(r"^[a-f0-9-]{36}$")
_AGENT_LOG_PATTERN = re.compile(r"^agent-([a-f0-9-]+)\.jsonl$")
_TODO_FILE_PATTERN = re.compile(r"^([a-f0-9-]+)-agent-([a-f0-9-]+)\.json$")

_TODO_TOOL_NAME = "TodoWrite"
_ACTIVE_STATUSES = {"running", "initializing"}


@dataclass
class AgentSnapshot:
    """Raw todo list for one agent plus the file facts status depends on."""

    session_id: str
    agent_id: str
    todos: list[dict[str, Any]]
    mtime: float
    started_at: str
    source: str


def derive_status(total: int, completed: int, has_incomplete: bool, stale: bool) -> SubagentStatus:
    if total == 0:
        return "failed" if stale else "initializing"
    if completed == total:
        return "completed"
    if has_incomplete and stale:
        return "failed"
    if has_incomplete:
        return "running"
    return "completed"


def _todo_items(raw: Any) -> list[dict[str, Any]]:
    if not isinstance(raw, list):
        return []
    return [item for item in raw if isinstance(item, dict)]


def find_last_todo_write(lines: list[str]) -> list[dict[str, Any]]:
    """Todo list from the most recent TodoWrite call, scanning backwards."""
    for line in reversed(lines):
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            continue
        message = entry.get("message") if isinstance(entry, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, list):
            continue
        for block in reversed(content):
            if not isinstance(block, dict) or block.get("name") != _TODO_TOOL_NAME:
                continue
            tool_input = block.get("input")
            if isinstance(tool_input, dict) and isinstance(tool_input.get("todos"), list):
                return _todo_items(tool_input["todos"])
    return []


def to_todos(raw_todos: list[dict[str, Any]], id_prefix: str) -> list[Todo]:
    todos: list[Todo] = []
    for index, raw in enumerate(raw_todos):
        try:
            todos.append(Todo(
                id=str(raw.get("id") or f"{id_prefix}-{index}"),
                content=str(raw.get("content") or ""),
                status=raw.get("status") or "pending",
                activeForm=raw.get("activeForm"),
            ))
        except ValueError:
            logger.debug("Skipping malformed todo %s[%d]", id_prefix, index)
    return todos


def build_subagent(snapshot: AgentSnapshot, now: float, stale_after: float) -> Subagent:
    todos = snapshot.todos
    total = len(todos)
    completed = sum(1 for t in todos if t.get("status") == "completed")
    in_progress = next((t for t in todos if t.get("status") == "in_progress"), None)
    pending = next((t for t in todos if t.get("status") == "pending"), None)
    stale = now - snapshot.mtime > stale_after

    status = derive_status(total, completed, in_progress is not None or pending is not None, stale)

    active = in_progress or pending or (todos[0] if todos else None)
    first = todos[0] if todos else None

    subagent = Subagent(
        id=snapshot.agent_id,
        sessionId=snapshot.session_id,
        status=status,
        name=str(first.get("content") or "Initializing...") if first else "Initializing...",
        description=str(active.get("activeForm") or active.get("content") or "") if active else "Starting up...",
        startedAt=snapshot.started_at,
        totalTasks=total,
        completedTasks=completed,
        inProgressTask=str(in_progress.get("activeForm") or in_progress.get("content") or "") if in_progress else None,
        source=snapshot.source,
    )
    if status == "completed":
        subagent.completedAt = format_epoch(snapshot.mtime)
        subagent.cachedTodos = to_todos(todos, snapshot.agent_id)
    return subagent


def _sort_key(subagent: Subagent) -> tuple[int, str]:
    return (1 if subagent.status in _ACTIVE_STATUSES else 0, subagent.startedAt)


class SubagentStatusResolver:
    def __init__(
        self,
        merger: SessionIndexMerger,
        todos_dir: Path | None = None,
        fs: FileSystem | None = None,
        stale_threshold_seconds: float = config.STALE_THRESHOLD_SECONDS,
        show_empty: bool = config.SHOW_EMPTY_INITIALIZING,
        clock: Callable[[], float] = time.time,
    ):
        self.merger = merger
        self.projects_dir = merger.projects_dir
        self.todos_dir = todos_dir or config.TODOS_DIR
        self.fs = fs or merger.fs
        self.stale_threshold_seconds = stale_threshold_seconds
        self.show_empty = show_empty
        self.clock = clock

    async def _list(self, path: Path):
        try:
            return await self.fs.list_dir(path)
        except OSError:
            return []

    async def read_agent_log(self, file_path: Path, session_id: str, agent_id: str) -> Optional[AgentSnapshot]:
        try:
            text = await self.fs.read_text(file_path)
            stats = await self.fs.stat(file_path)
        except OSError:
            return None

        lines = [line for line in text.strip().splitlines() if line.strip()]
        started_at = ""
        if lines:
            try:
                first_entry = json.loads(lines[0])
            except json.JSONDecodeError:
                first_entry = None
            if isinstance(first_entry, dict):
                started_at = normalize_iso_date(first_entry.get("timestamp"))

        return AgentSnapshot(
            session_id=session_id,
            agent_id=agent_id,
            todos=find_last_todo_write(lines),
            mtime=stats.mtime,
            started_at=started_at or format_epoch(stats.mtime),
            source="log",
        )

    async def read_todo_file(self, file_path: Path, session_id: str, agent_id: str) -> Optional[AgentSnapshot]:
        try:
            raw = json.loads(await self.fs.read_text(file_path))
            stats = await self.fs.stat(file_path)
        except (OSError, json.JSONDecodeError) as exc:
            logger.debug("Skipping unreadable todo file %s: %s", file_path, exc)
            return None
        if not isinstance(raw, list):
            return None
        return AgentSnapshot(
            session_id=session_id,
            agent_id=agent_id,
            todos=_todo_items(raw),
            mtime=stats.mtime,
            started_at=format_epoch(stats.mtime),
            source="todos",
        )

    async def _agent_log_snapshots(self) -> list[AgentSnapshot]:
        snapshots: list[AgentSnapshot] = []
        for project in await self._list(self.projects_dir):
            if not project.is_dir:
                continue
            project_dir = self.projects_dir / project.name
            for entry in await self._list(project_dir):
                if not entry.is_dir or not _SESSION_DIR_PATTERN.match(entry.name):
                    continue
                subagents_dir = project_dir / entry.name / config.SUBAGENTS_DIRNAME
                for agent_file in await self._list(subagents_dir):
                    match = _AGENT_LOG_PATTERN.match(agent_file.name)
                    if not match:
                        continue
                    snapshot = await self.read_agent_log(subagents_dir / agent_file.name, entry.name, match.group(1))
                    if snapshot:
                        snapshots.append(snapshot)
        return snapshots

    async def _session_log_exists(self, session_id: str) -> bool:
        for project in await self._list(self.projects_dir):
            if project.is_dir and await self.fs.exists(self.projects_dir / project.name / f"{session_id}{config.SESSION_LOG_SUFFIX}"):
                return True
        return False

    async def _todo_file_snapshots(self, seen_agents: set[str]) -> list[AgentSnapshot]:
        snapshots: list[AgentSnapshot] = []
        entries = await self._list(self.todos_dir)
        if not entries:
            return snapshots

        valid_session_ids = await self.merger.valid_session_ids()
        for entry in entries:
            match = _TODO_FILE_PATTERN.match(entry.name)
            if not match:
                continue
            session_id, agent_id = match.group(1), match.group(2)
            if agent_id in seen_agents:
                continue
            # Orphaned todo lists from deleted sessions stay hidden.
            if session_id not in valid_session_ids and not await self._session_log_exists(session_id):
                continue
            snapshot = await self.read_todo_file(self.todos_dir / entry.name, session_id, agent_id)
            if snapshot:
                snapshots.append(snapshot)
        return snapshots

    def _append(self, subagents: list[Subagent], snapshot: AgentSnapshot, now: float) -> None:
        try:
            subagents.append(build_subagent(snapshot, now, self.stale_threshold_seconds))
        except ValueError as exc:
            logger.debug("Skipping malformed subagent %s/%s: %s", snapshot.session_id, snapshot.agent_id, exc)

    async def list_active(self) -> list[Subagent]:
        now = self.clock()
        subagents: list[Subagent] = []
        seen_agents: set[str] = set()

        for snapshot in await self._agent_log_snapshots():
            seen_agents.add(snapshot.agent_id)
            self._append(subagents, snapshot, now)

        for snapshot in await self._todo_file_snapshots(seen_agents):
            self._append(subagents, snapshot, now)

        if not self.show_empty:
            subagents = [s for s in subagents if s.totalTasks > 0]

        return sorted(subagents, key=_sort_key, reverse=True)

    async def get_todos(self, session_id: str) -> list[Todo]:
        todos: list[Todo] = []
        for entry in sorted(await self._list(self.todos_dir), key=lambda e: e.name):
            if not entry.name.startswith(session_id) or not entry.name.endswith(config.TODO_FILE_SUFFIX):
                continue
            try:
                raw = json.loads(await self.fs.read_text(self.todos_dir / entry.name))
            except (OSError, json.JSONDecodeError):
                continue
            todos.extend(to_todos(_todo_items(raw), entry.name))
        return todos

    async def get_agent_todos(self, session_id: str, agent_id: str) -> list[Todo]:
        filename = f"{session_id}-agent-{agent_id}{config.TODO_FILE_SUFFIX}"
        snapshot = await self.read_todo_file(self.todos_dir / filename, session_id, agent_id)
        if snapshot and snapshot.todos:
            return to_todos(snapshot.todos, filename)

        for project in await self._list(self.projects_dir):
            if not project.is_dir:
                continue
            log_path = (
                self.projects_dir / project.name / session_id
                / config.SUBAGENTS_DIRNAME / f"agent-{agent_id}{config.SESSION_LOG_SUFFIX}"
            )
            snapshot = await self.read_agent_log(log_path, session_id, agent_id)
            if snapshot and snapshot.todos:
                return to_todos(snapshot.todos, agent_id)
        return []
