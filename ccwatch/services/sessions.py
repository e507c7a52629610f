"""Facade the presentation layer talks to.

Wires the readers, the resolver, the event bus and the change notifier
around a single shared ``MessageCache`` instance.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from ccwatch import config
from ccwatch.events import EventBus, EventHandler, Unsubscribe
from ccwatch.filesystem import FileSystem
from ccwatch.models import (
    ClaudeTask,
    IssuesChanged,
    Message,
    MessagesChanged,
    Project,
    Session,
    SessionsChanged,
    Subagent,
    SubagentsChanged,
    TasksChanged,
    Todo,
)
from ccwatch.parsers.session_index import SessionIndexMerger
from ccwatch.parsers.sessions import MessageCache, SessionLogReader
from ccwatch.parsers.subagents import SubagentStatusResolver
from ccwatch.parsers.tasks import TaskReader
from ccwatch.project_manager import ProjectManager
from ccwatch.watchers.file_watcher import ChangeNotifier, IssueLoader


class SessionService:
    def __init__(
        self,
        claude_dir: Path | None = None,
        fs: FileSystem | None = None,
        bus: EventBus | None = None,
        stale_threshold_seconds: float = config.STALE_THRESHOLD_SECONDS,
        show_empty_initializing: bool = config.SHOW_EMPTY_INITIALIZING,
    ):
        if claude_dir is None:
            projects_dir, todos_dir, tasks_dir = config.PROJECTS_DIR, config.TODOS_DIR, config.TASKS_DIR
        else:
            projects_dir, todos_dir, tasks_dir = claude_dir / "projects", claude_dir / "todos", claude_dir / "tasks"

        self.fs = fs or FileSystem()
        self.bus = bus or EventBus()
        self.cache = MessageCache()
        self.projects = ProjectManager(projects_dir, self.fs)
        self.reader = SessionLogReader(projects_dir, self.fs, self.cache)
        self.merger = SessionIndexMerger(self.reader)
        self.resolver = SubagentStatusResolver(
            self.merger,
            todos_dir=todos_dir,
            stale_threshold_seconds=stale_threshold_seconds,
            show_empty=show_empty_initializing,
        )
        self.tasks = TaskReader(tasks_dir, self.fs)
        self.notifier = ChangeNotifier(self.bus, self.reader, self.merger, self.resolver, self.tasks)

    # ── Queries ────────────────────────────────────────────────────

    async def list_projects(self) -> list[Project]:
        return await self.projects.list_projects()

    async def list_sessions(self, project_id: Optional[str] = None) -> list[Session]:
        return await self.merger.list_sessions(project_id)

    async def get_messages(self, session_id: str) -> list[Message]:
        return await self.reader.read_messages(session_id)

    async def get_session_file_path(self, session_id: str) -> Optional[str]:
        path = await self.reader.find_session_path(session_id)
        return str(path) if path else None

    async def list_active_subagents(self) -> list[Subagent]:
        return await self.resolver.list_active()

    async def get_todos(self, session_id: str) -> list[Todo]:
        return await self.resolver.get_todos(session_id)

    async def get_agent_todos(self, session_id: str, agent_id: str) -> list[Todo]:
        return await self.resolver.get_agent_todos(session_id, agent_id)

    async def get_all_tasks(self) -> list[ClaudeTask]:
        return await self.tasks.get_all_tasks()

    async def get_session_tasks(self, session_id: str) -> list[ClaudeTask]:
        return await self.tasks.get_session_tasks(session_id)

    # ── Subscriptions ──────────────────────────────────────────────

    def on_sessions_changed(self, handler: EventHandler) -> Unsubscribe:
        return self.bus.subscribe(SessionsChanged, handler)

    def on_messages_changed(self, handler: EventHandler) -> Unsubscribe:
        return self.bus.subscribe(MessagesChanged, handler)

    def on_subagents_changed(self, handler: EventHandler) -> Unsubscribe:
        return self.bus.subscribe(SubagentsChanged, handler)

    def on_tasks_changed(self, handler: EventHandler) -> Unsubscribe:
        return self.bus.subscribe(TasksChanged, handler)

    def on_issues_changed(self, handler: EventHandler) -> Unsubscribe:
        return self.bus.subscribe(IssuesChanged, handler)

    # ── Watcher lifecycle ──────────────────────────────────────────

    @property
    def is_watching(self) -> bool:
        return self.notifier.is_watching()

    async def start_watching(self) -> None:
        await self.notifier.start_watching()

    async def stop_watching(self) -> None:
        await self.notifier.stop_watching()

    async def start_issue_watcher(self, project_path: str, loader: IssueLoader) -> None:
        await self.notifier.start_issue_watcher(project_path, loader)

    async def stop_issue_watcher(self, project_path: str) -> None:
        await self.notifier.stop_issue_watcher(project_path)

    async def start_tasks_watcher(self) -> None:
        await self.notifier.start_tasks_watcher()

    async def stop_tasks_watcher(self) -> None:
        await self.notifier.stop_tasks_watcher()

    async def shutdown(self) -> None:
        await self.notifier.stop_all()
