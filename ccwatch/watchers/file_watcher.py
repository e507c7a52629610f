"""File watcher service using watchfiles.

Watches the Claude data directories (and optional per-project issue and
global task directories), classifies each changed path, recomputes only the
affected state and publishes a snapshot on the event bus.
"""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from fnmatch import fnmatch
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

from watchfiles import Change, DefaultFilter, awatch

from ccwatch import config
from ccwatch.events import EventBus
from ccwatch.models import (
    IssuesChanged,
    MessagesChanged,
    SessionsChanged,
    SubagentsChanged,
    TasksChanged,
)
from ccwatch.parsers.session_index import SessionIndexMerger
from ccwatch.parsers.sessions import SessionLogReader
from ccwatch.parsers.subagents import SubagentStatusResolver
from ccwatch.parsers.tasks import TaskReader

logger = logging.getLogger("ccwatch.watcher")

CLAUDE_SCOPE = "claude"
TASKS_SCOPE = "tasks"
ISSUES_SCOPE_PREFIX = "issues:"

ChangeBatch = list[tuple[str, Path]]
IssueLoader = Callable[[str], Awaitable[list[Any]]]


class ChangeKind(str, Enum):
    INDEX = "index"
    SUBAGENT_LOG = "subagent_log"
    SESSION_LOG = "session_log"
    TODO = "todo"
    ISSUE = "issue"
    TASK = "task"
    IGNORED = "ignored"


def _is_under(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
        return True
    except ValueError:
        return False


def classify_change(path: Path, todos_dir: Path, scope: str = CLAUDE_SCOPE) -> ChangeKind:
    """Map a changed path to the state it invalidates (first rule wins)."""
    if path.name == config.SESSIONS_INDEX_FILENAME:
        return ChangeKind.INDEX
    if path.suffix == config.SESSION_LOG_SUFFIX:
        if config.SUBAGENTS_DIRNAME in path.parts[:-1]:
            return ChangeKind.SUBAGENT_LOG
        return ChangeKind.SESSION_LOG
    if path.suffix == config.TODO_FILE_SUFFIX and _is_under(path, todos_dir):
        return ChangeKind.TODO
    if scope.startswith(ISSUES_SCOPE_PREFIX):
        return ChangeKind.ISSUE
    if scope == TASKS_SCOPE:
        return ChangeKind.TASK
    return ChangeKind.IGNORED


def watch_roots(roots: list[Path]) -> list[Path]:
    """Directories to hand to awatch for ``roots``.

    A root that does not exist yet is replaced by its parent so files created
    under it later are still seen; the glob filter keeps matches scoped.
    Roots already covered by another watched root are dropped.
    """
    resolved: list[Path] = []
    for root in roots:
        target = root if root.exists() else root.parent
        if target.exists() and target not in resolved:
            resolved.append(target)
    return [p for p in resolved if not any(p != other and _is_under(p, other) for other in resolved)]


class GlobFilter(DefaultFilter):
    """Default ignores plus an allow-list of fnmatch patterns."""

    def __init__(self, patterns: list[str]):
        super().__init__()
        self.patterns = patterns

    def __call__(self, change: Change, path: str) -> bool:
        return super().__call__(change, path) and any(fnmatch(path, pattern) for pattern in self.patterns)


class ScopedWatcher:
    """Background awatch loop for one scope; hands each batch to ``on_changes``."""

    def __init__(
        self,
        scope: str,
        roots: list[Path],
        patterns: list[str],
        on_changes: Callable[[ChangeBatch], Awaitable[None]],
        debounce_ms: int = config.WATCH_DEBOUNCE_MS,
        step_ms: int = config.WATCH_STEP_MS,
    ):
        self.scope = scope
        self.roots = roots
        self.watch_filter = GlobFilter(patterns)
        self.on_changes = on_changes
        self.debounce_ms = debounce_ms
        self.step_ms = step_ms
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            logger.warning("Watcher %s already running", self.scope)
            return
        self._running = True
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._watch_loop(self._stop_event))
        logger.info("File watcher started for %s", self.scope)

    async def stop(self) -> None:
        self._running = False
        if self._stop_event:
            self._stop_event.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("File watcher stopped for %s", self.scope)

    async def _watch_loop(self, stop_event: asyncio.Event) -> None:
        watch_paths = watch_roots(self.roots)
        if not watch_paths:
            logger.warning("No watch paths exist for %s, watcher has nothing to monitor", self.scope)
            self._running = False
            return

        logger.info("Watching %d directories for %s: %s", len(watch_paths), self.scope, [str(p) for p in watch_paths])

        try:
            async for changes in awatch(
                *watch_paths,
                watch_filter=self.watch_filter,
                debounce=self.debounce_ms,
                step=self.step_ms,
                stop_event=stop_event,
            ):
                if not self._running:
                    break
                batch = self._classify_changes(changes)
                if not batch:
                    continue
                logger.debug("Detected %d file changes for %s", len(batch), self.scope)
                try:
                    await self.on_changes(batch)
                except Exception:
                    logger.exception("Error handling changed files for %s", self.scope)
        except asyncio.CancelledError:
            logger.info("File watcher task cancelled for %s", self.scope)
        except Exception as e:
            logger.error("File watcher error for %s: %s", self.scope, e)
        finally:
            self._running = False

    @staticmethod
    def _classify_changes(changes: set[tuple[Change, str]]) -> ChangeBatch:
        """Turn raw watchfiles changes into sorted (change_type, path) pairs."""
        result: ChangeBatch = []
        for change_type, path_str in changes:
            if change_type == Change.deleted:
                result.append(("deleted", Path(path_str)))
            elif change_type == Change.added:
                result.append(("added", Path(path_str)))
            elif change_type == Change.modified:
                result.append(("modified", Path(path_str)))
        return sorted(result, key=lambda item: str(item[1]))


class ChangeNotifier:
    """Owns one watcher per scope and turns file changes into bus events."""

    def __init__(
        self,
        bus: EventBus,
        reader: SessionLogReader,
        merger: SessionIndexMerger,
        resolver: SubagentStatusResolver,
        task_reader: TaskReader,
        debounce_ms: int = config.WATCH_DEBOUNCE_MS,
        step_ms: int = config.WATCH_STEP_MS,
    ):
        self.bus = bus
        self.reader = reader
        self.merger = merger
        self.resolver = resolver
        self.task_reader = task_reader
        self.projects_dir = merger.projects_dir
        self.todos_dir = resolver.todos_dir
        self.tasks_dir = task_reader.tasks_dir
        self.debounce_ms = debounce_ms
        self.step_ms = step_ms
        self._watchers: dict[str, ScopedWatcher] = {}
        self._issue_loaders: dict[str, IssueLoader] = {}

    def is_watching(self, scope: str = CLAUDE_SCOPE) -> bool:
        watcher = self._watchers.get(scope)
        return bool(watcher and watcher.is_running)

    @property
    def scopes(self) -> list[str]:
        return sorted(self._watchers)

    async def _start_scope(
        self,
        scope: str,
        roots: list[Path],
        patterns: list[str],
        on_changes: Callable[[ChangeBatch], Awaitable[None]],
    ) -> None:
        # Restarting a scope must never leave two loops dispatching.
        await self._stop_scope(scope)
        watcher = ScopedWatcher(scope, roots, patterns, on_changes, self.debounce_ms, self.step_ms)
        self._watchers[scope] = watcher
        watcher.start()

    async def _stop_scope(self, scope: str) -> None:
        watcher = self._watchers.pop(scope, None)
        if watcher:
            await watcher.stop()

    async def start_watching(self) -> None:
        patterns = [
            str(self.projects_dir / "**" / config.SESSIONS_INDEX_FILENAME),
            str(self.projects_dir / "**" / f"*{config.SESSION_LOG_SUFFIX}"),
            str(self.todos_dir / f"*{config.TODO_FILE_SUFFIX}"),
        ]
        await self._start_scope(
            CLAUDE_SCOPE,
            [self.projects_dir, self.todos_dir],
            patterns,
            lambda batch: self.handle_changes(batch, CLAUDE_SCOPE),
        )

    async def stop_watching(self) -> None:
        await self._stop_scope(CLAUDE_SCOPE)

    async def start_issue_watcher(self, project_path: str, loader: IssueLoader) -> None:
        scope = f"{ISSUES_SCOPE_PREFIX}{project_path}"
        issues_dir = Path(project_path) / config.ISSUES_DIRNAME
        self._issue_loaders[project_path] = loader
        await self._start_scope(
            scope,
            [issues_dir],
            [str(issues_dir / "*.md")],
            lambda batch: self.handle_changes(batch, scope),
        )

    async def stop_issue_watcher(self, project_path: str) -> None:
        await self._stop_scope(f"{ISSUES_SCOPE_PREFIX}{project_path}")
        self._issue_loaders.pop(project_path, None)

    async def start_tasks_watcher(self) -> None:
        await self._start_scope(
            TASKS_SCOPE,
            [self.tasks_dir],
            [str(self.tasks_dir / "**" / "*.json")],
            lambda batch: self.handle_changes(batch, TASKS_SCOPE),
        )

    async def stop_tasks_watcher(self) -> None:
        await self._stop_scope(TASKS_SCOPE)

    async def stop_all(self) -> None:
        for scope in list(self._watchers):
            await self._stop_scope(scope)
        self._issue_loaders.clear()

    async def handle_changes(self, batch: ChangeBatch, scope: str = CLAUDE_SCOPE) -> list[ChangeKind]:
        """Recompute and publish for one debounced batch.

        Per-session message events go out as each log is seen; the list
        snapshots are recomputed once per batch afterwards.
        """
        kinds: list[ChangeKind] = []
        notified_sessions: set[str] = set()
        refresh_sessions = refresh_subagents = refresh_issues = refresh_tasks = False

        for _, path in batch:
            kind = classify_change(path, self.todos_dir, scope)
            kinds.append(kind)
            if kind == ChangeKind.INDEX:
                refresh_sessions = True
            elif kind == ChangeKind.SUBAGENT_LOG or kind == ChangeKind.TODO:
                refresh_subagents = True
            elif kind == ChangeKind.SESSION_LOG:
                session_id = path.name[: -len(config.SESSION_LOG_SUFFIX)]
                self.reader.invalidate(session_id)
                if session_id not in notified_sessions:
                    notified_sessions.add(session_id)
                    await self.bus.publish(MessagesChanged(sessionId=session_id))
                # A new log file is itself a new session.
                refresh_sessions = True
            elif kind == ChangeKind.ISSUE:
                refresh_issues = True
            elif kind == ChangeKind.TASK:
                refresh_tasks = True

        if refresh_sessions:
            await self.bus.publish(SessionsChanged(sessions=await self.merger.list_sessions()))
        if refresh_subagents:
            await self.bus.publish(SubagentsChanged(subagents=await self.resolver.list_active()))
        if refresh_issues:
            project_path = scope[len(ISSUES_SCOPE_PREFIX):]
            loader = self._issue_loaders.get(project_path)
            if loader is not None:
                await self.bus.publish(IssuesChanged(projectPath=project_path, issues=await loader(project_path)))
        if refresh_tasks:
            await self.bus.publish(TasksChanged(tasks=await self.task_reader.get_all_tasks()))
        return kinds
