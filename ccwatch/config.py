"""ccwatch configuration."""
import os
from pathlib import Path


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


# Claude data root (~/.claude unless overridden)
CLAUDE_DIR = Path(os.getenv("CCWATCH_CLAUDE_DIR", str(Path.home() / ".claude"))).expanduser()
PROJECTS_DIR = CLAUDE_DIR / "projects"
TODOS_DIR = CLAUDE_DIR / "todos"
TASKS_DIR = CLAUDE_DIR / "tasks"

# On-disk names owned by Claude Code
SESSIONS_INDEX_FILENAME = "sessions-index.json"
SESSION_LOG_SUFFIX = ".jsonl"
TODO_FILE_SUFFIX = ".json"
SUBAGENTS_DIRNAME = "subagents"
ISSUES_DIRNAME = ".beans"

# Ingestion tuning
HEADER_READ_BYTES = _env_int("CCWATCH_HEADER_READ_BYTES", 16384)
PREVIEW_CHARS = _env_int("CCWATCH_PREVIEW_CHARS", 100)
STALE_THRESHOLD_SECONDS = _env_int("CCWATCH_STALE_THRESHOLD_SECONDS", 5 * 60)

# Feature flags
SHOW_EMPTY_INITIALIZING = _env_bool("CCWATCH_SHOW_EMPTY_INITIALIZING", False)
AUTOSTART_WATCHERS = _env_bool("CCWATCH_AUTOSTART_WATCHERS", True)

# Watcher debounce (passed straight to watchfiles.awatch)
WATCH_DEBOUNCE_MS = _env_int("CCWATCH_WATCH_DEBOUNCE_MS", 1600)
WATCH_STEP_MS = _env_int("CCWATCH_WATCH_STEP_MS", 100)

# Server settings
HOST = os.getenv("CCWATCH_HOST", "127.0.0.1")
PORT = _env_int("CCWATCH_PORT", 8000)
LOG_LEVEL = os.getenv("CCWATCH_LOG_LEVEL", "INFO").upper()

# CORS
FRONTEND_ORIGIN = os.getenv("CCWATCH_FRONTEND_ORIGIN", "http://localhost:3000")
