"""Parse Claude Code JSONL session logs into Session and Message models."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from ccwatch import config
from ccwatch.date_utils import format_epoch, normalize_iso_date
from ccwatch.filesystem import FileSystem
from ccwatch.models import (
    Message,
    MessageContent,
    Session,
    TextContent,
    ToolResultContent,
    ToolUseContent,
)

logger = logging.getLogger("ccwatch.sessions")

_MESSAGE_RECORD_TYPES = {"user", "assistant"}


class MessageCache:
    """Parsed messages per session, valid while the log has not grown.

    ``bytes_read`` is a growth-only watermark: a cached list is served only
    when the recorded size is at least the current file size.
    """

    def __init__(self) -> None:
        self._bytes_read: dict[str, int] = {}
        self._messages: dict[str, list[Message]] = {}

    def get(self, session_id: str, current_size: int) -> Optional[list[Message]]:
        last_size = self._bytes_read.get(session_id, 0)
        if last_size > 0 and last_size >= current_size:
            return self._messages.get(session_id, [])
        return None

    def put(self, session_id: str, size: int, messages: list[Message]) -> None:
        self._bytes_read[session_id] = size
        self._messages[session_id] = messages

    def invalidate(self, session_id: str) -> None:
        self._bytes_read.pop(session_id, None)
        self._messages.pop(session_id, None)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._bytes_read


def _iter_records(text: str):
    """Yield each parseable JSON object line; malformed lines are skipped."""
    for line in text.splitlines():
        if not line.strip():
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(record, dict):
            yield record


def _first_user_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        for block in content:
            if isinstance(block, dict) and block.get("type") == "text" and block.get("text"):
                return str(block["text"])
    return ""


def parse_content(content: Any) -> list[MessageContent]:
    """Map raw content blocks to MessageContent; thinking blocks are dropped."""
    if isinstance(content, str):
        return [TextContent(text=content)]
    if not isinstance(content, list):
        return []

    result: list[MessageContent] = []
    for block in content:
        if not isinstance(block, dict):
            continue
        block_type = block.get("type")
        if block_type == "text" and block.get("text"):
            result.append(TextContent(text=str(block["text"])))
        elif block_type == "tool_use" and block.get("id") and block.get("name"):
            result.append(ToolUseContent(id=str(block["id"]), name=str(block["name"]), input=block.get("input")))
        elif block_type == "tool_result" and block.get("tool_use_id"):
            content_value = block.get("content")
            result.append(ToolResultContent(
                tool_use_id=str(block["tool_use_id"]),
                content="" if content_value is None else content_value,
            ))
    return result


def parse_message_record(record: dict[str, Any], session_id: str) -> Message | None:
    if record.get("type") not in _MESSAGE_RECORD_TYPES:
        return None
    message = record.get("message")
    if not isinstance(message, dict):
        return None
    role = message.get("role") or record.get("type")
    if role not in _MESSAGE_RECORD_TYPES:
        return None
    return Message(
        messageId=str(record.get("uuid") or ""),
        sessionId=str(record.get("sessionId") or session_id),
        role=role,
        content=parse_content(message.get("content")),
        timestamp=normalize_iso_date(record.get("timestamp")),
    )


def parse_messages(text: str, session_id: str) -> list[Message]:
    messages: list[Message] = []
    for record in _iter_records(text):
        parsed = parse_message_record(record, session_id)
        if parsed is not None:
            messages.append(parsed)
    return messages


class SessionLogReader:
    """Reads session headers and message lists from ``<projects>/<dir>/<id>.jsonl``."""

    def __init__(
        self,
        projects_dir: Path | None = None,
        fs: FileSystem | None = None,
        cache: MessageCache | None = None,
        header_bytes: int = config.HEADER_READ_BYTES,
        preview_chars: int = config.PREVIEW_CHARS,
    ):
        self.projects_dir = projects_dir or config.PROJECTS_DIR
        self.fs = fs or FileSystem()
        self.cache = cache or MessageCache()
        self.header_bytes = header_bytes
        self.preview_chars = preview_chars

    async def read_header(self, file_path: Path, fallback_project_path: str) -> Session | None:
        """Build a Session summary from the first few KB of a log.

        The working directory, first timestamp and first user prompt are
        expected near the top of the file, so only ``header_bytes`` are read.
        """
        try:
            head = await self.fs.read_head(file_path, self.header_bytes)
            if not head:
                return None

            project_path = fallback_project_path
            preview = ""
            timestamp = ""
            for record in _iter_records(head.decode("utf-8", errors="ignore")):
                cwd = record.get("cwd")
                if isinstance(cwd, str) and cwd and cwd not in project_path:
                    project_path = cwd

                if not timestamp and record.get("timestamp"):
                    timestamp = normalize_iso_date(record.get("timestamp"))

                if not preview and record.get("type") == "user":
                    message = record.get("message")
                    if isinstance(message, dict):
                        preview = _first_user_text(message.get("content"))[: self.preview_chars]

                if project_path != fallback_project_path and preview and timestamp:
                    break

            stats = await self.fs.stat(file_path)
        except (OSError, ValueError) as exc:
            logger.debug("Unreadable session log %s: %s", file_path, exc)
            return None

        return Session(
            id=file_path.name[: -len(config.SESSION_LOG_SUFFIX)],
            projectPath=project_path,
            startedAt=timestamp or format_epoch(stats.birthtime),
            lastMessageAt=format_epoch(stats.mtime),
            preview=preview or "New session",
            messageCount=0,
            source="log",
        )

    async def find_session_path(self, session_id: str) -> Path | None:
        """Probe every project directory for ``<session_id>.jsonl``."""
        try:
            entries = await self.fs.list_dir(self.projects_dir)
        except OSError:
            return None
        for entry in entries:
            if not entry.is_dir:
                continue
            candidate = self.projects_dir / entry.name / f"{session_id}{config.SESSION_LOG_SUFFIX}"
            try:
                await self.fs.stat(candidate)
            except OSError:
                continue
            return candidate
        return None

    async def read_messages(self, session_id: str) -> list[Message]:
        session_path = await self.find_session_path(session_id)
        if session_path is None:
            return []

        try:
            stats = await self.fs.stat(session_path)
            cached = self.cache.get(session_id, stats.size)
            if cached is not None:
                return cached

            # Whole-file re-parse; the cache is keyed by total size only.
            text = await self.fs.read_text(session_path)
        except OSError as exc:
            logger.debug("Failed to read session %s: %s", session_id, exc)
            return []

        messages = parse_messages(text, session_id)
        self.cache.put(session_id, stats.size, messages)
        return messages

    def invalidate(self, session_id: str) -> None:
        self.cache.invalidate(session_id)
