import json
import os
import tempfile
import unittest
from pathlib import Path

from ccwatch.filesystem import FileSystem
from ccwatch.models import TextContent, ToolResultContent, ToolUseContent
from ccwatch.parsers.sessions import SessionLogReader, parse_content

SESSION_ID = "0b5c4a8e-1111-4222-8333-444455556666"


class _CountingFileSystem(FileSystem):
    def __init__(self) -> None:
        self.read_text_calls = 0
        self.stat_calls = 0

    async def read_text(self, path: Path) -> str:
        self.read_text_calls += 1
        return await super().read_text(path)

    async def stat(self, path: Path):
        self.stat_calls += 1
        return await super().stat(path)


def _user(uuid: str, content, timestamp: str = "2026-02-16T10:00:00Z", **extra) -> dict:
    return {"type": "user", "uuid": uuid, "timestamp": timestamp, "message": {"role": "user", "content": content}, **extra}


def _assistant(uuid: str, content, timestamp: str = "2026-02-16T10:00:01Z") -> dict:
    return {"type": "assistant", "uuid": uuid, "timestamp": timestamp, "message": {"role": "assistant", "content": content}}


class SessionParserTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.projects_dir = Path(tmpdir.name) / "projects"
        self.project_dir = self.projects_dir / "-tmp-proj"
        self.project_dir.mkdir(parents=True)
        self.fs = _CountingFileSystem()
        self.reader = SessionLogReader(self.projects_dir, self.fs)

    def _write_jsonl(self, lines: list, name: str = f"{SESSION_ID}.jsonl") -> Path:
        path = self.project_dir / name
        path.write_text("".join((line if isinstance(line, str) else json.dumps(line)) + "\n" for line in lines), encoding="utf-8")
        return path

    def _append(self, path: Path, lines: list[dict]) -> None:
        with path.open("a", encoding="utf-8") as handle:
            for line in lines:
                handle.write(json.dumps(line) + "\n")

    async def test_thinking_blocks_are_dropped_but_sibling_text_kept(self) -> None:
        self._write_jsonl([
            _assistant("m1", [
                {"type": "thinking", "thinking": "internal"},
                {"type": "text", "text": "Visible answer"},
            ]),
        ])

        messages = await self.reader.read_messages(SESSION_ID)

        self.assertEqual(len(messages), 1)
        self.assertEqual(messages[0].content, [TextContent(text="Visible answer")])

    async def test_tool_blocks_require_identifiers(self) -> None:
        blocks = parse_content([
            {"type": "tool_use", "id": "toolu_1", "name": "Read", "input": {"file_path": "/tmp/a"}},
            {"type": "tool_use", "name": "Read"},
            {"type": "tool_result", "tool_use_id": "toolu_1", "content": "ok"},
            {"type": "tool_result", "content": "orphan"},
            {"type": "image", "source": {}},
        ])

        self.assertEqual(blocks, [
            ToolUseContent(id="toolu_1", name="Read", input={"file_path": "/tmp/a"}),
            ToolResultContent(tool_use_id="toolu_1", content="ok"),
        ])

    async def test_string_content_becomes_single_text_block(self) -> None:
        self._write_jsonl([_user("m1", "hello")])

        messages = await self.reader.read_messages(SESSION_ID)

        self.assertEqual(messages[0].role, "user")
        self.assertEqual(messages[0].sessionId, SESSION_ID)
        self.assertEqual(messages[0].timestamp, "2026-02-16T10:00:00Z")
        self.assertEqual(messages[0].content, [TextContent(text="hello")])

    async def test_non_message_records_and_malformed_lines_are_skipped(self) -> None:
        self._write_jsonl([
            {"type": "summary", "summary": "x"},
            "{not json",
            {"type": "system", "uuid": "s1", "message": {"role": "user", "content": "x"}},
            {"type": "user", "uuid": "m0"},
            _user("m1", "kept"),
        ])

        messages = await self.reader.read_messages(SESSION_ID)

        self.assertEqual([m.messageId for m in messages], ["m1"])

    async def test_second_read_without_change_only_stats(self) -> None:
        self._write_jsonl([_user("m1", "hello"), _assistant("m2", [{"type": "text", "text": "hi"}])])

        first = await self.reader.read_messages(SESSION_ID)
        reads_after_first = self.fs.read_text_calls
        second = await self.reader.read_messages(SESSION_ID)

        self.assertEqual(first, second)
        self.assertEqual(reads_after_first, 1)
        self.assertEqual(self.fs.read_text_calls, 1)

    async def test_appended_lines_are_picked_up(self) -> None:
        path = self._write_jsonl([_user("m1", "hello")])
        before = await self.reader.read_messages(SESSION_ID)

        self._append(path, [_assistant("m2", [{"type": "text", "text": "hi"}])])
        after = await self.reader.read_messages(SESSION_ID)

        self.assertTrue({m.messageId for m in before}.issubset({m.messageId for m in after}))
        self.assertEqual([m.messageId for m in after], ["m1", "m2"])
        self.assertEqual(self.fs.read_text_calls, 2)

    async def test_invalidate_forces_reparse_of_same_size_edit(self) -> None:
        self._write_jsonl([_user("m1", "aaaa")])
        await self.reader.read_messages(SESSION_ID)

        # Same size, different bytes: invisible to the size watermark.
        self._write_jsonl([_user("m1", "bbbb")])
        cached = await self.reader.read_messages(SESSION_ID)
        self.assertEqual(cached[0].content, [TextContent(text="aaaa")])

        self.reader.invalidate(SESSION_ID)
        fresh = await self.reader.read_messages(SESSION_ID)
        self.assertEqual(fresh[0].content, [TextContent(text="bbbb")])

    async def test_missing_session_returns_empty(self) -> None:
        self.assertEqual(await self.reader.read_messages("does-not-exist"), [])
        self.assertIsNone(await self.reader.find_session_path("does-not-exist"))

    async def test_missing_projects_dir_returns_empty(self) -> None:
        reader = SessionLogReader(self.projects_dir / "nope", self.fs)
        self.assertEqual(await reader.read_messages(SESSION_ID), [])

    async def test_read_header_extracts_cwd_preview_and_timestamp(self) -> None:
        path = self._write_jsonl([
            {"type": "summary", "summary": "x"},
            _user("m1", [{"type": "text", "text": "x" * 150}], timestamp="2024-01-01T00:00:00.123Z", cwd="/work/app"),
        ])

        session = await self.reader.read_header(path, "/tmp/proj")

        assert session is not None
        self.assertEqual(session.id, SESSION_ID)
        self.assertEqual(session.projectPath, "/work/app")
        self.assertEqual(session.startedAt, "2024-01-01T00:00:00Z")
        self.assertEqual(session.preview, "x" * 100)
        self.assertEqual(session.messageCount, 0)
        self.assertEqual(session.source, "log")

    async def test_read_header_only_reads_prefix(self) -> None:
        reader = SessionLogReader(self.projects_dir, self.fs, header_bytes=64)
        path = self._write_jsonl([
            {"type": "summary", "summary": "s" * 100},
            _user("m1", "late prompt", cwd="/work/app"),
        ])

        session = await reader.read_header(path, "/tmp/proj")

        assert session is not None
        self.assertEqual(session.preview, "New session")
        self.assertEqual(session.projectPath, "/tmp/proj")

    async def test_read_header_falls_back_to_file_times(self) -> None:
        path = self._write_jsonl([{"type": "summary", "summary": "no timestamps"}])
        os.utime(path, (1_700_000_000, 1_700_000_000))

        session = await self.reader.read_header(path, "/tmp/proj")

        assert session is not None
        self.assertEqual(session.lastMessageAt, "2023-11-14T22:13:20Z")
        self.assertTrue(session.startedAt)

    async def test_read_header_empty_or_missing_file(self) -> None:
        empty = self.project_dir / "empty.jsonl"
        empty.write_text("", encoding="utf-8")

        self.assertIsNone(await self.reader.read_header(empty, "/tmp/proj"))
        self.assertIsNone(await self.reader.read_header(self.project_dir / "missing.jsonl", "/tmp/proj"))


if __name__ == "__main__":
    unittest.main()
