import json
import tempfile
import unittest
from pathlib import Path

from ccwatch.parsers.tasks import TaskReader


class TaskReaderTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.tasks_dir = Path(tmpdir.name) / "tasks"
        self.reader = TaskReader(self.tasks_dir)

    def _write(self, session_id: str, name: str, payload) -> None:
        session_dir = self.tasks_dir / session_id
        session_dir.mkdir(parents=True, exist_ok=True)
        text = payload if isinstance(payload, str) else json.dumps(payload)
        (session_dir / name).write_text(text, encoding="utf-8")

    async def test_reads_tasks_and_stamps_session(self) -> None:
        self._write("s1", "1.json", {
            "id": "1",
            "subject": "Write parser",
            "description": "JSONL",
            "status": "in_progress",
            "blocks": ["2"],
            "blockedBy": [],
            "owner": "ignored extra field",
        })
        self._write("s1", "2.json", {"subject": "No id", "status": "pending"})
        self._write("s1", ".lock.json", {"id": "hidden"})
        self._write("s2", "broken.json", "{nope")

        with self.assertLogs("ccwatch.tasks", level="WARNING"):
            tasks = await self.reader.get_all_tasks()

        self.assertEqual([(t.id, t.sessionId, t.status) for t in tasks], [("1", "s1", "in_progress"), ("2", "s1", "pending")])
        self.assertEqual(tasks[0].blocks, ["2"])

    async def test_missing_directories(self) -> None:
        self.assertEqual(await self.reader.get_all_tasks(), [])
        self.assertEqual(await self.reader.get_session_tasks("s1"), [])


if __name__ == "__main__":
    unittest.main()
