import asyncio
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from ccwatch import filesystem
from ccwatch.filesystem import FileSystem


class FileSystemTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.root = Path(tmpdir.name)
        self.fs = FileSystem()

    async def test_exists_runs_in_worker_thread(self) -> None:
        (self.root / "a.jsonl").write_text("{}\n", encoding="utf-8")
        calls: list = []
        real_to_thread = asyncio.to_thread

        async def recording_to_thread(func, *args, **kwargs):
            calls.append(func)
            return await real_to_thread(func, *args, **kwargs)

        with patch.object(filesystem.asyncio, "to_thread", recording_to_thread):
            self.assertTrue(await self.fs.exists(self.root / "a.jsonl"))
            self.assertFalse(await self.fs.exists(self.root / "b.jsonl"))

        self.assertEqual(len(calls), 2)

    async def test_listing_and_reads(self) -> None:
        (self.root / "sub").mkdir()
        (self.root / "log.jsonl").write_text("line one\nline two\n", encoding="utf-8")

        entries = {e.name: e for e in await self.fs.list_dir(self.root)}

        self.assertTrue(entries["sub"].is_dir)
        self.assertTrue(entries["log.jsonl"].is_file)
        self.assertEqual(await self.fs.read_head(self.root / "log.jsonl", 4), b"line")
        self.assertEqual((await self.fs.stat(self.root / "log.jsonl")).size, 18)
        self.assertTrue(self.fs.path_exists(self.root / "sub"))

    async def test_missing_directory_raises_oserror(self) -> None:
        with self.assertRaises(OSError):
            await self.fs.list_dir(self.root / "missing")


if __name__ == "__main__":
    unittest.main()
