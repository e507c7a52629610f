import tempfile
import unittest
from pathlib import Path

from ccwatch.project_paths import (
    decode_project_dir,
    decode_project_path,
    display_name,
    encode_project_path,
)


class ProjectPathCodecTests(unittest.TestCase):
    def test_encode_replaces_separators(self) -> None:
        self.assertEqual(encode_project_path("/Users/a/my-project"), "-Users-a-my-project")

    def test_round_trip_with_hyphenated_folder_on_disk(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        real = Path(tmpdir.name).resolve() / "my-project"
        real.mkdir()

        decoded = decode_project_path(encode_project_path(str(real)))

        self.assertEqual(decoded.path, str(real))
        self.assertTrue(decoded.verified)

    def test_decode_prefers_first_existing_candidate(self) -> None:
        existing = {"/Users/a/my-project"}
        self.assertEqual(decode_project_dir("-Users-a-my-project", existing.__contains__), "/Users/a/my-project")

    def test_decode_plain_path_when_it_exists(self) -> None:
        existing = {"/Users/a/my/project", "/Users/a/my-project"}
        # Zero re-joined parts is tried first.
        self.assertEqual(decode_project_dir("-Users-a-my-project", existing.__contains__), "/Users/a/my/project")

    def test_fallback_decode_when_nothing_exists(self) -> None:
        decoded = decode_project_path("-a-b-c", lambda _: False)
        self.assertEqual(decoded.path, "/a/b/c")
        self.assertFalse(decoded.verified)

    def test_relative_names_decode_naively(self) -> None:
        decoded = decode_project_path("a-b", lambda _: True)
        self.assertEqual(decoded.path, "a/b")
        self.assertFalse(decoded.verified)

    def test_display_name_is_last_segment(self) -> None:
        self.assertEqual(display_name("/Users/a/my-project"), "my-project")
        self.assertEqual(display_name("/"), "/")


if __name__ == "__main__":
    unittest.main()
