import os
import tempfile
import unittest

from koai.errors import FileError
from koai.tooling.files import list_files, read_file_content, write_file_content


class TestFiles(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)

    def _path(self, *parts):
        return os.path.join(self.tmpdir.name, *parts)

    def test_write_then_read_is_unchanged(self):
        content = "line one\r\nline two\n\ttabbed ünïcode\n"
        path = self._path("nested", "dir", "file.txt")

        self.assertTrue(write_file_content(path, content))
        info = read_file_content(path)

        self.assertTrue(info.exists)
        self.assertEqual(info.content, content)
        self.assertEqual(info.size, len(content.encode("utf-8")))
        self.assertIsNotNone(info.last_modified)

    def test_missing_file(self):
        info = read_file_content(self._path("missing.txt"))
        self.assertFalse(info.exists)
        self.assertIsNone(info.content)

    def test_write_without_creating_directories(self):
        with self.assertRaises(FileError) as cm:
            write_file_content(self._path("no", "such", "file.txt"), "x", create_dir=False)
        self.assertIn("file.txt", str(cm.exception))

    def test_read_directory_fails(self):
        with self.assertRaises(FileError):
            read_file_content(self.tmpdir.name)

    def test_list_files(self):
        for name in ("b.py", "a.py", "notes.md"):
            write_file_content(self._path(name), "")
        os.mkdir(self._path("pkg.py"))

        self.assertEqual(list_files(self.tmpdir.name), ["a.py", "b.py", "notes.md"])
        self.assertEqual(list_files(self.tmpdir.name, ".py"), ["a.py", "b.py"])

    def test_list_missing_directory(self):
        with self.assertRaises(FileError):
            list_files(self._path("nope"))


if __name__ == "__main__":
    unittest.main()
