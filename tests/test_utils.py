"""
Unit tests for templatize.utils module
"""
import os
import shutil
import tempfile
import unittest
from pathlib import Path

from templatize.utils import ByteIndex, LineIndex, atomic_write, find_project_files, offset_to_line_col, read_text


class TestPositions(unittest.TestCase):
    """Offset and line/column conversions"""

    def test_offset_to_line_col(self):
        content = "ab\ncd\n\nef"
        self.assertEqual(offset_to_line_col(content, 0), (1, 1))
        self.assertEqual(offset_to_line_col(content, 4), (2, 2))
        self.assertEqual(offset_to_line_col(content, 7), (4, 1))

    def test_line_index(self):
        index = LineIndex("ab\ncd\nef")
        self.assertEqual(index.offset(2, 0), 3)
        self.assertEqual(index.offset(3, 1), 7)
        self.assertEqual(index.line_col(4), (2, 2))
        self.assertEqual(index.line_col(0), (1, 1))

    def test_byte_index_ascii(self):
        self.assertEqual(ByteIndex("hello").to_char(3), 3)

    def test_byte_index_non_ascii(self):
        content = "é⦃x"
        index = ByteIndex(content)
        self.assertEqual(index.to_char(0), 0)
        self.assertEqual(index.to_char(2), 1)
        self.assertEqual(index.to_char(5), 2)
        self.assertEqual(index.to_char(6), 3)


class TestFiles(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_atomic_write_creates_parents(self):
        target = Path(self.temp_dir) / "a" / "b.txt"
        atomic_write(target, "line\r\nnext\n")
        self.assertEqual(read_text(target), "line\r\nnext\n")
        self.assertEqual(os.listdir(target.parent), ["b.txt"])

    def test_atomic_write_keeps_mode(self):
        target = Path(self.temp_dir) / "script.sh"
        target.write_text("old")
        os.chmod(target, 0o755)
        atomic_write(target, "new")
        self.assertEqual(target.stat().st_mode & 0o777, 0o755)
        self.assertEqual(target.read_text(), "new")

    def test_find_project_files(self):
        for name in ["README.md", "src/app.jsx", "node_modules/x/index.js", "dist/out.js", "src/a.pyc"]:
            path = Path(self.temp_dir) / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("x")

        files = list(find_project_files(self.temp_dir, ["node_modules", "dist", "*.pyc"]))
        self.assertEqual(files, ["README.md", "src/app.jsx"])

    def test_find_project_files_without_ignore(self):
        (Path(self.temp_dir) / ".env").write_text("x")
        self.assertEqual(list(find_project_files(self.temp_dir)), [".env"])


if __name__ == "__main__":
    unittest.main()
