"""
Shared utility functions for templatize.
"""
import bisect
import fnmatch
import os
import tempfile
from pathlib import Path

from .config import logger


def offset_to_line_col(content, offset):
    """
    Converts a character offset into a 1-based (line, column) pair.

    Args:
        content (str): The text the offset points into.
        offset (int): Character offset.

    Returns:
        tuple: (line, column), both starting at 1.
    """
    line = content.count("\n", 0, offset) + 1
    line_start = content.rfind("\n", 0, offset) + 1
    return line, offset - line_start + 1


class LineIndex:
    """Maps (line, column) positions back to character offsets."""

    def __init__(self, content):
        self.starts = [0]
        for index, char in enumerate(content):
            if char == "\n":
                self.starts.append(index + 1)

    def offset(self, line, column):
        """Offset of a 1-based line and 0-based column."""
        return self.starts[line - 1] + column

    def line_col(self, offset):
        """1-based (line, column) of an offset."""
        line = bisect.bisect_right(self.starts, offset)
        return line, offset - self.starts[line - 1] + 1


class ByteIndex:
    """Converts UTF-8 byte offsets (as reported by tree-sitter) to character offsets."""

    def __init__(self, content):
        self.ascii = content.isascii()
        self.char_at = None
        if not self.ascii:
            char_at = []
            for index, char in enumerate(content):
                char_at.extend([index] * len(char.encode("utf-8")))
            char_at.append(len(content))
            self.char_at = char_at

    def to_char(self, byte_offset):
        if self.ascii:
            return byte_offset
        return self.char_at[byte_offset]


def atomic_write(path, content, encoding="utf-8"):
    """
    Writes text to a file atomically.

    The content is staged in a temporary file next to the target and then
    published with os.replace, so readers never see a half-written file.

    Args:
        path (str | Path): Destination file.
        content (str): Text to write.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding=encoding,
        newline="",
        dir=str(target.parent),
        prefix=f".{target.name}.",
        suffix=".tmp",
        delete=False,
    ) as tmp_file:
        tmp_file.write(content)
        tmp_path = tmp_file.name
    try:
        if target.exists():
            os.chmod(tmp_path, target.stat().st_mode & 0o777)
        os.replace(tmp_path, target)
    except OSError:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
    logger.debug(f"Wrote {target}")


def read_text(path, encoding="utf-8"):
    """Reads a file keeping its newlines untouched."""
    with open(path, "r", encoding=encoding, newline="") as f:
        return f.read()


def find_project_files(base_dir, ignore=None):
    """
    Walks a project directory and yields file paths relative to it.

    Args:
        base_dir (str | Path): Project root.
        ignore (list): Directory or file names (or glob patterns) to skip.

    Yields:
        str: POSIX-style relative paths in sorted order.
    """
    base = Path(base_dir)
    ignore = list(ignore or [])
    for root, dirs, files in os.walk(base):
        dirs[:] = sorted(d for d in dirs if not _is_ignored(d, ignore))
        for name in sorted(files):
            if _is_ignored(name, ignore):
                continue
            yield (Path(root) / name).relative_to(base).as_posix()


def _is_ignored(name, ignore):
    return any(name == pattern or fnmatch.fnmatch(name, pattern) for pattern in ignore)
