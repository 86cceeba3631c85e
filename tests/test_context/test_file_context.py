"""Tests for active-file reading and truncation."""

from pathlib import Path

from src.context.files import (
    HEADER_LINES,
    MAX_LINES,
    detect_language,
    read_file_context,
    smart_truncate,
    truncate_marker,
)


def numbered(count: int) -> list[str]:
    return [f"line {i}" for i in range(1, count + 1)]


class TestSmartTruncate:
    """Tests for smart_truncate."""

    def test_short_file_untouched(self):
        lines = numbered(MAX_LINES)
        content, truncated = smart_truncate(lines, 10)
        assert truncated is False
        assert content == "\n".join(lines)

    def test_cursor_in_middle(self):
        content, truncated = smart_truncate(numbered(3000), 1500)
        out = content.split("\n")

        assert truncated is True
        assert out[:HEADER_LINES] == numbered(HEADER_LINES)
        assert out[HEADER_LINES] == truncate_marker(101, 1474)
        assert "line 1475" in out
        assert "line 1500" in out
        assert "line 1525" in out
        assert "line 1526" not in out
        assert out[-1] == truncate_marker(1526, 3000)

    def test_cursor_in_header(self):
        content, _ = smart_truncate(numbered(3000), 10)
        out = content.split("\n")
        assert len(out) == HEADER_LINES + 1
        assert out[-1] == truncate_marker(101, 3000)

    def test_cursor_at_end(self):
        content, _ = smart_truncate(numbered(3000), 3000)
        out = content.split("\n")
        assert out[HEADER_LINES] == truncate_marker(101, 2974)
        assert out[-1] == "line 3000"

    def test_cursor_out_of_range_is_clamped(self):
        content, _ = smart_truncate(numbered(3000), 99999)
        assert content.endswith("line 3000")


class TestReadFileContext:
    def test_reads_relative_path(self, tmp_path):
        source = tmp_path / "src" / "App.tsx"
        source.parent.mkdir()
        source.write_text("export default function App() {}\n", encoding="utf-8")

        context = read_file_context(source, root=tmp_path, cursor_line=1)

        assert context.relative_path == "src/App.tsx"
        assert context.file_name == "App.tsx"
        assert context.language == "typescriptreact"
        assert context.total_lines == 1
        assert context.truncated is False

    def test_missing_file(self, tmp_path):
        assert read_file_context(tmp_path / "missing.py") is None

    def test_binary_file(self, tmp_path):
        blob = tmp_path / "blob.bin"
        blob.write_bytes(b"\xff\xfe\x00\x81")
        assert read_file_context(blob) is None

    def test_outside_root_keeps_given_path(self, tmp_path):
        source = tmp_path / "a.py"
        source.write_text("x = 1\n")
        context = read_file_context(source, root=tmp_path / "elsewhere")
        assert context.relative_path == source.as_posix()


def test_detect_language():
    assert detect_language(Path("main.PY")) == "python"
    assert detect_language(Path("notes.txt")) == "plaintext"
