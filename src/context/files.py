"""Active-file reading with cursor-aware truncation."""

import logging
from pathlib import Path
from typing import Optional

from .models import FileContext

logger = logging.getLogger(__name__)

MAX_LINES = 2000
HEADER_LINES = 100
CONTEXT_RADIUS = 25

LANGUAGE_BY_SUFFIX = {
    ".py": "python",
    ".ts": "typescript",
    ".tsx": "typescriptreact",
    ".js": "javascript",
    ".jsx": "javascriptreact",
    ".vue": "vue",
    ".svelte": "svelte",
    ".css": "css",
    ".scss": "scss",
    ".html": "html",
    ".json": "json",
    ".md": "markdown",
    ".go": "go",
    ".rs": "rust",
    ".java": "java",
    ".rb": "ruby",
    ".sh": "shellscript",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
}


def detect_language(path: Path) -> str:
    return LANGUAGE_BY_SUFFIX.get(path.suffix.lower(), "plaintext")


def truncate_marker(start: int, end: int) -> str:
    return f"// ... [Lines {start} to {end} truncated] ..."


def smart_truncate(lines: list[str], cursor_line: int) -> tuple[str, bool]:
    """
    Truncate long files while keeping the most relevant parts.

    Files up to MAX_LINES are returned whole. Longer files keep the first
    HEADER_LINES (imports and type definitions) and CONTEXT_RADIUS lines
    either side of the cursor, with markers in place of the gaps.

    Args:
        lines: File content split into lines
        cursor_line: 1-indexed cursor position

    Returns:
        Tuple of (content, truncated)
    """
    total = len(lines)
    if total <= MAX_LINES:
        return "\n".join(lines), False

    cursor = min(max(cursor_line - 1, 0), total - 1)
    header_end = min(HEADER_LINES, total)
    context_start = max(header_end, cursor - CONTEXT_RADIUS)
    context_end = max(context_start, min(total, cursor + CONTEXT_RADIUS + 1))

    parts = list(lines[:header_end])

    if context_start > header_end:
        parts.append(truncate_marker(header_end + 1, context_start))

    if context_end > context_start:
        parts.extend(lines[context_start:context_end])

    if context_end < total:
        parts.append(truncate_marker(context_end + 1, total))

    return "\n".join(parts), True


def read_file_context(
    path: Path | str,
    root: Optional[Path | str] = None,
    cursor_line: int = 1,
) -> Optional[FileContext]:
    """
    Read a file into a FileContext.

    Returns None when the file is missing or cannot be decoded.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"Cannot read active file {path}: {e}")
        return None

    lines = text.splitlines()
    content, truncated = smart_truncate(lines, cursor_line)

    relative = path
    if root is not None:
        try:
            relative = path.resolve().relative_to(Path(root).resolve())
        except ValueError:
            relative = path

    return FileContext(
        relative_path=relative.as_posix(),
        file_name=path.name,
        language=detect_language(path),
        content=content,
        cursor_line=cursor_line,
        total_lines=len(lines),
        truncated=truncated,
    )
