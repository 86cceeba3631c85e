"""Data models for project and active-file context."""

from typing import Optional

from pydantic import BaseModel, Field


class ProjectContext(BaseModel):
    """Project metadata detected from dependency manifests."""

    framework: Optional[str] = None
    styling: Optional[str] = None
    animation: Optional[str] = None
    ui_library: Optional[str] = None
    language: str = "unknown"  # typescript, javascript, python, unknown
    constraints: list[str] = Field(default_factory=list)

    def format_constraints(self) -> str:
        """Format constraints as a bullet list for prompts."""
        if not self.constraints:
            return "No specific constraints."
        return "\n".join(f"- {c}" for c in self.constraints)

    def fingerprint_subset(self) -> dict[str, Optional[str]]:
        """Fields that change the refined output and belong in cache keys."""
        return {"project": self.framework}


class FileContext(BaseModel):
    """Metadata and content of the file the user is working in."""

    relative_path: str
    file_name: str
    language: str
    content: str
    cursor_line: int = 1
    total_lines: int = 0
    truncated: bool = False
