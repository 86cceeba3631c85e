"""Workspace-backed context provider for the refinement pipeline."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from .files import read_file_context
from .models import FileContext, ProjectContext
from .project import ProjectScanner

logger = logging.getLogger(__name__)


class WorkspaceContextProvider:
    """
    Supplies project and active-file context from a directory on disk.

    Both lookups are best-effort: failures produce the default project
    context or no file context instead of an error.
    """

    def __init__(
        self,
        root: Path | str = ".",
        active_file: Optional[Path | str] = None,
        cursor_line: int = 1,
    ):
        self.root = Path(root)
        self.active_file = Path(active_file) if active_file else None
        self.cursor_line = cursor_line
        self._scanner = ProjectScanner(self.root)

    async def get_project_context(self) -> ProjectContext:
        context = await asyncio.to_thread(self._scanner.scan)
        logger.debug(f"Project context: framework={context.framework}, language={context.language}")
        return context

    async def get_active_file_context(self) -> Optional[FileContext]:
        if self.active_file is None:
            return None
        return await asyncio.to_thread(
            read_file_context, self.active_file, self.root, self.cursor_line
        )
