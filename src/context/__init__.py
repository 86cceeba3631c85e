"""Project and active-file context gathering."""

from .files import read_file_context, smart_truncate
from .models import FileContext, ProjectContext
from .project import ProjectScanner, default_context
from .provider import WorkspaceContextProvider

__all__ = [
    "FileContext",
    "ProjectContext",
    "ProjectScanner",
    "WorkspaceContextProvider",
    "default_context",
    "read_file_context",
    "smart_truncate",
]
