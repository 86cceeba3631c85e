"""Tests for the workspace context provider."""

import json

import pytest

from src.context import WorkspaceContextProvider


class TestWorkspaceContextProvider:
    """Tests for WorkspaceContextProvider."""

    @pytest.mark.asyncio
    async def test_project_context(self, tmp_path):
        (tmp_path / "package.json").write_text(json.dumps({"dependencies": {"next": "14"}}))
        provider = WorkspaceContextProvider(tmp_path)

        context = await provider.get_project_context()

        assert context.framework == "next"

    @pytest.mark.asyncio
    async def test_no_active_file(self, tmp_path):
        provider = WorkspaceContextProvider(tmp_path)
        assert await provider.get_active_file_context() is None

    @pytest.mark.asyncio
    async def test_active_file(self, tmp_path):
        source = tmp_path / "views.py"
        source.write_text("def index():\n    pass\n")
        provider = WorkspaceContextProvider(tmp_path, active_file=source, cursor_line=2)

        context = await provider.get_active_file_context()

        assert context.relative_path == "views.py"
        assert context.cursor_line == 2
        assert "def index()" in context.content

    @pytest.mark.asyncio
    async def test_unreadable_active_file(self, tmp_path):
        provider = WorkspaceContextProvider(tmp_path, active_file=tmp_path / "gone.py")
        assert await provider.get_active_file_context() is None
