"""Tests for refinement prompt construction."""

from src.context.models import FileContext, ProjectContext
from src.refinement.prompts import (
    DETAILED_GUIDANCE,
    SHORT_GUIDANCE,
    SYSTEM_PROMPT,
    build_prompt,
    length_guidance,
    render_context,
    separate_warning,
)


class TestLengthGuidance:
    def test_short_request(self):
        assert length_guidance("add dark mode") == SHORT_GUIDANCE

    def test_medium_request(self):
        assert length_guidance("add a dark mode toggle to the settings page header") == ""

    def test_long_request(self):
        assert length_guidance(" ".join(["word"] * 51)) == DETAILED_GUIDANCE


class TestBuildPrompt:
    """Tests for build_prompt."""

    def test_without_context(self):
        prompt = build_prompt("add dark mode")
        assert prompt.startswith(SYSTEM_PROMPT)
        assert SHORT_GUIDANCE in prompt
        assert prompt.endswith('User\'s request:\n"add dark mode"')
        assert "# Project Context" not in prompt

    def test_with_context(self):
        project = ProjectContext(
            framework="react",
            language="typescript",
            constraints=["Use functional components."],
        )
        active = FileContext(
            relative_path="src/App.tsx",
            file_name="App.tsx",
            language="typescriptreact",
            content="export default function App() {}",
            cursor_line=3,
        )

        prompt = build_prompt("add dark mode", project, active)

        assert "Framework: react" in prompt
        assert "- Use functional components." in prompt
        assert "src/App.tsx (typescriptreact), cursor at line 3" in prompt
        assert "export default function App() {}" in prompt
        assert prompt.index("# Project Context") < prompt.index("User's request")

    def test_truncated_file_noted(self):
        active = FileContext(
            relative_path="big.py", file_name="big.py", language="python", content="x", truncated=True
        )
        assert "(truncated)" in render_context(None, active)

    def test_empty_context_renders_nothing(self):
        assert render_context(None, None) == ""


class TestSeparateWarning:
    def test_no_warning(self):
        assert separate_warning("Add a toggle.") == (None, "Add a toggle.")

    def test_warning_split(self):
        text = "⚠️ **Your prompt is vague.** Pick one:\n\n1. Option A\n2. Option B"
        warning, content = separate_warning(text)
        assert warning == "⚠️ **Your prompt is vague.** Pick one:"
        assert content == "1. Option A\n2. Option B"

    def test_warning_must_lead(self):
        text = "Intro\n⚠️ **Your prompt is vague.** later\n\nrest"
        assert separate_warning(text) == (None, text)
