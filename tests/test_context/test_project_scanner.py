"""Tests for manifest-based project detection."""

import json

from src.context.project import (
    DEPENDENCY_CONSTRAINTS,
    NO_CONTEXT,
    NO_JS_CONSTRAINTS,
    PYTHON_FRAMEWORKS,
    PYTHON_PROJECT,
    ProjectScanner,
    parse_package_json,
    parse_pyproject,
    parse_requirements,
)


class TestParsePackageJson:
    """Tests for parse_package_json."""

    def test_react_tailwind_project(self):
        context = parse_package_json(
            {
                "dependencies": {"react": "^18.0.0", "framer-motion": "^11.0.0"},
                "devDependencies": {"tailwindcss": "^3.4.0", "typescript": "^5.0.0"},
            }
        )

        assert context.framework == "react"
        assert context.styling == "tailwindcss"
        assert context.animation == "framer-motion"
        assert context.language == "typescript"
        assert DEPENDENCY_CONSTRAINTS["tailwindcss"] in context.constraints
        assert DEPENDENCY_CONSTRAINTS["typescript"] in context.constraints

    def test_ui_library(self):
        context = parse_package_json({"dependencies": {"vue": "3", "@mui/material": "5"}})
        assert context.framework == "vue"
        assert context.ui_library == "@mui/material"
        assert context.language == "javascript"

    def test_no_known_dependencies(self):
        context = parse_package_json({"dependencies": {"left-pad": "1.0.0"}})
        assert context.framework is None
        assert context.constraints == [NO_JS_CONSTRAINTS]

    def test_missing_sections(self):
        context = parse_package_json({"name": "empty", "dependencies": None})
        assert context.constraints == [NO_JS_CONSTRAINTS]


class TestPythonManifests:
    def test_requirements(self):
        context = parse_requirements("# web\nFastAPI==0.110\nuvicorn\n\n")
        assert context.language == "python"
        assert context.framework == "fastapi"
        assert context.constraints == [PYTHON_PROJECT, PYTHON_FRAMEWORKS["fastapi"]]

    def test_plain_requirements(self):
        context = parse_requirements("requests\n")
        assert context.framework is None
        assert context.constraints == [PYTHON_PROJECT]

    def test_pyproject(self):
        context = parse_pyproject({"project": {"dependencies": ["Django>=5.0", "celery"]}})
        assert context.framework == "django"
        assert PYTHON_FRAMEWORKS["django"] in context.constraints

    def test_pyproject_without_dependencies(self):
        context = parse_pyproject({"tool": {}})
        assert context.constraints == [PYTHON_PROJECT]


class TestProjectScanner:
    """Tests for ProjectScanner against real directories."""

    def test_empty_directory(self, tmp_path):
        context = ProjectScanner(tmp_path).scan()
        assert context.language == "unknown"
        assert context.constraints == [NO_CONTEXT]

    def test_package_json_preferred(self, tmp_path):
        (tmp_path / "package.json").write_text(json.dumps({"dependencies": {"svelte": "4"}}))
        (tmp_path / "requirements.txt").write_text("flask\n")

        context = ProjectScanner(tmp_path).scan()
        assert context.framework == "svelte"

    def test_malformed_package_json_falls_through(self, tmp_path):
        (tmp_path / "package.json").write_text("{not json")
        (tmp_path / "requirements.txt").write_text("flask\n")

        context = ProjectScanner(tmp_path).scan()
        assert context.framework == "flask"

    def test_pyproject(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text('[project]\nname = "x"\ndependencies = ["fastapi"]\n')
        assert ProjectScanner(tmp_path).scan().framework == "fastapi"

    def test_malformed_pyproject(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text("[project\n")
        context = ProjectScanner(tmp_path).scan()
        assert context.language == "python"
        assert context.constraints == [PYTHON_PROJECT]
