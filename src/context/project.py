"""Project scanner that derives framework constraints from manifests."""

import json
import logging
import tomllib
from pathlib import Path
from typing import Any

from .models import ProjectContext

logger = logging.getLogger(__name__)


# Dependency to constraint mapping
DEPENDENCY_CONSTRAINTS = {
    # Styling
    "tailwindcss": "Strictly use Tailwind CSS utility classes. No inline styles or custom CSS unless absolutely necessary.",
    "styled-components": "Use styled-components for styling. Follow the component-based styling pattern.",
    "emotion": "Use Emotion for CSS-in-JS styling.",
    "@emotion/react": "Use Emotion for CSS-in-JS styling.",
    "sass": "Project uses SCSS/Sass for styling.",
    # Animation
    "framer-motion": "Use Framer Motion for all animations. Prefer spring physics and gesture-based interactions.",
    "react-spring": "Use react-spring for physics-based animations.",
    "gsap": "Use GSAP for complex animations and timelines.",
    # UI libraries
    "@shadcn/ui": "Use Shadcn/UI components. Follow their composition patterns and styling conventions.",
    "shadcn-ui": "Use Shadcn/UI components. Follow their composition patterns and styling conventions.",
    "@radix-ui/react-dialog": "Project uses Radix UI primitives. Build accessible components on top of these.",
    "@chakra-ui/react": "Use Chakra UI components and design tokens.",
    "@mui/material": "Use Material-UI components and theming system.",
    "antd": "Use Ant Design components and design system.",
    # Frameworks
    "react": "This is a React project. Use functional components with hooks. Prefer composition over inheritance.",
    "react-dom": "This is a React project. Use functional components with hooks.",
    "next": "This is a Next.js project. Consider SSR/SSG implications. Use App Router patterns if applicable.",
    "vue": "This is a Vue.js project. Use Composition API with <script setup> syntax.",
    "nuxt": "This is a Nuxt.js project. Follow Nuxt conventions for routing and data fetching.",
    "svelte": "This is a Svelte project. Use reactive declarations and Svelte-specific patterns.",
    "@angular/core": "This is an Angular project. Follow Angular conventions and use dependency injection.",
    # State management
    "zustand": "Use Zustand for state management. Keep stores small and focused.",
    "redux": "Use Redux for state management with proper action/reducer patterns.",
    "@reduxjs/toolkit": "Use Redux Toolkit for state management. Prefer createSlice and RTK Query.",
    "jotai": "Use Jotai for atomic state management.",
    "recoil": "Use Recoil for state management with atoms and selectors.",
    # TypeScript
    "typescript": "This is a TypeScript project. Use strict typing. Avoid `any` type.",
}

JS_FRAMEWORKS = ("react", "vue", "svelte", "next", "nuxt")
JS_STYLING = ("tailwindcss", "styled-components", "emotion", "sass")
JS_ANIMATION = ("framer-motion", "react-spring", "gsap")

PYTHON_FRAMEWORKS = {
    "django": "Use Django framework conventions. Follow MVT pattern.",
    "flask": "Use Flask framework. Follow Flask application patterns.",
    "fastapi": "Use FastAPI with async patterns. Use Pydantic for validation.",
}

PYTHON_PROJECT = "This is a Python project."
NO_JS_CONSTRAINTS = "No specific framework constraints detected."
NO_CONTEXT = "No specific project context detected. Provide general best practices."


def default_context() -> ProjectContext:
    """Context used when no manifest is found."""
    return ProjectContext(language="unknown", constraints=[NO_CONTEXT])


def parse_package_json(package_json: dict[str, Any]) -> ProjectContext:
    """Derive context from a package.json document."""
    all_deps: dict[str, Any] = {
        **(package_json.get("dependencies") or {}),
        **(package_json.get("devDependencies") or {}),
    }

    constraints: list[str] = []
    framework = styling = animation = ui_library = None

    for dep in all_deps:
        if dep in DEPENDENCY_CONSTRAINTS:
            constraints.append(DEPENDENCY_CONSTRAINTS[dep])

        if dep in JS_FRAMEWORKS:
            framework = dep
        if dep in JS_STYLING:
            styling = dep
        if dep in JS_ANIMATION:
            animation = dep
        if "shadcn" in dep or "chakra" in dep or "mui" in dep or dep == "antd":
            ui_library = dep

    return ProjectContext(
        framework=framework,
        styling=styling,
        animation=animation,
        ui_library=ui_library,
        language="typescript" if "typescript" in all_deps else "javascript",
        constraints=constraints or [NO_JS_CONSTRAINTS],
    )


def _python_context(requirement_names: list[str]) -> ProjectContext:
    constraints = [PYTHON_PROJECT]
    framework = None
    for name, constraint in PYTHON_FRAMEWORKS.items():
        if any(req.startswith(name) for req in requirement_names):
            constraints.append(constraint)
            framework = framework or name
    return ProjectContext(framework=framework, language="python", constraints=constraints)


def parse_requirements(content: str) -> ProjectContext:
    """Derive context from a requirements.txt file."""
    lines = [line.strip().lower() for line in content.splitlines()]
    return _python_context([line for line in lines if line and not line.startswith("#")])


def parse_pyproject(document: dict[str, Any]) -> ProjectContext:
    """Derive context from a parsed pyproject.toml document."""
    dependencies = document.get("project", {}).get("dependencies", []) or []
    return _python_context([str(dep).strip().lower() for dep in dependencies])


class ProjectScanner:
    """
    Scans a workspace root for dependency manifests.

    Manifests are tried in order: package.json, requirements.txt,
    pyproject.toml. Unreadable or malformed files are skipped.
    """

    def __init__(self, root: Path | str):
        self.root = Path(root)

    def scan(self) -> ProjectContext:
        package_json = self.root / "package.json"
        if package_json.is_file():
            try:
                return parse_package_json(json.loads(package_json.read_text(encoding="utf-8")))
            except (OSError, ValueError) as e:
                logger.debug(f"Skipping unreadable package.json: {e}")

        requirements = self.root / "requirements.txt"
        if requirements.is_file():
            try:
                return parse_requirements(requirements.read_text(encoding="utf-8"))
            except OSError as e:
                logger.debug(f"Skipping unreadable requirements.txt: {e}")

        pyproject = self.root / "pyproject.toml"
        if pyproject.is_file():
            try:
                return parse_pyproject(tomllib.loads(pyproject.read_text(encoding="utf-8")))
            except (OSError, tomllib.TOMLDecodeError) as e:
                logger.debug(f"Skipping unreadable pyproject.toml: {e}")
                return ProjectContext(language="python", constraints=[PYTHON_PROJECT])

        return default_context()
