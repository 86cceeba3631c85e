"""Built-in request templates for common coding tasks."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TemplateCategory(str, Enum):
    """Template groupings."""

    UI = "ui"
    FEATURE = "feature"
    REFACTOR = "refactor"
    FIX = "fix"
    TEST = "test"
    DOCS = "docs"


CATEGORY_LABELS = {
    TemplateCategory.UI: "UI Components",
    TemplateCategory.FEATURE: "Features",
    TemplateCategory.REFACTOR: "Refactoring",
    TemplateCategory.FIX: "Fixes",
    TemplateCategory.TEST: "Testing",
    TemplateCategory.DOCS: "Documentation",
}


@dataclass(frozen=True)
class PromptTemplate:
    """A reusable starting point for a refinement request."""

    id: str
    name: str
    description: str
    template: str
    category: TemplateCategory


PROMPT_TEMPLATES: list[PromptTemplate] = [
    # UI
    PromptTemplate(
        id="form",
        name="Add Form",
        description="Create a form with validation",
        template="Add a form with fields for [field1, field2, field3]. Include input validation with clear error messages and a submit button that provides feedback.",
        category=TemplateCategory.UI,
    ),
    PromptTemplate(
        id="modal",
        name="Add Modal/Dialog",
        description="Create a modal dialog",
        template="Add a modal dialog for [purpose]. It should have a clear header, body content, and action buttons. Include a way to close it.",
        category=TemplateCategory.UI,
    ),
    PromptTemplate(
        id="nav",
        name="Add Navigation",
        description="Create navigation component",
        template="Add a navigation bar with links to [pages]. Include responsive behavior for mobile devices and visual indication of the active page.",
        category=TemplateCategory.UI,
    ),
    PromptTemplate(
        id="table",
        name="Add Data Table",
        description="Create a data table with sorting",
        template="Add a data table to display [data type]. Include column headers, sortable columns, and pagination if the data is large.",
        category=TemplateCategory.UI,
    ),
    PromptTemplate(
        id="darkmode",
        name="Add Dark Mode",
        description="Implement dark mode toggle",
        template="Add a dark mode toggle that persists the user preference. Both themes should have good contrast and be visually consistent.",
        category=TemplateCategory.UI,
    ),
    # Features
    PromptTemplate(
        id="auth",
        name="Add Authentication",
        description="Implement user authentication",
        template="Add user authentication with login and signup flows. Include form validation, error handling, and appropriate security measures.",
        category=TemplateCategory.FEATURE,
    ),
    PromptTemplate(
        id="search",
        name="Add Search",
        description="Implement search functionality",
        template="Add search functionality for [content type]. Include real-time filtering, clear results display, and handling for no results.",
        category=TemplateCategory.FEATURE,
    ),
    PromptTemplate(
        id="pagination",
        name="Add Pagination",
        description="Implement pagination",
        template="Add pagination to [component/page]. Show page numbers, next/previous buttons, and indicate the current page clearly.",
        category=TemplateCategory.FEATURE,
    ),
    PromptTemplate(
        id="notifications",
        name="Add Notifications",
        description="Implement notification system",
        template="Add a notification system that can show success, error, warning, and info messages. Notifications should auto-dismiss and be stackable.",
        category=TemplateCategory.FEATURE,
    ),
    # Refactoring
    PromptTemplate(
        id="refactor-component",
        name="Refactor Component",
        description="Improve component structure",
        template="Refactor this component to improve readability, extract reusable logic, and follow best practices. Maintain existing functionality.",
        category=TemplateCategory.REFACTOR,
    ),
    PromptTemplate(
        id="refactor-perf",
        name="Performance Optimization",
        description="Optimize for performance",
        template="Optimize this code for better performance. Focus on reducing unnecessary re-renders, memoization, and efficient data handling.",
        category=TemplateCategory.REFACTOR,
    ),
    PromptTemplate(
        id="refactor-types",
        name="Add TypeScript Types",
        description="Add proper TypeScript types",
        template="Add proper TypeScript types to this code. Replace any types with specific interfaces, add return types, and ensure type safety.",
        category=TemplateCategory.REFACTOR,
    ),
    # Fixes
    PromptTemplate(
        id="fix-accessibility",
        name="Fix Accessibility",
        description="Improve accessibility",
        template="Improve the accessibility of this component. Add proper ARIA labels, keyboard navigation, focus management, and screen reader support.",
        category=TemplateCategory.FIX,
    ),
    PromptTemplate(
        id="fix-responsive",
        name="Fix Responsiveness",
        description="Make responsive for all devices",
        template="Make this component fully responsive. It should work well on mobile, tablet, and desktop without horizontal scrolling or layout issues.",
        category=TemplateCategory.FIX,
    ),
    # Testing
    PromptTemplate(
        id="test-unit",
        name="Add Unit Tests",
        description="Create unit tests",
        template="Add unit tests for this code. Cover the main functionality, edge cases, and error handling. Use descriptive test names.",
        category=TemplateCategory.TEST,
    ),
    PromptTemplate(
        id="test-e2e",
        name="Add E2E Tests",
        description="Create end-to-end tests",
        template="Add end-to-end tests for [user flow]. Cover the happy path and key error scenarios.",
        category=TemplateCategory.TEST,
    ),
    # Documentation
    PromptTemplate(
        id="docs-readme",
        name="Write README",
        description="Create documentation",
        template="Create a README for this project. Include an overview, setup instructions, usage examples, and contribution guidelines.",
        category=TemplateCategory.DOCS,
    ),
    PromptTemplate(
        id="docs-api",
        name="Document API",
        description="Document API endpoints",
        template="Document this API with clear descriptions of endpoints, request/response formats, error codes, and usage examples.",
        category=TemplateCategory.DOCS,
    ),
]


def get_template(template_id: str) -> Optional[PromptTemplate]:
    """Get a template by id."""
    for template in PROMPT_TEMPLATES:
        if template.id == template_id:
            return template
    return None


def get_templates_by_category(category: TemplateCategory | str) -> list[PromptTemplate]:
    category = TemplateCategory(category)
    return [t for t in PROMPT_TEMPLATES if t.category == category]


def list_categories() -> list[tuple[TemplateCategory, str]]:
    """Get (category, label) pairs in display order."""
    return list(CATEGORY_LABELS.items())
