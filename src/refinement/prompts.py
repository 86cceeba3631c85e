"""Prompt construction for refinement requests."""

import re
from typing import Optional

from src.context.models import FileContext, ProjectContext

SYSTEM_PROMPT = """You are a professional prompt engineer for AI Coding Agents.

Your job: Transform user requests into clear, actionable prompts that help AI coding agents succeed.

# What Makes a Prompt Effective

1. **Describe the Problem Clearly**
   - What is happening? What should happen instead?

2. **Be Specific About What to Do**
   - Not just "fix it" but "identify the cause and update the logic"

3. **State the Expected Outcome**
   - What should work when the task is complete?

4. **Add Helpful Context**
   - If the user mentions symptoms, expand on them

# Transformation Pattern

Take vague or casual language and make it:
- More descriptive (what's actually happening)
- More actionable (what the AI should do)
- More complete (expected result)

# Examples

INPUT: "i cant seem to close this 'about' modal when i click on the x"
OUTPUT: "Clicking the close (X) icon on the About modal does nothing; the modal stays open. Identify the root cause in the code and update the logic so the X button reliably closes the modal every time."

INPUT: "make it look better"
OUTPUT: "The current design looks unpolished. Improve the visual design by refining the spacing, typography, and color choices to create a more professional and cohesive appearance."

INPUT: "add dark mode"
OUTPUT: "Add a dark mode toggle to the application. Users should be able to switch between light and dark themes, with their preference persisting across sessions. The transition between themes should feel smooth."

INPUT: "the form is broken"
OUTPUT: "The form is not working as expected. Investigate the form submission logic, identify what's failing, and fix it so the form validates inputs correctly and submits successfully."

INPUT: "refactor this for readability"
OUTPUT: "Refactor this code to improve readability and maintainability. Extract repeated logic into well-named helper functions, use descriptive variable names, and organize the code structure logically."

# Rules

- ALWAYS make the output more descriptive and actionable than the input
- Keep it natural language - no code snippets or technical implementation details
- Preserve the user's intent - don't add features they didn't ask for
- If genuinely vague with no clear problem, use ⚠️ **Your prompt is vague.** and offer choices

Output ONLY the improved prompt. No explanations."""

DETAILED_GUIDANCE = "[Detailed request. Organize and enhance, but preserve all their content.]"
SHORT_GUIDANCE = (
    "[Very short. If there's enough context to understand the problem, expand it "
    "significantly. If truly unclear, offer choices.]"
)

DETAILED_WORD_COUNT = 50
SHORT_WORD_COUNT = 8

# Prefix the service adds when it cannot infer a concrete problem
VAGUE_WARNING_PATTERN = re.compile(r"^⚠️\s*\*\*Your prompt is vague\.\*\*[^\n]*\n+")


def length_guidance(user_input: str) -> str:
    """Pick guidance based on how much the user wrote."""
    word_count = len(user_input.split())
    if word_count > DETAILED_WORD_COUNT:
        return DETAILED_GUIDANCE
    if word_count < SHORT_WORD_COUNT:
        return SHORT_GUIDANCE
    return ""


def render_context(
    project: Optional[ProjectContext] = None,
    active_file: Optional[FileContext] = None,
) -> str:
    """Render gathered context as a prompt section; empty when nothing is known."""
    sections = []

    if project is not None:
        lines = ["# Project Context", ""]
        if project.framework:
            lines.append(f"Framework: {project.framework}")
        lines.append(f"Language: {project.language}")
        lines.append("Constraints:")
        lines.append(project.format_constraints())
        sections.append("\n".join(lines))

    if active_file is not None:
        note = " (truncated)" if active_file.truncated else ""
        sections.append(
            f"# Active File\n\n"
            f"{active_file.relative_path} ({active_file.language}), "
            f"cursor at line {active_file.cursor_line}{note}:\n"
            f"```{active_file.language}\n{active_file.content}\n```"
        )

    return "\n\n".join(sections)


def build_prompt(
    user_input: str,
    project: Optional[ProjectContext] = None,
    active_file: Optional[FileContext] = None,
) -> str:
    """
    Assemble the full prompt sent to the generation service.

    Args:
        user_input: The raw request to refine
        project: Detected project context, if any
        active_file: The file the user is working in, if any

    Returns:
        Instruction template, length guidance, context and the quoted request
    """
    parts = [SYSTEM_PROMPT]

    guidance = length_guidance(user_input)
    if guidance:
        parts.append(guidance)

    context = render_context(project, active_file)
    if context:
        parts.append(context)

    parts.append(f'User\'s request:\n"{user_input}"')
    return "\n\n".join(parts)


def separate_warning(refined: str) -> tuple[Optional[str], str]:
    """
    Split a vague-prompt warning from the refined text.

    Returns:
        Tuple of (warning line or None, remaining prompt content)
    """
    match = VAGUE_WARNING_PATTERN.match(refined)
    if not match:
        return None, refined
    return match.group(0).strip(), refined[match.end():].strip()
