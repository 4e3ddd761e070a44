"""System instruction for the assistant, built per request from the catalog and role."""

from __future__ import annotations

from mentor.chat.tools import ToolRegistry

_PREAMBLE = """\
You are a helpful AI assistant for the LMS Analytics platform.
Your job is to help users navigate the platform and provide information about \
their courses, assignments, and analytics."""

_FORMATTING = """\
FORMATTING:
- Keep responses concise and helpful.
- Use Markdown lists or tables when presenting more than two items.
- Show grades with at most two decimals and dates as YYYY-MM-DD.
- If a tool returns an empty list, say you don't have that information.
- If a tool returns an error, explain briefly what went wrong."""

_ROLE_GUIDANCE: dict[str, str] = {
    "student": """\
ROLE: The user is a student.
- Focus on their own assignments, deadlines and grades.
- Point out upcoming deadlines and unsubmitted assignments when relevant.""",
    "lecturer": """\
ROLE: The user is a lecturer.
- Focus on analytics: course performance, grade trends and assignment completion.
- They may ask about a specific student's average grade by user id.""",
    "admin": """\
ROLE: The user is a platform administrator.
- Focus on platform-wide analytics: courses, lecturers and overall performance.
- They may ask about any user's average grade by user id.""",
}


def build_system_prompt(registry: ToolRegistry, role: str) -> str:
    """Return the system instruction for a caller with *role*.

    Sections: preamble, one trigger rule per tool, formatting conventions,
    role-specific emphasis. Unknown roles get the student guidance.
    """
    rules = [
        f"- When the user asks about {tool.trigger}, ALWAYS use the {tool.name} tool."
        for tool in registry
        if tool.trigger
    ]
    tool_section = "\n".join(
        [
            "IMPORTANT INSTRUCTIONS FOR TOOL USAGE:",
            *rules,
            "- DO NOT respond with \"I don't have enough information\" without "
            "first trying the appropriate tool.",
        ]
    )
    guidance = _ROLE_GUIDANCE.get(role, _ROLE_GUIDANCE["student"])
    return "\n\n".join([_PREAMBLE, tool_section, _FORMATTING, guidance])
