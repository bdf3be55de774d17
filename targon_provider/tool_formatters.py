"""
Tool call formatters for streamed function calls.

Some host applications expect tool invocations as tagged text in the
response stream rather than as structured tool calls. A formatter owns one
tool: its OpenAI-format definition, the marker that makes the adapter
attach that definition to a request, and the rendering of completed
arguments into tagged text.

Registry maps tool names to formatter instances. ask_followup_question is
registered by default.

Usage:
    formatter = get_formatter("ask_followup_question")
    text = formatter.format({"question": "Pick one"})
"""

import copy
import json
from abc import ABC, abstractmethod
from typing import Any, Optional


class ToolFormatter(ABC):
    """
    Base formatter for a single tool.

    Subclasses set `name` and `description`, optionally `parameters` (a JSON
    schema, defaults to an empty object schema), and implement format().
    `marker` defaults to the tool name.
    """

    name: str = ""
    description: str = ""
    parameters: Optional[dict] = None

    @property
    def marker(self) -> str:
        """Substring in message text that causes this tool to be offered."""
        return self.name

    def definition(self) -> dict:
        """OpenAI-format tool definition."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": (
                    copy.deepcopy(self.parameters)
                    if self.parameters is not None
                    else {"type": "object", "properties": {}}
                ),
            },
        }

    @abstractmethod
    def format(self, arguments: dict) -> Optional[str]:
        """
        Render parsed arguments as tagged text.

        Returns None when the arguments are not (yet) usable.
        """
        ...


class AskFollowupQuestionFormatter(ToolFormatter):
    """
    Formatter for the ask_followup_question tool.

    Renders as:
    <ask_followup_question>
    <question>...</question>
    <options>
    ["a", "b"]
    </options>
    </ask_followup_question>

    The options block is only present when options were supplied.
    """

    name = "ask_followup_question"
    description = (
        "Ask the user a question to gather additional information needed "
        "to complete the task. Use when you encounter ambiguities or need "
        "clarification."
    )
    parameters = {
        "type": "object",
        "properties": {
            "question": {
                "type": "string",
                "description": "The question to ask the user.",
            },
            "options": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Optional list of answers the user can pick from.",
            },
        },
        "required": ["question"],
    }

    def format(self, arguments: dict) -> Optional[str]:
        question = arguments.get("question")
        if not isinstance(question, str) or not question:
            return None

        parts = [f"<{self.name}>", f"<question>{question}</question>"]
        options = arguments.get("options")
        if options:
            parts.append(f"<options>\n{json.dumps(options)}\n</options>")
        parts.append(f"</{self.name}>")
        return "\n".join(parts)


# ─────────────────────────────────────────────────────────────────────
# REGISTRY
# ─────────────────────────────────────────────────────────────────────

DEFAULT_FORMATTERS: tuple[type[ToolFormatter], ...] = (AskFollowupQuestionFormatter,)

_formatters: dict[str, ToolFormatter] = {}


def register_formatter(formatter: ToolFormatter) -> None:
    """Register a formatter under its tool name, replacing any existing one."""
    _formatters[formatter.name] = formatter


def get_formatter(name: str) -> Optional[ToolFormatter]:
    """Get the formatter for a tool name, or None if the tool is unknown."""
    return _formatters.get(name)


def get_registered_formatters() -> list[ToolFormatter]:
    """Return all registered formatters in registration order."""
    return list(_formatters.values())


def clear_formatters() -> None:
    """
    Remove all registered formatters.

    Primarily useful for testing to reset state between tests.
    """
    _formatters.clear()


def reset_formatters() -> None:
    """Restore the default formatter set."""
    clear_formatters()
    for formatter_cls in DEFAULT_FORMATTERS:
        register_formatter(formatter_cls())


def tools_for_text(texts: list[str]) -> list[dict]:
    """
    Definitions of every registered tool whose marker appears in any text.

    Args:
        texts: Message contents to scan

    Returns:
        OpenAI-format tool definitions (empty if no marker matched)
    """
    return [
        formatter.definition()
        for formatter in _formatters.values()
        if any(formatter.marker in text for text in texts)
    ]


def format_tool_call(name: str, arguments_json: str) -> Optional[str]:
    """
    Format an accumulated tool call if it is complete.

    Args:
        name: Tool name from the stream
        arguments_json: Concatenated argument fragments so far

    Returns:
        Tagged text, or None if the tool is unknown or the arguments are
        not yet a complete usable JSON object

    Raises:
        json.JSONDecodeError if arguments_json is not valid JSON (yet)
    """
    formatter = get_formatter(name)
    if formatter is None:
        return None
    arguments: Any = json.loads(arguments_json)
    if not isinstance(arguments, dict):
        return None
    return formatter.format(arguments)


reset_formatters()
