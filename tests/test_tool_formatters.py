"""Tests for targon_provider.tool_formatters module."""

import json

import pytest

from targon_provider.tool_formatters import (
    AskFollowupQuestionFormatter,
    ToolFormatter,
    clear_formatters,
    format_tool_call,
    get_formatter,
    get_registered_formatters,
    register_formatter,
    tools_for_text,
)


class AttemptCompletionFormatter(ToolFormatter):
    name = "attempt_completion"
    description = "Present the result."
    parameters = {
        "type": "object",
        "properties": {"result": {"type": "string"}},
        "required": ["result"],
    }

    def format(self, arguments):
        result = arguments.get("result")
        if not result:
            return None
        return f"<attempt_completion>\n<result>{result}</result>\n</attempt_completion>"


class TestAskFollowupQuestionFormatter:
    def test_question_only(self):
        text = AskFollowupQuestionFormatter().format({"question": "Pick one"})
        assert text == "<ask_followup_question>\n<question>Pick one</question>\n</ask_followup_question>"

    def test_with_options(self):
        text = AskFollowupQuestionFormatter().format({"question": "Pick one", "options": ["a", "b"]})
        assert text == (
            "<ask_followup_question>\n<question>Pick one</question>\n"
            '<options>\n["a", "b"]\n</options>\n</ask_followup_question>'
        )

    def test_empty_options_omitted(self):
        text = AskFollowupQuestionFormatter().format({"question": "Pick one", "options": []})
        assert "<options>" not in text

    @pytest.mark.parametrize("arguments", [{}, {"question": ""}, {"question": 3}, {"options": ["a"]}])
    def test_unusable_arguments(self, arguments):
        assert AskFollowupQuestionFormatter().format(arguments) is None

    def test_definition_schema(self):
        definition = AskFollowupQuestionFormatter().definition()
        assert definition["type"] == "function"
        function = definition["function"]
        assert function["name"] == "ask_followup_question"
        assert function["parameters"]["required"] == ["question"]
        assert function["parameters"]["properties"]["options"]["type"] == "array"


class TestRegistry:
    def test_default_registration(self):
        assert isinstance(get_formatter("ask_followup_question"), AskFollowupQuestionFormatter)
        assert [f.name for f in get_registered_formatters()] == ["ask_followup_question"]

    def test_unknown_tool(self):
        assert get_formatter("read_file") is None
        assert format_tool_call("read_file", '{"path": "a"}') is None

    def test_register_additional_formatter(self):
        register_formatter(AttemptCompletionFormatter())
        assert format_tool_call("attempt_completion", '{"result": "done"}') == (
            "<attempt_completion>\n<result>done</result>\n</attempt_completion>"
        )

    def test_clear(self):
        clear_formatters()
        assert get_registered_formatters() == []
        assert tools_for_text(["ask_followup_question"]) == []


class TestToolsForText:
    def test_marker_match(self):
        tools = tools_for_text(["hello", "please ask_followup_question"])
        assert [t["function"]["name"] for t in tools] == ["ask_followup_question"]

    def test_no_marker(self):
        assert tools_for_text(["hello", "ask a question"]) == []

    def test_only_matching_tools_attached(self):
        register_formatter(AttemptCompletionFormatter())
        tools = tools_for_text(["use attempt_completion when done"])
        assert [t["function"]["name"] for t in tools] == ["attempt_completion"]


class TestFormatToolCall:
    def test_incomplete_json_raises(self):
        with pytest.raises(json.JSONDecodeError):
            format_tool_call("ask_followup_question", '{"question": "Pi')

    def test_non_object_arguments(self):
        assert format_tool_call("ask_followup_question", '["Pick one"]') is None


class TestToolFormatterBase:
    def test_base_class_is_abstract(self):
        with pytest.raises(TypeError):
            ToolFormatter()

    def test_format_must_be_implemented(self):
        class NoFormat(ToolFormatter):
            name = "no_format"

        with pytest.raises(TypeError):
            NoFormat()

    def test_parameters_default_to_empty_object_schema(self):
        class Bare(ToolFormatter):
            name = "bare"

            def format(self, arguments):
                return None

        assert Bare().definition()["function"]["parameters"] == {"type": "object", "properties": {}}

    def test_definition_does_not_share_parameters(self):
        formatter = AttemptCompletionFormatter()
        formatter.definition()["function"]["parameters"]["properties"].clear()
        assert formatter.definition()["function"]["parameters"]["properties"] == {
            "result": {"type": "string"},
        }
