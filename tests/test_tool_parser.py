from hearth.agent.tool_parser import (
    ToolCallTagParser,
    extract_json_objects,
    serialize_arguments,
    tool_call_id,
)
from hearth.utils.helpers import md5_hex


def test_parses_tool_call_tag_and_surrounding_text() -> None:
    parser = ToolCallTagParser()
    parsed = parser.parse(
        'Let me check.\n<tool_call>\n{"name": "shell", "arguments": {"command": "date"}}\n</tool_call>\nDone.'
    )
    assert parsed.text == "Let me check.\nDone."
    assert len(parsed.tool_calls) == 1
    call = parsed.tool_calls[0]
    assert call.name == "shell"
    assert call.arguments == '{"command":"date"}'
    assert call.id == "call_" + md5_hex('{"command":"date"}')


def test_call_id_depends_only_on_arguments() -> None:
    parser = ToolCallTagParser()
    a = parser.parse('<tool_call>{"name": "shell", "arguments": {"command": "ls"}}</tool_call>')
    b = parser.parse('<tool_call>{"name": "other", "arguments": {"command": "ls"}}</tool_call>')
    assert a.tool_calls[0].id == b.tool_calls[0].id == tool_call_id('{"command":"ls"}')


def test_multiple_calls_in_one_block_and_alternate_tags() -> None:
    parser = ToolCallTagParser()
    parsed = parser.parse(
        '<function={"name": "file_read", "arguments": {"path": "a.txt"}}</function>'
        '<invoke>{"name": "shell", "arguments": {"command": "pwd"}}'
        '{"name": "shell", "arguments": {"command": "ls"}}</invoke>'
    )
    assert [c.name for c in parsed.tool_calls] == ["file_read", "shell", "shell"]
    assert parsed.text == ""


def test_leftmost_tag_wins() -> None:
    parser = ToolCallTagParser()
    parsed = parser.parse(
        'a <invoke>{"name": "x", "arguments": {}}</invoke> b '
        '<tool_call>{"name": "y", "arguments": {}}</tool_call> c'
    )
    assert [c.name for c in parsed.tool_calls] == ["x", "y"]
    assert parsed.text == "a\nb\nc"


def test_braces_inside_strings_do_not_break_extraction() -> None:
    parser = ToolCallTagParser()
    parsed = parser.parse(
        '<tool_call>{"name": "file_write", "arguments": {"path": "x.py", '
        '"content": "d = {\\"k\\": \\"}\\"}"}}</tool_call>'
    )
    assert len(parsed.tool_calls) == 1
    assert parsed.tool_calls[0].name == "file_write"


def test_objects_missing_name_or_arguments_are_skipped() -> None:
    parser = ToolCallTagParser()
    parsed = parser.parse(
        '<tool_call>{"arguments": {}}{"name": "shell"}{"name": "ok", "arguments": {}}</tool_call>'
    )
    assert [c.name for c in parsed.tool_calls] == ["ok"]


def test_missing_closing_tag_keeps_rest_as_text() -> None:
    parser = ToolCallTagParser()
    parsed = parser.parse('Sure.\n<tool_call>{"name": "shell", "arguments": {"command": "date"}}')
    assert parsed.tool_calls == []
    assert parsed.text.startswith("Sure.\n<tool_call>")


def test_plain_text_passes_through_trimmed() -> None:
    parsed = ToolCallTagParser().parse("  just an answer  ")
    assert parsed.text == "just an answer"
    assert parsed.tool_calls == []


def test_lenient_second_pass_repairs_trailing_comma() -> None:
    parsed = ToolCallTagParser().parse(
        '<tool_call>{"name": "shell", "arguments": {"command": "date",},}</tool_call>'
    )
    assert len(parsed.tool_calls) == 1
    assert parsed.tool_calls[0].arguments == '{"command":"date"}'


def test_strict_mode_drops_broken_json() -> None:
    parser = ToolCallTagParser(repair_json=False)
    parsed = parser.parse('<tool_call>{"name": "shell", "arguments": {"command": "date",},}</tool_call>')
    assert parsed.tool_calls == []


def test_custom_tag_pairs() -> None:
    parser = ToolCallTagParser(tag_pairs=[("[[call]]", "[[/call]]")])
    parsed = parser.parse('x [[call]]{"name": "shell", "arguments": {}}[[/call]]')
    assert [c.name for c in parsed.tool_calls] == ["shell"]
    ignored = parser.parse('<tool_call>{"name": "shell", "arguments": {}}</tool_call>')
    assert ignored.tool_calls == []


def test_extract_json_objects_ignores_text_between_objects() -> None:
    values = extract_json_objects('noise {"a": 1} more {"b": {"c": 2}} end')
    assert values == [{"a": 1}, {"b": {"c": 2}}]


def test_serialize_arguments_normalizes_json_strings() -> None:
    assert serialize_arguments({"a": 1, "b": "x"}) == '{"a":1,"b":"x"}'
    assert serialize_arguments('{"a": 1}') == '{"a":1}'
