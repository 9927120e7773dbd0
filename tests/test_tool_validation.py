from typing import Any

import pytest

from hearth.agent.tools.base import Tool, ToolResult
from hearth.agent.tools.registry import ToolRegistry


class RecallTool(Tool):
    """Memory search with a schema exercising every supported constraint."""

    @property
    def name(self) -> str:
        return "recall"

    @property
    def description(self) -> str:
        return "Search stored memories"

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "query": {"type": "string", "minLength": 2, "maxLength": 40},
                "limit": {"type": "integer", "minimum": 1, "maximum": 20},
                "category": {"type": "string", "enum": ["core", "daily"]},
                "min_score": {"type": "number"},
                "filter": {
                    "type": "object",
                    "properties": {
                        "session": {"type": "string"},
                        "keys": {"type": "array", "items": {"type": "string"}},
                    },
                    "required": ["session"],
                },
            },
            "required": ["query", "limit"],
        }

    async def execute(self, **kwargs: Any) -> ToolResult:
        return ToolResult.ok(f"searched {kwargs['query']}")


class ListSchemaTool(RecallTool):
    @property
    def parameters(self) -> dict[str, Any]:
        return {"type": "array", "items": {"type": "string"}}


def _errors(params: dict[str, Any]) -> str:
    return "; ".join(RecallTool().validate_params(params))


def test_valid_params_have_no_errors() -> None:
    assert RecallTool().validate_params(
        {"query": "coffee", "limit": 5, "category": "core", "min_score": 0.4, "unknown": True}
    ) == []


def test_missing_required_field() -> None:
    assert "missing required limit" in _errors({"query": "coffee"})


@pytest.mark.parametrize(
    ("limit", "message"),
    [
        (0, "limit must be >= 1"),
        (21, "limit must be <= 20"),
        ("5", "limit should be integer"),
        (False, "limit should be integer"),
    ],
)
def test_integer_bounds_and_type(limit: Any, message: str) -> None:
    assert message in _errors({"query": "coffee", "limit": limit})


def test_number_accepts_int_but_not_bool() -> None:
    assert _errors({"query": "coffee", "limit": 3, "min_score": 1}) == ""
    assert "min_score should be number" in _errors({"query": "coffee", "limit": 3, "min_score": True})


def test_string_length_and_enum() -> None:
    errors = _errors({"query": "c", "limit": 3, "category": "weekly"})
    assert "query must be at least 2 chars" in errors
    assert "category must be one of ['core', 'daily']" in errors
    assert "query must be at most 40 chars" in _errors({"query": "x" * 41, "limit": 3})


def test_nested_object_paths() -> None:
    errors = _errors({"query": "coffee", "limit": 3, "filter": {"keys": ["a", 7]}})
    assert "missing required filter.session" in errors
    assert "filter.keys[1] should be string" in errors


def test_non_object_schema_is_rejected() -> None:
    with pytest.raises(ValueError, match="Schema must be object type"):
        ListSchemaTool().validate_params({})


def test_spec_and_definition_reflect_tool() -> None:
    spec = RecallTool().to_spec()
    assert (spec.name, spec.description) == ("recall", "Search stored memories")
    definition = spec.to_definition()
    assert definition["type"] == "function"
    assert definition["function"]["parameters"]["required"] == ["query", "limit"]


@pytest.mark.asyncio
async def test_registry_rejects_invalid_params_before_execution() -> None:
    registry = ToolRegistry()
    registry.register(RecallTool())

    result = await registry.execute("recall", {"query": "coffee", "limit": 0})
    assert result.success is False
    assert result.error == "Invalid parameters for tool 'recall': limit must be >= 1"

    ok = await registry.execute("recall", {"query": "coffee", "limit": 2})
    assert ok.success is True
    assert ok.output == "searched coffee"
