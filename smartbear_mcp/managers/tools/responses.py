"""
Response builders for tool results.

Every tool invocation answers with a single text content block; structured
data is JSON-serialized into that text.
"""

import json
from typing import Any, Dict

from pydantic import BaseModel

from .tool_models import ToolResult


def _json_default(value: Any) -> Any:
    """Serialize values the json module does not understand"""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)


def to_json_text(data: Any) -> str:
    """JSON-serialize arbitrary tool output."""
    return json.dumps(data, default=_json_default, ensure_ascii=False)


def text_result(text: str) -> ToolResult:
    """Create a successful single-text result."""
    return {"content": [{"type": "text", "text": text}]}


def error_result(message: str) -> ToolResult:
    """Create an error result carrying a human-readable message."""
    return {"content": [{"type": "text", "text": message}], "isError": True}


def success_response(data: Any) -> ToolResult:
    """Wrap arbitrary data as a tool result, passing through ready-made results."""
    if is_tool_result(data):
        return data
    return text_result(to_json_text(data))


def structured_response(data: Any) -> ToolResult:
    """Wrap data as structured content plus a JSON text copy of it.

    Ready-made results are passed through; a text block is added when one
    carries structured content only.
    """
    if is_tool_result(data) or (isinstance(data, dict) and "structuredContent" in data):
        result = dict(data)
    else:
        result = {"structuredContent": json.loads(to_json_text(data))}
    if "structuredContent" in result and not result.get("content"):
        result["content"] = [{"type": "text", "text": to_json_text(result["structuredContent"])}]
    return result


def is_tool_result(value: Any) -> bool:
    """Check whether a value already has the tool result shape."""
    if not isinstance(value, dict):
        return False
    content = value.get("content")
    if not isinstance(content, list) or not content:
        return False
    return all(isinstance(item, dict) and "type" in item for item in content)

