"""
Translation of declarative tool definitions into protocol artifacts.

Two things are derived from a ``ToolDefinition``:

- a pydantic model used both to validate incoming arguments and to produce
  the JSON schema advertised to the protocol runtime
- a Markdown-ish description consumed by the calling agent as documentation

The description layout (section order and labels) is stable; snapshot tests
compare it byte for byte.
"""

import json
import re
import types
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Dict, Iterable, Literal, Optional, Type, Union, get_args, get_origin

from pydantic import BaseModel, Field, create_model
from pydantic.fields import FieldInfo

from .tool_models import ParameterDefinition, ToolDefinition

_ARRAY_TYPES = (list, tuple, set, frozenset)


def _is_union(origin: Any) -> bool:
    return origin is Union or origin is types.UnionType


def is_optional_type(annotation: Any) -> bool:
    """Check whether an annotation accepts None."""
    origin = get_origin(annotation)
    if origin is Annotated:
        return is_optional_type(get_args(annotation)[0])
    if _is_union(origin):
        return type(None) in get_args(annotation)
    return annotation is None or annotation is type(None)


def unwrap_type(annotation: Any) -> Any:
    """Strip Annotated metadata and Optional wrappers from an annotation."""
    origin = get_origin(annotation)
    if origin is Annotated:
        return unwrap_type(get_args(annotation)[0])
    if _is_union(origin):
        args = get_args(annotation)
        non_none = [arg for arg in args if arg is not type(None)]
        if len(non_none) == 1 and len(non_none) < len(args):
            return unwrap_type(non_none[0])
    return annotation


def readable_type_name(annotation: Any) -> str:
    """Map an annotation to the short label shown in tool descriptions."""
    target = unwrap_type(annotation)
    origin = get_origin(target)
    is_class = isinstance(target, type)

    # Enum before str: str-valued enums subclass str
    if is_class and issubclass(target, Enum):
        return "enum"
    # bool before number: bool subclasses int
    if target is bool:
        return "boolean"
    if is_class and issubclass(target, str):
        return "string"
    if is_class and issubclass(target, (int, float, Decimal)):
        return "number"
    if target in _ARRAY_TYPES or origin in _ARRAY_TYPES:
        return "array"
    if target is dict or origin is dict or (is_class and issubclass(target, BaseModel)):
        return "object"
    if origin is Literal:
        return "literal"
    if _is_union(origin):
        return "union"
    return "any"


def _model_name(title: str) -> str:
    words = re.sub(r"[^0-9a-zA-Z]+", " ", title).title().replace(" ", "")
    return f"{words or 'Tool'}Arguments"


def _parameter_field(param: ParameterDefinition) -> tuple:
    kwargs: Dict[str, Any] = {}
    if param.description:
        kwargs["description"] = param.description
    if param.required:
        return (param.type, Field(..., **kwargs))
    return (Optional[param.type], Field(param.default, **kwargs))


def build_input_model(definition: ToolDefinition) -> Type[BaseModel]:
    """Build the argument model for a tool definition.

    Flat parameters come first; fields of a structured ``input_schema`` are
    merged afterwards and overwrite flat parameters of the same name.
    """
    fields: Dict[str, Any] = {}
    for param in definition.parameters:
        fields[param.name] = _parameter_field(param)

    if definition.input_schema is not None:
        for name, info in definition.input_schema.model_fields.items():
            fields[name] = (info.annotation, info)

    return create_model(_model_name(definition.title), **fields)


def build_input_schema(definition: ToolDefinition) -> Dict[str, Any]:
    """JSON schema advertised for the tool's arguments."""
    return build_input_model(definition).model_json_schema()


def build_output_schema(definition: ToolDefinition) -> Optional[Dict[str, Any]]:
    if definition.output_schema is None:
        return None
    return definition.output_schema.model_json_schema()


def format_parameter(param: ParameterDefinition) -> str:
    """Render one bullet of the Parameters section."""
    line = f"- {param.name} ({readable_type_name(param.type)})"
    if param.required:
        line += " *required*"
    if param.description:
        line += f": {param.description}"
    if param.examples:
        line += f" (e.g. {', '.join(param.examples)})"
    if param.constraints:
        line += "\n  - " + "\n  - ".join(param.constraints)
    return line


def format_schema_field(name: str, info: FieldInfo) -> str:
    """Render a Parameters bullet for a field of a structured schema."""
    line = f"- {name} ({readable_type_name(info.annotation)})"
    if info.is_required():
        line += " *required*"
    if info.description:
        line += f": {info.description}"
    if info.examples:
        line += f" (e.g. {', '.join(str(example) for example in info.examples)})"
    return line


def _numbered(items: Iterable[str]) -> str:
    return " ".join(f"{index}. {item}" for index, item in enumerate(items, start=1))


def build_description(definition: ToolDefinition) -> str:
    """Render the agent-facing description of a tool.

    Sections, in order and only when present: Parameters, Output Format,
    Use Cases, Examples, Hints.
    """
    description = definition.summary

    if definition.parameters:
        description += "\n\n**Parameters:**\n"
        description += "\n".join(format_parameter(param) for param in definition.parameters)
    elif definition.input_schema is not None:
        description += "\n\n**Parameters:**\n"
        description += "\n".join(
            format_schema_field(name, info)
            for name, info in definition.input_schema.model_fields.items()
        )

    if definition.output_format:
        description += f"\n\n**Output Format:** {definition.output_format}"

    if definition.use_cases:
        description += f"\n\n**Use Cases:** {_numbered(definition.use_cases)}"

    if definition.examples:
        rendered = []
        for index, example in enumerate(definition.examples, start=1):
            block = (
                f"{index}. {example.description}\n"
                f"```json\n{json.dumps(example.parameters, indent=2, ensure_ascii=False)}\n```"
            )
            if example.expected_output:
                block += f"\nExpected Output: {example.expected_output}"
            rendered.append(block)
        description += "\n\n**Examples:**\n" + "\n\n".join(rendered)

    if definition.hints:
        description += f"\n\n**Hints:** {_numbered(definition.hints)}"

    return description.strip()
