"""
Error boundary applied to every tool invocation.

The boundary owns the whole invocation path of one tool:

1. arguments are validated against the tool's argument model before the
   executor runs
2. the executor's return value is wrapped as a text result, or as
   structured content plus its JSON text when the tool has an output schema
3. ``ToolError`` messages are returned verbatim as error results
4. any other exception becomes a generic error result and is reported to the
   error reporter exactly once

No ``Exception`` escapes ``ErrorBoundary.__call__``.
"""

import inspect
import logging
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel, ValidationError

from .exceptions import ToolError
from .responses import error_result, structured_response, success_response
from .tool_models import ToolCallback, ToolResult

logger = logging.getLogger(__name__)


def format_validation_error(tool_title: str, error: ValidationError) -> str:
    """Describe which parameters failed validation and why."""
    problems = []
    for item in error.errors():
        loc = item.get("loc") or ()
        name = ".".join(str(part) for part in loc) or "arguments"
        if item.get("type") == "missing":
            problems.append(f"missing required parameter '{name}'")
        else:
            problems.append(f"parameter '{name}' {item.get('msg', 'is invalid')}")
    return f"Invalid arguments for tool '{tool_title}': " + "; ".join(problems)


def describe_unexpected_error(error: BaseException) -> str:
    message = str(error)
    if message:
        return f"Tool execution failed: {message}"
    return f"Tool execution failed with unknown error: {error!r}"


class ErrorBoundary:
    """Validating, error-isolating wrapper around a tool executor."""

    def __init__(
        self,
        tool_name: str,
        tool_title: str,
        executor: ToolCallback,
        input_model: Optional[Type[BaseModel]] = None,
        reporter: Optional[Any] = None,
        structured_output: bool = False,
    ):
        self.tool_name = tool_name
        self.tool_title = tool_title
        self.executor = executor
        self.input_model = input_model
        self.reporter = reporter
        self.structured_output = structured_output

    def validate(self, arguments: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Validate raw arguments, returning the cleaned argument dict.

        Raises:
            ValidationError: when a parameter is missing or has the wrong type
        """
        arguments = arguments or {}
        if self.input_model is None:
            return dict(arguments)
        validated = self.input_model.model_validate(arguments)
        return validated.model_dump(exclude_none=True)

    async def __call__(self, arguments: Optional[Dict[str, Any]] = None, extra: Any = None) -> ToolResult:
        try:
            args = self.validate(arguments)
        except ValidationError as e:
            message = format_validation_error(self.tool_title, e)
            logger.info(f"Rejected call to {self.tool_name}: {message}")
            return error_result(message)

        try:
            result = self.executor(args, extra)
            if inspect.isawaitable(result):
                result = await result
            if self.structured_output:
                return self._structured(result)
            return success_response(result)
        except ToolError as e:
            logger.info(f"Tool {self.tool_name} returned an error: {e.message}")
            return error_result(e.message)
        except Exception as e:
            logger.error(f"Unexpected error in tool {self.tool_name}: {e}", exc_info=True)
            self._report(e)
            return error_result(describe_unexpected_error(e))

    def _structured(self, data: Any) -> ToolResult:
        """Results of tools with an output schema must carry an object as structured content."""
        result = structured_response(data)
        if not result.get("isError") and not isinstance(result.get("structuredContent"), dict):
            raise ValueError(f"The result of the tool '{self.tool_title}' must include 'structuredContent'")
        return result

    def _report(self, error: Exception) -> None:
        if self.reporter is None:
            return
        try:
            self.reporter.notify(error, {"tool": self.tool_name})
        except Exception as reporter_error:
            logger.error(
                f"Error reporter failed while reporting {self.tool_name}: {reporter_error}",
                exc_info=True,
            )
