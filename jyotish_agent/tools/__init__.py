"""
Tool System
===========

Tools are the named operations the model may call instead of answering
directly: the five astrology calculations and the book search.

How a tool call flows:
1. The model sees each tool's name, description and JSON schema
2. It requests a call with a name, arguments and a correlation id
3. The registry resolves the name, validates the arguments against the
   tool's pydantic model, and runs the executor
4. The outcome is always a ToolResult; nothing raised by a tool escapes

A registry is built per request. Its executors are closures over the
current UserContext, so the model only ever supplies task parameters
(a date, a varga number, an age) and never identifying data.

This module provides:
- ToolDefinition: name, description, input model and executor
- ToolResult: standardized outcome, rendered as tool-result text
- ToolRegistry: name-keyed lookup with typed failure outcomes
"""

import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ValidationError

from jyotish_agent.utils.logger import Logger

logger = Logger("Tools")


# Failure kinds reported in ToolResult.kind
UNKNOWN_TOOL = "unknown_tool"
INVALID_ARGUMENTS = "invalid_arguments"
EXECUTION_ERROR = "execution_error"


@dataclass
class ToolResult:
    """
    Standardized result from tool execution.

    Attributes:
        success: Whether the tool produced data
        data: Result payload (a dict from the calculation service, or text)
        error: Human-readable failure text when success is False
        kind: Failure category (unknown_tool, invalid_arguments, execution_error)
    """
    success: bool
    data: Any = None
    error: str | None = None
    kind: str | None = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "data": self.data,
            "error": self.error,
            "kind": self.kind,
        }

    def to_message(self) -> str:
        """Format as tool-result text for the model."""
        if not self.success:
            return f"Error: {self.error}"
        if isinstance(self.data, str):
            return self.data
        return json.dumps(self.data, default=str, ensure_ascii=False)


Executor = Callable[[BaseModel], Awaitable[ToolResult]]


@dataclass(frozen=True)
class ToolDefinition:
    """
    A callable operation exposed to the model.

    Attributes:
        name: Unique name within a registry
        description: Guidance shown to the model for tool selection
        input_model: Pydantic model describing the accepted arguments
        execute: Async executor receiving a validated input_model instance

    Example:
        class DashaInput(BaseModel):
            pass

        async def run_dasha(args: DashaInput) -> ToolResult:
            return ToolResult(success=True, data=await client.dasha(user))

        tool = ToolDefinition(
            name="getDasha",
            description="Vimshottari dasha periods for the user",
            input_model=DashaInput,
            execute=run_dasha,
        )
    """
    name: str
    description: str
    input_model: type[BaseModel]
    execute: Executor

    @property
    def parameters(self) -> dict:
        """JSON schema for the arguments, as the model sees it."""
        schema = self.input_model.model_json_schema()
        schema.pop("title", None)
        schema.setdefault("properties", {})
        schema["type"] = "object"
        return schema

    def to_openai_function(self) -> dict:
        """Convert to the OpenAI function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


def format_validation_error(name: str, error: ValidationError) -> str:
    """Render pydantic errors as one compact line per field."""
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "arguments"
        problems.append(f"{location}: {item.get('msg', 'invalid value')}")
    return f"Invalid arguments for {name}: " + "; ".join(problems)


class ToolRegistry:
    """
    Name-keyed set of tool definitions for one request.

    Names are checked once, at construction. After that every lookup
    either finds exactly one definition or yields an "unknown tool"
    result listing what is available.

    Example:
        registry = ToolRegistry(build_tools(user, client, store, result_log))

        result = await registry.execute("getVargaChart", {"varga_num": 9})
        print(result.to_message())
    """

    def __init__(self, definitions: list[ToolDefinition] | None = None):
        """
        Build a registry.

        Args:
            definitions: Tool definitions to register

        Raises:
            ValueError: If two definitions share a name
        """
        self._tools: dict[str, ToolDefinition] = {}
        for definition in definitions or []:
            self.register(definition)

    def register(self, tool: ToolDefinition) -> None:
        """
        Register a tool.

        Raises:
            ValueError: If a tool with this name already exists
        """
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name}")

    def resolve(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    def get_all(self) -> list[ToolDefinition]:
        return list(self._tools.values())

    def list_names(self) -> list[str]:
        return list(self._tools.keys())

    def get_openai_functions(self) -> list[dict]:
        return [tool.to_openai_function() for tool in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    async def execute(self, name: str, arguments: dict[str, Any] | None) -> ToolResult:
        """
        Resolve, validate and run a tool.

        Never raises for tool failures; task cancellation still propagates.

        Args:
            name: Tool name requested by the model
            arguments: Raw arguments decoded from the model's JSON

        Returns:
            ToolResult describing the outcome
        """
        tool = self.resolve(name)
        if tool is None:
            available = ", ".join(self.list_names()) or "none"
            logger.warning(f"Unknown tool requested: {name}")
            return ToolResult(
                success=False,
                error=f"Tool '{name}' not found. Available tools: {available}",
                kind=UNKNOWN_TOOL,
            )

        try:
            validated = tool.input_model.model_validate(arguments or {})
        except ValidationError as e:
            message = format_validation_error(name, e)
            logger.warning(message)
            return ToolResult(success=False, error=message, kind=INVALID_ARGUMENTS)

        try:
            logger.info(f"Executing tool: {name}")
            result = await tool.execute(validated)
        except Exception as e:
            logger.error(f"Tool execution failed: {name}", e)
            return ToolResult(
                success=False,
                error=f"Error executing {name}: {e}",
                kind=EXECUTION_ERROR,
            )

        if not result.success and result.kind is None:
            result.kind = EXECUTION_ERROR
        return result


__all__ = [
    "ToolDefinition",
    "ToolResult",
    "ToolRegistry",
    "format_validation_error",
    "UNKNOWN_TOOL",
    "INVALID_ARGUMENTS",
    "EXECUTION_ERROR",
]
