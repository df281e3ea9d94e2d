"""
Model Adapter
=============

The execution loop needs one thing from a language model: given the
transcript, the instructions and the tool definitions, return either a
final message or a list of tool calls.

    reply = await model.complete(turns, instructions, tools)
    if reply.tool_calls:
        ...dispatch...
    else:
        answer = reply.text

OpenAIChatModel implements this with Chat Completions function calling.
Anything else with the same `complete` signature can be plugged in.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Protocol

from openai import AsyncOpenAI

from jyotish_agent.models import ROLE_ASSISTANT, ROLE_TOOL, ToolCall, Turn
from jyotish_agent.tools import ToolDefinition
from jyotish_agent.utils.logger import Logger

logger = Logger("Model")


@dataclass(frozen=True)
class ModelSettings:
    temperature: float
    max_output_tokens: int


MODEL_PRESETS: dict[str, ModelSettings] = {
    "default": ModelSettings(temperature=0.7, max_output_tokens=2048),
    "creative": ModelSettings(temperature=0.9, max_output_tokens=2048),
    "precise": ModelSettings(temperature=0.3, max_output_tokens=2048),
    "extended": ModelSettings(temperature=0.7, max_output_tokens=4096),
}


def get_preset(name: str) -> ModelSettings:
    if name not in MODEL_PRESETS:
        logger.warning(f"Unknown model preset '{name}', using default")
    return MODEL_PRESETS.get(name, MODEL_PRESETS["default"])


@dataclass(frozen=True)
class ModelReply:
    """
    One model response.

    Attributes:
        text: Assistant text (may be empty when tools are requested)
        tool_calls: Requested tool invocations, in the model's order
    """
    text: str = ""
    tool_calls: tuple[ToolCall, ...] = field(default_factory=tuple)


class ChatModel(Protocol):
    async def complete(
        self,
        turns: list[Turn],
        instructions: str,
        tools: list[ToolDefinition],
        timeout: float | None = None
    ) -> ModelReply: ...


def turns_to_openai_messages(turns: list[Turn], instructions: str) -> list[dict]:
    """Convert the transcript to Chat Completions messages."""
    messages: list[dict[str, Any]] = [{"role": "system", "content": instructions}]
    for turn in turns:
        if turn.role == ROLE_TOOL:
            messages.append({
                "role": "tool",
                "tool_call_id": turn.tool_call_id,
                "content": turn.content,
            })
        elif turn.role == ROLE_ASSISTANT and turn.tool_calls:
            messages.append({
                "role": "assistant",
                "content": turn.content or None,
                "tool_calls": [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {
                            "name": call.name,
                            "arguments": json.dumps(call.arguments),
                        },
                    }
                    for call in turn.tool_calls
                ],
            })
        else:
            messages.append({"role": turn.role, "content": turn.content})
    return messages


def parse_tool_arguments(raw: str | None) -> dict[str, Any]:
    """
    Decode a tool call's JSON arguments.

    Malformed or non-object JSON yields an empty dict; schema validation
    then reports what is missing back to the model.
    """
    if not raw:
        return {}
    try:
        arguments = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse tool arguments: {e}")
        return {}
    return arguments if isinstance(arguments, dict) else {}


class OpenAIChatModel:
    """
    Chat Completions backed model.

    Example:
        model = OpenAIChatModel(AsyncOpenAI(api_key="sk-..."), "gpt-4o-mini")
        reply = await model.complete([Turn.user("What is my dasha?")], instructions, tools)
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str,
        settings: ModelSettings | None = None
    ):
        self.client = client
        self.model = model
        self.settings = settings or MODEL_PRESETS["default"]
        logger.info(f"Model initialized: {model}")

    async def complete(
        self,
        turns: list[Turn],
        instructions: str,
        tools: list[ToolDefinition],
        timeout: float | None = None
    ) -> ModelReply:
        options: dict[str, Any] = {}
        if tools:
            options["tools"] = [tool.to_openai_function() for tool in tools]
            options["tool_choice"] = "auto"
        if timeout is not None:
            options["timeout"] = timeout

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=turns_to_openai_messages(turns, instructions),
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_output_tokens,
            **options,
        )

        message = response.choices[0].message
        calls = tuple(
            ToolCall(
                id=tc.id,
                name=tc.function.name,
                arguments=parse_tool_arguments(tc.function.arguments),
            )
            for tc in (message.tool_calls or [])
        )
        return ModelReply(text=message.content or "", tool_calls=calls)
