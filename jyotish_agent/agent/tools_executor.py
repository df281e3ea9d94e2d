"""
Tool Executor
=============

Runs the tool calls of one model turn against the request's registry.

The executor:
1. Runs every call in the batch concurrently
2. Lets the registry validate arguments and catch tool failures
3. Produces one tool-result turn per call, carrying the call's id
4. Returns the turns in the order the model requested the calls

Calls in a batch share no state, so running them together only saves
latency. The transcript stays in request order, so a fixed set of calls
always produces the same transcript whichever finishes first.
"""

import asyncio
from dataclasses import dataclass

from jyotish_agent.models import ToolCall, ToolCallRecord, Turn
from jyotish_agent.tools import ToolRegistry, ToolResult
from jyotish_agent.utils.logger import Logger

logger = Logger("ToolExecutor")


@dataclass(frozen=True)
class ToolCallResult:
    """
    Result of executing a tool call.

    Attributes:
        call: The original request
        result: The registry's outcome
    """
    call: ToolCall
    result: ToolResult

    def to_turn(self) -> Turn:
        return Turn.tool_result(self.call.id, self.call.name, self.result.to_message())

    def to_record(self) -> ToolCallRecord:
        return ToolCallRecord(
            call_id=self.call.id,
            name=self.call.name,
            arguments=dict(self.call.arguments),
            result=self.result.to_message(),
            success=self.result.success,
            data=self.result.data if self.result.success else None,
        )


class ToolExecutor:
    """
    Executes tool calls requested by the model.

    Example:
        executor = ToolExecutor()
        results = await executor.execute_all(reply.tool_calls, registry)
        state.extend([r.to_turn() for r in results])
    """

    def __init__(self, parallel: bool = True):
        """
        Args:
            parallel: Run a batch concurrently; False runs calls one by one
        """
        self.parallel = parallel

    async def execute_one(self, call: ToolCall, registry: ToolRegistry) -> ToolCallResult:
        logger.info(f"Executing tool: {call.name}")

        result = await registry.execute(call.name, call.arguments)

        if result.success:
            logger.debug(f"Tool {call.name} succeeded")
        else:
            logger.warning(f"Tool {call.name} failed: {result.error}")

        return ToolCallResult(call=call, result=result)

    async def execute_all(
        self,
        calls: list[ToolCall] | tuple[ToolCall, ...],
        registry: ToolRegistry
    ) -> list[ToolCallResult]:
        """
        Execute a batch of tool calls.

        Args:
            calls: Calls in the order the model requested them
            registry: This request's tools

        Returns:
            One ToolCallResult per call, in request order
        """
        if not calls:
            return []

        if not self.parallel:
            return [await self.execute_one(call, registry) for call in calls]

        results = await asyncio.gather(*(self.execute_one(call, registry) for call in calls))
        return list(results)
