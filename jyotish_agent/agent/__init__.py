"""
Agent System
============

The agent answers astrology questions. It:
1. Validates the request
2. Recovers the user's birth chart
3. Assembles the instructions
4. Lets the model call tools in a bounded loop
5. Returns the answer and the tools that were used

This module provides:
- Agent: Facade for processing requests
- ContextAssembler: Builds the instructions for the model
- ExecutionLoop: The DECIDE / DISPATCH state machine
- ToolExecutor: Runs a batch of tool calls
- OpenAIChatModel: Chat Completions model adapter
"""

from jyotish_agent.agent.context import ContextAssembler
from jyotish_agent.agent.core import Agent
from jyotish_agent.agent.loop import ExecutionLoop, LoopOutcome, LoopState
from jyotish_agent.agent.model import ChatModel, ModelReply, OpenAIChatModel
from jyotish_agent.agent.tools_executor import ToolExecutor

__all__ = [
    "Agent",
    "ChatModel",
    "ContextAssembler",
    "ExecutionLoop",
    "LoopOutcome",
    "LoopState",
    "ModelReply",
    "OpenAIChatModel",
    "ToolExecutor",
]
