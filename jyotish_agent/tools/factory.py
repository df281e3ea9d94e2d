"""
Builds the per-request tool set.

    registry = ToolRegistry(build_tools(user, client, store, result_log))
"""

from typing import TYPE_CHECKING

from jyotish_agent.calculation.client import CalculationClient
from jyotish_agent.deadline import Deadline
from jyotish_agent.models import UserContext
from jyotish_agent.tools import ToolDefinition, ToolRegistry
from jyotish_agent.tools.book_tools import build_book_search_tool
from jyotish_agent.tools.calculation_tools import build_calculation_tools
from jyotish_agent.tools.result_log import ToolResultLog

if TYPE_CHECKING:
    from jyotish_agent.rag import RetrievalStore


def build_tools(
    user: UserContext,
    calculation_client: CalculationClient,
    retrieval_store: "RetrievalStore | None" = None,
    result_log: ToolResultLog | None = None,
    deadline: Deadline | None = None,
    search_timeout_seconds: float | None = None
) -> list[ToolDefinition]:
    """
    Create every tool bound to the user's context.

    The book search tool is left out when no retrieval store is configured.
    """
    tools = build_calculation_tools(user, calculation_client, deadline)
    if retrieval_store is not None:
        tools.append(build_book_search_tool(
            user,
            retrieval_store,
            result_log=result_log,
            deadline=deadline,
            timeout_seconds=search_timeout_seconds,
        ))
    return tools


def build_registry(
    user: UserContext,
    calculation_client: CalculationClient,
    retrieval_store: "RetrievalStore | None" = None,
    result_log: ToolResultLog | None = None,
    deadline: Deadline | None = None,
    search_timeout_seconds: float | None = None
) -> ToolRegistry:
    return ToolRegistry(build_tools(
        user, calculation_client, retrieval_store, result_log, deadline, search_timeout_seconds
    ))
