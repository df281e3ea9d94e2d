"""
Book Search Tool
================

Exposes the retrieval store to the model as the `searchBooks` tool.

The executor adds the latest calculation result from this request (if
any) so the books are searched with the user's actual placements in mind,
not just the question text.
"""

from typing import TYPE_CHECKING

from jyotish_agent.deadline import Deadline
from jyotish_agent.errors import RetrievalError
from jyotish_agent.models import UserContext
from jyotish_agent.tools import ToolDefinition, ToolResult
from jyotish_agent.tools.descriptions import SEARCH_BOOKS, TOOL_DESCRIPTIONS
from jyotish_agent.tools.result_log import ToolResultLog
from jyotish_agent.tools.schemas import BookSearchInput
from jyotish_agent.utils.logger import Logger

if TYPE_CHECKING:
    from jyotish_agent.rag import RetrievalStore

logger = Logger("BookTools")


def build_book_search_tool(
    user: UserContext,
    store: "RetrievalStore",
    result_log: ToolResultLog | None = None,
    deadline: Deadline | None = None,
    timeout_seconds: float | None = None
) -> ToolDefinition:
    """
    Create the searchBooks tool bound to one user.

    Args:
        user: The requesting user
        store: Retrieval store to query
        result_log: This request's calculation results, read-only here
        deadline: Optional request deadline
        timeout_seconds: Limit for the grounded-answer call
    """

    async def search_books(args: BookSearchInput) -> ToolResult:
        latest = result_log.latest() if result_log is not None else None
        logger.debug("searchBooks called", {
            "query": args.query,
            "topic": args.topic,
            "context_tool": latest.tool_name if latest else None,
        })

        try:
            result = await store.search(
                args.query,
                topic=args.topic,
                user_name=user.name,
                tool_name=latest.tool_name if latest else None,
                tool_data=latest.data if latest else None,
                timeout=timeout_seconds,
                deadline=deadline,
            )
        except RetrievalError as e:
            logger.warning(f"Book search failed: {e}")
            return ToolResult(
                success=False,
                error=f"Error searching books: {e}. The knowledge base may not be available.",
            )

        return ToolResult(success=True, data=result.to_dict())

    return ToolDefinition(
        name=SEARCH_BOOKS,
        description=TOOL_DESCRIPTIONS[SEARCH_BOOKS],
        input_model=BookSearchInput,
        execute=search_books,
    )
