"""
Execution Loop
==============

Drives one conversation from the user's message to a final answer.

    DECIDE ──(no tool calls)──────────────► DONE (complete)
      │  ▲
      │  └──────── results appended ───┐
      ▼                                │
    DISPATCH ──────────────────────────┘
      │
      └──(bound reached, tools still requested)──► DONE (inconclusive)

DECIDE asks the model for its next step given the whole transcript and
the current instructions. DISPATCH runs every requested call and appends
one tool-result turn per call, in request order, before going back to
DECIDE. Tool failures come back as text; the model reads them and picks
another tool, retries, or answers with what it has.

The loop stops after `max_iterations` dispatch rounds. Reaching the bound
is not an error: the caller gets an "inconclusive" outcome with a
fallback answer.
"""

from dataclasses import dataclass, field
from enum import Enum

from jyotish_agent.agent.model import ChatModel
from jyotish_agent.agent.tools_executor import ToolExecutor
from jyotish_agent.deadline import Deadline, bound_timeout
from jyotish_agent.errors import DeadlineExceeded, ModelCallError
from jyotish_agent.models import (
    STATUS_COMPLETE,
    STATUS_INCONCLUSIVE,
    ConversationState,
    ToolCallRecord,
    Turn,
)
from jyotish_agent.tools import ToolRegistry
from jyotish_agent.tools.result_log import ToolResultLog
from jyotish_agent.utils.logger import Logger

logger = Logger("Loop")

DEFAULT_MAX_ITERATIONS = 8

INCONCLUSIVE_ANSWER = (
    "I was unable to complete a full reading for this question within the "
    "allowed number of steps. Please try asking a narrower question, for "
    "example about one life area or one time period."
)


class LoopState(Enum):
    DECIDE = "decide"
    DISPATCH = "dispatch"
    DONE = "done"


@dataclass
class LoopOutcome:
    """
    How a run ended.

    Attributes:
        status: "complete" or "inconclusive"
        answer: Final model text, or the fallback message
        iterations: Dispatch rounds that ran
        records: Every dispatched call, in transcript order
    """
    status: str
    answer: str
    iterations: int = 0
    records: list[ToolCallRecord] = field(default_factory=list)


class ExecutionLoop:
    """
    The DECIDE / DISPATCH state machine.

    A loop instance holds no per-request state and can serve concurrent
    requests; everything mutable lives in the ConversationState passed
    to run().

    Example:
        loop = ExecutionLoop(model, ToolExecutor(), max_iterations=8)
        state = ConversationState(instructions, [Turn.user("When will I marry?")])
        outcome = await loop.run(state, registry)
    """

    def __init__(
        self,
        model: ChatModel,
        executor: ToolExecutor | None = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        model_timeout_seconds: float | None = None
    ):
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.model = model
        self.executor = executor or ToolExecutor()
        self.max_iterations = max_iterations
        self.model_timeout_seconds = model_timeout_seconds

    async def run(
        self,
        state: ConversationState,
        registry: ToolRegistry,
        deadline: Deadline | None = None,
        result_log: ToolResultLog | None = None
    ) -> LoopOutcome:
        """
        Run until the model answers or the iteration bound is reached.

        Args:
            state: Transcript ending with the user's turn; appended to in place
            registry: This request's tools
            deadline: Optional request deadline, checked before each model call
            result_log: Receives successful calculation results after each batch

        Returns:
            LoopOutcome

        Raises:
            ModelCallError: The model call failed
            DeadlineExceeded: The deadline expired before an answer
        """
        phase = LoopState.DECIDE
        iterations = 0
        records: list[ToolCallRecord] = []
        pending: Turn | None = None
        outcome: LoopOutcome | None = None

        while phase is not LoopState.DONE:
            if phase is LoopState.DECIDE:
                reply_turn = await self._decide(state, registry, deadline)

                if not reply_turn.tool_calls:
                    state.append(reply_turn)
                    logger.info(f"Answer ready after {iterations} tool round(s)")
                    outcome = LoopOutcome(STATUS_COMPLETE, reply_turn.content, iterations, records)
                    phase = LoopState.DONE
                    continue

                if iterations >= self.max_iterations:
                    logger.warning(
                        f"Reached max tool iterations ({self.max_iterations})",
                        {"requested": [call.name for call in reply_turn.tool_calls]},
                    )
                    outcome = LoopOutcome(STATUS_INCONCLUSIVE, INCONCLUSIVE_ANSWER, iterations, records)
                    phase = LoopState.DONE
                    continue

                state.append(reply_turn)
                pending = reply_turn
                phase = LoopState.DISPATCH

            elif phase is LoopState.DISPATCH:
                iterations += 1
                logger.debug(f"Tool iteration {iterations}")

                results = await self.executor.execute_all(pending.tool_calls, registry)
                state.extend([result.to_turn() for result in results])

                for result in results:
                    records.append(result.to_record())
                    if result_log is not None and result.result.success:
                        result_log.record(result.call.name, result.result.data)

                pending = None
                phase = LoopState.DECIDE

        return outcome

    async def _decide(
        self,
        state: ConversationState,
        registry: ToolRegistry,
        deadline: Deadline | None
    ) -> Turn:
        if deadline is not None:
            deadline.check("the model call")

        timeout = bound_timeout(deadline, self.model_timeout_seconds)
        try:
            reply = await self.model.complete(
                list(state.turns),
                state.instructions,
                registry.get_all(),
                timeout=timeout,
            )
        except Exception as e:
            if deadline is not None and deadline.expired:
                raise DeadlineExceeded("Deadline exceeded during the model call") from e
            logger.error("Model call failed", e)
            raise ModelCallError(f"Model call failed: {e}") from e

        return Turn.assistant(reply.text, reply.tool_calls)
