"""
Agent Core
==========

The facade that turns one user question into one answer.

For each request the agent:
1. Validates the message and birth data before any remote call
2. Recovers the birth chart (the caller's, or one best-effort fetch)
3. Builds the instructions from the profile and chart
4. Builds this request's tools, bound to the user
5. Runs the execution loop
6. Reports the answer, the tools the model used, and the status

Request Flow:
    message + profile (+ chart)
         │
         ▼
    Validate ──(missing field)──► RequestValidationError
         │
         ▼
    Recover chart ──(service down)──► ChartUnavailable(reason)
         │
         ▼
    Instructions + Tools
         │
         ▼
    Execution Loop ──► AgentResult(answer, tools_used, status)

Nothing is shared between requests except the read-only collaborators
(model, calculation client, retrieval store), so one Agent can serve
concurrent requests.
"""

from typing import Any

from openai import AsyncOpenAI

from jyotish_agent.agent.context import ContextAssembler
from jyotish_agent.agent.loop import DEFAULT_MAX_ITERATIONS, ExecutionLoop
from jyotish_agent.agent.model import ChatModel, OpenAIChatModel, get_preset
from jyotish_agent.agent.tools_executor import ToolExecutor
from jyotish_agent.calculation.client import CalculationClient
from jyotish_agent.deadline import Deadline
from jyotish_agent.errors import CalculationError, DeadlineExceeded, RequestValidationError
from jyotish_agent.models import (
    AgentResult,
    ChartContext,
    ChartRecovered,
    ChartUnavailable,
    ConversationState,
    Turn,
    UserContext,
)
from jyotish_agent.rag import RetrievalStore
from jyotish_agent.tools.factory import build_registry
from jyotish_agent.tools.result_log import ToolResultLog
from jyotish_agent.utils.config import Config, get_config
from jyotish_agent.utils.logger import Logger

logger = Logger("Agent")


class Agent:
    """
    The main agent that answers astrology questions.

    Example:
        agent = Agent.from_config()

        result = await agent.process(
            "What does my current dasha mean for my career?",
            UserContext.from_dict(profile),
        )

        print(result.answer)
        print(result.tools_used)  # ["getDasha", "getVargaChart"]
    """

    def __init__(
        self,
        model: ChatModel,
        calculation_client: CalculationClient,
        retrieval_store: RetrievalStore | None = None,
        assembler: ContextAssembler | None = None,
        executor: ToolExecutor | None = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        request_timeout_seconds: float | None = None,
        model_timeout_seconds: float | None = None,
        prefetch_chart: bool = True,
        search_timeout_seconds: float | None = None
    ):
        """
        Initialize the agent.

        Args:
            model: Chat model used by the execution loop
            calculation_client: Client for the calculation service
            retrieval_store: Optional book store; without it searchBooks is not offered
            assembler: Instruction builder (default ContextAssembler())
            executor: Tool batch runner (default ToolExecutor())
            max_iterations: Dispatch rounds before the run is inconclusive
            request_timeout_seconds: Default per-request deadline, None for no deadline
            model_timeout_seconds: Limit for each model call
            prefetch_chart: Fetch the birth chart when the caller sends none
            search_timeout_seconds: Limit for each book search
        """
        self.model = model
        self.calculation_client = calculation_client
        self.retrieval_store = retrieval_store
        self.assembler = assembler or ContextAssembler()
        self.loop = ExecutionLoop(
            model,
            executor or ToolExecutor(),
            max_iterations=max_iterations,
            model_timeout_seconds=model_timeout_seconds,
        )
        self.request_timeout_seconds = request_timeout_seconds
        self.prefetch_chart = prefetch_chart
        self.search_timeout_seconds = search_timeout_seconds
        self._openai: AsyncOpenAI | None = None

        logger.info(
            f"Agent initialized (max_iterations={max_iterations}, "
            f"books={'on' if retrieval_store else 'off'})"
        )

    @classmethod
    def from_config(cls, config: Config | None = None) -> "Agent":
        """Wire the production collaborators from configuration."""
        config = config or get_config()

        openai = AsyncOpenAI(
            api_key=config.openai.api_key,
            timeout=config.openai.timeout_seconds,
        )
        model = OpenAIChatModel(
            openai,
            config.openai.model,
            get_preset(config.agent.model_preset),
        )
        calculation_client = CalculationClient(
            config.calculation.base_url,
            timeout_seconds=config.calculation.timeout_seconds,
            warmup_retry_delay_seconds=config.calculation.warmup_retry_delay_seconds,
        )

        agent = cls(
            model=model,
            calculation_client=calculation_client,
            retrieval_store=RetrievalStore.from_config(config, openai),
            max_iterations=config.agent.max_iterations,
            request_timeout_seconds=config.agent.request_timeout_seconds,
            model_timeout_seconds=config.openai.timeout_seconds,
            prefetch_chart=config.agent.prefetch_chart,
            search_timeout_seconds=config.openai.timeout_seconds,
        )
        agent._openai = openai
        return agent

    async def aclose(self) -> None:
        await self.calculation_client.aclose()
        if self._openai is not None:
            await self._openai.close()

    # ==========================================================================
    # Request Processing
    # ==========================================================================

    async def process(
        self,
        message: str,
        user: UserContext,
        chart: dict[str, Any] | None = None,
        timeout: float | None = None
    ) -> AgentResult:
        """
        Answer one question.

        Args:
            message: The user's question
            user: The user's birth profile
            chart: Precomputed birth chart, if the caller has one
            timeout: Deadline for the whole request in seconds
                (default request_timeout_seconds)

        Returns:
            AgentResult with the answer, tools used and status

        Raises:
            RequestValidationError: A required field is missing
            ModelCallError: The model call failed
            DeadlineExceeded: The deadline expired before an answer
        """
        self.validate(message, user)

        timeout = timeout if timeout is not None else self.request_timeout_seconds
        deadline = Deadline.after(timeout) if timeout is not None else None

        logger.info(f"Processing message from {user.name or 'anonymous'}: {message[:50]}...")

        chart_context = await self.recover_chart(user, chart, deadline)

        state = ConversationState(
            instructions=self.assembler.build_instructions(user, chart_context),
            turns=[Turn.user(message)],
        )
        result_log = ToolResultLog()
        registry = build_registry(
            user,
            self.calculation_client,
            self.retrieval_store,
            result_log=result_log,
            deadline=deadline,
            search_timeout_seconds=self.search_timeout_seconds,
        )

        outcome = await self.loop.run(state, registry, deadline=deadline, result_log=result_log)

        tools_used = state.tools_used()
        logger.info("Agent execution finished", {
            "status": outcome.status,
            "iterations": outcome.iterations,
            "tools_used": tools_used,
            "answer_chars": len(outcome.answer),
        })

        return AgentResult(
            answer=outcome.answer,
            tools_used=tools_used,
            status=outcome.status,
            iterations=outcome.iterations,
            tool_calls=outcome.records,
            chart=chart_context,
        )

    async def process_request(
        self,
        request: dict[str, Any],
        timeout: float | None = None
    ) -> AgentResult:
        """
        Answer a request in the chat endpoint's JSON shape.

        Example:
            await agent.process_request({
                "message": "When will I get married?",
                "userData": {"name": "Asha", "date": "1990-08-15", "time": "10:30",
                             "location": {"lat": 28.61, "lon": 77.21}},
                "chartData": None,
            })
        """
        user_data = request.get("userData")
        if not isinstance(user_data, dict):
            raise RequestValidationError("userData", "User data is required")

        chart = request.get("chartData")
        return await self.process(
            request.get("message") or "",
            UserContext.from_dict(user_data),
            chart=chart if isinstance(chart, dict) and chart else None,
            timeout=timeout,
        )

    @staticmethod
    def validate(message: str | None, user: UserContext | None) -> None:
        """
        Check the required request fields.

        Coordinates are only missing when absent; 0.0 is a valid latitude
        or longitude.

        Raises:
            RequestValidationError: On the first missing field
        """
        if not message or not message.strip():
            raise RequestValidationError("message", "Message cannot be empty")
        if user is None:
            raise RequestValidationError("userData", "User data is required")
        if not user.date:
            raise RequestValidationError("user.date", "Birth date and time are required")
        if not user.time:
            raise RequestValidationError("user.time", "Birth date and time are required")
        if user.location.lat is None:
            raise RequestValidationError("user.location.lat", "Birth location coordinates are required")
        if user.location.lon is None:
            raise RequestValidationError("user.location.lon", "Birth location coordinates are required")

    async def recover_chart(
        self,
        user: UserContext,
        chart: dict[str, Any] | None,
        deadline: Deadline | None = None
    ) -> ChartContext:
        """
        Decide what chart the instructions carry.

        The caller's chart wins. Otherwise one birth chart fetch is tried;
        a failure is logged and the request continues without a chart.
        """
        if chart:
            return ChartRecovered(chart, source="caller")

        if not self.prefetch_chart:
            return ChartUnavailable("chart prefetch disabled")

        logger.info("Context recovery: fetching missing chart data")
        try:
            if deadline is not None:
                deadline.check("the chart prefetch")
            data = await self.calculation_client.birth_chart(user, deadline=deadline)
        except (CalculationError, DeadlineExceeded) as e:
            logger.warning(f"Context recovery failed: {e}")
            return ChartUnavailable(str(e))

        logger.info("Context recovery: chart data fetched")
        return ChartRecovered(data, source="prefetch")
