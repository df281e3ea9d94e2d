"""
Calculation Tools
=================

Tools backed by the remote calculation service: birth chart, dasha,
transits, varga and varshaphala.

Each executor is a closure over the user's context. The model supplies
only task parameters; birth date, time and coordinates are filled in here.

Failures from the service arrive as CalculationError and are turned into
a short per-tool message, for example:

    Error calculating Dasha periods: Calculation service is starting up.
    Please try again in a few seconds.

so the model can retry, ask the user, or answer without that datum.
"""

from jyotish_agent.calculation.client import CalculationClient
from jyotish_agent.deadline import Deadline
from jyotish_agent.errors import CalculationError
from jyotish_agent.models import UserContext
from jyotish_agent.tools import ToolDefinition, ToolResult
from jyotish_agent.tools.descriptions import (
    GET_BIRTH_CHART,
    GET_DASHA,
    GET_TRANSITS,
    GET_VARGA_CHART,
    GET_VARSHAPHALA,
    TOOL_DESCRIPTIONS,
)
from jyotish_agent.tools.schemas import (
    BirthChartInput,
    DashaInput,
    TransitInput,
    VargaInput,
    VarshaphalaInput,
)
from jyotish_agent.utils.logger import Logger

logger = Logger("CalculationTools")


def _failed(prefix: str, error: CalculationError, hint: str = "") -> ToolResult:
    message = f"{prefix}: {error.message}"
    if hint:
        message = f"{message} {hint}"
    logger.warning(message)
    return ToolResult(success=False, error=message)


def build_calculation_tools(
    user: UserContext,
    client: CalculationClient,
    deadline: Deadline | None = None
) -> list[ToolDefinition]:
    """
    Create the calculation tools bound to one user.

    Args:
        user: The requesting user's birth data
        client: Calculation service client
        deadline: Optional request deadline applied to every call

    Returns:
        Tool definitions in the order they are offered to the model
    """

    # ==========================================================================
    # Tool: Transits
    # ==========================================================================

    async def get_transits(args: TransitInput) -> ToolResult:
        try:
            data = await client.transits(
                user,
                current_date=args.current_date,
                years=args.years,
                include_moon=args.include_moon,
                deadline=deadline,
            )
        except CalculationError as e:
            return _failed(
                "Error calculating transits", e,
                "Please try again or ask about a different topic.",
            )
        return ToolResult(success=True, data=data)

    # ==========================================================================
    # Tool: Varga (divisional charts)
    # ==========================================================================

    async def get_varga_chart(args: VargaInput) -> ToolResult:
        try:
            data = await client.varga(user, args.varga_num, deadline=deadline)
        except CalculationError as e:
            return _failed(f"Error calculating Varga chart D{args.varga_num}", e)
        return ToolResult(success=True, data=data)

    # ==========================================================================
    # Tool: Varshaphala (annual solar return)
    # ==========================================================================

    async def get_varshaphala(args: VarshaphalaInput) -> ToolResult:
        try:
            data = await client.varshaphala(user, args.age, deadline=deadline)
        except CalculationError as e:
            return _failed(f"Error calculating Varshaphala for age {args.age}", e)
        return ToolResult(success=True, data=data)

    # ==========================================================================
    # Tool: Dasha
    # ==========================================================================

    async def get_dasha(args: DashaInput) -> ToolResult:
        try:
            data = await client.dasha(user, deadline=deadline)
        except CalculationError as e:
            return _failed("Error calculating Dasha periods", e)
        return ToolResult(success=True, data=data)

    # ==========================================================================
    # Tool: Birth chart
    # ==========================================================================

    async def get_birth_chart(args: BirthChartInput) -> ToolResult:
        try:
            data = await client.birth_chart(user, deadline=deadline)
        except CalculationError as e:
            return _failed("Error fetching birth chart", e)
        return ToolResult(success=True, data=data)

    return [
        ToolDefinition(GET_TRANSITS, TOOL_DESCRIPTIONS[GET_TRANSITS], TransitInput, get_transits),
        ToolDefinition(GET_VARGA_CHART, TOOL_DESCRIPTIONS[GET_VARGA_CHART], VargaInput, get_varga_chart),
        ToolDefinition(GET_VARSHAPHALA, TOOL_DESCRIPTIONS[GET_VARSHAPHALA], VarshaphalaInput, get_varshaphala),
        ToolDefinition(GET_DASHA, TOOL_DESCRIPTIONS[GET_DASHA], DashaInput, get_dasha),
        ToolDefinition(GET_BIRTH_CHART, TOOL_DESCRIPTIONS[GET_BIRTH_CHART], BirthChartInput, get_birth_chart),
    ]
