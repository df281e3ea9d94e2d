"""
Data Model
==========

Plain dataclasses shared by the registry, the loop and the facade.

    UserContext        immutable snapshot of the person asking
    Turn               one transcript entry (user, assistant or tool result)
    ConversationState  the append-only transcript plus current instructions
    ToolCall           a tool invocation requested by the model
    ToolCallRecord     what happened when a ToolCall was dispatched
    ChartContext       ChartRecovered | ChartUnavailable
    AgentResult        what Agent.process() returns
"""

import json
from dataclasses import dataclass, field
from typing import Any, Union


ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
ROLE_TOOL = "tool"

STATUS_COMPLETE = "complete"
STATUS_INCONCLUSIVE = "inconclusive"


@dataclass(frozen=True)
class Location:
    """Birth place. Coordinates are None when unknown; 0.0 is a real value."""
    lat: float | None
    lon: float | None
    name: str | None = None


@dataclass(frozen=True)
class UserContext:
    """
    Everything the tools need to know about the user for one request.

    Attributes:
        name: Display name, optional
        date: Birth date, YYYY-MM-DD
        time: Birth time, HH:MM
        location: Birth place and coordinates
        timezone: Optional timezone name or offset, forwarded to dasha
        locale: Optional response language code (e.g., "hi")
    """
    name: str | None
    date: str | None
    time: str | None
    location: Location
    timezone: str | None = None
    locale: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserContext":
        """
        Build a context from the JSON profile shape.

        Example:
            UserContext.from_dict({
                "name": "Asha",
                "date": "1990-08-15",
                "time": "10:30",
                "location": {"lat": 28.61, "lon": 77.21, "name": "Delhi"},
            })
        """
        location = data.get("location") or {}
        return cls(
            name=data.get("name"),
            date=data.get("date"),
            time=data.get("time"),
            location=Location(
                lat=_as_float(location.get("lat")),
                lon=_as_float(location.get("lon")),
                name=location.get("name"),
            ),
            timezone=data.get("timezone"),
            locale=data.get("locale"),
        )

    def birth_payload(self) -> dict[str, Any]:
        """The birth facts every calculation endpoint expects."""
        return {
            "date": self.date,
            "time": self.time,
            "lat": self.location.lat,
            "lon": self.location.lon,
        }


def _as_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class ToolCall:
    """
    A tool invocation requested by the model.

    Attributes:
        id: Correlation id, echoed on the matching tool-result turn
        name: Requested tool name (may not exist in the registry)
        arguments: Arguments as decoded from the model's JSON
    """
    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Turn:
    """One transcript entry."""
    role: str
    content: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    tool_call_id: str | None = None
    name: str | None = None

    @classmethod
    def user(cls, content: str) -> "Turn":
        return cls(role=ROLE_USER, content=content)

    @classmethod
    def assistant(cls, content: str, tool_calls: tuple[ToolCall, ...] = ()) -> "Turn":
        return cls(role=ROLE_ASSISTANT, content=content, tool_calls=tuple(tool_calls))

    @classmethod
    def tool_result(cls, call_id: str, name: str, content: str) -> "Turn":
        return cls(role=ROLE_TOOL, content=content, tool_call_id=call_id, name=name)


@dataclass
class ConversationState:
    """
    The unit of progress through the execution loop.

    Turns are only ever appended.
    """
    instructions: str
    turns: list[Turn] = field(default_factory=list)

    def append(self, turn: Turn) -> None:
        self.turns.append(turn)

    def extend(self, turns: list[Turn]) -> None:
        self.turns.extend(turns)

    @property
    def last_turn(self) -> Turn | None:
        return self.turns[-1] if self.turns else None

    def tools_used(self) -> list[str]:
        """Distinct tool names requested by the model, in first-use order."""
        seen: list[str] = []
        for turn in self.turns:
            for call in turn.tool_calls:
                if call.name not in seen:
                    seen.append(call.name)
        return seen


@dataclass(frozen=True)
class ToolCallRecord:
    """The outcome of dispatching one ToolCall."""
    call_id: str
    name: str
    arguments: dict[str, Any]
    result: str
    success: bool
    data: Any = None


@dataclass(frozen=True)
class ChartRecovered:
    """A precomputed birth chart is available for the instructions."""
    chart: dict[str, Any]
    source: str = "caller"  # "caller" or "prefetch"


@dataclass(frozen=True)
class ChartUnavailable:
    """No chart could be supplied; the model has to call the chart tool itself."""
    reason: str


ChartContext = Union[ChartRecovered, ChartUnavailable]


@dataclass
class AgentResult:
    """
    Result of one Agent.process() call.

    Attributes:
        answer: Final answer text (fallback message when inconclusive)
        tools_used: Distinct tool names the model requested
        status: "complete" or "inconclusive"
        iterations: Number of dispatch rounds that ran
        tool_calls: Every dispatched call, for diagnostics
        chart: How the chart context was obtained
    """
    answer: str
    tools_used: list[str]
    status: str = STATUS_COMPLETE
    iterations: int = 0
    tool_calls: list[ToolCallRecord] = field(default_factory=list)
    chart: ChartContext | None = None

    @property
    def is_complete(self) -> bool:
        return self.status == STATUS_COMPLETE

    def to_dict(self) -> dict[str, Any]:
        """The public response shape."""
        return {
            "answer": self.answer,
            "toolsUsed": list(self.tools_used),
            "status": self.status,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2)
