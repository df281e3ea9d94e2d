"""
Per-request log of calculation results.

The execution loop records each successful calculation after a dispatch
batch completes, in the order the calls were requested. The book search
tool reads the latest entry to give its query astrological context.
Executors never write here, so tools in one batch stay independent.
"""

from dataclasses import dataclass, field
from typing import Any

from jyotish_agent.tools.descriptions import CALCULATION_TOOLS


@dataclass(frozen=True)
class LoggedResult:
    tool_name: str
    data: dict[str, Any]


@dataclass
class ToolResultLog:
    entries: list[LoggedResult] = field(default_factory=list)

    def record(self, tool_name: str, data: Any) -> None:
        """Keep a successful calculation result; other tools and non-dict data are ignored."""
        if tool_name in CALCULATION_TOOLS and isinstance(data, dict):
            self.entries.append(LoggedResult(tool_name, data))

    def latest(self) -> LoggedResult | None:
        return self.entries[-1] if self.entries else None

    def __len__(self) -> int:
        return len(self.entries)
