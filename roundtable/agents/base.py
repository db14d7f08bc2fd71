from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, List

from roundtable.memory.base import Memory
from roundtable.memory.transcript import Transcript
from roundtable.tools.base import Tool


class Agent(ABC):
    """Base contract for every reasoning agent in the system.

    ``memory`` is a plain attribute so that a team can swap in a shared log.
    """

    name: str

    def __init__(
        self,
        name: str,
        memory: Memory | None = None,
        tools: Iterable[Tool] | None = None,
    ) -> None:
        self.name = name
        self.memory: Memory = memory if memory is not None else Transcript()
        self.tools: List[Tool] = list(tools or [])

    @abstractmethod
    async def run(self, query: str) -> str:
        """Drive the agent to a textual result for ``query``."""

    def register_tool(self, tool: Tool) -> None:
        self.tools.append(tool)
