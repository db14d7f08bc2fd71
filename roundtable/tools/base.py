from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List


@dataclass(frozen=True)
class ToolParameter:
    name: str
    type: str = "string"
    required: bool = False
    description: str = ""


class Tool(ABC):
    """Protocol describing a callable capability.

    ``name`` is matched case-insensitively against tool requests. ``run`` gets
    the free-text query and, for structured requests, the decoded JSON arguments.
    """

    name: str
    description: str = ""
    parameters: List[ToolParameter] = []

    @abstractmethod
    async def run(self, query: str, args: Dict[str, Any] | None = None) -> str:
        """Execute tool logic and return a textual result."""

    def describe(self) -> str:
        line = f"- {self.name}: {self.description or 'No description provided.'}"
        if not self.parameters:
            return line
        params = []
        for param in self.parameters:
            flag = "required" if param.required else "optional"
            entry = f"    - {param.name} ({param.type}, {flag})"
            if param.description:
                entry += f": {param.description}"
            params.append(entry)
        return "\n".join([line, "  Parameters:", *params])

    def required_parameters(self) -> List[ToolParameter]:
        return [p for p in self.parameters if p.required]
