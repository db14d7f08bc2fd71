from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from roundtable.memory.base import Memory
from roundtable.tools.base import Tool
from roundtable.utils.llm_clients import ChatModel

PLAN_FORMAT = """[
  { "action": "tool", "details": "ToolName" },
  { "action": "message", "details": "Message to user or model" },
  { "action": "complete", "details": "FINAL ANSWER" }
]"""


class Planner(ABC):
    @abstractmethod
    async def generate_plan(self, query: str, tools: Sequence[Tool], memory: Memory) -> str:
        """Return a plan, ideally a JSON array of ``{action, details}`` steps."""


class LLMPlanner(Planner):
    """Asks a model to break the query into tool/message/complete steps."""

    def __init__(self, model: ChatModel) -> None:
        self.model = model

    async def generate_plan(self, query: str, tools: Sequence[Tool], memory: Memory) -> str:
        context = await memory.get_context()
        tool_lines = "\n".join(f"{t.name}: {t.description}" for t in tools) or "(none)"
        history = "\n".join(f"{m.role.value}: {m.content}" for m in context)
        prompt = (
            f'User query: "{query}"\n\n'
            f"Tools available:\n{tool_lines}\n\n"
            f"Context:\n{history}\n\n"
            "Plan the steps required to solve the user's query. "
            f"Answer with a JSON array like this:\n{PLAN_FORMAT}"
        )
        return await self.model.call(
            [
                {"role": "system", "content": "You are a task planning assistant."},
                {"role": "user", "content": prompt},
            ]
        )
