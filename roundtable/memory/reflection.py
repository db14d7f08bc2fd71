from __future__ import annotations

from typing import List

from roundtable.memory.base import Memory
from roundtable.schemas.messages import Message, MessageRole


class ReflectionMemory(Memory):
    """Private channel holding an agent's reflection notes only."""

    supports_reflection = True

    def __init__(self, include_reflections: bool = False) -> None:
        self.include_reflections = include_reflections
        self._reflections: List[Message] = []

    async def add_message(self, message: Message) -> None:
        if message.role is MessageRole.REFLECTION:
            self._reflections.append(message)

    async def get_context(self) -> List[Message]:
        return list(self._reflections) if self.include_reflections else []

    async def clear(self) -> None:
        self._reflections = []

    @property
    def reflections(self) -> List[Message]:
        return list(self._reflections)
