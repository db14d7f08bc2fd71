from __future__ import annotations

from typing import List

from roundtable.memory.base import Memory
from roundtable.schemas.messages import Message


class CompositeMemory(Memory):
    """Fans every write out to several memories and merges their reads by timestamp."""

    def __init__(self, *memories: Memory) -> None:
        if not memories:
            raise ValueError("CompositeMemory needs at least one memory")
        self.memories: List[Memory] = list(memories)

    @property
    def supports_reflection(self) -> bool:  # type: ignore[override]
        return any(m.supports_reflection for m in self.memories)

    async def add_message(self, message: Message) -> None:
        for memory in self.memories:
            await memory.add_message(message)

    async def get_context(self) -> List[Message]:
        merged: List[Message] = []
        for memory in self.memories:
            merged.extend(await memory.get_context())
        return _by_timestamp(merged)

    async def get_context_for_prompt(self, query: str) -> List[Message]:
        merged: List[Message] = []
        for memory in self.memories:
            merged.extend(await memory.get_context_for_prompt(query))
        return _by_timestamp(merged)

    async def clear(self) -> None:
        for memory in self.memories:
            await memory.clear()


def _by_timestamp(messages: List[Message]) -> List[Message]:
    return sorted(messages, key=lambda m: m.timestamp)
