from __future__ import annotations

import asyncio
from typing import List

from roundtable.memory.base import Memory
from roundtable.schemas.messages import Message


class Transcript(Memory):
    """Append-only conversation log backing agents and teams.

    Appends are serialized behind a lock so that agents sharing one transcript
    under parallel fan-out never lose entries; the relative order of appends
    coming from different agents is whatever order the event loop schedules.
    """

    def __init__(self, max_messages: int | None = None) -> None:
        if max_messages is not None and max_messages <= 0:
            raise ValueError("max_messages must be positive")
        self.max_messages = max_messages
        self._turns: List[Message] = []
        self._lock = asyncio.Lock()

    async def add_message(self, message: Message) -> None:
        async with self._lock:
            self._turns.append(message)
            if self.max_messages is not None and len(self._turns) > self.max_messages:
                self._turns = self._turns[-self.max_messages :]

    async def get_context(self) -> List[Message]:
        return list(self._turns)

    async def clear(self) -> None:
        async with self._lock:
            self._turns = []

    def last(self, k: int = 1) -> List[Message]:
        if k <= 0:
            return []
        return self._turns[-k:]

    def __len__(self) -> int:
        return len(self._turns)
