from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from roundtable.schemas.messages import Message


class Memory(ABC):
    """Append-only conversation log shared between an agent and its collaborators.

    Entries are never edited or removed individually; ``clear`` is the only
    destructive operation.
    """

    supports_reflection: bool = False

    @abstractmethod
    async def add_message(self, message: Message) -> None:
        """Append a message to the log."""

    @abstractmethod
    async def get_context(self) -> List[Message]:
        """Return every retained message in append order."""

    async def get_context_for_prompt(self, query: str) -> List[Message]:
        return await self.get_context()

    @abstractmethod
    async def clear(self) -> None:
        """Drop every message."""
