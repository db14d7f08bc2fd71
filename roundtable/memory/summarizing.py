from __future__ import annotations

from typing import List

import structlog

from roundtable.memory.base import Memory
from roundtable.schemas.messages import Message
from roundtable.utils.llm_clients import ChatModel

logger = structlog.get_logger(__name__)

DEFAULT_SUMMARY_PROMPT = "Please provide a concise summary of the following conversation:"


class SummarizingMemory(Memory):
    """Keeps the log short by folding older messages into a model-written summary.

    Once the log grows past ``threshold`` messages, everything but the
    ``keep_recent`` newest messages is replaced by one summary message.
    """

    def __init__(
        self,
        summarizer: ChatModel,
        threshold: int = 10,
        summary_prompt: str = DEFAULT_SUMMARY_PROMPT,
        keep_recent: int = 3,
    ) -> None:
        if threshold <= keep_recent:
            raise ValueError("threshold must be larger than keep_recent")
        self.summarizer = summarizer
        self.threshold = threshold
        self.summary_prompt = summary_prompt
        self.keep_recent = keep_recent
        self._messages: List[Message] = []

    async def add_message(self, message: Message) -> None:
        self._messages.append(message)
        if len(self._messages) > self.threshold:
            await self._summarize_older()

    async def get_context(self) -> List[Message]:
        return list(self._messages)

    async def clear(self) -> None:
        self._messages = []

    async def _summarize_older(self) -> None:
        older = self._messages[: -self.keep_recent]
        recent = self._messages[-self.keep_recent :]
        conversation = "\n".join(f"{m.role.value.upper()}: {m.content}" for m in older)
        summary = await self.summarizer.call(
            [
                {"role": "system", "content": self.summary_prompt},
                {"role": "user", "content": conversation},
            ]
        )
        logger.debug("memory_summarized", folded=len(older), kept=len(recent))
        summary_message = Message.assistant(
            f"Summary of earlier discussion:\n{summary}",
            summary=True,
            timestamp=older[0].timestamp,
        )
        self._messages = [summary_message, *recent]
