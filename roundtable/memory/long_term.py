from __future__ import annotations

import uuid
from typing import List

from roundtable.memory.base import Memory
from roundtable.memory.vector_store import InMemoryVectorStore, VectorStoreItem
from roundtable.schemas.messages import Message
from roundtable.utils.llm_clients import EmbeddingModel


class LongTermMemory(Memory):
    """Embeds every message and recalls the most relevant ones for a prompt."""

    def __init__(self, embeddings: EmbeddingModel, max_messages: int = 1000, top_k: int = 3) -> None:
        self.embeddings = embeddings
        self.top_k = top_k
        self.store = InMemoryVectorStore(max_items=max_messages)

    async def add_message(self, message: Message) -> None:
        embedding = await self.embeddings.embed(message.content)
        self.store.add_item(
            VectorStoreItem(
                id=f"msg-{uuid.uuid4().hex[:12]}",
                content=message.content,
                embedding=embedding,
                metadata={"role": message.role.value, "message": message},
            )
        )

    async def get_context(self) -> List[Message]:
        return [item.metadata["message"] for item in self.store.all_items()]

    async def get_context_for_prompt(self, query: str) -> List[Message]:
        return await self.retrieve_relevant(query)

    async def retrieve_relevant(self, query: str, k: int | None = None) -> List[Message]:
        embedding = await self.embeddings.embed(query)
        hits = self.store.similarity_search(embedding, k if k is not None else self.top_k)
        return [item.metadata["message"] for item in hits]

    async def clear(self) -> None:
        self.store.clear()
