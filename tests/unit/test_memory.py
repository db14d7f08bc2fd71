import asyncio
import dataclasses

import pytest

from roundtable.memory.composite import CompositeMemory
from roundtable.memory.long_term import LongTermMemory
from roundtable.memory.reflection import ReflectionMemory
from roundtable.memory.summarizing import SummarizingMemory
from roundtable.memory.transcript import Transcript
from roundtable.memory.vector_store import InMemoryVectorStore, VectorStoreItem, cosine_similarity
from roundtable.schemas.messages import Message, MessageRole
from roundtable.utils.llm_clients import HashingEmbeddings, ScriptedChatModel


def test_message_gets_timestamp_and_is_frozen():
    message = Message.user("hi", agent="a")
    assert message.role is MessageRole.USER
    assert isinstance(message.metadata["timestamp"], float)
    assert message.metadata["agent"] == "a"
    with pytest.raises(dataclasses.FrozenInstanceError):
        message.content = "changed"


def test_message_accepts_role_strings():
    message = Message("assistant", "ok")
    assert message.role is MessageRole.ASSISTANT
    assert message.as_chat() == {"role": "assistant", "content": "ok"}


@pytest.mark.asyncio
async def test_transcript_round_trip_preserves_everything():
    transcript = Transcript()
    metadata = {"timestamp": 123.5, "agent": "alpha", "nested": {"ids": [1, 2]}, "note": "ünïcode"}
    original = Message(MessageRole.REFLECTION, "line one\nline two  ", metadata)
    await transcript.add_message(original)

    [restored] = await transcript.get_context()
    assert restored.role is original.role
    assert restored.content == "line one\nline two  "
    assert restored.metadata == metadata


@pytest.mark.asyncio
async def test_transcript_window_and_clear():
    transcript = Transcript(max_messages=2)
    for i in range(4):
        await transcript.add_message(Message.user(f"m{i}"))
    assert [m.content for m in await transcript.get_context()] == ["m2", "m3"]
    assert [m.content for m in transcript.last(1)] == ["m3"]

    await transcript.clear()
    assert await transcript.get_context() == []


@pytest.mark.asyncio
async def test_concurrent_appends_keep_each_writer_ordered():
    transcript = Transcript()

    async def writer(name: str) -> None:
        for i in range(25):
            await transcript.add_message(Message.assistant(f"{name}-{i}", agent=name))
            await asyncio.sleep(0)

    await asyncio.gather(writer("a"), writer("b"))
    context = await transcript.get_context()
    assert len(context) == 50
    for name in ("a", "b"):
        own = [m.content for m in context if m.metadata["agent"] == name]
        assert own == [f"{name}-{i}" for i in range(25)]


@pytest.mark.asyncio
async def test_reflection_memory_keeps_only_reflections():
    hidden = ReflectionMemory()
    shown = ReflectionMemory(include_reflections=True)
    for memory in (hidden, shown):
        await memory.add_message(Message.user("question"))
        await memory.add_message(Message.reflection("I should check the units"))

    assert hidden.supports_reflection
    assert await hidden.get_context() == []
    assert len(hidden.reflections) == 1
    assert [m.content for m in await shown.get_context()] == ["I should check the units"]


@pytest.mark.asyncio
async def test_composite_memory_merges_by_timestamp():
    transcript = Transcript()
    reflections = ReflectionMemory(include_reflections=True)
    composite = CompositeMemory(transcript, reflections)

    await composite.add_message(Message.user("q", timestamp=1.0))
    await composite.add_message(Message.reflection("think", timestamp=2.0))
    await composite.add_message(Message.assistant("a", timestamp=3.0))

    context = await composite.get_context()
    assert [m.content for m in context] == ["q", "think", "think", "a"]
    assert composite.supports_reflection
    assert not CompositeMemory(Transcript()).supports_reflection

    await composite.clear()
    assert await composite.get_context() == []


@pytest.mark.asyncio
async def test_summarizing_memory_folds_older_messages():
    summarizer = ScriptedChatModel(["short summary"])
    memory = SummarizingMemory(summarizer, threshold=4, keep_recent=3)
    for i in range(1, 6):
        await memory.add_message(Message.user(f"m{i}"))

    context = await memory.get_context()
    assert [m.content for m in context[1:]] == ["m3", "m4", "m5"]
    assert context[0].role is MessageRole.ASSISTANT
    assert context[0].content == "Summary of earlier discussion:\nshort summary"
    assert "USER: m1\nUSER: m2" in summarizer.calls[0][1]["content"]


def test_summarizing_memory_rejects_threshold_below_kept_messages():
    with pytest.raises(ValueError):
        SummarizingMemory(ScriptedChatModel(["x"]), threshold=3, keep_recent=3)


@pytest.mark.asyncio
async def test_long_term_memory_recalls_relevant_messages():
    memory = LongTermMemory(HashingEmbeddings(dimensions=1024), top_k=1)
    await memory.add_message(Message.user("the cat sat on the mat"))
    await memory.add_message(Message.assistant("quarterly revenue grew"))
    await memory.add_message(Message.assistant("weather in rome is sunny"))

    [hit] = await memory.get_context_for_prompt("rome weather")
    assert hit.content == "weather in rome is sunny"
    assert len(await memory.get_context()) == 3

    await memory.clear()
    assert await memory.get_context() == []


def test_cosine_similarity_edges():
    assert cosine_similarity([1, 0], [0, 1]) == 0.0
    assert cosine_similarity([1, 1], [2, 2]) == pytest.approx(1.0)
    assert cosine_similarity([0, 0], [1, 1]) == 0.0
    with pytest.raises(ValueError):
        cosine_similarity([1, 0], [1, 0, 0])


def test_vector_store_search_and_cap():
    store = InMemoryVectorStore(max_items=2)
    store.add_item(VectorStoreItem("1", "first", [1.0, 0.0]))
    store.add_item(VectorStoreItem("2", "second", [0.0, 1.0]))
    store.add_item(VectorStoreItem("3", "third", [0.7, 0.7]))

    assert [i.id for i in store.all_items()] == ["2", "3"]
    assert [i.id for i in store.similarity_search([0.0, 1.0], k=1)] == ["2"]
    assert store.similarity_search([0.0, 1.0], k=0) == []
