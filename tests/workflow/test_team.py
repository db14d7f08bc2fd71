import asyncio

import pytest

from roundtable.agents.base import Agent
from roundtable.memory.transcript import Transcript
from roundtable.schemas.messages import Message
from roundtable.workflows.team import AgentOutcome, AgentTeam, TeamHooks


class EchoAgent(Agent):
    def __init__(self, name, suffix, delay=0.0, fail=False):
        super().__init__(name)
        self.suffix = suffix
        self.delay = delay
        self.fail = fail

    async def run(self, query):
        await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError(f"{self.name} failed")
        return f"{query}{self.suffix}"


class ChattyAgent(Agent):
    """Writes several messages into its memory, yielding between appends."""

    async def run(self, query):
        for i in range(10):
            await self.memory.add_message(Message.assistant(f"{self.name}-{i}", agent=self.name))
            await asyncio.sleep(0)
        return self.name


@pytest.mark.asyncio
async def test_parallel_results_follow_agent_order():
    started = []
    team = AgentTeam(
        "fanout",
        [EchoAgent("slow", "+slow", delay=0.02), EchoAgent("fast", "+fast")],
        hooks=TeamHooks(on_agent_start=lambda name, q: started.append(name)),
    )

    assert await team.run_in_parallel("q") == ["q+slow", "q+fast"]
    assert sorted(started) == ["fast", "slow"]


@pytest.mark.asyncio
async def test_parallel_failure_propagates_after_hook():
    errors = []
    team = AgentTeam(
        "fanout",
        [EchoAgent("ok", "!"), EchoAgent("bad", "", fail=True)],
        hooks=TeamHooks(on_error=lambda name, err: errors.append(str(err))),
    )

    with pytest.raises(RuntimeError, match="bad failed"):
        await team.run_in_parallel("q")
    assert errors == ["bad failed"]


@pytest.mark.asyncio
async def test_parallel_safe_reports_each_outcome():
    finals = []

    async def on_final(outputs):
        finals.append(outputs)

    team = AgentTeam(
        "fanout",
        [EchoAgent("ok", "!"), EchoAgent("bad", "", fail=True)],
        hooks=TeamHooks(on_final=on_final),
    )

    outcomes = await team.run_in_parallel_safe("q")
    assert outcomes == [AgentOutcome("ok", True, "q!"), AgentOutcome("bad", False, "bad failed")]
    assert finals == [["q!", "bad failed"]]


@pytest.mark.asyncio
async def test_shared_memory_under_fan_out_keeps_per_agent_order():
    shared = Transcript()
    team = AgentTeam("fanout", [ChattyAgent("a", memory=shared), ChattyAgent("b", memory=shared)])

    await team.run_in_parallel("go")

    context = await shared.get_context()
    assert len(context) == 20
    for name in ("a", "b"):
        assert [m.content for m in context if m.metadata["agent"] == name] == [f"{name}-{i}" for i in range(10)]


@pytest.mark.asyncio
async def test_sequential_pipes_outputs():
    ends = []
    team = AgentTeam(
        "pipeline",
        [EchoAgent("one", "-1"), EchoAgent("two", "-2")],
        hooks=TeamHooks(on_agent_end=lambda name, out: ends.append((name, out))),
    )

    assert await team.run_sequential("x") == "x-1-2"
    assert ends == [("one", "x-1"), ("two", "x-1-2")]


@pytest.mark.asyncio
async def test_sequential_safe_can_continue_or_stop():
    agents = [EchoAgent("one", "-1"), EchoAgent("bad", "", fail=True), EchoAgent("three", "-3")]

    keep_going = await AgentTeam("pipeline", agents).run_sequential_safe("x", stop_on_error=False)
    assert keep_going == ["x-1", "Error from agent bad: bad failed", "x-1-3"]

    stopped = await AgentTeam("pipeline", agents).run_sequential_safe("x", stop_on_error=True)
    assert stopped == ["x-1", "Error from agent bad: bad failed"]


@pytest.mark.asyncio
async def test_aggregate_results_joins_outputs():
    team = AgentTeam("fanout", [EchoAgent("a", "A"), EchoAgent("b", "B")])
    assert await team.aggregate_results("q:") == "q:A\n---\nq:B"
