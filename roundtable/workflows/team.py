from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional

import structlog

from roundtable.agents.base import Agent
from roundtable.utils.async_utils import call_hook

logger = structlog.get_logger(__name__)

RESULT_SEPARATOR = "\n---\n"


@dataclass
class TeamHooks:
    on_agent_start: Optional[Callable[[str, str], Any]] = None
    on_agent_end: Optional[Callable[[str, str], Any]] = None
    on_error: Optional[Callable[[str, Exception], Any]] = None
    on_final: Optional[Callable[[List[str]], Any]] = None


@dataclass(frozen=True)
class AgentOutcome:
    agent_name: str
    success: bool
    output: str


class AgentTeam:
    """Runs a fixed group of agents either side by side or as a pipeline.

    Under ``run_in_parallel`` every agent's ``run`` is in flight at once. If the
    agents share one memory object, each agent's own appends stay in order but
    appends from different agents interleave in whatever order the event loop
    picks.
    """

    def __init__(self, name: str, agents: Iterable[Agent], hooks: TeamHooks | None = None) -> None:
        self.name = name
        self.agents: List[Agent] = list(agents)
        self.hooks = hooks or TeamHooks()

    async def run_in_parallel(self, query: str) -> List[str]:
        async def run_one(agent: Agent) -> str:
            await call_hook(self.hooks.on_agent_start, agent.name, query)
            try:
                output = await agent.run(query)
            except Exception as err:
                logger.error("agent_failed", team=self.name, agent=agent.name, error=str(err))
                await call_hook(self.hooks.on_error, agent.name, err)
                raise
            await call_hook(self.hooks.on_agent_end, agent.name, output)
            return output

        results = list(await asyncio.gather(*(run_one(a) for a in self.agents)))
        await call_hook(self.hooks.on_final, results)
        return results

    async def run_in_parallel_safe(self, query: str) -> List[AgentOutcome]:
        async def run_one(agent: Agent) -> AgentOutcome:
            await call_hook(self.hooks.on_agent_start, agent.name, query)
            try:
                output = await agent.run(query)
            except Exception as err:
                logger.warning("agent_failed", team=self.name, agent=agent.name, error=str(err))
                await call_hook(self.hooks.on_error, agent.name, err)
                return AgentOutcome(agent.name, False, str(err))
            await call_hook(self.hooks.on_agent_end, agent.name, output)
            return AgentOutcome(agent.name, True, output)

        outcomes = list(await asyncio.gather(*(run_one(a) for a in self.agents)))
        await call_hook(self.hooks.on_final, [o.output for o in outcomes])
        return outcomes

    async def run_sequential(self, query: str) -> str:
        """Pipe each agent's output into the next agent."""
        current = query
        for agent in self.agents:
            await call_hook(self.hooks.on_agent_start, agent.name, current)
            try:
                current = await agent.run(current)
            except Exception as err:
                logger.error("agent_failed", team=self.name, agent=agent.name, error=str(err))
                await call_hook(self.hooks.on_error, agent.name, err)
                raise
            await call_hook(self.hooks.on_agent_end, agent.name, current)
        await call_hook(self.hooks.on_final, [current])
        return current

    async def run_sequential_safe(self, query: str, stop_on_error: bool = False) -> List[str]:
        outputs: List[str] = []
        current = query
        for agent in self.agents:
            await call_hook(self.hooks.on_agent_start, agent.name, current)
            try:
                output = await agent.run(current)
            except Exception as err:
                logger.warning("agent_failed", team=self.name, agent=agent.name, error=str(err))
                await call_hook(self.hooks.on_error, agent.name, err)
                outputs.append(f"Error from agent {agent.name}: {err}")
                if stop_on_error:
                    break
                continue
            await call_hook(self.hooks.on_agent_end, agent.name, output)
            outputs.append(output)
            current = output
        await call_hook(self.hooks.on_final, outputs)
        return outputs

    async def aggregate_results(self, query: str) -> str:
        return RESULT_SEPARATOR.join(await self.run_in_parallel(query))
