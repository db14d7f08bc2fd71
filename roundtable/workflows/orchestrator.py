from __future__ import annotations

import itertools
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

import structlog

from roundtable.agents.base import Agent
from roundtable.agents.convergence import ConvergencePredicate
from roundtable.memory.base import Memory
from roundtable.memory.transcript import Transcript
from roundtable.schemas.messages import Message
from roundtable.utils.async_utils import call_hook, maybe_await
from roundtable.workflows.roles import AgentRole, TeamConfiguration
from roundtable.workflows.team import RESULT_SEPARATOR, AgentTeam, TeamHooks

logger = structlog.get_logger(__name__)

HEADER_RULE = "=" * 40


@dataclass
class AdvancedTeamHooks(TeamHooks):
    on_round_start: Optional[Callable[[int, int], Any]] = None
    on_round_end: Optional[Callable[[int, Dict[str, "AgentContribution"]], Any]] = None
    on_convergence: Optional[Callable[[Agent, str], Any]] = None
    on_aggregation: Optional[Callable[[str], Any]] = None


@dataclass(frozen=True)
class AgentContribution:
    agent_name: str
    role_name: Optional[str]
    content: str
    has_converged: bool
    timestamp: float
    sequence: int
    failed: bool = False

    def render(self) -> str:
        label = f"{self.agent_name} ({self.role_name})" if self.role_name else self.agent_name
        return f"[{label}]\n{self.content}"


class InterleavedOrchestrator(AgentTeam):
    """Round-robin controller that lets agents take turns until their output converges.

    Each round gives every agent, in order, one full ``run`` on its role-specific
    rewrite of the query. Only the latest contribution per agent is kept. With
    ``require_all_agents=False`` the first converged output ends the run and is
    returned as is; otherwise the run ends once every agent's latest
    contribution has converged. Reaching ``max_rounds`` returns whatever was
    contributed, combined under a header.
    """

    def __init__(
        self,
        name: str,
        agents: Iterable[Agent],
        team_config: TeamConfiguration | None = None,
        shared_memory: Memory | None = None,
        share_memory: bool = False,
        hooks: AdvancedTeamHooks | None = None,
    ) -> None:
        super().__init__(name, agents, hooks or AdvancedTeamHooks())
        self.team_config = team_config or TeamConfiguration()
        if share_memory and shared_memory is None:
            shared_memory = Transcript()
        self.shared_memory = shared_memory
        if share_memory:
            self.enable_shared_memory()

    def enable_shared_memory(self) -> None:
        """Make the shared log every agent's own memory."""
        if self.shared_memory is None:
            logger.warning("shared_memory_missing", team=self.name)
            return
        for agent in self.agents:
            agent.memory = self.shared_memory
        logger.info("shared_memory_enabled", team=self.name, agents=len(self.agents))

    async def run_interleaved(
        self,
        query: str,
        max_rounds: int,
        is_converged: ConvergencePredicate,
        require_all_agents: bool = False,
    ) -> str:
        if max_rounds < 1:
            raise ValueError("max_rounds must be at least 1")
        log = logger.bind(team=self.name)
        log.info(
            "interleaved_run_started",
            max_rounds=max_rounds,
            require_all_agents=require_all_agents,
            team_size=len(self.agents),
        )
        contributions: Dict[str, AgentContribution] = {}
        sequence = itertools.count()
        await self._initialize_shared_context(query)

        for round_idx in range(1, max_rounds + 1):
            log.info("round_started", round=round_idx)
            await call_hook(self.hooks.on_round_start, round_idx, max_rounds)

            for agent in self.agents:
                role = self.team_config.role_for(agent.name)
                role_name = role.name if role else None
                agent_query = self._specialized_query(agent, role, query)
                await call_hook(self.hooks.on_agent_start, agent.name, agent_query)

                try:
                    output = await agent.run(agent_query)
                    converged = await self._check_convergence(is_converged, agent.name, output)
                    await call_hook(self.hooks.on_agent_end, agent.name, output)
                    contribution = AgentContribution(
                        agent.name, role_name, output, converged, time.time(), next(sequence)
                    )
                    await self._track_contribution(contribution)
                except Exception as err:
                    log.error("agent_turn_failed", round=round_idx, agent=agent.name, error=str(err))
                    await call_hook(self.hooks.on_error, agent.name, err)
                    contributions[agent.name] = AgentContribution(
                        agent.name,
                        role_name,
                        f"Error during execution: {err}",
                        False,
                        time.time(),
                        next(sequence),
                        failed=True,
                    )
                    continue

                contributions[agent.name] = contribution
                log.debug("contribution_recorded", round=round_idx, agent=agent.name, converged=converged)

                if not converged:
                    continue
                await call_hook(self.hooks.on_convergence, agent, output)
                if not require_all_agents:
                    log.info("converged", round=round_idx, agent=agent.name)
                    await call_hook(self.hooks.on_round_end, round_idx, dict(contributions))
                    return output
                if self._all_converged(contributions):
                    log.info("all_agents_converged", round=round_idx)
                    await call_hook(self.hooks.on_round_end, round_idx, dict(contributions))
                    return await self._finish(contributions)

            await call_hook(self.hooks.on_round_end, round_idx, dict(contributions))

        log.warning("max_rounds_reached", max_rounds=max_rounds, contributors=len(contributions))
        return await self._finish(contributions)

    def _specialized_query(self, agent: Agent, role: AgentRole | None, query: str) -> str:
        if role is None:
            logger.info("no_role_defined", team=self.name, agent=agent.name)
            return query
        try:
            return role.query_transform(query)
        except Exception as err:
            logger.warning("query_transform_failed", agent=agent.name, role=role.name, error=str(err))
            return query

    async def _check_convergence(
        self, is_converged: ConvergencePredicate, agent_name: str, output: str
    ) -> bool:
        """A predicate that raises counts as not converged; the output is kept."""
        try:
            return bool(await maybe_await(is_converged(output)))
        except Exception as err:
            logger.warning("convergence_check_failed", team=self.name, agent=agent_name, error=str(err))
            return False

    def _all_converged(self, contributions: Dict[str, AgentContribution]) -> bool:
        return all(
            agent.name in contributions and contributions[agent.name].has_converged
            for agent in self.agents
        )

    async def _initialize_shared_context(self, query: str) -> None:
        if self.shared_memory is None:
            return
        await self.shared_memory.clear()
        await self.shared_memory.add_message(Message.system(self.build_team_system_prompt(), team=self.name))
        await self.shared_memory.add_message(Message.user(query, team=self.name))

    async def _track_contribution(self, contribution: AgentContribution) -> None:
        if self.shared_memory is None:
            return
        await self.shared_memory.add_message(
            Message.assistant(
                contribution.content,
                agent=contribution.agent_name,
                agent_role=contribution.role_name,
                timestamp=contribution.timestamp,
                converged=contribution.has_converged,
            )
        )

    def build_team_system_prompt(self) -> str:
        roles = "\n".join(f"{name}: {role.description}" for name, role in self.team_config.roles.items())
        return (
            "This is a collaborative analysis by multiple expert agents.\n"
            f"Each agent has a specific role and expertise:\n{roles}\n\n"
            "Agents build on each other's insights while keeping their specialized focus.\n"
            'Final responses should be marked with "FINAL ANSWER:".'
        )

    async def _finish(self, contributions: Dict[str, AgentContribution]) -> str:
        result = combine_contributions(contributions.values())
        await call_hook(self.hooks.on_aggregation, result)
        return result


def combine_contributions(contributions: Iterable[AgentContribution]) -> str:
    """Render contributions in time order under a header naming who converged (✓)."""
    ordered: List[AgentContribution] = sorted(contributions, key=lambda c: (c.timestamp, c.sequence))
    contributors = ", ".join(
        f"{c.agent_name} ✓" if c.has_converged else c.agent_name for c in ordered
    )
    header = f"Team Response (Contributors: {contributors})\n{HEADER_RULE}\n"
    return header + RESULT_SEPARATOR.join(c.render() for c in ordered)
