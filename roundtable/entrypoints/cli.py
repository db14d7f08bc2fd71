from __future__ import annotations

import argparse
import asyncio

import structlog

from roundtable.agents.convergence import ConvergenceCriteria, RuleBasedConvergenceChecker, contains_marker
from roundtable.agents.reasoning import ReasoningAgent
from roundtable.telemetry.logging import bind_run_context, clear_run_context, setup_logging
from roundtable.tools.weather import WeatherTool
from roundtable.utils.llm_clients import ChatModel, EchoChatModel, OpenAIChatModel
from roundtable.utils.settings import AppConfig, load_config
from roundtable.workflows.orchestrator import InterleavedOrchestrator
from roundtable.workflows.roles import AgentRole, TeamConfiguration

logger = structlog.get_logger(__name__)


def build_model(config: AppConfig) -> ChatModel:
    if config.llm.provider == "echo":
        return EchoChatModel()
    on_token = (lambda token: print(token, end="", flush=True)) if config.llm.stream else None
    return OpenAIChatModel(
        model=config.llm.model,
        temperature=config.llm.temperature,
        stream=config.llm.stream,
        on_token=on_token,
    )


def build_team(config: AppConfig, model: ChatModel) -> InterleavedOrchestrator:
    analyst = ReasoningAgent("analyst", model, tools=[WeatherTool()], options=config.agent)
    reviewer = ReasoningAgent("reviewer", model, options=config.agent)
    team_config = TeamConfiguration(
        roles={
            "analyst": AgentRole.from_template(
                "Analyst", "Works out a direct answer", "Answer the following task:\n{query}"
            ),
            "reviewer": AgentRole.from_template(
                "Reviewer",
                "Checks and tightens the team's answer",
                "Review the discussion so far and give the best final answer to:\n{query}",
            ),
        }
    )
    return InterleavedOrchestrator(
        "cli-team",
        [analyst, reviewer],
        team_config=team_config,
        share_memory=config.team.share_memory,
    )


async def run(task: str, config: AppConfig, team: bool, marker: str | None) -> str:
    model = build_model(config)
    if not team:
        agent = ReasoningAgent("assistant", model, tools=[WeatherTool()], options=config.agent)
        return await agent.run(task)

    predicate = (
        contains_marker(marker)
        if marker
        else RuleBasedConvergenceChecker(ConvergenceCriteria(minimum_length=1))
    )
    orchestrator = build_team(config, model)
    return await orchestrator.run_interleaved(
        task,
        max_rounds=config.team.max_rounds,
        is_converged=predicate,
        require_all_agents=config.team.require_all_agents,
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a reasoning agent or an agent team on a task.")
    parser.add_argument("task", help="Task or question for the agents.")
    parser.add_argument("--env", default="base", help="Config environment (base, dev, ...).")
    parser.add_argument("--team", action="store_true", help="Use the two-role interleaved team.")
    parser.add_argument("--marker", default=None, help="Team output counts as converged when it contains this text.")
    args = parser.parse_args()

    config = load_config(args.env)
    setup_logging(config.logging.level, config.logging.format)
    bind_run_context(env=args.env, mode="team" if args.team else "single")
    logger.info("cli_started", provider=config.llm.provider)
    try:
        answer = asyncio.run(run(args.task, config, args.team, args.marker))
    finally:
        clear_run_context()
    print(f"\n{answer}")


if __name__ == "__main__":
    main()
