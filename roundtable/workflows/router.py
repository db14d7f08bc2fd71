from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Sequence, Union

import structlog
from pydantic import BaseModel, Field, ValidationError

from roundtable.agents.base import Agent
from roundtable.errors import RoundtableError
from roundtable.utils.async_utils import maybe_await
from roundtable.utils.json_blocks import extract_json
from roundtable.utils.llm_clients import ChatModel

logger = structlog.get_logger(__name__)

RoutingFunction = Callable[[str], Union[int, Awaitable[int]]]


class AgentRouter:
    """Dispatches each query to exactly one agent chosen by ``routing_fn``."""

    def __init__(self, agents: Sequence[Agent], routing_fn: RoutingFunction) -> None:
        if not agents:
            raise ValueError("AgentRouter needs at least one agent")
        self.agents: List[Agent] = list(agents)
        self.routing_fn = routing_fn

    async def run(self, query: str) -> str:
        idx = await maybe_await(self.routing_fn(query))
        if not 0 <= idx < len(self.agents):
            raise IndexError(f"Routing function returned invalid agent index {idx}")
        return await self.agents[idx].run(query)


@dataclass
class AgentCapability:
    name: str
    description: str
    keywords: List[str] = field(default_factory=list)
    examples: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class RoutingDecision:
    agent_index: int
    confidence: float
    reasoning: str = ""


@dataclass(frozen=True)
class RoutingRecord:
    timestamp: float
    query: str
    selected_agent: str
    confidence: float
    reasoning: str


class LLMRoutingResponse(BaseModel):
    selected_agent: int
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str = ""


class CapabilityRouter(AgentRouter):
    """Routes by keyword/example overlap with declared capabilities, optionally asking a model first.

    A model decision is used only when its confidence clears the threshold;
    otherwise the rule-based score decides. Low-confidence rule decisions go
    to the fallback agent (the last one by default).
    """

    def __init__(
        self,
        agents: Sequence[Agent],
        capabilities: Dict[int, AgentCapability],
        model: ChatModel | None = None,
        fallback_index: int | None = None,
        confidence_threshold: float = 0.7,
    ) -> None:
        super().__init__(agents, self._route_index)
        self.capabilities = dict(capabilities)
        self.model = model
        self.fallback_index = len(self.agents) - 1 if fallback_index is None else fallback_index
        if not 0 <= self.fallback_index < len(self.agents):
            raise ValueError("fallback_index out of range")
        self.confidence_threshold = confidence_threshold
        self.history: List[RoutingRecord] = []

    async def run(self, query: str) -> str:
        decision = await self.route(query)
        selected = self.agents[decision.agent_index]
        runner = selected
        if decision.confidence < self.confidence_threshold:
            logger.warning(
                "low_confidence_route", confidence=decision.confidence, selected=selected.name
            )
            runner = self.agents[self.fallback_index]
        self.history.append(
            RoutingRecord(time.time(), query, runner.name, decision.confidence, decision.reasoning)
        )
        logger.info(
            "query_routed",
            agent=runner.name,
            confidence=decision.confidence,
            reasoning=decision.reasoning,
        )
        return await runner.run(query)

    async def _route_index(self, query: str) -> int:
        return (await self.route(query)).agent_index

    async def route(self, query: str) -> RoutingDecision:
        if self.model is not None:
            try:
                decision = await self.route_with_model(query)
            except (RoundtableError, ValueError, ValidationError) as err:
                logger.warning("model_routing_failed", error=str(err))
            else:
                if decision.confidence >= self.confidence_threshold:
                    return decision
                logger.info("model_routing_low_confidence", confidence=decision.confidence)
        return self.route_with_rules(query)

    def route_with_rules(self, query: str) -> RoutingDecision:
        lowered = query.lower()
        best = RoutingDecision(self.fallback_index, 0.0, "No capability matched")
        for index, capability in self.capabilities.items():
            total = len(capability.keywords) + len(capability.examples)
            if total == 0:
                continue
            matches = sum(1 for k in capability.keywords if k.lower() in lowered)
            matches += sum(1 for e in capability.examples if word_overlap(query, e) > 0.7)
            confidence = matches / total
            if confidence > best.confidence:
                best = RoutingDecision(index, confidence, f"Matched {matches} keywords/patterns")
        return best

    async def route_with_model(self, query: str) -> RoutingDecision:
        response = await self.model.call([{"role": "user", "content": self.build_routing_prompt(query)}])
        parsed = LLMRoutingResponse.model_validate(extract_json(response))
        index = min(max(0, parsed.selected_agent), len(self.agents) - 1)
        return RoutingDecision(index, parsed.confidence, parsed.reasoning)

    def build_routing_prompt(self, query: str) -> str:
        described = "\n\n".join(
            f"Agent {idx}: {cap.name}\nDescription: {cap.description}\n"
            f"Example queries: {', '.join(cap.examples)}"
            for idx, cap in sorted(self.capabilities.items())
        )
        return (
            "You are a routing system that determines which specialized agent should handle "
            "a user query.\n\n"
            f"Available agents and their capabilities:\n{described}\n\n"
            f"A general-purpose agent (index {self.fallback_index}) handles queries that match "
            "no specialist.\n\n"
            f'Query: "{query}"\n\n'
            "Respond ONLY with JSON:\n"
            '{"selected_agent": <agent index>, "confidence": <0..1>, "reasoning": "<why>"}'
        )


def word_overlap(a: str, b: str) -> float:
    words_a = set(a.lower().split())
    words_b = set(b.lower().split())
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / max(len(words_a), len(words_b))
