import pytest

from roundtable.agents.base import Agent
from roundtable.errors import LLMError
from roundtable.utils.llm_clients import ScriptedChatModel
from roundtable.workflows.router import AgentCapability, AgentRouter, CapabilityRouter, word_overlap


class NamedAgent(Agent):
    def __init__(self, name):
        super().__init__(name)
        self.queries = []

    async def run(self, query):
        self.queries.append(query)
        return f"{self.name} handled it"


def capabilities():
    return {
        0: AgentCapability("Weather", "Forecasts", keywords=["weather", "forecast"]),
        1: AgentCapability("Math", "Arithmetic", keywords=["sum", "multiply"], examples=["what is 2 plus 2"]),
    }


def agents():
    return [NamedAgent("weather"), NamedAgent("math"), NamedAgent("general")]


@pytest.mark.asyncio
async def test_plain_router_uses_routing_function():
    team = agents()
    router = AgentRouter(team, lambda query: 1)
    assert await router.run("anything") == "math handled it"


@pytest.mark.asyncio
async def test_plain_router_rejects_bad_index():
    router = AgentRouter(agents(), lambda query: 7)
    with pytest.raises(IndexError):
        await router.run("anything")


@pytest.mark.asyncio
async def test_rule_routing_picks_best_keyword_match():
    router = CapabilityRouter(agents(), capabilities(), confidence_threshold=0.5)

    decision = router.route_with_rules("weather forecast for tomorrow")
    assert decision.agent_index == 0 and decision.confidence == 1.0
    assert await router.run("weather forecast for tomorrow") == "weather handled it"
    assert router.history[0].selected_agent == "weather"


@pytest.mark.asyncio
async def test_low_confidence_goes_to_fallback_agent():
    router = CapabilityRouter(agents(), capabilities(), confidence_threshold=0.7)

    assert await router.run("please sum these numbers") == "general handled it"
    assert router.history[0].selected_agent == "general"
    assert router.history[0].confidence == pytest.approx(1 / 3)


@pytest.mark.asyncio
async def test_model_routing_is_used_when_confident():
    model = ScriptedChatModel(['```json\n{"selected_agent": 1, "confidence": 0.9, "reasoning": "numbers"}\n```'])
    router = CapabilityRouter(agents(), capabilities(), model=model)

    assert await router.run("how much is seven times six") == "math handled it"
    assert router.history[0].reasoning == "numbers"
    assert "Agent 1: Math" in model.calls[0][0]["content"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    ["no idea", '{"selected_agent": 1, "confidence": 3}', LLMError("openai", "down")],
)
async def test_model_routing_failures_fall_back_to_rules(response):
    router = CapabilityRouter(agents(), capabilities(), model=ScriptedChatModel([response]))
    decision = await router.route("weather forecast")
    assert decision.agent_index == 0


def test_word_overlap():
    assert word_overlap("what is 2 plus 2", "What is 2 plus 2") == 1.0
    assert word_overlap("", "anything") == 0.0
