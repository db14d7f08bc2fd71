from __future__ import annotations

import re
import time
from typing import Iterable, List, Sequence

import structlog

from roundtable.agents.base import Agent
from roundtable.agents.hooks import AgentHooks
from roundtable.agents.planner import Planner
from roundtable.agents.run_state import RunState
from roundtable.agents.validator import OutputValidator
from roundtable.errors import ToolParameterError, ToolRequestError
from roundtable.memory.base import Memory
from roundtable.schemas.messages import Message
from roundtable.schemas.plans import PlanStep, parse_plan
from roundtable.tools.base import Tool
from roundtable.tools.request import (
    ParsedToolRequest,
    find_tool,
    parse_tool_request,
    resolve_tool,
    validate_parameters,
)
from roundtable.utils.async_utils import call_hook
from roundtable.utils.llm_clients import ChatModel
from roundtable.utils.settings import UNBOUNDED, AgentOptions

logger = structlog.get_logger(__name__)

FINAL_ANSWER_MARKER = "FINAL ANSWER:"
TOOL_RESULT_PREFIX = "Tool result:\n"
NO_FINAL_ANSWER_IN_PLAN = "Plan executed but no final answer was found."
SINGLE_PASS_USAGE_EXHAUSTED = "Usage limit reached. No more LLM calls allowed."

_FINAL_ANSWER_LINE = re.compile(r"^FINAL ANSWER:", re.MULTILINE)


def extract_final_answer(text: str) -> str | None:
    """Text after the first line-leading ``FINAL ANSWER:`` marker, or ``None``."""
    match = _FINAL_ANSWER_LINE.search(text)
    if not match:
        return None
    return text[match.end() :].strip()


class ReasoningAgent(Agent):
    """Multi-step agent that alternates model calls and tool use until it answers.

    Depending on configuration a run is a single model call (reflection off),
    a plan-then-execute pass (planner set) or the default loop, which keeps
    calling the model until it emits ``FINAL ANSWER:`` or a budget runs out.
    Output that is neither a tool request nor a final answer is kept as an
    intermediate message and the loop continues.
    """

    def __init__(
        self,
        name: str,
        model: ChatModel,
        memory: Memory | None = None,
        tools: Iterable[Tool] | None = None,
        instructions: Sequence[str] | None = None,
        planner: Planner | None = None,
        validator: OutputValidator | None = None,
        options: AgentOptions | None = None,
        hooks: AgentHooks | None = None,
    ) -> None:
        super().__init__(name=name, memory=memory, tools=tools)
        self.model = model
        self.instructions: List[str] = list(instructions or [])
        self.planner = planner
        self.validator = validator
        self.options = options or AgentOptions()
        self.hooks = hooks or AgentHooks()
        self.use_reflection = self.options.use_reflection
        if self.tools and not self.use_reflection:
            logger.warning("reflection_forced", agent=name, reason="tools require the reasoning loop")
            self.use_reflection = True

    async def run(self, query: str) -> str:
        state = RunState()
        log = logger.bind(agent=self.name)
        log.info("agent_run_started", query=query)

        await self.memory.add_message(Message.system(self.build_system_prompt(), agent=self.name))
        await self.memory.add_message(Message.user(query, agent=self.name))

        if not self.use_reflection:
            return await self._single_pass(state)
        if self.planner is not None:
            return await self._run_plan(query, state)
        return await self._run_loop(query, state)

    def build_system_prompt(self) -> str:
        sections = [f'You are an intelligent AI agent named "{self.name}".']
        if self.tools:
            tool_lines = "\n".join(t.describe() for t in self.tools)
            sections.append(
                f"You have access to these tools:\n{tool_lines}\n"
                "Use a tool by responding with EXACTLY one of:\n"
                'TOOL REQUEST: <ToolName> "<Query>"\n'
                'TOOL REQUEST: <ToolName> {"param": "value"}'
            )
        else:
            sections.append("You do not have any tools available.")
        sections.append(f"When you have the final answer, format EXACTLY:\n{FINAL_ANSWER_MARKER} <Your answer>")
        sections.extend(self.instructions)
        return "\n\n".join(sections)

    async def add_reflection(self, text: str) -> bool:
        """Record a private reflection note if the memory has a reflection channel."""
        if not self.memory.supports_reflection:
            logger.debug("reflection_skipped", agent=self.name)
            return False
        await self.memory.add_message(Message.reflection(text, agent=self.name))
        return True

    async def _single_pass(self, state: RunState) -> str:
        limit = self.options.usage_limit
        if limit != UNBOUNDED and state.llm_calls_used >= limit:
            return SINGLE_PASS_USAGE_EXHAUSTED
        state.record_call()
        context = await self.memory.get_context()
        output = await self.model.call([m.as_chat() for m in context])
        await self.memory.add_message(Message.assistant(output, agent=self.name))
        await call_hook(self.hooks.on_final_answer, output)
        return output

    async def _run_loop(self, query: str, state: RunState) -> str:
        log = logger.bind(agent=self.name)
        while True:
            log.debug("agent_turn", **state.stats(self.options))
            reason = state.stop_reason(self.options)
            if reason:
                log.info("agent_stopped", reason=reason)
                return reason

            state.record_call()
            context = await self.memory.get_context_for_prompt(query)
            output = await self.model.call([m.as_chat() for m in context])

            request = parse_tool_request(output)
            if request is not None:
                result = await self._execute_tool(request)
                await self.memory.add_message(
                    Message.assistant(
                        f"{TOOL_RESULT_PREFIX}{result}", agent=self.name, tool=request.tool_name
                    )
                )
                await self._after_step()
                continue

            answer = extract_final_answer(output)
            if answer is None:
                await self.memory.add_message(Message.assistant(output, agent=self.name))
                await self._after_step()
                continue

            await self.memory.add_message(Message.assistant(output, agent=self.name))
            if self.options.validate_output and self.validator is not None:
                verdict = await self.validator.validate(answer, query)
                if not verdict.valid:
                    log.info("final_answer_rejected", reason=verdict.reason)
                    await self.memory.add_message(
                        Message.user(
                            f"Your previous answer was rejected: {verdict.reason}\n"
                            "Revise it and reply with a new FINAL ANSWER.",
                            agent=self.name,
                            validation="rejected",
                        )
                    )
                    await self._after_step()
                    continue

            log.info("agent_final_answer", **state.stats(self.options))
            await call_hook(self.hooks.on_final_answer, answer)
            return answer

    async def _after_step(self) -> None:
        if self.hooks.on_step is not None:
            await call_hook(self.hooks.on_step, await self.memory.get_context())

    async def _run_plan(self, query: str, state: RunState) -> str:
        log = logger.bind(agent=self.name)
        plan = await self.planner.generate_plan(query, self.tools, self.memory)
        await call_hook(self.hooks.on_plan_generated, plan)
        steps = parse_plan(plan)
        log.info("plan_generated", steps=len(steps))

        for step in steps:
            reason = state.stop_reason(self.options)
            if reason:
                log.info("agent_stopped", reason=reason)
                return reason
            state.record_step(uses_llm=step.action == "message")
            result = await self._execute_plan_step(step, query)
            await self.memory.add_message(Message.assistant(result, agent=self.name, plan_action=step.action))
            await self._after_step()
            if "FINAL ANSWER" in result:
                answer = result.replace(FINAL_ANSWER_MARKER, "", 1).strip()
                await call_hook(self.hooks.on_final_answer, answer)
                return answer

        return NO_FINAL_ANSWER_IN_PLAN

    async def _execute_plan_step(self, step: PlanStep, query: str) -> str:
        if step.action == "tool":
            tool = find_tool(step.details, self.tools)
            if tool is None:
                return f'Error: Tool "{step.details}" not found.'
            try:
                return await tool.run(query)
            except Exception as err:
                logger.warning("plan_tool_failed", agent=self.name, tool=tool.name, error=str(err))
                return f"Error: {err}"
        if step.action == "message":
            return await self.model.call([{"role": "user", "content": step.details}])
        if step.action == "complete":
            return f"{FINAL_ANSWER_MARKER} {step.details}"
        return f"Unknown action: {step.action}"

    async def _execute_tool(self, request: ParsedToolRequest) -> str:
        log = logger.bind(agent=self.name, tool=request.tool_name)

        try:
            tool = resolve_tool(request, self.tools)
        except ToolRequestError as err:
            log.warning("tool_request_invalid", error=err.message)
            return f"Error: {err.message}"

        started = time.monotonic()
        try:
            try:
                validate_parameters(tool, request)
            except ToolParameterError as err:
                log.warning("tool_parameters_invalid", error=err.message)
                await call_hook(self.hooks.on_tool_validation_error, tool.name, err.message)
                return f"Error: {err.message}"

            if self.hooks.on_tool_call is not None:
                approved = await call_hook(self.hooks.on_tool_call, tool.name, request.query)
                if not approved:
                    log.info("tool_call_vetoed")
                    return f'Error: Tool call to "{tool.name}" was not approved.'
            result = await tool.run(request.query, request.args)
            log.info(
                "tool_executed",
                duration_ms=int((time.monotonic() - started) * 1000),
                structured=request.is_structured,
            )
            await call_hook(self.hooks.on_tool_result, tool.name, result)
        except Exception as err:
            log.warning("tool_execution_failed", error=str(err))
            return f"Error: {err}"
        return result
