from __future__ import annotations

from typing import Awaitable, Callable, List, Union

import structlog
from pydantic import BaseModel, Field

from roundtable.errors import RoundtableError
from roundtable.utils.llm_clients import ChatModel

logger = structlog.get_logger(__name__)

ConvergencePredicate = Callable[[str], Union[bool, Awaitable[bool]]]


class ConvergenceCriteria(BaseModel):
    """Declarative description of an acceptable contribution."""

    required_elements: List[str] = Field(default_factory=list)
    required_structure: List[str] = Field(default_factory=list)
    minimum_length: int = 0
    custom_instructions: List[str] = Field(default_factory=list)

    def as_bullets(self) -> List[str]:
        lines = []
        if self.required_elements:
            lines.append(f"Content must include these elements: {', '.join(self.required_elements)}")
        if self.required_structure:
            lines.append(
                f"Content must have these structural elements: {', '.join(self.required_structure)}"
            )
        if self.minimum_length:
            lines.append(f"Content must be at least {self.minimum_length} characters long")
        lines.extend(self.custom_instructions)
        return lines


def contains_marker(marker: str, case_sensitive: bool = True) -> ConvergencePredicate:
    """Predicate that accepts any output containing ``marker``."""

    def predicate(content: str) -> bool:
        if case_sensitive:
            return marker in content
        return marker.lower() in content.lower()

    return predicate


class RuleBasedConvergenceChecker:
    """Checks criteria by plain substring and length rules, without a model."""

    def __init__(self, criteria: ConvergenceCriteria) -> None:
        self.criteria = criteria
        if criteria.custom_instructions:
            logger.info(
                "custom_instructions_ignored",
                count=len(criteria.custom_instructions),
                checker="rule_based",
            )

    def __call__(self, content: str) -> bool:
        return self.has_converged(content)

    def has_converged(self, content: str) -> bool:
        lowered = content.lower()
        missing = [
            item
            for item in [*self.criteria.required_elements, *self.criteria.required_structure]
            if item.lower() not in lowered
        ]
        too_short = len(content) < self.criteria.minimum_length
        if missing or too_short:
            logger.debug("not_converged", missing=missing, length=len(content))
            return False
        return True


class LLMConvergenceChecker:
    """Asks a model whether content meets the criteria; only ``YES:`` counts."""

    def __init__(self, model: ChatModel, criteria: ConvergenceCriteria) -> None:
        self.model = model
        self.criteria = criteria

    async def __call__(self, content: str) -> bool:
        return await self.has_converged(content)

    async def has_converged(self, content: str) -> bool:
        try:
            response = await self.model.call([{"role": "user", "content": self.build_prompt(content)}])
        except (RoundtableError, OSError) as err:
            logger.warning("convergence_check_failed", error=str(err))
            return False
        decision = response.strip().lower().startswith("yes:")
        logger.debug("convergence_checked", decision=decision, reasoning=response[:200])
        return decision

    def build_prompt(self, content: str) -> str:
        bullets = "\n".join(f"- {c}" for c in self.criteria.as_bullets())
        return (
            "You are a convergence checker that determines if content meets specific criteria.\n\n"
            f"Criteria for convergence:\n{bullets}\n\n"
            f"Content to check:\n---\n{content}\n---\n\n"
            "Analyze the content and determine if it meets ALL criteria.\n"
            'Your response must start with either "YES:" or "NO:" followed by your reasoning.'
        )
