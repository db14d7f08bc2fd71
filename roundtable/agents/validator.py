from __future__ import annotations

import structlog
from pydantic import ValidationError

from roundtable.errors import RoundtableError
from roundtable.schemas.plans import ValidationVerdict
from roundtable.utils.json_blocks import extract_json
from roundtable.utils.llm_clients import ChatModel

logger = structlog.get_logger(__name__)

VALIDATOR_PROMPT = (
    "You check whether a candidate answer fully and correctly addresses a task. "
    'Respond ONLY with JSON: {"valid": true|false, "reason": "<short explanation>"}'
)


class OutputValidator:
    """Second-opinion check on a candidate final answer.

    Anything other than a well-formed verdict counts as a rejection.
    """

    def __init__(self, model: ChatModel) -> None:
        self.model = model

    async def validate(self, answer: str, task: str) -> ValidationVerdict:
        messages = [
            {"role": "system", "content": VALIDATOR_PROMPT},
            {"role": "user", "content": f"Task: {task}\n\nCandidate answer:\n{answer}"},
        ]
        try:
            raw = await self.model.call(messages)
        except (RoundtableError, OSError) as err:
            logger.warning("validator_call_failed", error=str(err))
            return ValidationVerdict(valid=False, reason=f"Validator unavailable: {err}")
        try:
            return ValidationVerdict.model_validate(extract_json(raw))
        except (ValueError, ValidationError):
            logger.warning("validator_unparseable", raw=raw[:200])
            return ValidationVerdict(valid=False, reason="Validator response could not be parsed.")
