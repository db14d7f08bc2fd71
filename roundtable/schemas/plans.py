from __future__ import annotations

from typing import List

from pydantic import BaseModel, TypeAdapter, ValidationError

from roundtable.utils.json_blocks import extract_json


class PlanStep(BaseModel):
    """One ``{action, details}`` entry; actions are ``tool``, ``message`` or ``complete``."""

    action: str
    details: str


class ValidationVerdict(BaseModel):
    valid: bool
    reason: str = ""


_PLAN_ADAPTER = TypeAdapter(List[PlanStep])


def parse_plan(plan: str) -> List[PlanStep]:
    """Decode a planner response; anything that is not a list of steps becomes one message step."""
    try:
        return _PLAN_ADAPTER.validate_python(extract_json(plan, opener="["))
    except (ValueError, ValidationError):
        return [PlanStep(action="message", details=plan)]
