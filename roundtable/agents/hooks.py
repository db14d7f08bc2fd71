from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Union

from roundtable.schemas.messages import Message

MaybeAwaitable = Union[Any, Awaitable[Any]]


@dataclass
class AgentHooks:
    """Optional lifecycle callbacks; each may be a plain function or a coroutine function.

    ``on_tool_call`` is an approval gate: returning a falsy value cancels the call.
    """

    on_plan_generated: Optional[Callable[[str], MaybeAwaitable]] = None
    on_tool_call: Optional[Callable[[str, str], MaybeAwaitable]] = None
    on_tool_validation_error: Optional[Callable[[str, str], MaybeAwaitable]] = None
    on_tool_result: Optional[Callable[[str, str], MaybeAwaitable]] = None
    on_final_answer: Optional[Callable[[str], MaybeAwaitable]] = None
    on_step: Optional[Callable[[List[Message]], MaybeAwaitable]] = None
