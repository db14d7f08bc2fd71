from __future__ import annotations

import time
from dataclasses import dataclass, field

from roundtable.utils.settings import UNBOUNDED, AgentOptions


@dataclass
class RunState:
    """Counters for a single ``run`` call; never shared between calls."""

    start_time: float = field(default_factory=time.monotonic)
    llm_calls_used: int = 0
    step_count: int = 0

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.start_time) * 1000)

    def record_call(self) -> None:
        self.llm_calls_used += 1
        self.step_count += 1

    def record_step(self, uses_llm: bool) -> None:
        self.step_count += 1
        if uses_llm:
            self.llm_calls_used += 1

    def stop_reason(self, options: AgentOptions) -> str | None:
        """Return why the run must stop, checking steps, then usage, then time."""
        if options.max_steps != UNBOUNDED and self.step_count >= options.max_steps:
            return f"Max steps ({options.max_steps}) reached without final answer."
        if options.usage_limit != UNBOUNDED and self.llm_calls_used >= options.usage_limit:
            return f"Usage limit ({options.usage_limit} calls) reached."
        elapsed = self.elapsed_ms()
        if options.time_to_live_ms != UNBOUNDED and elapsed >= options.time_to_live_ms:
            return f"Time limit ({options.time_to_live_ms} ms) reached after {elapsed} ms."
        return None

    def stats(self, options: AgentOptions) -> dict:
        return {
            "llm_calls_used": self.llm_calls_used,
            "usage_limit": options.usage_limit,
            "steps_used": self.step_count,
            "max_steps": options.max_steps,
            "elapsed_ms": self.elapsed_ms(),
            "time_to_live_ms": options.time_to_live_ms,
        }
