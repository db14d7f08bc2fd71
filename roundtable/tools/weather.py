from __future__ import annotations

from typing import Any, Dict

from roundtable.tools.base import Tool, ToolParameter


class WeatherTool(Tool):
    """Stubbed weather lookup used in demos and tests."""

    name = "Weather"
    description = "Retrieves current weather for a location."
    parameters = [
        ToolParameter("location", "string", True, "City or location name"),
        ToolParameter("units", "string", False, "Unit system, metric or imperial"),
    ]

    def __init__(self) -> None:
        self.invocations = 0

    async def run(self, query: str, args: Dict[str, Any] | None = None) -> str:
        self.invocations += 1
        if not args:
            return (
                'Error: JSON arguments are required, e.g. '
                'TOOL REQUEST: Weather {"location": "New York", "units": "metric"}'
            )
        location = args.get("location")
        if not location:
            return 'Error: Missing "location" parameter.'
        units = args.get("units") or "metric"
        return f"Stubbed Weather: It's sunny in {location} [units={units}] right now."
