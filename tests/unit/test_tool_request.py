import json

import pytest

from roundtable.errors import ToolParameterError, ToolRequestError
from roundtable.tools.base import Tool, ToolParameter
from roundtable.tools.request import (
    ParsedToolRequest,
    find_tool,
    parse_tool_request,
    resolve_tool,
    validate_basic,
    validate_parameters,
)
from roundtable.tools.weather import WeatherTool


class SearchTool(Tool):
    name = "Search"
    description = "Web search"
    parameters = [ToolParameter("query", "string", True)]

    async def run(self, query, args=None):
        return f"results for {query}"


def test_simple_request():
    request = parse_tool_request('TOOL REQUEST: Search "python asyncio"')
    assert request == ParsedToolRequest("Search", "python asyncio")
    assert not request.is_structured


def test_structured_request():
    request = parse_tool_request('TOOL REQUEST: Weather {"location": "Rome", "units": "metric"}')
    assert request.tool_name == "Weather"
    assert request.args == {"location": "Rome", "units": "metric"}
    assert json.loads(request.query) == request.args


def test_quoted_json_prefers_structured_args():
    request = parse_tool_request('TOOL REQUEST: Weather "{\\"location\\":\\"Rome\\"}"')
    assert request.tool_name == "Weather"
    assert request.args == {"location": "Rome"}


def test_marker_is_case_insensitive_and_found_on_any_line():
    request = parse_tool_request('I need data first.\ntool request: weather {"location": "Oslo"}')
    assert request.tool_name == "weather"
    assert request.args == {"location": "Oslo"}


def test_quoted_text_that_is_not_json_stays_free_text():
    request = parse_tool_request('TOOL REQUEST: Search "{not json}"')
    assert request.args is None
    assert request.query == "{not json}"


def test_quoted_text_keeps_backslashes():
    request = parse_tool_request(r'TOOL REQUEST: Search "C:\new\table"')
    assert request.query == r"C:\new\table"
    assert "\n" not in request.query


def test_quoted_json_object_without_escaping():
    request = parse_tool_request('TOOL REQUEST: Weather "{"location": "Rome"}"')
    assert request.args == {"location": "Rome"}


def test_multiline_json_request():
    text = 'TOOL REQUEST: Weather {\n  "location": "Lima",\n  "units": "imperial"\n}'
    assert parse_tool_request(text).args == {"location": "Lima", "units": "imperial"}


@pytest.mark.parametrize(
    "text",
    [
        "",
        "The weather in Rome is sunny.",
        "FINAL ANSWER: 42",
        "TOOL REQUEST: Weather {location: Rome}",
        'TOOL REQUEST: Search ""',
        "TOOL REQUEST: Search unquoted words",
        'Please send TOOL REQUEST: Search "x"',
    ],
)
def test_ordinary_text_is_not_a_request(text):
    assert parse_tool_request(text) is None


def test_validate_basic():
    tools = [WeatherTool(), SearchTool()]
    assert validate_basic(ParsedToolRequest("search", "x"), tools) is None
    assert validate_basic(ParsedToolRequest("Calculator", "1+1"), tools) == 'Tool "Calculator" is not available.'
    assert validate_basic(ParsedToolRequest("Search", ""), tools) == "Invalid tool request format."
    assert "No tools are available" in validate_basic(ParsedToolRequest("Search", "x"), [])


def test_resolve_tool_raises_request_error():
    tools = [WeatherTool()]
    assert resolve_tool(ParsedToolRequest("weather", "Rome"), tools) is tools[0]
    with pytest.raises(ToolRequestError) as excinfo:
        resolve_tool(ParsedToolRequest("Calculator", "1+1"), tools)
    assert excinfo.value.code == "TOOL_REQUEST_INVALID"
    assert excinfo.value.tool_name == "Calculator"


def test_find_tool_ignores_case():
    weather = WeatherTool()
    assert find_tool("WEATHER", [weather]) is weather
    assert find_tool("Forecast", [weather]) is None


def test_missing_required_parameter_is_rejected():
    request = ParsedToolRequest("Weather", '{"units": "metric"}', {"units": "metric"})
    with pytest.raises(ToolParameterError, match='Missing required parameter: "location"'):
        validate_parameters(WeatherTool(), request)


def test_free_text_cannot_fill_several_parameters():
    with pytest.raises(ToolParameterError, match="requires multiple parameters"):
        validate_parameters(WeatherTool(), ParsedToolRequest("Weather", "Rome"))


def test_free_text_fills_a_single_parameter_and_optionals_may_be_missing():
    validate_parameters(SearchTool(), ParsedToolRequest("Search", "anything"))
    validate_parameters(WeatherTool(), ParsedToolRequest("Weather", "{}", {"location": "Rome"}))


def test_describe_lists_parameters():
    text = WeatherTool().describe()
    assert text.startswith("- Weather: ")
    assert "location (string, required)" in text
    assert "units (string, optional)" in text
