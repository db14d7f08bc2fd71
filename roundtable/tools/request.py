"""Recognition and validation of textual tool requests.

Two wire forms are understood, each on a line starting with the marker::

    TOOL REQUEST: Search "latest python release"
    TOOL REQUEST: Weather {"location": "Rome", "units": "metric"}

A quoted string whose content is itself a JSON object is treated as the
structured form.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from roundtable.errors import ToolParameterError, ToolRequestError
from roundtable.tools.base import Tool

TOOL_REQUEST_MARKER = "TOOL REQUEST:"

_REQUEST_LINE = re.compile(
    r"^[ \t]*" + re.escape(TOOL_REQUEST_MARKER) + r"[ \t]*(\w+)[ \t]+",
    re.IGNORECASE | re.MULTILINE,
)


@dataclass(frozen=True)
class ParsedToolRequest:
    tool_name: str
    query: str
    args: Optional[Dict[str, Any]] = None

    @property
    def is_structured(self) -> bool:
        return self.args is not None


def parse_tool_request(text: str) -> ParsedToolRequest | None:
    """Return the tool request carried by ``text`` or ``None`` for ordinary text.

    Quoted free text is passed through verbatim, backslashes included.
    """
    match = _REQUEST_LINE.search(text)
    if not match:
        return None
    tool_name = match.group(1)
    rest = text[match.end() :].strip()

    if rest.startswith("{"):
        args = _json_object(rest)
        if args is not None:
            return ParsedToolRequest(tool_name, json.dumps(args), args)

    if len(rest) >= 2 and rest.startswith('"') and rest.endswith('"'):
        inner = rest[1:-1]
        if inner.lstrip().startswith("{"):
            args = _quoted_json_object(rest, inner)
            if args is not None:
                return ParsedToolRequest(tool_name, json.dumps(args), args)
        if not inner or '"' in inner:
            return None
        return ParsedToolRequest(tool_name, inner)

    return None


def _json_object(raw: str) -> Dict[str, Any] | None:
    try:
        value = json.loads(raw)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


