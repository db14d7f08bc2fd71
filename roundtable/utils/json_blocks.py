"""Pull JSON values out of free-form model output.

Models often wrap JSON in ```json fences or surround it with prose. Fenced
blocks are tried first, then balanced ``{...}`` / ``[...]`` spans.
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterator, List, Tuple

FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)

_CLOSERS = {"{": "}", "[": "]"}


def _strip_leading_json_label(s: str) -> str:
    # "json\n{...}" left behind by sloppy fences
    return re.sub(r"^\s*json\s*\r?\n\s*(?=[\[{])", "", s, count=1, flags=re.IGNORECASE)


def _balanced_slices(text: str, opener: str) -> Iterator[Tuple[int, int]]:
    """Yield (start, end_inclusive) of balanced spans, ignoring brackets inside strings."""
    closer = _CLOSERS[opener]
    n = len(text)
    i = 0
    while i < n:
        if text[i] != opener:
            i += 1
            continue
        depth = 0
        j = i
        in_str = False
        esc = False
        while j < n:
            ch = text[j]
            if in_str:
                if esc:
                    esc = False
                elif ch == "\\":
                    esc = True
                elif ch == '"':
                    in_str = False
            elif ch == '"':
                in_str = True
            elif ch == opener:
                depth += 1
            elif ch == closer:
                depth -= 1
                if depth == 0:
                    yield (i, j)
                    break
            j += 1
        i = j + 1 if depth == 0 else i + 1


def extract_json_values(text: str, opener: str = "{") -> List[Any]:
    """Every JSON value found in ``text`` whose outermost bracket is ``opener``."""
    found: List[Any] = []
    for m in FENCE_RE.finditer(text):
        raw = _strip_leading_json_label(m.group(1)).strip()
        if not raw.startswith(opener):
            continue
        try:
            found.append(json.loads(raw))
        except ValueError:
            continue
    if found:
        return found

    for a, b in _balanced_slices(text, opener):
        try:
            found.append(json.loads(text[a : b + 1]))
        except ValueError:
            continue
    return found


def extract_json(text: str, opener: str = "{") -> Any:
    """Return the first JSON object (or array, with ``opener="["``) in ``text``.

    Raises ``ValueError`` when nothing parses.
    """
    stripped = text.strip()
    if stripped.startswith(opener):
        try:
            return json.loads(stripped)
        except ValueError:
            pass
    values = extract_json_values(text, opener)
    if not values:
        raise ValueError("No valid JSON block found.")
    return values[0]
