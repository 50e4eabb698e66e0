"""Locate an embedded tool invocation in free-form model output.

The scan is best-effort: the first `{"tool": "<name>", "parameters": {...}}`
object wins and the parameter object is matched non-greedily, so nested
objects inside parameters are not supported.
"""

import re
from dataclasses import dataclass

TOOL_CALL_PATTERN = re.compile(
    r'\{\s*"tool"\s*:\s*"([^"]+)"\s*,\s*"parameters"\s*:\s*(\{[\s\S]*?\})\s*\}'
)


@dataclass(frozen=True)
class ToolCall:
    name: str
    raw_parameters: str


def extract_tool_call(text: str) -> ToolCall | None:
    match = TOOL_CALL_PATTERN.search(text)
    if match is None:
        return None
    return ToolCall(name=match.group(1), raw_parameters=match.group(2))
