"""Streaming relay — forward model tokens, then resolve one embedded tool call.

Tokens are yielded to the caller as they arrive and accumulated in the same
step. Once the model stream is exhausted the accumulated text is scanned for
a tool invocation; the tool's result (or a diagnostic notice) is appended to
the output. Tool failures are reported inline and never raised.
"""

from collections.abc import AsyncGenerator, Mapping

from apirelay.logging.audit import RequestTimer, get_audit_logger
from apirelay.providers.base import ModelProvider
from apirelay.relay.extract import extract_tool_call
from apirelay.relay.tools import (
    TOOLS,
    ToolDescriptor,
    ToolNotFound,
    ToolValidationError,
    describe_tools,
    get_tool,
    validate_parameters,
)

SYSTEM_PROMPT_TEMPLATE = """You are a helpful AI assistant. You may use tools when appropriate. If you need to use a tool, respond in this JSON format only:

{{
  "tool": "toolName",
  "parameters": {{ ... }}
}}

Available tools:
{tools}
"""


def build_system_prompt(registry: Mapping[str, ToolDescriptor] = TOOLS) -> str:
    return SYSTEM_PROMPT_TEMPLATE.format(tools=describe_tools(registry))


async def relay(
    prompt: str,
    provider: ModelProvider,
    registry: Mapping[str, ToolDescriptor] = TOOLS,
) -> AsyncGenerator[str, None]:
    """Yield model tokens followed by at most one tool outcome block."""
    logger = get_audit_logger()
    accumulated: list[str] = []

    async for token in provider.stream_text(build_system_prompt(registry), prompt):
        accumulated.append(token)
        yield token

    tool_call = extract_tool_call("".join(accumulated))
    if tool_call is None:
        return

    name = tool_call.name
    try:
        tool = get_tool(name, registry)
        params = validate_parameters(tool, tool_call.raw_parameters)
    except ToolNotFound:
        logger.warning("Unknown tool requested", extra={"audit_data": {"tool": name}})
        yield f'\n\n⚠️ Unknown tool "{name}".'
        return
    except ToolValidationError as e:
        logger.warning(
            "Invalid tool parameters",
            extra={"audit_data": {"tool": name, "validation_error": str(e)}},
        )
        yield f'\n\n⚠️ Invalid parameters for tool "{name}".'
        return

    try:
        with RequestTimer() as timer:
            result = await tool.execute(params)
    except Exception as e:
        logger.warning(
            "Tool execution failed",
            extra={"audit_data": {"tool": name, "error": str(e)}},
        )
        yield f'\n\n⚠️ Error running tool "{name}": {e}'
        return

    logger.info(
        "Tool executed",
        extra={"audit_data": {"tool": name, "latency_ms": timer.elapsed_ms}},
    )
    yield f'\n\n(Tool Output from "{name}"):\n{result}'
