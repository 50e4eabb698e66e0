"""Static tool registry for the chat relay.

Each tool declares a pydantic model for its parameters and an async
execute function returning text. The registry is built at import time
and never mutated.
"""

import json
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from urllib.parse import quote

import httpx
from pydantic import BaseModel, HttpUrl, ValidationError

TOOL_TIMEOUT = httpx.Timeout(30.0, connect=10.0)


class ToolNotFound(Exception):
    pass


class ToolValidationError(Exception):
    pass


class ToolExecutionError(Exception):
    pass


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    parameters: type[BaseModel]
    execute: Callable[[BaseModel], Awaitable[str]]


class WeatherParams(BaseModel):
    location: str


class EchoParams(BaseModel):
    text: str


class SearchParams(BaseModel):
    query: str


class ExternalApiParams(BaseModel):
    url: HttpUrl
    token: str


async def _weather(params: WeatherParams) -> str:
    async with httpx.AsyncClient(timeout=TOOL_TIMEOUT) as client:
        response = await client.get(
            f"https://wttr.in/{quote(params.location)}", params={"format": "3"}
        )
        return response.text


async def _echo(params: EchoParams) -> str:
    return params.text


async def _search(params: SearchParams) -> str:
    async with httpx.AsyncClient(timeout=TOOL_TIMEOUT) as client:
        response = await client.get(
            "https://api.duckduckgo.com/",
            params={"q": params.query, "format": "json"},
        )
        return json.dumps(response.json(), indent=2)


async def _external_api(params: ExternalApiParams) -> str:
    async with httpx.AsyncClient(timeout=TOOL_TIMEOUT) as client:
        response = await client.get(
            str(params.url),
            headers={"Authorization": f"Bearer {params.token}", "Accept": "application/json"},
        )
        if not response.is_success:
            raise ToolExecutionError(f"API call failed: {response.status_code} {response.text}")
        return response.text


def _registry(*tools: ToolDescriptor) -> Mapping[str, ToolDescriptor]:
    return MappingProxyType({tool.name: tool for tool in tools})


TOOLS: Mapping[str, ToolDescriptor] = _registry(
    ToolDescriptor(
        name="weather",
        description="Fetch current weather for a given city",
        parameters=WeatherParams,
        execute=_weather,
    ),
    ToolDescriptor(
        name="echo",
        description="Echo the input string",
        parameters=EchoParams,
        execute=_echo,
    ),
    ToolDescriptor(
        name="search",
        description="Search DuckDuckGo for a query",
        parameters=SearchParams,
        execute=_search,
    ),
    ToolDescriptor(
        name="externalApi",
        description="Call a protected API",
        parameters=ExternalApiParams,
        execute=_external_api,
    ),
)


def get_tool(name: str, registry: Mapping[str, ToolDescriptor] = TOOLS) -> ToolDescriptor:
    try:
        return registry[name]
    except KeyError:
        raise ToolNotFound(name) from None


def validate_parameters(tool: ToolDescriptor, raw_parameters: str) -> BaseModel:
    """Parse a JSON parameter object against the tool's schema."""
    try:
        return tool.parameters.model_validate_json(raw_parameters)
    except ValidationError as e:
        raise ToolValidationError(str(e)) from e


def describe_tools(registry: Mapping[str, ToolDescriptor] = TOOLS) -> str:
    """Render each tool's name, description and parameter schema."""
    blocks = []
    for name, tool in registry.items():
        schema = tool.parameters.model_json_schema()
        blocks.append(
            f"Tool: {name}\n"
            f"Description: {tool.description}\n"
            f"Parameters: {json.dumps(schema.get('properties', {}))}"
        )
    return "\n\n".join(blocks)
