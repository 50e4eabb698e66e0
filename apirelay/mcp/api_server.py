"""MCP server exposing the authenticated API client as tools (stdio transport)."""

import asyncio
import json
import sys
from typing import Any, Literal

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from apirelay.clients.cache import CLEARED_ALL
from apirelay.clients.factory import get_api_client
from apirelay.logging.audit import get_audit_logger, setup_logging
from apirelay.security.auth import describe

mcp = FastMCP("authenticated-api-server")


@mcp.tool()
async def api_call(
    method: Literal["GET", "POST", "PUT", "DELETE", "PATCH"],
    endpoint: str,
    data: dict[str, Any] | None = None,
    useCache: bool = True,
) -> str:
    """Make authenticated API calls to external services.

    Args:
        method: HTTP method.
        endpoint: API endpoint (e.g. /users, /orders/123).
        data: Request payload for POST/PUT/PATCH requests.
        useCache: Serve GET requests from the response cache when possible.
    """
    get_audit_logger().info(
        "Tool called", extra={"audit_data": {"tool": "api_call", "method": method, "endpoint": endpoint}}
    )
    try:
        result = await get_api_client().request(method, endpoint, data, use_cache=useCache)
    except asyncio.CancelledError:
        raise
    except Exception as e:
        raise ToolError(f"Error: {e}") from e
    return json.dumps(result.to_dict(), indent=2, default=str)


@mcp.tool()
async def validate_auth() -> str:
    """Validate current authentication status."""
    try:
        result = await get_api_client().request("GET", "/health", use_cache=False)
    except asyncio.CancelledError:
        raise
    except Exception as e:
        raise ToolError(f"Error: {e}") from e
    if result.status == 200:
        return "Authentication is valid"
    return f"Authentication failed: {result.message}"


@mcp.tool()
async def rate_limit_status() -> str:
    """Report the rate limit budget of every endpoint called so far."""
    client = get_api_client()
    limiter = client.rate_limiter
    status = {
        "auth": describe(client.credentials),
        "maxPoints": limiter.points,
        "durationSeconds": limiter.duration_seconds,
        "blockDurationSeconds": limiter.block_duration_seconds,
        "keys": {key: result.to_dict() for key, result in limiter.snapshot().items()},
    }
    return json.dumps(status, indent=2)


@mcp.tool()
async def clear_cache(pattern: str | None = None) -> str:
    """Clear cached GET responses, optionally only keys containing pattern."""
    cleared = get_api_client().cache.clear(pattern)
    if cleared is CLEARED_ALL:
        return "Cleared all cache entries"
    return f"Cleared {cleared} cache entries matching '{pattern}'"


def main() -> None:  # pragma: no cover
    """Entry point for the MCP server."""
    setup_logging(sys.stderr)
    get_audit_logger().info("Authenticated API MCP server running on stdio")
    mcp.run()


if __name__ == "__main__":  # allows: python -m apirelay.mcp.api_server
    main()
