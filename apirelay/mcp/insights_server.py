"""MCP server for Docker Desktop admin-insights metrics (stdio transport)."""

import asyncio
import json
import sys
from typing import Literal

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from apirelay.clients.factory import get_insights_client
from apirelay.clients.insights import DEFAULT_TIMESPAN
from apirelay.logging.audit import get_audit_logger, setup_logging

mcp = FastMCP("docker-insights-api-server")


@mcp.tool()
async def get_desktop_metric(
    metric: Literal["users", "images", "extensions", "builds", "runs", "usage"],
    timespan: str = DEFAULT_TIMESPAN,
) -> str:
    """Get a specific Docker Desktop metric.

    Args:
        metric: The metric to retrieve.
        timespan: Time span for the metric (default: 3m).
    """
    get_audit_logger().info(
        "Tool called",
        extra={"audit_data": {"tool": "get_desktop_metric", "metric": metric, "timespan": timespan}},
    )
    try:
        result = await get_insights_client().get_desktop_metric(metric, timespan)
    except asyncio.CancelledError:
        raise
    except Exception as e:
        raise ToolError(f"Error: {e}") from e
    return json.dumps(result, indent=2, default=str)


@mcp.tool()
async def get_all_desktop_metrics(timespan: str = DEFAULT_TIMESPAN) -> str:
    """Get all Docker Desktop metrics for the dashboard.

    Args:
        timespan: Time span for all metrics (default: 3m).
    """
    get_audit_logger().info(
        "Tool called",
        extra={"audit_data": {"tool": "get_all_desktop_metrics", "timespan": timespan}},
    )
    results = await get_insights_client().get_all_desktop_metrics(timespan)
    return json.dumps(results, indent=2, default=str)


def main() -> None:  # pragma: no cover
    """Entry point for the MCP server."""
    setup_logging(sys.stderr)
    get_audit_logger().info("Docker Insights API MCP server running on stdio")
    mcp.run()


if __name__ == "__main__":  # allows: python -m apirelay.mcp.insights_server
    main()
