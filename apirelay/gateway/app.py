"""Insights gateway — forwards UI payloads to the local agent API."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from apirelay.config.settings import get_settings
from apirelay.gateway.agent import AgentClient, build_insights_prompt
from apirelay.logging.audit import (
    RequestTimer,
    generate_request_id,
    get_audit_logger,
    request_id_var,
    setup_logging,
    utc_timestamp,
)

SERVICE_NAME = "insights-gateway"

_agent: AgentClient | None = None


def get_agent_client() -> AgentClient:
    global _agent
    if _agent is None:
        settings = get_settings()
        _agent = AgentClient(
            base_url=settings.agent_api_url,
            agent_name=settings.agent_name,
            timeout=settings.agent_timeout,
            reuse_seconds=settings.session_reuse_seconds,
        )
    return _agent


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _agent
    setup_logging()
    get_audit_logger().info("Insights gateway started")
    yield
    if _agent is not None:
        await _agent.close()
        _agent = None
    get_audit_logger().info("Insights gateway stopped")


app = FastAPI(title="Insights Gateway", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health():
    return {"status": "healthy", "timestamp": utc_timestamp(), "service": SERVICE_NAME}


@app.post("/api/captain-insights")
async def captain_insights(request: Request):
    """Ask the agent to analyze the posted JSON payload."""
    logger = get_audit_logger()
    request_id_var.set(generate_request_id())

    try:
        body = await request.json()
    except ValueError:
        return JSONResponse(
            status_code=400,
            content={"error": "Request body must be JSON", "timestamp": utc_timestamp(), "success": False},
        )

    try:
        logger.info("Insights request received", extra={"audit_data": {"received": body}})

        with RequestTimer() as timer:
            result = await get_agent_client().ask(build_insights_prompt(body))

        logger.info(
            "Insights request processed",
            extra={"audit_data": {"success": result.success, "latency_ms": timer.elapsed_ms}},
        )
        return {
            "received": body,
            "agentAnalysis": result.analysis,
            "timestamp": utc_timestamp(),
            "success": result.success,
            "message": "Request processed by AI agent" if result.success
            else "AI agent communication failed",
        }
    except Exception as e:
        logger.exception("Error processing insights request")
        return JSONResponse(
            status_code=500,
            content={"error": str(e), "timestamp": utc_timestamp(), "success": False},
        )


def main() -> None:  # pragma: no cover
    """Entry point for the insights gateway server."""
    import uvicorn

    settings = get_settings()
    uvicorn.run("apirelay.gateway.app:app", host=settings.host, port=settings.gateway_port)


if __name__ == "__main__":  # pragma: no cover
    main()
