"""Chat relay — FastAPI application entry point.

Streams model tokens for a prompt as plain text and appends the outcome
of at most one embedded tool invocation.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse

from apirelay.clients.factory import close_clients
from apirelay.config.settings import get_settings
from apirelay.logging.audit import (
    generate_request_id,
    get_audit_logger,
    request_id_var,
    setup_logging,
    utc_timestamp,
)
from apirelay.providers.registry import close_all_providers, get_provider
from apirelay.relay.stream import relay

VERSION = "1.0.0"
SERVICE_NAME = "chat-relay"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    setup_logging()
    get_audit_logger().info("Chat relay started")
    yield
    await close_all_providers()
    await close_clients()
    get_audit_logger().info("Chat relay stopped")


app = FastAPI(
    title="Chat Relay",
    description="Streams model output and dispatches embedded tool calls",
    version=VERSION,
    lifespan=lifespan,
)


@app.get("/health")
async def health():
    return {"status": "healthy", "timestamp": utc_timestamp(), "service": SERVICE_NAME}


@app.post("/api/claude")
async def chat(request: Request):
    """Relay a prompt to the model, streaming raw token text back."""
    logger = get_audit_logger()
    rid = generate_request_id()
    request_id_var.set(rid)

    try:
        body = await request.json()
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "Request body must be JSON"})

    prompt = body.get("prompt") if isinstance(body, dict) else None
    if not isinstance(prompt, str) or not prompt.strip():
        return JSONResponse(status_code=400, content={"error": "'prompt' must be a non-empty string"})

    provider = get_provider()
    logger.info("Chat request", extra={"audit_data": {"prompt_length": len(prompt)}})

    async def token_generator():
        try:
            async for text in relay(prompt, provider):
                yield text
        except Exception as e:
            logger.error(
                "Stream failed",
                extra={"audit_data": {"error": str(e)}},
            )
            detail = getattr(e, "detail", None) or str(e)
            yield f"\n\n⚠️ Stream error: {detail}"

    return StreamingResponse(
        token_generator(),
        media_type="text/plain",
        headers={"X-Request-Id": rid, "Cache-Control": "no-cache"},
    )


def main() -> None:  # pragma: no cover
    """Entry point for the chat relay server."""
    import uvicorn

    settings = get_settings()
    uvicorn.run("apirelay.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":  # pragma: no cover
    main()
