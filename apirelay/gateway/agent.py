"""Client for the local agent API used by the insights gateway.

Flow: POST /api/sessions -> POST /api/sessions/<id>/agent/<name>, reading
a server-sent-events body whose data lines carry
{"choice": {"delta": {"content": ...}}} fragments.
"""

import json
import time
from dataclasses import dataclass

import httpx

from apirelay.logging.audit import get_audit_logger


@dataclass
class SessionHandle:
    session_id: str
    created_at: float

    def is_fresh(self, now: float, reuse_seconds: float) -> bool:
        return now - self.created_at < reuse_seconds


@dataclass
class AgentResult:
    analysis: str
    success: bool


def build_insights_prompt(data) -> str:
    """Turn an arbitrary UI payload into an analysis request."""
    data_string = json.dumps(data, indent=2)
    return (
        f"I received the following data from the UI: {data_string}. "
        "Please analyze this data and provide insights."
    )


def parse_sse_content(lines) -> str:
    """Concatenate delta content from SSE data lines; other lines are skipped."""
    parts = []
    for line in lines:
        line = line.strip()
        if not line.startswith("data:"):
            continue
        payload = line[len("data:"):].strip()
        try:
            event = json.loads(payload)
        except json.JSONDecodeError:
            continue
        if not isinstance(event, dict):
            continue
        choice = event.get("choice") or {}
        content = (choice.get("delta") or {}).get("content")
        if content:
            parts.append(content)
    return "".join(parts)


class AgentClient:

    def __init__(self, base_url: str, agent_name: str = "root", timeout: float = 30.0,
                 reuse_seconds: float = 300):
        self.base_url = base_url.rstrip("/")
        self.agent_name = agent_name
        self.reuse_seconds = reuse_seconds
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None
        self._session: SessionHandle | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout, connect=10.0),
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def ensure_session(self) -> SessionHandle:
        """Reuse the current session while fresh, otherwise create one."""
        now = time.monotonic()
        if self._session is not None and self._session.is_fresh(now, self.reuse_seconds):
            return self._session

        client = await self._get_client()
        response = await client.post("/api/sessions", json={})
        response.raise_for_status()
        body = response.json()
        if not isinstance(body, dict) or "id" not in body:
            raise ValueError("Agent API returned no session id")
        session_id = body["id"]
        self._session = SessionHandle(session_id=session_id, created_at=now)
        get_audit_logger().info(
            "Agent session created", extra={"audit_data": {"session_id": session_id}}
        )
        return self._session

    async def ask(self, prompt: str) -> AgentResult:
        """Send prompt to the agent and collect its streamed reply."""
        try:
            session = await self.ensure_session()
            client = await self._get_client()
            url = f"/api/sessions/{session.session_id}/agent/{self.agent_name}"
            async with client.stream(
                "POST", url, json=[{"role": "user", "content": prompt}]
            ) as response:
                if response.status_code >= 400:
                    await response.aread()
                    response.raise_for_status()
                lines = [line async for line in response.aiter_lines()]
            return AgentResult(analysis=parse_sse_content(lines), success=True)
        except httpx.ConnectError:
            message = (
                f"Cannot connect to agent API server. Make sure it's running on {self.base_url}"
            )
        except httpx.HTTPStatusError as e:
            message = f"API server responded with {e.response.status_code}: {e.response.text}"
        except (httpx.HTTPError, KeyError, ValueError) as e:
            message = str(e) or type(e).__name__

        self._session = None
        get_audit_logger().warning(
            "Agent communication failed", extra={"audit_data": {"error": message}}
        )
        return AgentResult(analysis=f"Error communicating with agent: {message}", success=False)

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
