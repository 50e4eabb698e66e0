"""Authenticated, rate-limited, cached HTTP client for upstream APIs.

Pipeline per request: Rate Limit -> Cache lookup -> Auth -> Dispatch
-> (OAuth2 refresh + single replay on 401) -> Cache store -> Log.

Ordinary HTTP error responses are returned as APIResult values. Only
transport failures (connect, timeout) raise, as TransportError.
"""

from dataclasses import dataclass, field
from typing import Any

import httpx

from apirelay.clients.cache import MISS, ResponseCache, make_key
from apirelay.logging.audit import RequestTimer, get_audit_logger, utc_timestamp
from apirelay.security import auth
from apirelay.security.auth import Credentials, OAuth2Credentials
from apirelay.security.ratelimit import RateLimiter


class TransportError(Exception):
    """The upstream could not be reached or did not answer in time."""


@dataclass
class APIResult:
    status: int
    data: Any = None
    error: Any = None
    message: str = ""
    cached: bool = False
    timestamp: str = field(default_factory=utc_timestamp)
    retry_after: float | None = None
    remaining_points: int | None = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def to_dict(self) -> dict:
        if self.ok:
            return {
                "status": self.status,
                "data": self.data,
                "cached": self.cached,
                "timestamp": self.timestamp,
            }
        result = {"status": self.status, "error": self.error, "message": self.message}
        if self.retry_after is not None:
            result["retryAfter"] = self.retry_after
            result["remainingPoints"] = self.remaining_points
        return result


class APIClient:
    """Single entry point for authenticated calls against one base URL."""

    def __init__(
        self,
        base_url: str,
        credentials: Credentials,
        rate_limiter: RateLimiter,
        cache: ResponseCache,
        timeout: float = 30.0,
        user_agent: str = "api-relay/1.0",
    ):
        self.base_url = base_url.rstrip("/")
        self.credentials = credentials
        self.rate_limiter = rate_limiter
        self.cache = cache
        self._timeout = timeout
        self._user_agent = user_agent
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout, connect=10.0),
                headers={
                    "Content-Type": "application/json",
                    "User-Agent": self._user_agent,
                },
            )
        return self._client

    async def request(
        self,
        method: str,
        endpoint: str,
        payload: Any = None,
        use_cache: bool = True,
    ) -> APIResult:
        logger = get_audit_logger()
        method = method.upper()
        rate_key = f"{self.base_url}{endpoint}"

        # 1. Rate limiting (per base_url + endpoint)
        rate_result = self.rate_limiter.consume(rate_key)
        if not rate_result.allowed:
            logger.warning(
                "Rate limit exceeded",
                extra={"audit_data": {
                    "rate_key": rate_key,
                    "retry_after": rate_result.retry_after_seconds,
                    "total_hits": rate_result.total_hits,
                }},
            )
            return APIResult(
                status=429,
                error="Rate limit exceeded",
                message=f"Rate limit exceeded. Retry after {rate_result.retry_after_seconds}s",
                retry_after=rate_result.retry_after_seconds,
                remaining_points=rate_result.remaining,
            )

        # 2. Cache lookup (reads only)
        cacheable = method == "GET" and use_cache
        cache_key = make_key(method, endpoint, payload) if cacheable else None
        if cacheable:
            hit = self.cache.get(cache_key)
            if hit is not MISS:
                logger.debug("Cache hit", extra={"audit_data": {"cache_key": cache_key}})
                return APIResult(status=hit["status"], data=hit["data"], cached=True)

        # 3. Dispatch (with at most one OAuth2 refresh per request)
        refreshed = False
        if isinstance(self.credentials, OAuth2Credentials) and not self.credentials.cached_access_token:
            await self._refresh()
            refreshed = True

        with RequestTimer() as timer:
            response = await self._send(method, endpoint, payload)
            if (
                response.status_code == 401
                and isinstance(self.credentials, OAuth2Credentials)
                and not refreshed
            ):
                logger.info("Upstream returned 401, refreshing OAuth2 token")
                await self._refresh()
                response = await self._send(method, endpoint, payload)

        body = _decode_body(response)

        logger.info(
            "Upstream request",
            extra={"audit_data": {
                "method": method,
                "endpoint": endpoint,
                "upstream_status": response.status_code,
                "latency_ms": timer.elapsed_ms,
                "rate_limit_remaining": rate_result.remaining,
            }},
        )

        if response.is_success:
            if cacheable:
                self.cache.set(cache_key, {"status": response.status_code, "data": body})
            return APIResult(status=response.status_code, data=body)

        return APIResult(
            status=response.status_code,
            error=body,
            message=f"API call failed: {response.status_code} {response.reason_phrase}",
        )

    async def _send(self, method: str, endpoint: str, payload: Any) -> httpx.Response:
        client = await self._get_client()
        headers = auth.apply_auth_headers({}, self.credentials)
        send_body = payload is not None and method != "GET"
        try:
            return await client.request(
                method,
                endpoint,
                json=payload if send_body else None,
                headers=headers,
            )
        except httpx.ConnectError as e:
            raise TransportError(f"Cannot reach upstream API: {e}") from e
        except httpx.TimeoutException as e:
            raise TransportError("Upstream API timed out") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Upstream error: {e}") from e

    async def _refresh(self) -> None:
        client = await self._get_client()
        await auth.refresh(self.credentials, client)
        get_audit_logger().info(
            "OAuth2 token refreshed",
            extra={"audit_data": {"token_url": self.credentials.token_url}},
        )

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
