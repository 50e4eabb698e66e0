"""Factory for the process-wide API client singletons."""

from apirelay.clients.api_client import APIClient
from apirelay.clients.cache import ResponseCache
from apirelay.clients.insights import DesktopInsightsClient
from apirelay.config.settings import Settings, get_settings
from apirelay.security.auth import BearerCredentials
from apirelay.security.ratelimit import RateLimiter

_api_client: APIClient | None = None
_insights_client: DesktopInsightsClient | None = None


def build_api_client(base_url: str, settings: Settings, credentials=None) -> APIClient:
    """Compose an APIClient with its own limiter, cache and credentials."""
    return APIClient(
        base_url=base_url,
        credentials=credentials or settings.credential_config(),
        rate_limiter=RateLimiter(
            points=settings.rate_limit_points,
            duration_seconds=settings.rate_limit_duration,
            block_duration_seconds=settings.rate_limit_block_duration,
        ),
        cache=ResponseCache(
            default_ttl=settings.cache_ttl,
            check_period=settings.cache_check_period,
        ),
        timeout=settings.request_timeout,
        user_agent=settings.user_agent,
    )


def get_api_client() -> APIClient:
    """Client for API_BASE_URL using the AUTH_TYPE credentials."""
    global _api_client
    if _api_client is None:
        settings = get_settings()
        _api_client = build_api_client(settings.api_base_url, settings)
    return _api_client


def get_insights_client() -> DesktopInsightsClient:
    """Insights client; always bearer-authenticated with BEARER_TOKEN."""
    global _insights_client
    if _insights_client is None:
        settings = get_settings()
        api_client = build_api_client(
            settings.insights_api_host,
            settings,
            credentials=BearerCredentials(token=settings.bearer_token or settings.api_token),
        )
        _insights_client = DesktopInsightsClient(api_client, org=settings.insights_org)
    return _insights_client


async def close_clients() -> None:
    global _api_client, _insights_client
    if _api_client is not None:
        await _api_client.close()
        _api_client = None
    if _insights_client is not None:
        await _insights_client.close()
        _insights_client = None
