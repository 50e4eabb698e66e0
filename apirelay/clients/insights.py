"""Docker Desktop admin-insights metrics on top of APIClient."""

from apirelay.clients.api_client import APIClient
from apirelay.logging.audit import utc_timestamp

VALID_METRICS = ("users", "images", "extensions", "builds", "runs", "usage")
DEFAULT_TIMESPAN = "3m"


class DesktopInsightsClient:

    def __init__(self, api_client: APIClient, org: str = "docker"):
        self._api = api_client
        self._org = org

    def metric_endpoint(self, metric: str, timespan: str) -> str:
        return f"/v2/admin-insights/orgs/{self._org}/desktop/{metric}/summary?timespan={timespan}"

    async def get_desktop_metric(self, metric: str, timespan: str = DEFAULT_TIMESPAN) -> dict:
        if metric not in VALID_METRICS:
            raise ValueError(
                f"Invalid metric: {metric}. Valid metrics are: {', '.join(VALID_METRICS)}"
            )

        result = await self._api.request("GET", self.metric_endpoint(metric, timespan))
        summary = {
            "status": result.status,
            "metric": metric,
            "timespan": timespan,
            "timestamp": result.timestamp,
            "success": result.ok,
        }
        if result.ok:
            summary["data"] = result.data
            summary["cached"] = result.cached
        else:
            summary["error"] = result.error
            summary["message"] = result.message
        return summary

    async def get_all_desktop_metrics(self, timespan: str = DEFAULT_TIMESPAN) -> dict:
        """Fetch every metric sequentially; one failure does not stop the rest."""
        results = {"timespan": timespan, "timestamp": utc_timestamp(), "metrics": {}}
        for metric in VALID_METRICS:
            try:
                results["metrics"][metric] = await self.get_desktop_metric(metric, timespan)
            except Exception as e:
                results["metrics"][metric] = {
                    "error": str(e),
                    "timestamp": utc_timestamp(),
                    "success": False,
                }
        return results

    async def close(self) -> None:
        await self._api.close()
