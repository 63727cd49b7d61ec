"""
Grafana OTLP Metrics Exporter
==============================

Pushes assistant counters and timings to Grafana Cloud's OTLP/HTTP gateway
as JSON-encoded gauges.

Series:
- assistant_sentiment_detections{sentiment}
- assistant_auto_escalations{reason}
- assistant_response_time_ms{ticket_id}
- assistant_followup_{reminders,warnings,closed,errors}

Without host, API key and instance id the exporter stays disabled and every
push returns False without touching the network.
"""

import base64
import time
from typing import Any, Dict, List, Optional, Union

import httpx

from helpdesk.config import settings
from helpdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

Number = Union[int, float]

OTLP_METRICS_PATH = "/otlp/v1/metrics"


def _string_attributes(values: Dict[str, Any]) -> List[dict]:
    return [{"key": key, "value": {"stringValue": str(value)}} for key, value in values.items()]


def _gauge(name: str, value: Number, unit: str, description: str,
           attributes: List[dict], timestamp_ns: int) -> dict:
    point: Dict[str, Any] = {"timeUnixNano": timestamp_ns, "attributes": attributes}
    point["asDouble" if isinstance(value, float) else "asInt"] = value
    return {
        "name": name,
        "unit": unit,
        "description": description,
        "gauge": {"dataPoints": [point]},
    }


class GrafanaOTLPExporter:

    def __init__(
        self,
        host: Optional[str] = None,
        api_key: Optional[str] = None,
        instance_id: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        host = host or settings.grafana_host
        api_key = api_key or settings.grafana_api_key
        self._instance_id = instance_id or settings.grafana_instance_id
        self._http_client = http_client
        self._enabled = bool(host and api_key and self._instance_id)
        self._url = ""
        self._headers: Dict[str, str] = {}

        if not self._enabled:
            logger.info(
                "Grafana exporter disabled",
                extra={
                    "host_configured": bool(host),
                    "api_key_configured": bool(api_key),
                    "instance_id_configured": bool(self._instance_id),
                }
            )
            return

        self._url = host if OTLP_METRICS_PATH in host else host.rstrip("/") + OTLP_METRICS_PATH
        credentials = base64.b64encode(f"{self._instance_id}:{api_key}".encode()).decode()
        self._headers = {
            "Content-Type": "application/json",
            "Authorization": f"Basic {credentials}",
            "X-Grafana-Org-Id": str(self._instance_id),
        }
        logger.info("Grafana exporter enabled", extra={"url": self._url, "instance_id": self._instance_id})

    def is_enabled(self) -> bool:
        return self._enabled

    def build_payload(self, gauges: List[dict]) -> dict:
        resource = _string_attributes({
            "service.name": settings.app_name,
            "service.version": settings.app_version,
            "deployment.environment": settings.environment,
        })
        return {"resourceMetrics": [{"resource": {"attributes": resource}, "scopeMetrics": [{"metrics": gauges}]}]}

    async def _post(self, payload: dict) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.post(self._url, headers=self._headers, json=payload)
        async with httpx.AsyncClient(timeout=10.0) as client:
            return await client.post(self._url, headers=self._headers, json=payload)

    async def export_gauges(
        self,
        values: Dict[str, Number],
        unit: str = "1",
        description: str = "",
        attributes: Optional[Dict[str, str]] = None
    ) -> bool:
        """
        Push one gauge per entry in ``values``, all stamped with the same
        time and attributes. Returns whether the gateway accepted them.
        """
        if not self._enabled:
            return False

        timestamp_ns = time.time_ns()
        point_attributes = _string_attributes({"service": settings.app_name, **(attributes or {})})
        gauges = [
            _gauge(name, value, unit, description, point_attributes, timestamp_ns)
            for name, value in values.items()
        ]

        try:
            response = await self._post(self.build_payload(gauges))
        except httpx.HTTPError as e:
            logger.error("Grafana export failed", extra={"error": str(e), "metrics": list(values)})
            return False

        if response.status_code not in (200, 202):
            logger.warning(
                "Grafana rejected metrics",
                extra={"status_code": response.status_code, "response": response.text[:500]}
            )
            return False

        logger.debug("Metrics exported", extra={"metrics": list(values)})
        return True


_exporter: Optional[GrafanaOTLPExporter] = None


def get_grafana_exporter() -> GrafanaOTLPExporter:
    """Process-wide exporter; built from ``settings`` on first use."""
    global _exporter
    if _exporter is None:
        _exporter = GrafanaOTLPExporter()
    return _exporter

