"""Tests for the OTLP exporter and the assistant metrics adapter."""

import json

import httpx

from helpdesk.config import Sentiment
from helpdesk.shared.infrastructure.grafana import GrafanaOTLPExporter
from helpdesk.triage.infrastructure import GrafanaAssistantMetrics


def make_exporter(handler):
    return GrafanaOTLPExporter(
        host="https://otlp.example.net",
        api_key="key",
        instance_id="123",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def gauges(payload):
    return payload["resourceMetrics"][0]["scopeMetrics"][0]["metrics"]


async def test_disabled_exporter_does_not_send():
    exporter = GrafanaOTLPExporter(host="", api_key="", instance_id="")

    assert exporter.is_enabled() is False
    assert await exporter.export_gauges({"x": 1}) is False


async def test_export_posts_gauges_to_otlp_path():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200)

    exporter = make_exporter(handler)

    assert await exporter.export_gauges({"a": 1, "b": 2.5}, unit="ms", attributes={"reason": "x"}) is True

    request = requests[0]
    assert str(request.url) == "https://otlp.example.net/otlp/v1/metrics"
    assert request.headers["Authorization"].startswith("Basic ")
    metrics = gauges(json.loads(request.content))
    assert [m["name"] for m in metrics] == ["a", "b"]
    assert metrics[0]["gauge"]["dataPoints"][0]["asInt"] == 1
    assert metrics[1]["gauge"]["dataPoints"][0]["asDouble"] == 2.5
    attributes = {a["key"]: a["value"]["stringValue"] for a in metrics[0]["gauge"]["dataPoints"][0]["attributes"]}
    assert attributes["reason"] == "x"


async def test_rejected_export_returns_false():
    exporter = make_exporter(lambda request: httpx.Response(401, text="denied"))
    assert await exporter.export_gauges({"a": 1}) is False


async def test_transport_error_returns_false():
    def handler(request):
        raise httpx.ConnectError("down")

    assert await make_exporter(handler).export_gauges({"a": 1}) is False


async def test_assistant_metrics_names():
    sent = []

    def handler(request):
        sent.extend(m["name"] for m in gauges(json.loads(request.content)))
        return httpx.Response(202)

    metrics = GrafanaAssistantMetrics(make_exporter(handler))

    await metrics.track_sentiment(Sentiment.NEGATIVE)
    await metrics.track_escalation("negative_sentiment")
    await metrics.track_response_time(120, "ticket-1")
    await metrics.track_followup({"reminders": 1, "closed": 0})

    assert sent == [
        "assistant_sentiment_detections",
        "assistant_auto_escalations",
        "assistant_response_time_ms",
        "assistant_followup_reminders",
        "assistant_followup_closed",
    ]
