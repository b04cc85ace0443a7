from __future__ import annotations

import asyncio
import json
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

import httpx
import pytest

from bundle_wizard.core.protocol import SENTINEL
from bundle_wizard.infrastructure import ConverterClient, ConverterError


def _client(handler) -> ConverterClient:
    transport = httpx.MockTransport(handler)
    return ConverterClient("http://converter.test/", http_client=httpx.AsyncClient(transport=transport))


async def _collect(client: ConverterClient, content: bytes = b"%PDF-1.4") -> list[str]:
    return [chunk async for chunk in client.stream_convert("plan.pdf", content)]


def test_stream_convert_posts_file_and_yields_text():
    captured: dict[str, object] = {}
    body = f"Processing 1 chunk\nchunk 1/1\n{SENTINEL}\n{{}}\n"

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["body"] = request.content
        return httpx.Response(200, text=body)

    chunks = asyncio.run(_collect(_client(handler)))

    assert captured["url"] == "http://converter.test/convert"
    assert b'name="file"; filename="plan.pdf"' in captured["body"]
    assert b"%PDF-1.4" in captured["body"]
    assert "".join(chunks) == body


def test_stream_convert_reports_detail_of_error_response():
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"detail": "PDF has no text layer"})

    with pytest.raises(ConverterError) as excinfo:
        asyncio.run(_collect(_client(handler)))

    assert excinfo.value.message == "PDF has no text layer"
    assert excinfo.value.status == 422


def test_stream_convert_falls_back_to_status_message():
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="upstream down")

    with pytest.raises(ConverterError) as excinfo:
        asyncio.run(_collect(_client(handler)))

    assert excinfo.value.message == "Conversion failed: 503"


def test_stream_convert_wraps_synchronous_json_result():
    document = {"resourceType": "Bundle", "entry": []}

    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=document)

    chunks = asyncio.run(_collect(_client(handler)))
    marker, payload = "".join(chunks).split("\n", 1)

    assert marker == SENTINEL
    assert json.loads(payload) == document


def test_stream_convert_treats_json_detail_as_error():
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"detail": "No pages found"})

    with pytest.raises(ConverterError, match="No pages found"):
        asyncio.run(_collect(_client(handler)))


def test_stream_convert_wraps_transport_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ConverterError) as excinfo:
        asyncio.run(_collect(_client(handler)))

    assert "connection refused" in excinfo.value.message
    assert excinfo.value.status is None


def test_validate_uploads_bundle_and_parses_report():
    captured: dict[str, object] = {}
    report = {
        "valid_percentage": 92.5,
        "compliance_percentage": 88,
        "passed_checks": 37,
        "total_checks": 40,
        "errors": [
            {
                "resource": "InsurancePlan",
                "field": "period",
                "message": "period.start is required",
                "remediation": "Add the policy start date",
            }
        ],
        "warnings": [],
        "extra_info": "kept",
    }

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["body"] = request.content
        return httpx.Response(200, json=report)

    result = asyncio.run(_client(handler).validate({"resourceType": "Bundle", "name": "₹ plan"}))

    assert captured["path"] == "/validate"
    assert b'filename="bundle.json"' in captured["body"]
    assert "₹ plan".encode("utf-8") in captured["body"]
    assert result.passed
    assert result.errors[0].remediation == "Add the policy start date"
    assert result.summary()["error_count"] == 1
    assert result.summary()["valid_percentage"] == 92.5


def test_validate_raises_on_error_status():
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"detail": "Bundle is not FHIR"})

    with pytest.raises(ConverterError) as excinfo:
        asyncio.run(_client(handler).validate({}))

    assert excinfo.value.message == "Bundle is not FHIR"
    assert excinfo.value.status == 400


def test_progress_health_and_excel():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/progress":
            return httpx.Response(200, json={"current_step": 2, "message": "Mapping benefits"})
        if request.url.path == "/health":
            return httpx.Response(200, json={"status": "ok", "version": "1.2"})
        if request.url.path == "/json-to-excel":
            return httpx.Response(200, content=b"PK\x03\x04xlsx")
        return httpx.Response(404)

    client = _client(handler)

    async def scenario():
        return (
            await client.get_progress(),
            await client.health(),
            await client.json_to_excel({"entry": []}),
        )

    progress, health, excel = asyncio.run(scenario())

    assert progress.current_step == 2
    assert progress.message == "Mapping benefits"
    assert health.status == "ok"
    assert excel.startswith(b"PK")


def test_non_json_report_is_an_error():
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>oops</html>")

    with pytest.raises(ConverterError):
        asyncio.run(_client(handler).validate({}))


def test_api_base_requires_scheme_and_host():
    with pytest.raises(ValueError):
        ConverterClient("localhost:8000")
