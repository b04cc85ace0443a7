"""HTTP client for the document conversion and validation backend."""
from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator
from urllib.parse import urlparse

import httpx
from pydantic import ValidationError

from bundle_wizard.core.protocol import SENTINEL
from bundle_wizard.core.schema import ConversionProgress, HealthStatus, ValidationReport

logger = logging.getLogger(__name__)


class ConverterError(RuntimeError):
    """Raised when the converter cannot be reached or answers with an error."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class ConverterClient:
    """Async client for the converter endpoints used by the wizard."""

    def __init__(
        self,
        api_base: str = "http://localhost:8000",
        *,
        timeout: float = 300.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        parsed = urlparse(api_base)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("api_base must include scheme and host")

        self._api_base = api_base.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _url(self, path: str) -> str:
        return f"{self._api_base}{path}"

    @staticmethod
    def _error_message(status: int, body: bytes, fallback: str) -> str:
        try:
            data = json.loads(body.decode("utf-8")) if body else None
        except (UnicodeDecodeError, json.JSONDecodeError):
            data = None
        if isinstance(data, dict) and data.get("detail"):
            return str(data["detail"])
        return f"{fallback}: {status}"

    @staticmethod
    def _document_file(document: dict[str, Any], filename: str) -> dict[str, tuple[str, bytes, str]]:
        payload = json.dumps(document, indent=2, ensure_ascii=False).encode("utf-8")
        return {"file": (filename, payload, "application/json")}

    @staticmethod
    def _synchronous_stream(body: bytes, status: int) -> str:
        """Re-emit a plain JSON conversion result in stream form."""

        try:
            data = json.loads(body.decode("utf-8")) if body else None
        except (UnicodeDecodeError, json.JSONDecodeError):
            data = None
        if isinstance(data, dict) and "detail" in data:
            raise ConverterError(str(data["detail"]), status=status)
        return f"{SENTINEL}\n{body.decode('utf-8', errors='replace')}"

    async def _request(self, method: str, path: str, *, fallback: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, self._url(path), **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ConverterError(str(exc) or exc.__class__.__name__) from exc
        if response.is_error:
            raise ConverterError(
                self._error_message(response.status_code, response.content, fallback),
                status=response.status_code,
            )
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ConverterError("converter returned a non-JSON response", status=response.status_code) from exc

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    async def stream_convert(
        self,
        filename: str,
        content: bytes,
        content_type: str | None = None,
    ) -> AsyncIterator[str]:
        """Upload a document and yield the response body as decoded text chunks."""

        files = {"file": (filename, content, content_type or "application/pdf")}
        try:
            async with self._client.stream("POST", self._url("/convert"), files=files) as response:
                if response.is_error:
                    body = await response.aread()
                    raise ConverterError(
                        self._error_message(response.status_code, body, "Conversion failed"),
                        status=response.status_code,
                    )
                if "application/json" in response.headers.get("content-type", ""):
                    body = await response.aread()
                    yield self._synchronous_stream(body, response.status_code)
                    return
                async for chunk in response.aiter_text():
                    yield chunk
        except httpx.HTTPError as exc:
            logger.warning("POST /convert failed: %s", exc)
            raise ConverterError(str(exc) or exc.__class__.__name__) from exc

    async def validate(self, document: dict[str, Any]) -> ValidationReport:
        response = await self._request(
            "POST",
            "/validate",
            fallback="Validation failed",
            files=self._document_file(document, "bundle.json"),
        )
        data = self._json(response)
        try:
            return ValidationReport.model_validate(data)
        except ValidationError as exc:
            raise ConverterError("converter returned an unexpected validation report") from exc

    async def get_progress(self) -> ConversionProgress:
        response = await self._request("GET", "/progress", fallback="Progress unavailable")
        try:
            return ConversionProgress.model_validate(self._json(response))
        except ValidationError as exc:
            raise ConverterError("converter returned an unexpected progress payload") from exc

    async def health(self) -> HealthStatus:
        response = await self._request("GET", "/health", fallback="Health check failed")
        data = self._json(response)
        if not isinstance(data, dict):
            return HealthStatus(status="ok")
        try:
            return HealthStatus.model_validate(data)
        except ValidationError as exc:
            raise ConverterError("converter returned an unexpected health payload") from exc

    async def json_to_excel(self, document: dict[str, Any]) -> bytes:
        response = await self._request(
            "POST",
            "/json-to-excel",
            fallback="Excel export failed",
            files=self._document_file(document, "bundle.json"),
        )
        return response.content

    async def aclose(self) -> None:  # pragma: no cover - best effort cleanup
        if self._owns_client:
            await self._client.aclose()


__all__ = ["ConverterClient", "ConverterError"]
