from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from bundle_wizard.core.errors import TransportError
from bundle_wizard.core.ingestion import IngestionResult, IngestionSession, ProgressListener
from bundle_wizard.infrastructure import ConverterClient, ConverterError

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "timeout"
CANCELLED_MESSAGE = "cancelled"


@dataclass
class IngestionRequest:
    filename: str
    content: bytes
    content_type: str | None = None


class IngestionWorker:
    """Runs at most one converter upload at a time.

    Starting a new upload cancels the one in flight.  A cancelled or timed
    out upload closes its HTTP stream and its session is discarded; the
    caller only ever sees a ``TransportError`` for it.
    """

    def __init__(self, client: ConverterClient, *, timeout: float = 300.0) -> None:
        self._client = client
        self._timeout = timeout
        self._task: asyncio.Task[IngestionResult] | None = None
        self._session: IngestionSession | None = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def cancel(self) -> bool:
        task, session = self._task, self._session
        self._task = self._session = None
        if session is not None:
            session.cancel()
        if task is None or task.done():
            return False
        logger.info("Cancelling in-flight upload")
        task.cancel()
        return True

    async def run(
        self,
        request: IngestionRequest,
        on_progress: ProgressListener | None = None,
    ) -> IngestionResult | TransportError:
        self.cancel()
        session = IngestionSession(on_progress=on_progress)
        task = asyncio.create_task(self._consume(request, session))
        self._task, self._session = task, session
        logger.info("Uploading %s to converter", request.filename)

        try:
            done, _ = await asyncio.wait({task}, timeout=self._timeout)
        except asyncio.CancelledError:
            task.cancel()
            session.cancel()
            raise
        finally:
            # cancel() or a newer run() detached this task while we waited
            superseded = self._task is not task
            if not superseded:
                self._task = self._session = None

        if not done:
            logger.warning("Upload of %s timed out after %.0fs", request.filename, self._timeout)
            task.cancel()
            await asyncio.wait({task})
            session.cancel()
            return TransportError(TIMEOUT_MESSAGE)

        if task.cancelled():
            return TransportError(CANCELLED_MESSAGE)
        if superseded:
            task.exception()  # marks a failure as retrieved
            logger.info("Discarding result of superseded upload %s", request.filename)
            return TransportError(CANCELLED_MESSAGE)

        exc = task.exception()
        if isinstance(exc, ConverterError):
            logger.warning("Upload of %s failed: %s", request.filename, exc.message)
            return TransportError(exc.message, status=exc.status)
        if exc is not None:
            raise exc

        result = task.result()
        logger.info("Upload of %s finished: %s", request.filename, type(result).__name__)
        return result

    async def _consume(self, request: IngestionRequest, session: IngestionSession) -> IngestionResult:
        stream = self._client.stream_convert(request.filename, request.content, request.content_type)
        try:
            async for chunk in stream:
                session.feed(chunk)
        finally:
            await stream.aclose()
        return session.finish()
