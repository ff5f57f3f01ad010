"""HTTP sender for transmitting record batches to the collector.

This module provides the HTTP/HTTPS transport used to POST newline-delimited
JSON batches to the Observe collector, and the interpretation of its result.
A failed transmission is reported as a value, never raised.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional
from urllib.error import HTTPError
from urllib.request import Request, urlopen

from loguru import logger

from .. import __version__
from ..queuer import Batch

NDJSON_CONTENT_TYPE = "application/x-ndjson"


@dataclass(frozen=True)
class TransportResponse:
    """Status and body of an HTTP response."""

    status: int
    reason: str = ""
    body: bytes = b""


@dataclass(frozen=True)
class TransmissionOutcome:
    """Result of sending one batch: ``error`` is None on success."""

    error: Optional[str] = None
    status: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Transport(ABC):
    """Issues a single HTTP POST and reports the response."""

    @abstractmethod
    def post(self, url: str, body: bytes, headers: Mapping[str, str], timeout: float) -> TransportResponse:
        """Send ``body`` to ``url``.

        Raises:
            OSError: if no response could be obtained
        """


class UrllibTransport(Transport):
    """Transport built on ``urllib.request``."""

    def post(self, url: str, body: bytes, headers: Mapping[str, str], timeout: float) -> TransportResponse:
        req = Request(url, data=body, headers=dict(headers), method="POST")
        try:
            with urlopen(req, timeout=timeout) as response:
                return TransportResponse(status=response.status, reason=response.reason or "", body=response.read())
        except HTTPError as e:
            # urllib raises for non-2xx statuses; they are still responses here
            try:
                error_body = e.read()
            except OSError:
                error_body = b""
            return TransportResponse(status=e.code, reason=str(e.reason or ""), body=error_body or b"")


class HTTPSender:
    """HTTP sender for transmitting record batches."""

    def __init__(self, url: str, auth: str, timeout_seconds: float = 30.0, transport: Optional[Transport] = None):
        """Initialize the HTTP sender.

        Args:
            url: Collector endpoint
            auth: Bearer token
            timeout_seconds: Request timeout
            transport: HTTP transport, urllib based by default
        """
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.transport = transport or UrllibTransport()
        self._auth = auth

        # Statistics
        self._total_batches_sent = 0
        self._total_batches_failed = 0
        self._total_records_sent = 0
        self._total_bytes_sent = 0
        self._total_send_time = 0.0
        self._last_successful_send: Optional[datetime] = None
        self._last_error: Optional[str] = None

    def build_headers(self, content_length: int) -> Dict[str, str]:
        """Headers for a batch request."""
        return {
            "Accept": "application/json",
            "Authorization": f"Bearer {self._auth}",
            "Content-Length": str(content_length),
            "Content-Type": NDJSON_CONTENT_TYPE,
            "User-Agent": f"observe-client/{__version__}",
        }

    def send_batch(self, batch: Batch) -> TransmissionOutcome:
        """Send a batch of records to the collector.

        Args:
            batch: Detached batch to send

        Returns:
            Outcome shared by every record of the batch
        """
        start_time = time.time()

        try:
            response = self.transport.post(self.url, batch.body(), self.build_headers(batch.size_bytes), self.timeout_seconds)
        except Exception as e:
            outcome = TransmissionOutcome(error=f"Observe request failed: {e}")
        else:
            if response.status > 299:
                logger.warning(f"Observe result for batch {batch.batch_id}: {response.body.decode('utf-8', errors='replace')}")
                outcome = TransmissionOutcome(error=f"Observe Bad HTTP result: {response.status} {response.reason}", status=response.status)
            else:
                outcome = TransmissionOutcome(status=response.status)

        send_time = time.time() - start_time
        self._total_send_time += send_time

        if outcome.ok:
            self._total_batches_sent += 1
            self._total_records_sent += batch.size()
            self._total_bytes_sent += batch.size_bytes
            self._last_successful_send = datetime.now()
            self._last_error = None

            logger.debug(f"Sent batch {batch.batch_id} with {batch.size()} records in {send_time:.2f}s")
        else:
            self._total_batches_failed += 1
            self._last_error = outcome.error

            logger.error(f"Failed to send batch {batch.batch_id} with {batch.size()} records: {outcome.error}")

        return outcome

    def get_stats(self) -> Dict[str, Any]:
        """Get sender statistics.

        Returns:
            Dictionary with sender statistics
        """
        attempts = max(1, self._total_batches_sent + self._total_batches_failed)

        return {
            "total_batches_sent": self._total_batches_sent,
            "total_batches_failed": self._total_batches_failed,
            "total_records_sent": self._total_records_sent,
            "total_bytes_sent": self._total_bytes_sent,
            "success_rate": self._total_batches_sent / attempts,
            "average_send_time_seconds": self._total_send_time / attempts,
            "last_successful_send": self._last_successful_send.isoformat() if self._last_successful_send else None,
            "last_error": self._last_error,
        }
