"""Report Backend Client - Imperative Shell.

This module handles HTTP communication with the report backend, which
relays reports between devices. All I/O is contained here; payload
parsing is in the core module.
"""

import base64
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import requests

from pinlocal.core.config import BackendConfig
from pinlocal.core.geo import Coordinate
from pinlocal.core.report import Report, parse_reports, report_to_payload


logger = logging.getLogger(__name__)


# Default timeout for backend requests (seconds)
DEFAULT_TIMEOUT = 30

# Delay before the first retry; doubles on each further attempt (seconds)
DEFAULT_RETRY_DELAY = 1.0

REPORT_PATH = "/report"
REPORTS_PATH = "/reports/all"
SUBSCRIBE_PATH = "/subscribe"


@dataclass
class BackendResponse:
    """Response from a backend write.

    Attributes:
        success: Whether the request succeeded
        status_code: HTTP status code (0 if no response)
        error: Error message if failed
    """
    success: bool
    status_code: int
    error: str | None = None


@dataclass
class FetchResult:
    """Reports fetched from the backend.

    Attributes:
        success: Whether the fetch succeeded
        status_code: HTTP status code (0 if no response)
        reports: Parsed, still-active reports
        error: Error message if failed
    """
    success: bool
    status_code: int
    reports: list[Report] = field(default_factory=list)
    error: str | None = None


class BackendClient:
    """Client for the report relay backend.

    This is part of the imperative shell - it handles HTTP I/O.
    Failures are returned as unsuccessful responses, never raised.
    """

    def __init__(
        self,
        base_url: str,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = 3,
        retry_delay: float = DEFAULT_RETRY_DELAY,
    ) -> None:
        """Initialize backend client.

        Args:
            base_url: Backend base URL
            timeout: Request timeout in seconds
            max_retries: Retries after the first attempt for timeouts,
                connection errors and 5xx responses
            retry_delay: Initial backoff delay in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    @classmethod
    def from_config(cls, config: BackendConfig) -> "BackendClient | None":
        """Build a client, or None when no backend is configured."""
        if not config.base_url:
            return None
        return cls(
            base_url=config.base_url,
            timeout=config.timeout_seconds,
            max_retries=config.max_retries,
        )

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        """Send a request, retrying transient failures with backoff.

        Raises:
            requests.RequestException: If every attempt failed
        """
        url = f"{self.base_url}{path}"
        delay = self.retry_delay

        for attempt in range(self.max_retries + 1):
            is_last = attempt == self.max_retries
            try:
                response = requests.request(method, url, timeout=self.timeout, **kwargs)
            except (requests.Timeout, requests.ConnectionError) as e:
                if is_last:
                    raise
                logger.warning(
                    "Backend %s %s failed (attempt %d): %s",
                    method, path, attempt + 1, str(e),
                )
            else:
                if response.status_code < 500 or is_last:
                    return response
                logger.warning(
                    "Backend %s %s returned %d (attempt %d)",
                    method, path, response.status_code, attempt + 1,
                )

            if delay > 0:
                time.sleep(delay)
            delay *= 2

        raise requests.RequestException(f"No attempts made for {method} {path}")

    def _failure(self, response: requests.Response) -> BackendResponse:
        if response.status_code == 429:
            logger.warning("Backend rate limit exceeded")
            return BackendResponse(
                success=False,
                status_code=response.status_code,
                error="Rate limit exceeded",
            )
        logger.warning(
            "Backend returned non-2xx: %d - %s",
            response.status_code,
            response.text,
        )
        return BackendResponse(
            success=False,
            status_code=response.status_code,
            error=response.text,
        )

    def fetch_reports(self, now: datetime | None = None) -> FetchResult:
        """Fetch all live reports from the backend.

        This method performs HTTP I/O.

        Args:
            now: Reference time for dropping expired reports

        Returns:
            FetchResult with parsed active reports
        """
        now = now or datetime.now(timezone.utc)
        logger.info("Fetching reports from backend")

        try:
            response = self._request("GET", REPORTS_PATH)
        except requests.RequestException as e:
            logger.error("Report fetch failed: %s", str(e))
            return FetchResult(success=False, status_code=0, error=str(e))

        if not response.ok:
            failure = self._failure(response)
            return FetchResult(
                success=False,
                status_code=failure.status_code,
                error=failure.error,
            )

        try:
            payload = response.json()
        except ValueError as e:
            logger.error("Backend returned invalid JSON: %s", str(e))
            return FetchResult(
                success=False,
                status_code=response.status_code,
                error="Invalid JSON response",
            )

        if not isinstance(payload, dict) or not payload.get("success", False):
            logger.warning("Backend reported success=false")
            return FetchResult(
                success=False,
                status_code=response.status_code,
                error="Backend reported failure",
            )

        reports = parse_reports(payload, now)
        logger.info("Fetched %d active reports from backend", len(reports))

        return FetchResult(
            success=True,
            status_code=response.status_code,
            reports=reports,
        )

    def submit_report(self, report: Report) -> BackendResponse:
        """Relay a locally created report to the backend.

        This method performs HTTP I/O.

        Args:
            report: Report to submit; its photo is attached as base64 JPEG

        Returns:
            BackendResponse indicating success or failure
        """
        payload = report_to_payload(report)
        if report.photo is not None:
            encoded = base64.b64encode(report.photo).decode("ascii")
            payload["photo"] = f"data:image/jpeg;base64,{encoded}"

        logger.info("Submitting report %s to backend", report.id)

        try:
            response = self._request("POST", REPORT_PATH, json=payload)
        except requests.RequestException as e:
            logger.error("Report submission failed: %s", str(e))
            return BackendResponse(success=False, status_code=0, error=str(e))

        if not response.ok:
            return self._failure(response)

        logger.info("Report %s submitted", report.id)
        return BackendResponse(success=True, status_code=response.status_code)

    def subscribe_to_alerts(
        self,
        location: Coordinate,
        device_token: str | None = None,
    ) -> BackendResponse:
        """Register a location so the backend pushes nearby reports.

        This method performs HTTP I/O.

        Args:
            location: Position to subscribe (user or favorite place)
            device_token: Push token for this device

        Returns:
            BackendResponse indicating success or failure
        """
        payload: dict[str, Any] = {
            "lat": location.latitude,
            "lng": location.longitude,
        }
        if device_token:
            payload["fcmToken"] = device_token

        try:
            response = self._request("POST", SUBSCRIBE_PATH, json=payload)
        except requests.RequestException as e:
            logger.error("Alert subscription failed: %s", str(e))
            return BackendResponse(success=False, status_code=0, error=str(e))

        if not response.ok:
            return self._failure(response)

        return BackendResponse(success=True, status_code=response.status_code)
