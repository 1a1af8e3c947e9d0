"""
Operator Notifications
======================

Slack webhook alerts for faults only an operator can fix: a missing AI
credential or an exhausted AI quota.

Delivery uses a circuit breaker and exponential-backoff retry so a broken
webhook never cascades into the request path.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, Optional

import httpx

from complaintdesk.config import settings
from complaintdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class CircuitState:
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for preventing cascade failures.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: After N failures, reject all requests for M seconds
    - HALF_OPEN: After timeout, allow one test request
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> str:
        """Get current circuit state."""
        if self._state == CircuitState.OPEN and self._last_failure_time is not None:
            if time.monotonic() - self._last_failure_time >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        return self.state in (CircuitState.CLOSED, CircuitState.HALF_OPEN)

    def record_success(self) -> None:
        self._failure_count = 0
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = time.monotonic()

        if self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            logger.warning(
                "Circuit breaker opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


@dataclass
class OperatorAlert:
    """Alert about a fault in the classification service."""
    fault: str  # "configuration" or "billing"
    summary: str
    complaint_title: Optional[str] = None
    correlation_id: Optional[str] = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class SlackNotifier:
    """
    Slack webhook client with circuit breaker and retry logic.
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        channel: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self._webhook_url = webhook_url if webhook_url is not None else settings.slack_webhook_url
        self._channel = channel or settings.slack_channel
        self._circuit_breaker = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        self._http_client = http_client

    @property
    def enabled(self) -> bool:
        return bool(self._webhook_url)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=settings.slack_timeout_seconds)
        return self._http_client

    def _build_message(self, alert: OperatorAlert) -> Dict[str, Any]:
        """Build Slack Block Kit message."""
        header = (
            "AI classification is not configured"
            if alert.fault == "configuration"
            else "AI classification quota exhausted"
        )
        fields = [
            {"type": "mrkdwn", "text": f"*Fault:*\n{alert.fault}"},
            {"type": "mrkdwn", "text": f"*Detail:*\n{alert.summary}"},
        ]
        if alert.complaint_title:
            fields.append({"type": "mrkdwn", "text": f"*Complaint:*\n{alert.complaint_title}"})

        return {
            "channel": self._channel,
            "blocks": [
                {
                    "type": "header",
                    "text": {"type": "plain_text", "text": header}
                },
                {"type": "section", "fields": fields},
                {
                    "type": "context",
                    "elements": [{
                        "type": "mrkdwn",
                        "text": f"{alert.timestamp} | correlation {alert.correlation_id or 'n/a'}"
                    }]
                }
            ]
        }

    async def send_alert(self, alert: OperatorAlert, max_retries: int = 3) -> bool:
        """
        Send alert to the Slack webhook.

        Returns:
            True if sent successfully, False otherwise
        """
        if not self._webhook_url:
            logger.warning(
                "Operator alert not delivered: Slack webhook not configured",
                extra={"fault": alert.fault, "summary": alert.summary}
            )
            return False

        if not self._circuit_breaker.allow_request():
            logger.warning("Circuit breaker open, skipping Slack alert", extra={"fault": alert.fault})
            return False

        message = self._build_message(alert)

        for attempt in range(max_retries):
            try:
                client = await self._get_client()
                response = await client.post(self._webhook_url, json=message)

                if response.status_code == 200:
                    self._circuit_breaker.record_success()
                    logger.info("Operator alert sent", extra={"fault": alert.fault})
                    return True

                logger.warning(
                    "Slack webhook returned non-200",
                    extra={"status_code": response.status_code, "attempt": attempt + 1}
                )
            except httpx.HTTPError as e:
                logger.error(
                    "Slack alert failed",
                    extra={"error": str(e), "attempt": attempt + 1}
                )

            if attempt < max_retries - 1:
                await asyncio.sleep(2 ** attempt)

        self._circuit_breaker.record_failure()
        return False

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


@lru_cache()
def get_operator_notifier() -> SlackNotifier:
    """Process-wide notifier instance."""
    return SlackNotifier()
