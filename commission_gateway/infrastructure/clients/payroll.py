"""Payroll webhook client with exponential backoff retry logic"""

import asyncio
import logging
from typing import Any, Dict

import httpx

from commission_gateway.config import settings
from commission_gateway.domain.exceptions import PayrollSyncError
from commission_gateway.infrastructure.observability.metrics import webhook_latency_histogram, webhook_failure_counter

logger = logging.getLogger(__name__)


class PayrollClient:
    """Client for publishing breakdown snapshots to the company payroll system"""

    def __init__(
        self,
        webhook_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.webhook_url = webhook_url or settings.payroll_webhook_url
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base
        self.transport = transport

    async def send_snapshot(self, payload: Dict[str, Any]) -> None:
        """
        Send a breakdown snapshot to payroll with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s (base * 2^(attempt-1))
        - Retries on HTTP errors and network failures
        - Tracks latency histogram and failure counter

        Args:
            payload: Snapshot document to deliver

        Raises:
            PayrollSyncError: After the last attempt failed
        """
        attempt = 0
        async with httpx.AsyncClient(transport=self.transport) as client:
            while attempt < self.max_retries:
                try:
                    with webhook_latency_histogram.time():
                        response = await client.post(
                            self.webhook_url,
                            json=payload,
                            timeout=10.0,
                        )
                        response.raise_for_status()
                        return  # Success

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    webhook_failure_counter.inc()
                    logger.warning(
                        f"Payroll webhook attempt {attempt} failed: {e}",
                        extra={"rep_id": payload.get("rep_id"), "period": payload.get("period")},
                    )

                    if attempt >= self.max_retries:
                        raise PayrollSyncError(
                            f"Payroll webhook failed after {attempt} attempts"
                        ) from e

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)
