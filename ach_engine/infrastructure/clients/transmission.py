"""ACH operator HTTP client for handing off generated NACHA files"""

import asyncio
import logging
from typing import Any, Dict, Protocol

import httpx

from ach_engine.config import settings
from ach_engine.domain.exceptions import TransmissionError
from ach_engine.domain.models import NachaFile
from ach_engine.infrastructure.observability.metrics import (
    transmission_failure_counter,
    transmission_latency_histogram,
)

logger = logging.getLogger(__name__)


class FileTransmitter(Protocol):
    """Anything that can deliver a NACHA file to an ACH operator"""

    async def transmit(self, company_id: str, batch_id: str, nacha_file: NachaFile) -> Dict[str, Any]: ...


class ACHOperatorClient:
    """Client for the bank / ACH operator file intake API"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
    ):
        self.base_url = base_url or settings.ach_operator_base
        self.timeout = settings.http_timeout_seconds if timeout is None else timeout
        self.max_retries = settings.transmission_max_retries if max_retries is None else max_retries
        self.backoff_base = settings.transmission_backoff_base if backoff_base is None else backoff_base

    async def transmit(self, company_id: str, batch_id: str, nacha_file: NachaFile) -> Dict[str, Any]:
        """
        Upload a NACHA file to the operator.

        Retry strategy:
        - Exponential backoff: base, 2x base, 4x base ...
        - Retries on 5xx errors and network failures
        - 4xx responses are rejections and are not retried
        - Every attempt carries the same Idempotency-Key (the batch id), so an
          upload the operator accepted before a timeout is not applied twice

        Returns:
            Operator acknowledgement body

        Raises:
            TransmissionError: On rejection or once retries are exhausted
        """
        payload = {
            "company_id": company_id,
            "batch_id": batch_id,
            "file_name": nacha_file.file_name,
            "content": nacha_file.content,
        }
        headers = {"Idempotency-Key": str(batch_id)}
        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            while True:
                try:
                    with transmission_latency_histogram.time():
                        response = await client.post(
                            f"{self.base_url}/ach/files", json=payload, headers=headers
                        )
                        response.raise_for_status()
                    return response.json() if response.content else {}

                except httpx.HTTPStatusError as e:
                    transmission_failure_counter.inc()
                    if e.response.status_code < 500:
                        raise TransmissionError(
                            f"ACH operator rejected file: {e.response.status_code}"
                        ) from e
                    error: Exception = e

                except httpx.RequestError as e:
                    transmission_failure_counter.inc()
                    error = e

                except ValueError as e:
                    raise TransmissionError(f"Invalid acknowledgement from ACH operator: {e}") from e

                attempt += 1
                if attempt >= max(self.max_retries, 1):
                    raise TransmissionError(
                        f"ACH operator unavailable after {attempt} attempts"
                    ) from error

                backoff = self.backoff_base * (2 ** (attempt - 1))
                logger.warning(
                    f"Transmission attempt {attempt} failed, retrying in {backoff}s",
                    extra={"batch_id": batch_id, "company_id": company_id},
                )
                await asyncio.sleep(backoff)
