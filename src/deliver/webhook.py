"""Webhook delivery of reports and sales, with bounded retries."""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from src.config import config
from src.parse.models import Sale

logger = logging.getLogger(__name__)


def is_retryable_status(status_code: Optional[int]) -> bool:
    """Network errors (no status), 408, 429 and 5xx are worth another attempt."""
    if status_code is None:
        return True
    return status_code in (408, 429) or status_code >= 500


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Retry-After in seconds; HTTP-date values are ignored."""
    if not value:
        return None
    try:
        return max(0.0, float(value.strip()))
    except ValueError:
        return None


class DeliveryError(RuntimeError):
    """Typed delivery failure with the HTTP status and optional retry hint."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retry_after: Optional[float] = None,
        response_text: str = "",
    ):
        super().__init__(message)
        self.status_code = status_code
        self.retry_after = retry_after
        self.response_text = response_text

    @property
    def retryable(self) -> bool:
        return is_retryable_status(self.status_code)


@dataclass
class DeliveryResult:
    ok: bool
    status_code: Optional[int] = None
    response_text: str = ""
    skipped: bool = False
    attempts: int = 0


class wait_retry_after_or_exponential:
    """Use the server's Retry-After hint when present, else exponential backoff."""

    def __init__(self, multiplier: float = 1.0, max_wait: float = 30.0):
        self.fallback = wait_exponential(multiplier=multiplier, min=0, max=max_wait)
        self.max_wait = max_wait

    def __call__(self, retry_state) -> float:
        outcome = retry_state.outcome
        error = outcome.exception() if outcome is not None else None
        if isinstance(error, DeliveryError) and error.retry_after is not None:
            return min(error.retry_after, self.max_wait)
        return self.fallback(retry_state)


class WebhookClient:
    """POSTs report files (multipart) or single sales (JSON) to a webhook URL."""

    def __init__(
        self,
        url: Optional[str] = None,
        max_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = (config.WEBHOOK_URL if url is None else url).strip()
        self.max_attempts = max(1, max_attempts or config.WEBHOOK_RETRIES)
        self.retry_delay = config.WEBHOOK_RETRY_DELAY if retry_delay is None else retry_delay
        self.timeout = timeout or config.WEBHOOK_TIMEOUT
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def _post_once(self, **kwargs: Any) -> DeliveryResult:
        try:
            async with self._client() as client:
                response = await client.post(self.url, **kwargs)
        except httpx.RequestError as e:
            # No HTTP status: retried like a timeout.
            raise DeliveryError(f"Webhook request failed: {type(e).__name__}: {e}") from e

        text = response.text
        if response.is_success:
            return DeliveryResult(ok=True, status_code=response.status_code, response_text=text)

        preview = f": {text[:800]}" if text else ""
        raise DeliveryError(
            f"Webhook responded {response.status_code} {response.reason_phrase}{preview}",
            status_code=response.status_code,
            retry_after=parse_retry_after(response.headers.get("Retry-After")),
            response_text=text,
        )

    async def _post(self, **kwargs: Any) -> DeliveryResult:
        if not self.enabled:
            return DeliveryResult(ok=False, skipped=True)

        attempts = 0
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_retry_after_or_exponential(multiplier=self.retry_delay),
            retry=retry_if_exception(lambda e: isinstance(e, DeliveryError) and e.retryable),
            reraise=True,
        ):
            with attempt:
                attempts += 1
                if attempts > 1:
                    logger.warning(f"[WEBHOOK] Retrying delivery (attempt {attempts}/{self.max_attempts})")
                result = await self._post_once(**kwargs)
                result.attempts = attempts
                return result

    async def send_file(self, path: Path, filename: Optional[str] = None, content_type: str = "application/json") -> DeliveryResult:
        """Upload one report artifact as multipart field `file`."""
        path = Path(path)
        try:
            payload = path.read_bytes()
        except OSError as e:
            raise DeliveryError(f"Could not read {path}: {e}") from e
        name = filename or path.name
        result = await self._post(files={"file": (name, payload, content_type)})
        if not result.skipped:
            logger.info(f"[WEBHOOK] Delivered {name} (HTTP {result.status_code}, attempts={result.attempts})")
        return result

    async def send_sale(self, sale: Sale) -> DeliveryResult:
        """Deliver one sale record as JSON."""
        result = await self._post(json=sale.to_record())
        if not result.skipped:
            logger.info(f"[WEBHOOK] Delivered sale {sale.id} (HTTP {result.status_code})")
        return result
