"""Change feed webhook client with exponential backoff retry logic"""

import asyncio
import logging
from typing import Any, Dict, Optional, Set

import httpx

from peer_ledger.config import settings
from peer_ledger.domain.engine import CommandResult
from peer_ledger.domain.serialization import changes_to_dict
from peer_ledger.infrastructure.observability.metrics import webhook_failure_counter, webhook_latency_histogram

logger = logging.getLogger(__name__)


def change_event(result: CommandResult) -> Dict[str, Any]:
    """Webhook payload for one committed command"""
    return {
        "event": "LEDGER_COMMITTED",
        "command": result.command.name,
        "version": result.version,
        "committed_at": result.committed_at.isoformat(),
        "changes": changes_to_dict(result.changes),
    }


class ChangeFeedClient:
    """Client for pushing committed ledger changes to a downstream subscriber"""

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url or settings.change_feed_url
        self.timeout = settings.http_timeout_seconds
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base
        self.transport = transport

    async def send_change_event(self, payload: Dict[str, Any]) -> None:
        """
        Send a change event with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s, 16s (base^attempt)
        - Retries on 5xx errors and network failures
        - 4xx responses are not retried
        - Tracks latency histogram and failure counter

        Args:
            payload: Event data to send
        """
        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            while attempt < self.max_retries:
                try:
                    with webhook_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=payload)
                        response.raise_for_status()
                        return  # Success

                except httpx.HTTPStatusError as e:
                    webhook_failure_counter.inc()
                    if e.response.status_code < 500:
                        raise
                    attempt += 1
                    if attempt >= self.max_retries:
                        raise

                except httpx.RequestError:
                    webhook_failure_counter.inc()
                    attempt += 1
                    if attempt >= self.max_retries:
                        raise

                backoff = self.backoff_base * (2 ** (attempt - 1))
                await asyncio.sleep(backoff)


class ChangeFeedPublisher:
    """
    Engine listener that ships each commit to the change feed without
    blocking the command path.

    Deliveries are scheduled on the running event loop; commits made outside
    a loop are skipped with a warning.
    """

    def __init__(self, client: ChangeFeedClient):
        self.client = client
        self._pending: Set[asyncio.Task] = set()

    def __call__(self, result: CommandResult) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No event loop; change event not published", extra={"version": result.version})
            return

        task = loop.create_task(self._deliver(change_event(result)))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, payload: Dict[str, Any]) -> None:
        try:
            await self.client.send_change_event(payload)
        except httpx.HTTPError as e:
            logger.error(f"Change feed delivery failed: {e}", extra={"version": payload["version"]})

    async def drain(self) -> None:
        """Wait for in-flight deliveries, used on shutdown"""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
