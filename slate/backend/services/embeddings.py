"""
Embedding Sink.

Posts note content to an external embedder after content-changing writes.
The post runs as a background task that the request never awaits; its
response is ignored and every failure is logged and swallowed.

Disabled when the features flag is off or no endpoint is configured.
"""

from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from slate.backend.core.concurrency import get_semaphore, spawn_background
from slate.backend.core.logging import get_logger, log_with_source
from slate.backend.core.resilience import log_retry

logger = get_logger(__name__)


class EmbeddingSink:
    """Fire-and-forget client for the embedding endpoint."""

    def __init__(
        self,
        endpoint: str,
        timeout: float = 5.0,
        api_key: str = "",
        max_attempts: int = 2,
        backoff_max: int = 4,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.timeout = timeout
        self.api_key = api_key
        self.max_attempts = max(1, max_attempts)
        self.backoff_max = backoff_max
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.endpoint)

    def notify(self, note_id: str, content: str) -> None:
        """Schedule an embedding post for the note. Returns immediately."""
        if not self.enabled:
            return
        spawn_background(self.post(note_id, content), name=f"embed_note:{note_id}")

    async def post(self, note_id: str, content: str) -> None:
        """Send one note to the embedder. Never raises."""
        body: dict[str, Any] = {"action": "embed_note", "noteId": note_id, "content": content}
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}

        @retry(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=0.5, max=self.backoff_max),
            retry=retry_if_exception_type(httpx.TransportError),
            before_sleep=log_retry,
            reraise=True,
        )
        async def _send() -> None:
            async with get_semaphore("external_api"):
                async with httpx.AsyncClient(
                    timeout=self.timeout,
                    transport=self._transport,
                ) as client:
                    response = await client.post(self.endpoint, json=body, headers=headers)
                    response.raise_for_status()

        try:
            await _send()
            logger.debug("Embedding posted", extra={"note_id": note_id})
        except Exception as e:
            log_with_source(
                logger,
                "embeddings",
                "warning",
                "Embedding post failed",
                note_id=note_id,
                error=str(e),
                error_type=type(e).__name__,
            )


def get_embedding_sink() -> EmbeddingSink:
    """Build the sink from embeddings.yaml and the features flag."""
    from slate.backend.core.config import get_app_config, get_settings

    app_config = get_app_config()
    config = app_config.embeddings
    endpoint = config.endpoint if app_config.features.embeddings_enabled else ""
    return EmbeddingSink(
        endpoint=endpoint,
        timeout=config.timeout_seconds,
        api_key=get_settings().embedding_api_key,
        max_attempts=config.retry.max_attempts,
        backoff_max=config.retry.backoff_max,
    )
