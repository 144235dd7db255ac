"""HTTP request executor with bounded retries for safe methods."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from http import HTTPStatus

import httpx

from qr_attendance.domain.errors import ServerError, TransportError

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})
_PREVIEW_LENGTH = 100

_logger = logging.getLogger(__name__)


@dataclass
class HttpxRequestExecutor:
    """Executes requests, retrying reads with exponential backoff.

    Writes are attempted exactly once: a retried POST could create a second
    session or a duplicate check-in.
    """

    http_client: httpx.AsyncClient
    retry_attempts: int = 3
    backoff_seconds: float = 1.0
    timeout_seconds: float = 10
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    @classmethod
    def create(
        cls,
        base_url: str = "",
        headers: dict[str, str] | None = None,
        retry_attempts: int = 3,
        backoff_seconds: float = 1.0,
        timeout_seconds: float = 10,
    ) -> "HttpxRequestExecutor":
        """Create an executor with a managed httpx session."""
        return cls(
            http_client=httpx.AsyncClient(base_url=base_url, headers=headers),
            retry_attempts=retry_attempts,
            backoff_seconds=backoff_seconds,
            timeout_seconds=timeout_seconds,
        )

    async def execute(
        self,
        target: str,
        method: str = "GET",
        body: object | None = None,
        headers: dict[str, str] | None = None,
        params: dict[str, object] | None = None,
    ) -> object:
        """Send a request and return the decoded payload.

        JSON responses are decoded; anything else is returned as text.
        """
        method = method.upper()
        attempts = max(self.retry_attempts, 1) if method in SAFE_METHODS else 1
        attempt = 0
        while True:
            try:
                return await self._send(target, method, body, headers, params)
            except (TransportError, ServerError) as exc:
                attempt += 1
                _logger.warning(
                    "%s %s failed (attempt %s/%s): %s",
                    method,
                    target,
                    attempt,
                    attempts,
                    exc,
                )
                if attempt >= attempts:
                    raise
                await self.sleep(self.backoff_seconds * 2 ** (attempt - 1))

    async def _send(
        self,
        target: str,
        method: str,
        body: object | None,
        headers: dict[str, str] | None,
        params: dict[str, object] | None,
    ) -> object:
        try:
            response = await self.http_client.request(
                method,
                target,
                json=body,
                headers=headers,
                params=params,
                timeout=self.timeout_seconds,
            )
        except httpx.RequestError as exc:
            raise TransportError(f"{method} {target}: {exc}") from exc

        if not response.is_success:
            raise ServerError(response.status_code, _error_message(response))

        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                return response.json()
            except ValueError as exc:
                raise ServerError(
                    HTTPStatus.BAD_GATEWAY, f"Invalid JSON from {method} {target}"
                ) from exc
        return response.text

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _error_message(response: httpx.Response) -> str:
    """Extract a readable message from an error response."""
    fallback = f"Server error (Status: {response.status_code})"
    text = response.text
    try:
        payload = response.json()
    except ValueError:
        return text[:_PREVIEW_LENGTH] or fallback
    if isinstance(payload, dict) and isinstance(payload.get("message"), str):
        return payload["message"]
    return text[:_PREVIEW_LENGTH] or fallback
