"""HTTP transport: one JSON POST per attempt.

The transport does not interpret provider error semantics. Non-2xx
responses and network faults become ``TransportError`` carrying the status
code and decoded error body; classification is left to the provider
adapters and the retry controller.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any, Protocol, Self, runtime_checkable

import httpx

from toolcall._http import AUTH_STATUS_CODES, JSON_CONTENT_TYPE
from toolcall.errors import MalformedResponseError, TransportError, _walk_exception_chain

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)


@runtime_checkable
class Transport(Protocol):
    """Minimal transport protocol: POST a JSON payload, return a JSON object."""

    async def post_json(
        self,
        url: str,
        *,
        headers: dict[str, str],
        payload: dict[str, Any],
        timeout_s: float | None = None,
    ) -> dict[str, Any]:
        """Send *payload* and return the decoded response object."""
        ...


def decode_error_body(raw_body: str) -> dict[str, Any] | None:
    """Decode a provider error body, returning None when it is not a JSON object."""
    if not raw_body:
        return None
    try:
        data = json.loads(raw_body)
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def _is_timeout(exc: BaseException) -> bool:
    return any(
        isinstance(e, (httpx.TimeoutException, TimeoutError))
        for e in _walk_exception_chain(exc)
    )


class HttpxTransport:
    """``httpx.AsyncClient`` backed transport.

    Pass ``client`` to share a configured client (it is not closed here), or
    ``transport`` to swap the network layer, e.g. ``httpx.MockTransport``.
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout_s: float = 60.0,
    ) -> None:
        self._timeout_s = timeout_s
        self._owns_client = client is None
        self._client = client
        self._transport = transport

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                transport=self._transport, timeout=self._timeout_s
            )
        return self._client

    async def post_json(
        self,
        url: str,
        *,
        headers: dict[str, str],
        payload: dict[str, Any],
        timeout_s: float | None = None,
    ) -> dict[str, Any]:
        """POST *payload* as JSON and return the decoded response object.

        Raises:
            TransportError: Network fault or non-2xx status.
            MalformedResponseError: 2xx body that is not a JSON object.
        """
        client = self._get_client()
        send_headers = {"content-type": JSON_CONTENT_TYPE, **headers}
        timeout = timeout_s if timeout_s is not None else self._timeout_s
        logger.debug("POST %s (timeout=%ss)", url, timeout)
        try:
            response = await client.post(
                url, headers=send_headers, json=payload, timeout=timeout
            )
        except asyncio.CancelledError:
            raise
        except httpx.RequestError as e:
            kind = "timed out" if _is_timeout(e) else "failed"
            raise TransportError(
                f"POST {url} {kind}: {e!r}",
                hint="Check network connectivity and the endpoint URL.",
            ) from e

        raw_body = response.text
        if not response.is_success:
            status = response.status_code
            hint = (
                "Check the configured API key and its permissions."
                if status in AUTH_STATUS_CODES
                else None
            )
            raise TransportError(
                f"POST {url} returned HTTP {status}",
                hint=hint,
                status_code=status,
                raw_body=raw_body,
                error_body=decode_error_body(raw_body),
            )

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"Response from {url} is not valid JSON"
            ) from e
        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"Response from {url} is not a JSON object (got {type(data).__name__})"
            )
        return data

    async def aclose(self) -> None:
        """Close the underlying client if this transport created it."""
        client = self._client
        if client is None or not self._owns_client:
            return
        self._client = None
        await client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        _: type[BaseException] | None,
        __: BaseException | None,
        ___: TracebackType | None,
    ) -> None:
        await self.aclose()
