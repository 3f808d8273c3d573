"""Wire transports for JSON-RPC envelopes."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Protocol, Union

import aiohttp

log = logging.getLogger(__name__)

Payload = Union[Dict[str, Any], list]


def _is_rpc_error(data: Any) -> bool:
    """JSON-RPC error reply: a dict with ``error`` or a non-empty list of them."""

    if isinstance(data, dict):
        return "error" in data
    if isinstance(data, list):
        return bool(data) and all(isinstance(item, dict) and "error" in item for item in data)
    return False


class Transport(Protocol):
    async def send(self, url: str, payload: Payload) -> Any:  # pragma: no cover - protocol
        ...


class HttpTransport:
    """POST envelopes (or batches) as JSON and return the decoded reply.

    Any failure below the JSON-RPC layer (connection, timeout, non-200 status,
    undecodable body) is raised as-is; the dispatcher wraps it.
    """

    def __init__(
        self,
        *,
        timeout: float = 10.0,
        headers: Optional[Dict[str, str]] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.timeout = timeout
        self.headers = {"Content-Type": "application/json", **(headers or {})}
        self._session = session

    async def send(self, url: str, payload: Payload) -> Any:
        if self._session is not None:
            return await self._post(self._session, url, payload)
        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
            return await self._post(session, url, payload)

    async def _post(self, session: aiohttp.ClientSession, url: str, payload: Payload) -> Any:
        log.debug("[transport] POST %s items=%d", url, len(payload) if isinstance(payload, list) else 1)
        async with session.post(url, json=payload, headers=self.headers) as resp:
            if resp.status != 200:
                body = await resp.text()
                # Nodes sometimes answer JSON-RPC errors with a 4xx/5xx status.
                try:
                    data = json.loads(body)
                except json.JSONDecodeError:
                    data = None
                if _is_rpc_error(data):
                    return data
                raise aiohttp.ClientResponseError(
                    resp.request_info,
                    resp.history,
                    status=resp.status,
                    message=f"RPC HTTP {resp.status}",
                )
            return await resp.json(loads=json.loads, content_type=None)


class NullTransport:
    """Offline-friendly transport used for dry runs and local testing.

    Answers from a ``results`` map (method -> result or callable(params)) and
    fabricates an increasing ``eth_blockNumber``.  Everything it receives is
    kept in ``sent`` for inspection.
    """

    def __init__(self, results: Optional[Dict[str, Any]] = None):
        self.results: Dict[str, Any] = dict(results or {})
        self.sent: list = []
        self._block = 0

    def _answer(self, envelope: Dict[str, Any]) -> Dict[str, Any]:
        method = envelope.get("method")
        if method in self.results:
            result = self.results[method]
            if callable(result):
                result = result(envelope.get("params", []))
        elif method == "eth_blockNumber":
            self._block += 1
            result = hex(self._block)
        else:
            return {
                "jsonrpc": "2.0",
                "id": envelope.get("id"),
                "error": {"code": -32601, "message": f"method {method} not found"},
            }
        return {"jsonrpc": "2.0", "id": envelope.get("id"), "result": result}

    async def send(self, url: str, payload: Payload) -> Any:
        self.sent.append(payload)
        if isinstance(payload, list):
            return [self._answer(envelope) for envelope in payload]
        return self._answer(payload)


__all__ = ["Transport", "HttpTransport", "NullTransport"]
