"""JSON-RPC dispatcher: envelopes, middleware, single and batched calls."""
from __future__ import annotations

import asyncio
import inspect
import itertools
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Union

from .errors import ProviderMisconfigured, RpcError, TransportError
from .normalizer import ValueNormalizer
from .transport import HttpTransport, Transport

log = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"
MISSING_RESPONSE_CODE = -32603

Envelope = Dict[str, Any]
RequestMiddleware = Callable[[Envelope], Union[Envelope, Awaitable[Envelope]]]
ResponseMiddleware = Callable[[Any, Envelope], Any]
BatchItem = Union[Dict[str, Any], Sequence[Any]]


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _call_spec(item: BatchItem) -> tuple[str, list]:
    if isinstance(item, dict):
        return str(item["method"]), list(item.get("params") or [])
    method, *rest = item
    params = list(rest[0] or []) if rest else []
    return str(method), params


def _response_id(response: Any) -> Any:
    return response.get("id") if isinstance(response, dict) else None


def _sort_key(response: Any) -> float:
    # Responses without an integer id sort last.
    rid = _response_id(response)
    return rid if isinstance(rid, int) and not isinstance(rid, bool) else float("inf")


class RpcDispatcher:
    """Build, send and correlate JSON-RPC calls against one endpoint.

    Middleware lists are append-only and are expected to be populated during
    setup, before calls are in flight.  The dispatcher never retries.
    """

    def __init__(
        self,
        url: Optional[str],
        *,
        transport: Optional[Transport] = None,
        normalizer: Optional[ValueNormalizer] = None,
    ) -> None:
        self.url = url
        self.transport = transport or HttpTransport()
        self.normalizer = normalizer or ValueNormalizer()
        self._ids = itertools.count(1)
        self._request_middleware: List[RequestMiddleware] = []
        self._response_middleware: List[ResponseMiddleware] = []

    # ------------------------------------------------------------------
    # Middleware
    # ------------------------------------------------------------------
    def use_request(self, middleware: RequestMiddleware) -> None:
        self._request_middleware.append(middleware)

    def use_response(self, middleware: ResponseMiddleware) -> None:
        self._response_middleware.append(middleware)

    async def _apply_request_middleware(self, envelope: Envelope) -> Envelope:
        for middleware in self._request_middleware:
            envelope = await _resolve(middleware(envelope))
        return envelope

    async def _apply_response_middleware(self, response: Any, envelope: Optional[Envelope]) -> Any:
        for middleware in self._response_middleware:
            response = await _resolve(middleware(response, envelope))
        return response

    # ------------------------------------------------------------------
    # Envelopes
    # ------------------------------------------------------------------
    def _envelope(self, method: str, params: Optional[Iterable[Any]]) -> Envelope:
        return {
            "jsonrpc": JSONRPC_VERSION,
            "id": next(self._ids),
            "method": method,
            "params": list(params or []),
        }

    def _require_url(self) -> str:
        if not self.url:
            raise ProviderMisconfigured("Provider URL is not set")
        return self.url

    def _extract(self, response: Any) -> Any:
        if isinstance(response, dict) and "result" in response:
            return self.normalizer.normalize_from_wire(response["result"])
        return self.normalizer.normalize_from_wire(response)

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------
    async def call(self, method: str, params: Optional[Iterable[Any]] = None) -> Any:
        url = self._require_url()
        envelope = await self._apply_request_middleware(self._envelope(method, params))
        log.debug("[rpc] -> %s id=%s", method, envelope.get("id"))
        try:
            raw = await self.transport.send(url, envelope)
        except Exception as err:
            log.warning("[rpc] transport failure method=%s err=%s", method, err)
            raise TransportError(method, err) from err

        response = await self._apply_response_middleware(raw, envelope)
        if isinstance(response, dict) and response.get("error"):
            error = RpcError.from_payload(response["error"])
            log.debug("[rpc] <- %s error code=%s msg=%s", method, error.code, error.message)
            raise error
        return self._extract(response)

    async def batch_call(self, calls: Sequence[BatchItem]) -> List[Any]:
        """Send ``calls`` as one batch; results come back in submission order.

        Errors never raise: a node-side error fills its own slot with
        ``{"error": <error object>}`` and a transport failure fills every slot
        with ``{"error": <TransportError message naming that slot's method>}``.
        """

        url = self._require_url()
        if not calls:
            return []
        specs = [_call_spec(item) for item in calls]
        envelopes = [self._envelope(method, params) for method, params in specs]
        envelopes = list(await asyncio.gather(*(self._apply_request_middleware(env) for env in envelopes)))
        log.debug("[batch] -> %d calls ids=%s", len(envelopes), [env.get("id") for env in envelopes])

        try:
            raw = await self.transport.send(url, envelopes)
        except Exception as err:
            log.warning("[batch] transport failure calls=%d err=%s", len(envelopes), err)
            return [{"error": str(TransportError(method, err))} for method, _ in specs]

        by_request_id = {env.get("id"): env for env in envelopes}
        if isinstance(raw, dict) and raw.get("error") and raw.get("id") not in by_request_id:
            # The node rejected the batch as a whole.
            return [{"error": raw["error"]} for _ in envelopes]
        responses = raw if isinstance(raw, list) else [raw]

        responses = list(
            await asyncio.gather(
                *(self._apply_response_middleware(resp, by_request_id.get(_response_id(resp))) for resp in responses)
            )
        )
        responses.sort(key=_sort_key)
        by_response_id = {_response_id(resp): resp for resp in responses if isinstance(resp, dict)}

        out: List[Any] = []
        for env in envelopes:
            resp = by_response_id.get(env.get("id"))
            if resp is None:
                out.append(
                    {
                        "error": {
                            "code": MISSING_RESPONSE_CODE,
                            "message": f"missing response for request id {env.get('id')}",
                        }
                    }
                )
            elif resp.get("error"):
                out.append({"error": resp["error"]})
            else:
                out.append(self._extract(resp))
        return out


__all__ = ["RpcDispatcher", "JSONRPC_VERSION"]
