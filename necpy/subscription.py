"""Websocket push subscriptions (``eth_subscribe``) as a thin re-emitter."""
from __future__ import annotations

import asyncio
import itertools
import json
import logging
from typing import Any, Callable, Dict, List, Optional, Union

import aiohttp

from .core.errors import RpcError, SubscriptionError
from .core.normalizer import ValueNormalizer

log = logging.getLogger(__name__)

EventHandler = Callable[[Any], Any]


class Subscription:
    """JSON-RPC over a websocket, with id-correlated replies and push routing.

    Events: ``open``, ``close``, ``error`` and ``message`` (any frame that is
    neither a pending reply nor a known subscription notification).
    """

    def __init__(
        self,
        url: str,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        normalizer: Optional[ValueNormalizer] = None,
    ) -> None:
        self.url = url
        self.normalizer = normalizer or ValueNormalizer()
        self.is_connected = False
        self._session = session
        self._owns_session = session is None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._reader: Optional[asyncio.Task] = None
        self._ids = itertools.count(1)
        self._pending: Dict[int, asyncio.Future] = {}
        self._event_handlers: Dict[str, List[EventHandler]] = {}
        self._subscription_handlers: Dict[str, EventHandler] = {}

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def on(self, event: str, handler: EventHandler) -> None:
        handlers = self._event_handlers.setdefault(event, [])
        if handler not in handlers:
            handlers.append(handler)

    def off(self, event: str, handler: EventHandler) -> None:
        handlers = self._event_handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def _emit(self, event: str, payload: Any = None) -> None:
        for handler in list(self._event_handlers.get(event, [])):
            try:
                handler(payload)
            except Exception as err:
                log.exception("[subscription] %s listener failed", event)
                if event != "error":
                    self._emit("error", err)

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------
    async def connect(self) -> None:
        if self.is_connected:
            return
        if self._session is None:
            self._session = aiohttp.ClientSession()
        try:
            self._ws = await self._session.ws_connect(self.url)
        except aiohttp.ClientError as err:
            self._emit("error", err)
            await self._close_session()
            raise SubscriptionError(f"websocket connect failed for {self.url}: {err}") from err
        self.is_connected = True
        log.info("[subscription] connected %s", self.url)
        self._emit("open")
        self._reader = asyncio.create_task(self._read_loop(self._ws))

    async def disconnect(self) -> None:
        if self._ws is not None:
            await self._ws.close()
        if self._reader is not None:
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
            self._reader = None
        self._ws = None
        self.is_connected = False
        await self._close_session()

    async def _close_session(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._handle_message(msg.data)
                elif msg.type == aiohttp.WSMsgType.BINARY:
                    self._handle_message(msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    self._emit("error", ws.exception())
        finally:
            self.is_connected = False
            self._fail_pending(SubscriptionError("websocket closed"))
            log.info("[subscription] closed %s", self.url)
            self._emit("close")

    def _fail_pending(self, err: Exception) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(err)
        self._pending.clear()

    def _handle_message(self, data: Union[str, bytes]) -> None:
        try:
            msg = json.loads(data.decode("utf-8") if isinstance(data, bytes) else data)
        except (UnicodeDecodeError, json.JSONDecodeError) as err:
            self._emit("error", err)
            return
        if not isinstance(msg, dict):
            self._emit("message", msg)
            return

        future = self._pending.pop(msg.get("id"), None) if msg.get("id") is not None else None
        if future is not None:
            if future.done():
                return
            if msg.get("error"):
                future.set_exception(RpcError.from_payload(msg["error"]))
            else:
                future.set_result(msg.get("result"))
        elif msg.get("method") == "eth_subscription" and isinstance(msg.get("params"), dict):
            params = msg["params"]
            handler = self._subscription_handlers.get(params.get("subscription"))
            if handler is None:
                log.debug("[subscription] notification for unknown id=%s", params.get("subscription"))
                return
            try:
                handler(self.normalizer.normalize_from_wire(params.get("result")))
            except Exception as err:
                log.exception("[subscription] handler failed id=%s", params.get("subscription"))
                self._emit("error", err)
        else:
            self._emit("message", msg)

    # ------------------------------------------------------------------
    # RPC
    # ------------------------------------------------------------------
    async def send_rpc(self, method: str, params: Optional[List[Any]] = None) -> Any:
        if not self.is_connected or self._ws is None:
            raise SubscriptionError("WebSocket is not connected")
        request_id = next(self._ids)
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        payload = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": list(params or [])}
        try:
            await self._ws.send_str(json.dumps(payload))
        except Exception:
            self._pending.pop(request_id, None)
            raise
        return await future

    async def subscribe(self, sub_type: str, params: Optional[List[Any]] = None, handler: Optional[EventHandler] = None) -> str:
        sub_id = await self.send_rpc("eth_subscribe", [sub_type, *(params or [])])
        if handler is not None:
            self._subscription_handlers[sub_id] = handler
        return sub_id

    async def unsubscribe(self, sub_id: str) -> Any:
        result = await self.send_rpc("eth_unsubscribe", [sub_id])
        self._subscription_handlers.pop(sub_id, None)
        return result


__all__ = ["Subscription"]
