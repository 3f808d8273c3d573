"""Shared fakes for the gateway tests."""
from __future__ import annotations

import copy
from typing import Any, Callable, Dict, Optional

import pytest

ADDRESS = "0x1234567890abcdef1234567890abcdef12345678"
OTHER_ADDRESS = "0xabcdefabcdefabcdefabcdefabcdefabcdefabcd"
TX_HASH = "0x" + "ab" * 32


class FakeTransport:
    """Records every payload; replies with ``reply``, ``handler(payload)`` or raises ``error``."""

    def __init__(
        self,
        reply: Any = None,
        *,
        error: Optional[BaseException] = None,
        handler: Optional[Callable[[Any], Any]] = None,
    ) -> None:
        self.reply = reply
        self.error = error
        self.handler = handler
        self.sent: list = []

    async def send(self, url: str, payload: Any) -> Any:
        self.sent.append(copy.deepcopy(payload))
        if self.error is not None:
            raise self.error
        if self.handler is not None:
            return self.handler(payload)
        return self.reply

    @property
    def last(self) -> Any:
        return self.sent[-1]


def by_method(results: Dict[str, Any]) -> Callable[[Any], Any]:
    """Handler answering single envelopes and batches from a method -> result map.

    A value that is a dict with an ``error`` key is returned as a JSON-RPC error.
    """

    def answer(envelope: Dict[str, Any]) -> Dict[str, Any]:
        value = results[envelope["method"]]
        if callable(value):
            value = value(envelope["params"])
        if isinstance(value, dict) and "error" in value:
            return {"jsonrpc": "2.0", "id": envelope["id"], "error": value["error"]}
        return {"jsonrpc": "2.0", "id": envelope["id"], "result": value}

    def handler(payload: Any) -> Any:
        if isinstance(payload, list):
            return [answer(env) for env in payload]
        return answer(payload)

    return handler


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport({"jsonrpc": "2.0", "id": 1, "result": "0x1"})
