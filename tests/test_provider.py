from __future__ import annotations

import aiohttp
import pytest

from necpy import Provider
from necpy.core.errors import RpcError, TransportError
from necpy.core.transport import NullTransport
from necpy.provider import ENS_ADDR_SELECTOR, ENS_REGISTRY, ENS_RESOLVER_SELECTOR, ens_namehash

from .conftest import ADDRESS, OTHER_ADDRESS, TX_HASH, FakeTransport, by_method

URL = "http://node.invalid"


def word(address: str) -> str:
    return "0x" + "0" * 24 + address[2:]


@pytest.mark.asyncio
async def test_get_balance_renders_whole_units():
    provider = Provider(URL, transport=NullTransport({"eth_getBalance": "0xde0b6b3a7640000"}))
    assert await provider.get_balance(ADDRESS) == "1"


@pytest.mark.asyncio
async def test_get_balance_keeps_fractional_units_exact():
    provider = Provider(URL, transport=NullTransport({"eth_getBalance": hex(15 * 10**17 + 1)}))
    assert await provider.get_balance(ADDRESS) == "1.500000000000000001"


@pytest.mark.asyncio
async def test_get_balance_honours_native_decimals_and_block_tag():
    transport = FakeTransport(handler=by_method({"eth_getBalance": hex(250_000_000)}))
    provider = Provider(URL, transport=transport, native_decimals=8)
    assert await provider.get_balance(ADDRESS, 16) == "2.5"
    assert transport.last["params"] == [ADDRESS, "0x10"]


@pytest.mark.asyncio
async def test_get_balance_null_result_is_a_clear_error():
    provider = Provider(URL, transport=NullTransport({"eth_getBalance": None}))
    with pytest.raises(RpcError, match=f"eth_getBalance returned no balance for {ADDRESS}"):
        await provider.get_balance(ADDRESS)


@pytest.mark.asyncio
async def test_get_chain_id():
    provider = Provider(URL, transport=NullTransport({"eth_chainId": "0x1"}))
    assert await provider.get_chain_id() == 1


TX = {"from": ADDRESS, "to": OTHER_ADDRESS, "value": 1, "gas": 21000}
WIRE_TX = {"from": ADDRESS, "to": OTHER_ADDRESS, "value": "0xde0b6b3a7640000", "gas": "0x5208"}


@pytest.mark.parametrize(
    "name,args,method,params",
    [
        ("client_version", (), "web3_clientVersion", []),
        ("net_version", (), "net_version", []),
        ("listening", (), "net_listening", []),
        ("peer_count", (), "net_peerCount", []),
        ("protocol_version", (), "eth_protocolVersion", []),
        ("syncing", (), "eth_syncing", []),
        ("coinbase", (), "eth_coinbase", []),
        ("hashrate", (), "eth_hashrate", []),
        ("get_gas_price", (), "eth_gasPrice", []),
        ("accounts", (), "eth_accounts", []),
        ("get_block_number", (), "eth_blockNumber", []),
        ("get_storage_at", (ADDRESS, "0x0"), "eth_getStorageAt", [ADDRESS, "0x0", "latest"]),
        ("get_transaction_count", (ADDRESS, "pending"), "eth_getTransactionCount", [ADDRESS, "pending"]),
        ("get_block_transaction_count_by_number", (16,), "eth_getBlockTransactionCountByNumber", ["0x10"]),
        ("get_code", (ADDRESS,), "eth_getCode", [ADDRESS, "latest"]),
        ("get_block_by_number", (16,), "eth_getBlockByNumber", ["0x10", False]),
        ("get_block_by_number", ("latest", True), "eth_getBlockByNumber", ["latest", True]),
        ("get_block_by_hash", (TX_HASH,), "eth_getBlockByHash", [TX_HASH, False]),
        ("sign", (ADDRESS, "0xdeadbeef"), "eth_sign", [ADDRESS, "0xdeadbeef"]),
        ("sign_transaction", (TX,), "eth_signTransaction", [WIRE_TX]),
        ("send_transaction", (TX,), "eth_sendTransaction", [WIRE_TX]),
        ("send_raw_transaction", ("0xf86c0a85",), "eth_sendRawTransaction", ["0xf86c0a85"]),
        ("call", ({"to": ADDRESS, "data": "0x70a08231"},), "eth_call", [{"to": ADDRESS, "data": "0x70a08231"}, "latest"]),
        ("estimate_gas", (TX,), "eth_estimateGas", [WIRE_TX]),
        ("get_transaction_by_hash", (TX_HASH,), "eth_getTransactionByHash", [TX_HASH]),
        ("get_transaction_receipt", (TX_HASH,), "eth_getTransactionReceipt", [TX_HASH]),
        ("get_logs", ({"address": ADDRESS},), "eth_getLogs", [{"address": ADDRESS}]),
        ("submit_work", ("0x1", TX_HASH, TX_HASH), "eth_submitWork", ["0x1", TX_HASH, TX_HASH]),
        ("get_work", (), "eth_getWork", []),
        ("new_account", ("pw",), "personal_newAccount", ["pw"]),
        ("import_raw_key", ("0xkey", "pw"), "personal_importRawKey", ["0xkey", "pw"]),
        ("personal_sign", ("0xdata", ADDRESS, "pw"), "personal_sign", ["0xdata", ADDRESS, "pw"]),
        ("ec_recover", ("0xdata", "0xsig"), "personal_ecRecover", ["0xdata", "0xsig"]),
        ("unlock_account", (ADDRESS, "pw"), "personal_unlockAccount", [ADDRESS, "pw", None]),
        ("unlock_account", (ADDRESS, "pw", 300), "personal_unlockAccount", [ADDRESS, "pw", 300]),
        ("lock_account", (ADDRESS,), "personal_lockAccount", [ADDRESS]),
        ("send_personal_transaction", (TX, "pw"), "personal_sendTransaction", [WIRE_TX, "pw"]),
    ],
)
@pytest.mark.asyncio
async def test_catalogue_maps_to_rpc_methods(name, args, method, params):
    transport = FakeTransport({"jsonrpc": "2.0", "id": 1, "result": "0x1"})
    provider = Provider(URL, transport=transport)
    await getattr(provider, name)(*args)
    assert transport.last["method"] == method
    assert transport.last["params"] == params


@pytest.mark.asyncio
async def test_call_rpc_serializes_dict_params():
    transport = FakeTransport({"result": "0x1"})
    provider = Provider(URL, transport=transport)
    await provider.call_rpc("eth_estimateGas", [{"to": OTHER_ADDRESS, "value": "0.5"}, "latest"])
    assert transport.last["params"] == [{"to": OTHER_ADDRESS, "value": hex(5 * 10**17)}, "latest"]


@pytest.mark.asyncio
async def test_catalogue_results_are_normalized():
    receipt = {"transactionHash": TX_HASH, "blockNumber": "0x10", "status": "0x1", "gasUsed": "0x5208"}
    provider = Provider(URL, transport=NullTransport({"eth_getTransactionReceipt": receipt}))
    assert await provider.get_transaction_receipt(TX_HASH) == {
        "transactionHash": TX_HASH,
        "blockNumber": "16",
        "status": "1",
        "gasUsed": "21000",
    }


@pytest.mark.asyncio
async def test_from_config_applies_decimals_and_identifiers():
    transport = FakeTransport({"result": {"tokenId": "0x01"}})
    provider = Provider.from_config(
        {"rpc_url": URL, "token_decimals": 6, "identifier_fields": ["tokenId"]}, transport=transport
    )
    assert provider.url == URL
    assert await provider.call_rpc("nec_transfer", [{"amount": "1.5"}]) == {"tokenId": "0x01"}
    assert transport.last["params"] == [{"amount": hex(1_500_000)}]


@pytest.mark.asyncio
async def test_provider_middleware_reaches_the_dispatcher():
    transport = FakeTransport({"result": "0x1"})
    provider = Provider(URL, transport=transport)
    provider.use_request(lambda env: {**env, "auth": "token"})
    provider.use_response(lambda resp, env: {"result": "0x2"})
    assert await provider.get_block_number() == 2
    assert transport.last["auth"] == "token"


@pytest.mark.asyncio
async def test_provider_batch():
    provider = Provider(URL, transport=NullTransport({"eth_chainId": "0x1", "eth_gasPrice": "0x3b9aca00"}))
    assert await provider.batch_call([("eth_chainId", []), ("eth_gasPrice", [])]) == [1, 1_000_000_000]


@pytest.mark.asyncio
async def test_errors_propagate_from_catalogue():
    provider = Provider(URL, transport=NullTransport())
    with pytest.raises(RpcError):
        await provider.get_chain_id()
    provider = Provider(URL, transport=FakeTransport(error=aiohttp.ClientConnectionError("down")))
    with pytest.raises(TransportError):
        await provider.get_chain_id()


# ----------------------------------------------------------------------
# ENS
# ----------------------------------------------------------------------
def test_ens_namehash_known_values():
    assert ens_namehash("eth") == "0x93cdeb708b7545dc668eb9280176169d1c33cfd8ed6f04690a0bcc88a93fc4ae"
    assert ens_namehash("vitalik.eth") == "0xee6c4522aab0003e8d14cd40a6af439055fd2577951148c14b6cea9a53475835"
    assert ens_namehash("Vitalik.ETH") == ens_namehash("vitalik.eth")


def test_ens_namehash_rejects_empty_labels():
    with pytest.raises(ValueError):
        ens_namehash("")
    with pytest.raises(ValueError):
        ens_namehash("foo..eth")


RESOLVER = "0x4976fb03c32e5b8cfe2b6ccb31c09ba78ebaba41"
TARGET = "0xd8da6bf26964af9d7eed9e03e53415d37aa96045"


def ens_handler(resolver_word, addr_word):
    def answer(params):
        tx = params[0]
        if tx["data"].startswith(ENS_RESOLVER_SELECTOR):
            assert tx["to"] == ENS_REGISTRY
            return resolver_word
        assert tx["data"].startswith(ENS_ADDR_SELECTOR)
        assert tx["to"] == RESOLVER
        return addr_word

    return answer


@pytest.mark.asyncio
async def test_resolve_ens_name():
    transport = NullTransport({"eth_call": ens_handler(word(RESOLVER), word(TARGET.upper().replace("0X", "0x")))})
    provider = Provider(URL, transport=transport)
    assert await provider.resolve_ens_name("vitalik.eth") == TARGET
    node = ens_namehash("vitalik.eth")[2:]
    assert transport.sent[0]["params"][0]["data"] == ENS_RESOLVER_SELECTOR + node


@pytest.mark.asyncio
async def test_resolve_ens_name_without_resolver_is_none():
    transport = NullTransport({"eth_call": ens_handler("0x" + "0" * 64, word(TARGET))})
    provider = Provider(URL, transport=transport)
    assert await provider.resolve_ens_name("nobody.eth") is None
    assert len(transport.sent) == 1


@pytest.mark.asyncio
async def test_resolve_ens_name_swallows_node_failures():
    provider = Provider(URL, transport=FakeTransport(error=aiohttp.ClientConnectionError("down")))
    assert await provider.resolve_ens_name("vitalik.eth") is None
    provider = Provider(URL, transport=NullTransport())
    assert await provider.resolve_ens_name("vitalik.eth") is None
