import asyncio
import json

import pytest
from aiohttp import web
from aiohttp import test_utils

from gasless_relay.config.settings import ExecutorConfig
from gasless_relay.executor.gasless_executor import GaslessExecutor
from gasless_relay.helpers.batch_builder import BatchCall
from gasless_relay.helpers.errors import RelayError
from gasless_relay.helpers.relay_client import RelayClient

from conftest import ADDRESS, DELEGATE, PRIVATE_KEY, TOKEN

HEADERS = {"x-message": "m", "x-signature": "0xsig", "x-address": ADDRESS}


def run_with_app(routes, scenario, **client_kwargs):
    """Serve ``routes`` on a local port and run ``scenario(client, requests)``."""
    seen: list[tuple] = []

    @web.middleware
    async def record(request, handler):
        body = await request.json() if request.can_read_body else None
        seen.append((request.path, request.headers.copy(), body))
        return await handler(request)

    async def main():
        app = web.Application(middlewares=[record])
        app.add_routes(routes)
        server = test_utils.TestServer(app)
        await server.start_server()
        try:
            async with RelayClient(str(server.make_url("/")), **client_kwargs) as client:
                return await scenario(client, seen)
        finally:
            await server.close()

    return asyncio.run(main())


def json_route(method, path, payload, status=200):
    async def handler(request):
        return web.json_response(payload, status=status)
    return web.route(method, path, handler)


def test_random_message_and_register():
    routes = [
        json_route("POST", "/random", {"signMessage": "Sign me 42"}),
        json_route("POST", "/register", {"address": ADDRESS}),
    ]

    async def scenario(client, seen):
        msg = await client.get_random_message(ADDRESS)
        reg = await client.register_wallet(msg, "0xsig")
        return msg, reg, seen

    msg, reg, seen = run_with_app(routes, scenario)
    assert msg == "Sign me 42"
    assert reg.success and reg.address == ADDRESS
    assert seen[0][2] == {"address": ADDRESS}
    assert seen[1][2] == {"message": "Sign me 42", "signature": "0xsig"}


def test_missing_sign_message_is_relay_error():
    routes = [json_route("POST", "/random", {"unexpected": True})]

    async def scenario(client, seen):
        await client.get_random_message(ADDRESS)

    with pytest.raises(RelayError):
        run_with_app(routes, scenario)


def test_non_2xx_carries_status_and_message():
    routes = [json_route("GET", "/nonce", {"message": "Invalid signature"}, status=401)]

    async def scenario(client, seen):
        await client.get_nonces(HEADERS)

    with pytest.raises(RelayError) as exc:
        run_with_app(routes, scenario)
    assert exc.value.status == 401
    assert "Invalid signature" in str(exc.value)
    assert "(status: 401)" in str(exc.value)


def test_nonces_parse_strings_and_fallbacks():
    routes = [json_route("GET", "/nonce", {"nonce": "5", "delegationNonce": 9, "goldNonce": "0x2"})]

    async def scenario(client, seen):
        return await client.get_nonces(HEADERS), seen

    nonces, seen = run_with_app(routes, scenario)
    assert (nonces.nonce, nonces.delegation_nonce, nonces.gold_nonce) == (5, 9, 2)
    assert seen[0][1]["x-signature"] == "0xsig"
    assert seen[0][1]["x-address"] == ADDRESS


def test_nonce_without_delegation_nonce_uses_nonce():
    routes = [json_route("GET", "/nonce", {"nonce": 4})]

    async def scenario(client, seen):
        return await client.get_nonces(HEADERS)

    nonces = run_with_app(routes, scenario)
    assert nonces.delegation_nonce == 4
    assert nonces.gold_nonce == 0


def test_nonce_response_without_counters_rejected():
    routes = [json_route("GET", "/nonce", {"success": True})]

    async def scenario(client, seen):
        await client.get_nonces(HEADERS)

    with pytest.raises(RelayError):
        run_with_app(routes, scenario)


def test_status_parsing():
    routes = [json_route("GET", "/status", {"delegated": True, "delegateAddress": DELEGATE.lower()})]

    async def scenario(client, seen):
        return await client.get_status(HEADERS)

    status = run_with_app(routes, scenario)
    assert status.is_delegated
    assert status.delegate_address == DELEGATE


def test_sponsor_sends_stringified_calls():
    routes = [json_route("POST", "/sponsor", {"success": True, "transaction": {"txHash": "0xfeed", "id": 12}})]
    calls = [[TOKEN, "0", "0xa9059cbb"]]

    async def scenario(client, seen):
        return await client.sponsor(calls, "0xsig", True, HEADERS), seen

    resp, seen = run_with_app(routes, scenario)
    assert resp.success
    assert resp.tx_hash == "0xfeed"
    assert resp.transaction_id == "12"
    body = seen[0][2]
    assert json.loads(body["calls"]) == calls
    assert body["signature"] == "0xsig"
    assert body["waitForTx"] is True


def test_sponsor_failure_message_is_preserved():
    routes = [json_route("POST", "/sponsor", {"success": False, "message": "Invalid nonce"})]

    async def scenario(client, seen):
        return await client.sponsor([[TOKEN, "0", "0x"]], "0xsig", False, HEADERS)

    resp = run_with_app(routes, scenario)
    assert not resp.success
    assert resp.message == "Invalid nonce"


def test_abi_may_be_json_string():
    abi = [{"type": "function", "name": "ping", "inputs": [], "outputs": []}]
    routes = [json_route("GET", f"/abi/{TOKEN}", {"abi": json.dumps(abi)})]

    async def scenario(client, seen):
        return await client.get_contract_abi(TOKEN)

    assert run_with_app(routes, scenario) == abi


def test_gold_price_shapes():
    routes = [json_route("GET", "/gold/price", {"success": True, "result": {"pricePerMg": "0.1043"}})]

    async def scenario(client, seen):
        return await client.get_gold_price(HEADERS)

    assert run_with_app(routes, scenario) == pytest.approx(0.1043)


def test_read_contract_requires_success():
    routes = [json_route("POST", "/read", {"success": False, "message": "reverted"})]

    async def scenario(client, seen):
        await client.read_contract("balanceOf", HEADERS, [ADDRESS])

    with pytest.raises(RelayError) as exc:
        run_with_app(routes, scenario)
    assert "reverted" in str(exc.value)


def test_balance_uses_api_key_header():
    routes = [json_route("GET", f"/balance/{ADDRESS}", {"balance": "2500000"})]

    async def scenario(client, seen):
        return await client.get_balance(ADDRESS, "secret"), seen

    balance, seen = run_with_app(routes, scenario)
    assert balance == 2_500_000
    assert seen[0][1]["x-api-key"] == "secret"


def test_public_api_key_sent_by_default():
    routes = [json_route("GET", "/contracts", {"delegateAddress": DELEGATE, "tokenAddress": TOKEN})]

    async def scenario(client, seen):
        return await client.get_contracts(), seen

    contracts, seen = run_with_app(routes, scenario, public_api_key="pub")
    assert contracts.delegate_address == DELEGATE
    assert contracts.token_address == TOKEN
    assert seen[0][1]["x-api-key"] == "pub"


def test_admin_endpoints():
    routes = [
        json_route("POST", "/admin/mint", {"success": True, "message": "ok"}),
        json_route("POST", "/admin/whitelist", {"success": False, "message": "denied"}),
    ]

    async def scenario(client, seen):
        mint = await client.admin_mint(ADDRESS, "1000", {"x-api-key": "k"})
        wl = await client.admin_whitelist(ADDRESS, {**HEADERS, "x-api-key": "k"})
        return mint, wl, seen

    mint, wl, seen = run_with_app(routes, scenario)
    assert mint.success and mint.message == "ok"
    assert not wl.success and wl.message == "denied"
    assert seen[0][2] == {"address": ADDRESS, "amount": "1000", "waitForTx": False}


def test_invalid_json_on_success_is_relay_error():
    async def handler(request):
        return web.Response(text="<html>gateway</html>", status=200)

    async def scenario(client, seen):
        await client.get_contracts()

    with pytest.raises(RelayError):
        run_with_app([web.get("/contracts", handler)], scenario)


def test_connection_failure_is_relay_error():
    async def main():
        async with RelayClient("http://127.0.0.1:9", timeout=2) as client:
            await client.get_random_message(ADDRESS)

    with pytest.raises(RelayError):
        asyncio.run(main())


def binary_route(method, path, status):
    async def handler(request):
        return web.Response(body=b"\xff\xfe", status=status, content_type="text/html", charset="utf-8")
    return web.route(method, path, handler)


def test_undecodable_error_body_is_relay_error():
    async def scenario(client, seen):
        await client.get_random_message(ADDRESS)

    with pytest.raises(RelayError) as exc:
        run_with_app([binary_route("POST", "/random", 502)], scenario)
    assert exc.value.status == 502


def test_undecodable_success_body_is_relay_error():
    async def scenario(client, seen):
        await client.get_contracts()

    with pytest.raises(RelayError):
        run_with_app([binary_route("GET", "/contracts", 200)], scenario)


def test_undecodable_body_becomes_executor_failure():
    config = ExecutorConfig(relay_url="https://relay.test", delegate_address=DELEGATE, token_address=TOKEN)

    async def scenario(client, seen):
        executor = GaslessExecutor(config, relay=client)
        return await executor.execute_batch_gasless(PRIVATE_KEY, [BatchCall(to=TOKEN)])

    result = run_with_app([binary_route("POST", "/random", 502)], scenario)
    assert not result.success
    assert "Gasless execution failed" in result.error
