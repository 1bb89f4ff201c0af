import asyncio

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct

from gasless_relay.helpers.auth_session import AuthSession
from gasless_relay.helpers.errors import AuthError, RelayError, SigningError

from conftest import ADDRESS, OTHER_KEY, PRIVATE_KEY, FakeClock, FakeRelay

HOUR = 3600


def test_headers_are_signed_challenge():
    relay = FakeRelay()

    async def main():
        session = AuthSession(relay, clock=FakeClock())
        return await session.obtain_headers(PRIVATE_KEY)

    headers = asyncio.run(main())
    assert set(headers) == {"x-message", "x-signature", "x-address"}
    assert headers["x-address"] == ADDRESS
    recovered = Account.recover_message(
        encode_defunct(text=headers["x-message"]), signature=headers["x-signature"]
    )
    assert recovered == ADDRESS
    assert relay.last("random") == ADDRESS


def test_session_cached_until_ttl():
    relay = FakeRelay()
    clock = FakeClock()

    async def main():
        session = AuthSession(relay, clock=clock)
        first = await session.obtain_headers(PRIVATE_KEY)
        clock.advance(3 * HOUR + 59 * 60)
        cached = await session.obtain_headers(PRIVATE_KEY)
        clock.advance(2 * 60)
        renewed = await session.obtain_headers(PRIVATE_KEY)
        return first, cached, renewed

    first, cached, renewed = asyncio.run(main())
    assert cached == first
    assert renewed != first
    assert relay.count("random") == 2


def test_switching_address_replaces_session():
    relay = FakeRelay()

    async def main():
        session = AuthSession(relay, clock=FakeClock())
        a = await session.obtain_headers(PRIVATE_KEY)
        b = await session.obtain_headers(OTHER_KEY)
        return session, a, b

    session, a, b = asyncio.run(main())
    assert a["x-address"] != b["x-address"]
    assert session.address == b["x-address"]
    assert relay.count("random") == 2


def test_invalidate_forces_new_challenge():
    relay = FakeRelay()

    async def main():
        session = AuthSession(relay, clock=FakeClock())
        await session.obtain_headers(PRIVATE_KEY)
        session.invalidate()
        assert session.current is None
        await session.obtain_headers(PRIVATE_KEY)

    asyncio.run(main())
    assert relay.count("random") == 2


def test_concurrent_callers_share_one_challenge():
    relay = FakeRelay()

    async def main():
        session = AuthSession(relay, clock=FakeClock())
        return await asyncio.gather(*(session.obtain_headers(PRIVATE_KEY) for _ in range(4)))

    results = asyncio.run(main())
    assert all(r == results[0] for r in results)
    assert relay.count("random") == 1


def test_challenge_failure_is_auth_error():
    relay = FakeRelay()
    relay.fail["random"] = RelayError("boom", status=500)

    async def main():
        await AuthSession(relay, clock=FakeClock()).obtain_headers(PRIVATE_KEY)

    with pytest.raises(AuthError):
        asyncio.run(main())


def test_bad_key_is_signing_error():
    relay = FakeRelay()

    async def main():
        await AuthSession(relay, clock=FakeClock()).obtain_headers("0x1234")

    with pytest.raises(SigningError):
        asyncio.run(main())
    assert relay.count("random") == 0
