"""Tests for HyperliquidClient at copysync/infra/hyperliquid_client.py.

All tests mock httpx, NO real HTTP calls.
"""
import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from copysync.exceptions import AdapterError
from copysync.infra.hyperliquid_client import HyperliquidClient
from tests.fixtures.hyperliquid_responses import CLEARINGHOUSE_STATE, META


def _client(handler, **kwargs) -> HyperliquidClient:
    return HyperliquidClient(transport=httpx.MockTransport(handler), **kwargs)


@pytest.fixture
def no_sleep():
    """Skip retry backoff waits."""
    with patch(
        "copysync.infra.hyperliquid_client.asyncio.sleep", new_callable=AsyncMock
    ) as mock_sleep:
        yield mock_sleep


class TestHyperliquidClientInit:
    """Test HyperliquidClient initialization."""

    def test_init_default_mainnet(self):
        client = HyperliquidClient()
        assert client._testnet is False
        assert client._base_url == HyperliquidClient.MAINNET_URL

    def test_init_testnet(self):
        client = HyperliquidClient(testnet=True)
        assert client._base_url == HyperliquidClient.TESTNET_URL

    def test_init_custom_base_url(self):
        client = HyperliquidClient(base_url="https://custom.example.com")
        assert client._base_url == "https://custom.example.com"

    def test_read_only_without_signer(self):
        assert HyperliquidClient().can_sign is False
        assert HyperliquidClient(signer=AsyncMock()).can_sign is True


class TestHyperliquidClientInfo:
    """Test /info queries."""

    @pytest.mark.asyncio
    async def test_clearinghouse_state_request_body(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["path"] = request.url.path
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json=CLEARINGHOUSE_STATE)

        client = _client(handler)
        state = await client.clearinghouse_state("0xabc")

        assert captured["path"] == "/info"
        assert captured["body"] == {"type": "clearinghouseState", "user": "0xabc"}
        assert state["withdrawable"] == "6300.0"
        await client.close()

    @pytest.mark.asyncio
    async def test_meta_without_universe_raises(self):
        client = _client(lambda request: httpx.Response(200, json={}))
        with pytest.raises(AdapterError, match="universe"):
            await client.meta()

    @pytest.mark.asyncio
    async def test_meta_success(self):
        client = _client(lambda request: httpx.Response(200, json=META))
        meta = await client.meta()
        assert meta["universe"][0]["name"] == "BTC"

    @pytest.mark.asyncio
    async def test_all_mids_wrong_type_raises(self):
        client = _client(lambda request: httpx.Response(200, json=["BTC"]))
        with pytest.raises(AdapterError):
            await client.all_mids()


class TestHyperliquidClientRetries:
    """Test retry, rate limiting and error mapping."""

    @pytest.mark.asyncio
    async def test_rate_limit_then_success(self, no_sleep):
        responses = iter([httpx.Response(429), httpx.Response(200, json={"BTC": "1"})])
        client = _client(lambda request: next(responses))

        mids = await client.all_mids()

        assert mids == {"BTC": "1"}
        no_sleep.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_server_error_exhausts_retries(self, no_sleep):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        client = _client(handler)
        with pytest.raises(AdapterError) as exc_info:
            await client.all_mids()

        assert exc_info.value.status_code == 503
        assert exc_info.value.service == "hyperliquid"
        assert len(calls) == HyperliquidClient.MAX_RETRIES

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self, no_sleep):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(422, text="bad request")

        client = _client(handler)
        with pytest.raises(AdapterError) as exc_info:
            await client.all_mids()

        assert exc_info.value.status_code == 422
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_timeout_raises_after_retries(self, no_sleep):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = _client(handler)
        with pytest.raises(AdapterError, match="timeout"):
            await client.all_mids()
        assert no_sleep.await_count == HyperliquidClient.MAX_RETRIES - 1

    @pytest.mark.asyncio
    async def test_non_json_body_raises(self):
        client = _client(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(AdapterError, match="non-JSON"):
            await client.all_mids()


class TestHyperliquidClientExchange:
    """Test signed /exchange submissions."""

    @pytest.mark.asyncio
    async def test_exchange_without_signer_raises(self):
        client = _client(lambda request: httpx.Response(200, json={"status": "ok"}))
        with pytest.raises(AdapterError, match="read-only"):
            await client.exchange({"type": "order", "orders": []})

    @pytest.mark.asyncio
    async def test_exchange_signs_and_posts(self):
        captured = {}

        def handler(request):
            captured["path"] = request.url.path
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"status": "ok", "response": {}})

        signer = AsyncMock(return_value={"r": "0x1", "s": "0x2", "v": 27})
        client = _client(handler, signer=signer)
        action = {"type": "order", "orders": [], "grouping": "na"}

        await client.exchange(action)

        signer.assert_awaited_once()
        signed_action, nonce = signer.await_args.args
        assert signed_action == action
        assert captured["path"] == "/exchange"
        assert captured["body"]["nonce"] == nonce
        assert captured["body"]["signature"] == {"r": "0x1", "s": "0x2", "v": 27}

    @pytest.mark.asyncio
    async def test_exchange_rejection_raises(self):
        signer = AsyncMock(return_value={})
        client = _client(
            lambda request: httpx.Response(200, json={"status": "err", "response": "bad nonce"}),
            signer=signer,
        )
        with pytest.raises(AdapterError, match="rejected"):
            await client.exchange({"type": "order"})
