"""Tests for the DLMM sidecar client, models and pool cache."""

import asyncio
import base64
import json
from decimal import Decimal

import httpx
import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from fakes import create_position_ix, legacy_tx, versioned_tx
from solcustody.assembly.templates import LegacyTemplate, VersionedTemplate
from solcustody.dlmm import (
    BinRange,
    BridgeError,
    DlmmBridge,
    FeesClaimable,
    NoFeesAvailable,
    PoolCache,
    PoolInfo,
    PoolNotFoundError,
    PositionInfo,
    PositionKind,
    TokenInfo,
    position_range,
)
from solcustody.dlmm.bridge import decode_transaction_payload
from solcustody.errors import ErrorKind

BRIDGE_URL = "http://dlmm.test"
POOL = str(Pubkey.new_unique())
USER = "4Nd1mBQtrMJVYVfKf2PJy9NZUZdTAsp7D4xWLs4gDB4T"


def make_bridge(handler) -> DlmmBridge:
    return DlmmBridge(BRIDGE_URL, transport=httpx.MockTransport(handler))


def sample_pool(address: str = POOL) -> PoolInfo:
    return PoolInfo(
        address=address,
        token_x=TokenInfo(mint="X" * 32, decimals=6),
        token_y=TokenInfo(mint="Y" * 32, decimals=9),
        bin_step=25,
    )


def encoded(tx) -> str:
    return base64.b64encode(bytes(tx)).decode()


class TestModels:
    """Tests for position ranges and pool math."""

    def test_balance_range(self):
        assert position_range(PositionKind.BALANCE, 100, 10) == BinRange(90, 110)

    def test_imbalance_range(self):
        assert position_range(PositionKind.IMBALANCE, -5, 3) == BinRange(-8, -2)

    def test_one_side_range(self):
        assert position_range(PositionKind.ONE_SIDE, 100, 10) == BinRange(100, 120)

    def test_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            position_range(PositionKind.BALANCE, 100, 0)

    def test_pool_bin_math(self):
        pool = sample_pool()
        assert pool.bin_step_pct == Decimal("0.25")
        assert pool.bin_price(0) == Decimal(1)
        assert pool.bin_price(1) == Decimal("1.0025")

    def test_position_bin_bounds(self):
        assert PositionInfo("p", 10, 20).from_bin_id == 10
        assert PositionInfo("p", 10, 20, bin_ids=[12, 13, 14]).to_bin_id == 14


class TestDecodePayload:
    """Tests for sidecar transaction payloads."""

    def test_legacy(self):
        payer = Keypair().pubkey()
        tx = legacy_tx([create_position_ix(payer, Pubkey.new_unique())], payer)

        template = decode_transaction_payload({"version": "legacy", "transaction": encoded(tx)})

        assert isinstance(template, LegacyTemplate)
        assert template.transaction == tx

    @pytest.mark.parametrize("version", [0, "0"])
    def test_versioned(self, version):
        payer = Keypair().pubkey()
        tx = versioned_tx([create_position_ix(payer, Pubkey.new_unique())], payer)

        template = decode_transaction_payload({"version": version, "transaction": encoded(tx)})

        assert isinstance(template, VersionedTemplate)

    def test_unknown_version_stays_raw(self):
        assert decode_transaction_payload({"version": 7, "transaction": "AQAB"}) == "AQAB"

    def test_undecodable(self):
        with pytest.raises(BridgeError):
            decode_transaction_payload({"version": "legacy", "transaction": "AQAB"})


class TestDlmmBridge:
    """Tests for the HTTP sidecar client."""

    @pytest.mark.asyncio
    async def test_get_pool(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == f"/pools/{POOL}"
            return httpx.Response(
                200,
                json={
                    "address": POOL,
                    "tokenX": {"mint": "Xmint", "decimals": 6},
                    "tokenY": {"mint": "Ymint", "decimals": 9},
                    "binStep": 25,
                },
            )

        pool = await make_bridge(handler).get_pool(POOL)

        assert pool.token_x == TokenInfo("Xmint", 6)
        assert pool.token_y.decimals == 9
        assert pool.bin_step == 25

    @pytest.mark.asyncio
    async def test_pool_not_found(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"error": "not found"})

        with pytest.raises(PoolNotFoundError) as exc_info:
            await make_bridge(handler).get_pool(POOL)
        assert exc_info.value.kind == ErrorKind.INVALID_INPUT

    @pytest.mark.asyncio
    async def test_active_bin(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"binId": -12, "xAmount": "10", "yAmount": "20", "price": "1.05"})

        active = await make_bridge(handler).get_active_bin(POOL)

        assert active.bin_id == -12
        assert active.price == Decimal("1.05")

    @pytest.mark.asyncio
    async def test_positions(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["user"] == USER
            return httpx.Response(
                200,
                json={"positions": [{"address": "pos1", "lowerBinId": 1, "upperBinId": 5, "binIds": [1, 2, 3, 4, 5]}]},
            )

        (position,) = await make_bridge(handler).get_positions(POOL, USER)

        assert position.address == "pos1"
        assert position.to_bin_id == 5

    @pytest.mark.asyncio
    async def test_build_create_position_auto_fill(self):
        payer = Keypair().pubkey()
        tx = versioned_tx([create_position_ix(payer, Pubkey.new_unique())], payer)
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"transactions": [{"version": 0, "transaction": encoded(tx)}]})

        templates = await make_bridge(handler).build_create_position(
            POOL, USER, "pos1", 1_000_000, None, BinRange(90, 110)
        )

        assert seen["path"] == f"/pools/{POOL}/positions/create"
        assert seen["body"]["autoFillY"] is True
        assert seen["body"]["totalYAmount"] is None
        assert seen["body"]["totalXAmount"] == "1000000"
        assert seen["body"]["minBinId"] == 90
        assert seen["body"]["strategy"] == "spot"
        assert len(templates) == 1
        assert isinstance(templates[0], VersionedTemplate)

    @pytest.mark.asyncio
    async def test_build_remove_liquidity(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"transactions": []})

        await make_bridge(handler).build_remove_liquidity(
            POOL, USER, PositionInfo("pos1", 1, 9, bin_ids=[2, 3]), 10_000, True
        )

        assert seen["body"] == {
            "user": USER,
            "position": "pos1",
            "fromBinId": 2,
            "toBinId": 3,
            "bps": 10_000,
            "shouldClaimAndClose": True,
        }

    @pytest.mark.asyncio
    async def test_claim_fees_nothing_to_claim(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"claimable": False, "reason": "No fees accrued", "transactions": []})

        result = await make_bridge(handler).build_claim_fees(POOL, USER)

        assert result == NoFeesAvailable("No fees accrued")

    @pytest.mark.asyncio
    async def test_claim_fees_claimable(self):
        payer = Keypair().pubkey()
        tx = legacy_tx([create_position_ix(payer, Pubkey.new_unique())], payer)

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            assert body == {"owner": USER, "positions": ["pos1"]}
            return httpx.Response(
                200, json={"claimable": True, "transactions": [{"version": "legacy", "transaction": encoded(tx)}]}
            )

        result = await make_bridge(handler).build_claim_fees(POOL, USER, ["pos1"])

        assert isinstance(result, FeesClaimable)
        assert len(result.templates) == 1

    @pytest.mark.asyncio
    async def test_server_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"error": "SDK exploded"})

        with pytest.raises(BridgeError, match="SDK exploded") as exc_info:
            await make_bridge(handler).get_active_bin(POOL)
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_health_check(self):
        assert await make_bridge(lambda request: httpx.Response(200, json={"ok": True})).health_check()

        def down(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        assert not await make_bridge(down).health_check()


class TestPoolCache:
    """Tests for the explicit pool cache."""

    @pytest.mark.asyncio
    async def test_loads_once(self):
        cache = PoolCache()
        calls = []

        async def loader(address):
            calls.append(address)
            await asyncio.sleep(0.01)
            return sample_pool(address)

        results = await asyncio.gather(*(cache.get(POOL, loader) for _ in range(5)))

        assert calls == [POOL]
        assert all(r is results[0] for r in results)
        assert POOL in cache
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_invalidate_reloads(self):
        cache = PoolCache()
        calls = []

        async def loader(address):
            calls.append(address)
            return sample_pool(address)

        await cache.get(POOL, loader)
        cache.invalidate(POOL)
        assert cache.peek(POOL) is None
        await cache.get(POOL, loader)

        assert calls == [POOL, POOL]

    @pytest.mark.asyncio
    async def test_failed_load_is_not_cached(self):
        cache = PoolCache()

        async def failing(address):
            raise BridgeError("down")

        with pytest.raises(BridgeError):
            await cache.get(POOL, failing)
        assert POOL not in cache

    @pytest.mark.asyncio
    async def test_clear(self):
        cache = PoolCache()

        async def loader(address):
            return sample_pool(address)

        await cache.get(POOL, loader)
        await cache.get(USER, loader)
        cache.clear()

        assert len(cache) == 0
