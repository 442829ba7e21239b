"""DLMM SDK bridge.

The DLMM SDK only exists for JavaScript, so pool reads and transaction
building go through a small HTTP sidecar wrapping it. The sidecar builds;
it never signs or sends.

Sidecar API (JSON):
    GET  /pools/{pool}                        pool info
    GET  /pools/{pool}/active-bin             active bin
    GET  /pools/{pool}/positions?user=        positions of a wallet
    POST /pools/{pool}/positions/create       open position + add liquidity
    POST /pools/{pool}/liquidity/add          add to an existing position
    POST /pools/{pool}/liquidity/remove       remove (and optionally close)
    POST /pools/{pool}/fees/claim             claim swap fees

Every builder endpoint answers ``{"transactions": [payload, ...]}`` where
a payload is ``{"version": "legacy" | 0, "transaction": <base64>}``.
"""

import base64
import logging
from decimal import Decimal
from typing import Optional

import httpx
from solders.transaction import Transaction, VersionedTransaction

from solcustody.assembly.templates import LegacyTemplate, VersionedTemplate
from solcustody.dlmm.models import (
    ActiveBin,
    BinRange,
    FeeClaimCheck,
    FeesClaimable,
    NoFeesAvailable,
    PoolInfo,
    PositionInfo,
    StrategyType,
    TokenInfo,
)
from solcustody.errors import ErrorKind, SolcustodyError

logger = logging.getLogger(__name__)


class BridgeError(SolcustodyError):
    """The DLMM sidecar failed or is unreachable."""

    kind = ErrorKind.TRANSIENT


class PoolNotFoundError(BridgeError):
    """Pool address is unknown or not a DLMM pool."""

    kind = ErrorKind.INVALID_INPUT


def decode_transaction_payload(payload):
    """Turn one sidecar payload into a classified template.

    Payloads without a recognised version are returned unchanged so the
    assembler reports them instead of guessing their shape.
    """
    if not isinstance(payload, dict) or "transaction" not in payload:
        return payload

    version = payload.get("version")
    try:
        raw = base64.b64decode(payload["transaction"])
        if version == "legacy":
            return LegacyTemplate(Transaction.from_bytes(raw))
        if version == 0 or version == "0":
            return VersionedTemplate(VersionedTransaction.from_bytes(raw))
    except Exception as e:
        raise BridgeError(f"Sidecar returned an undecodable {version} transaction: {e}") from e

    return payload["transaction"]


class DlmmBridge:
    """HTTP client for the DLMM SDK sidecar."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def _call(self, method: str, path: str, **kwargs) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, f"{self.base_url}{path}", **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"DLMM bridge unreachable: {e}")
            raise BridgeError(f"DLMM bridge request failed: {e}") from e

        if response.status_code == 404:
            raise PoolNotFoundError(f"DLMM bridge: not found ({path})")

        try:
            data = response.json()
        except ValueError as e:
            raise BridgeError(f"Invalid JSON from DLMM bridge: {response.text[:200]}") from e

        if response.status_code != 200:
            message = data.get("error") if isinstance(data, dict) else None
            logger.warning(f"DLMM bridge error: {response.status_code} - {response.text}")
            raise BridgeError(message or f"DLMM bridge error ({response.status_code})")

        return data

    @staticmethod
    def _templates(data: dict) -> list:
        return [decode_transaction_payload(p) for p in data.get("transactions", [])]

    async def get_pool(self, pool: str) -> PoolInfo:
        data = await self._call("GET", f"/pools/{pool}")
        return PoolInfo(
            address=data.get("address", pool),
            token_x=TokenInfo(mint=data["tokenX"]["mint"], decimals=int(data["tokenX"]["decimals"])),
            token_y=TokenInfo(mint=data["tokenY"]["mint"], decimals=int(data["tokenY"]["decimals"])),
            bin_step=int(data["binStep"]),
        )

    async def get_active_bin(self, pool: str) -> ActiveBin:
        data = await self._call("GET", f"/pools/{pool}/active-bin")
        return ActiveBin(
            bin_id=int(data["binId"]),
            x_amount=int(data.get("xAmount", 0)),
            y_amount=int(data.get("yAmount", 0)),
            price=Decimal(str(data.get("price", "0"))),
        )

    async def get_positions(self, pool: str, user: str) -> list[PositionInfo]:
        data = await self._call("GET", f"/pools/{pool}/positions", params={"user": user})
        return [
            PositionInfo(
                address=p["address"],
                lower_bin_id=int(p["lowerBinId"]),
                upper_bin_id=int(p["upperBinId"]),
                bin_ids=[int(b) for b in p.get("binIds", [])],
            )
            for p in data.get("positions", [])
        ]

    async def build_create_position(
        self,
        pool: str,
        user: str,
        position: str,
        total_x: int,
        total_y: Optional[int],
        bins: BinRange,
        strategy: StrategyType = StrategyType.SPOT,
    ) -> list:
        """Templates opening ``position`` and depositing into it.

        ``total_y=None`` asks the sidecar to size Y for the strategy.
        """
        data = await self._call(
            "POST",
            f"/pools/{pool}/positions/create",
            json={
                "user": user,
                "position": position,
                "totalXAmount": str(total_x),
                "totalYAmount": None if total_y is None else str(total_y),
                "autoFillY": total_y is None,
                "minBinId": bins.min_bin_id,
                "maxBinId": bins.max_bin_id,
                "strategy": strategy.value,
            },
        )
        return self._templates(data)

    async def build_add_liquidity(
        self,
        pool: str,
        user: str,
        position: str,
        total_x: int,
        total_y: int,
        bins: BinRange,
        strategy: StrategyType = StrategyType.SPOT,
    ) -> list:
        data = await self._call(
            "POST",
            f"/pools/{pool}/liquidity/add",
            json={
                "user": user,
                "position": position,
                "totalXAmount": str(total_x),
                "totalYAmount": str(total_y),
                "minBinId": bins.min_bin_id,
                "maxBinId": bins.max_bin_id,
                "strategy": strategy.value,
            },
        )
        return self._templates(data)

    async def build_remove_liquidity(
        self,
        pool: str,
        user: str,
        position: PositionInfo,
        bps: int,
        close: bool,
    ) -> list:
        data = await self._call(
            "POST",
            f"/pools/{pool}/liquidity/remove",
            json={
                "user": user,
                "position": position.address,
                "fromBinId": position.from_bin_id,
                "toBinId": position.to_bin_id,
                "bps": bps,
                "shouldClaimAndClose": close,
            },
        )
        return self._templates(data)

    async def build_claim_fees(
        self,
        pool: str,
        owner: str,
        positions: Optional[list[str]] = None,
    ) -> FeeClaimCheck:
        """Fee claim templates, or ``NoFeesAvailable`` when there is nothing to claim."""
        data = await self._call(
            "POST",
            f"/pools/{pool}/fees/claim",
            json={"owner": owner, "positions": positions},
        )
        templates = self._templates(data)
        if not data.get("claimable", bool(templates)) or not templates:
            return NoFeesAvailable(data.get("reason") or "No fees to claim")
        return FeesClaimable(templates)

    async def health_check(self) -> bool:
        try:
            await self._call("GET", "/health")
        except BridgeError:
            return False
        return True
