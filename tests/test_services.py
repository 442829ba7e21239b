"""Tests for the service layer."""

import asyncio
import base64
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.transaction import VersionedTransaction
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_PROGRAM_ID

from fakes import CountingSigner, EchoSigner, create_position_ix, deposit_ix, legacy_tx, versioned_tx
from solcustody.assembly.assembler import TransactionAssembler
from solcustody.assembly.errors import ImmutableTemplateError, MissingSignerError
from solcustody.assembly.templates import from_wire, has_valid_signature, missing_signers
from solcustody.chain.rpc import SolanaRpc, TokenBalance
from solcustody.dlmm import (
    ActiveBin,
    BinRange,
    DlmmBridge,
    FeesClaimable,
    NoFeesAvailable,
    PoolCache,
    PoolInfo,
    PositionInfo,
    TokenInfo,
)
from solcustody.routing import JupiterUltraClient, SwapExecution, SwapOrder
from solcustody.services import (
    FeesClaimed,
    InsufficientBalanceError,
    InvalidAddressError,
    InvalidAmountError,
    LiquidityService,
    PositionNotFoundError,
    ServiceError,
    SwapService,
    TransferService,
    WalletNotRegisteredError,
    WalletService,
)
from solcustody.storage import JsonWalletStore

POOL = str(Pubkey.new_unique())
RECIPIENT = str(Pubkey.new_unique())
USDC = "EPjFWdd5AufqSSqeM2qJ1xzybapC8G4wEGGkZwyTDt1v"


@pytest.fixture
def rpc():
    return AsyncMock(spec=SolanaRpc)


@pytest.fixture
def assembler(broadcaster, signer) -> TransactionAssembler:
    return TransactionAssembler(broadcaster, signer)


class TestWalletService:
    """Tests for wallet lifecycle."""

    @pytest.fixture
    def service(self, tmp_path, rpc):
        return WalletService(CountingSigner(), JsonWalletStore(tmp_path / "wallets.json"), rpc)

    @pytest.mark.asyncio
    async def test_ensure_wallet_creates_once(self, service):
        wallet, created = await service.ensure_wallet(1001)
        again, created_again = await service.ensure_wallet(1001)

        assert created is True
        assert created_again is False
        assert again == wallet
        assert service.store.get(1001) == wallet.wallet_id

    @pytest.mark.asyncio
    async def test_concurrent_start_creates_single_wallet(self, service):
        results = await asyncio.gather(*(service.ensure_wallet(7) for _ in range(5)))

        assert sum(created for _, created in results) == 1
        assert len({wallet.address for wallet, _ in results}) == 1

    @pytest.mark.asyncio
    async def test_unregistered_user(self, service):
        with pytest.raises(WalletNotRegisteredError):
            await service.get_wallet(404)

    @pytest.mark.asyncio
    async def test_overview(self, service, rpc):
        wallet, _ = await service.ensure_wallet(5)
        rpc.get_sol_balance.return_value = 1_250_000_000
        rpc.get_all_token_balances.return_value = [TokenBalance(USDC, 3_000_000, 6)]

        overview = await service.get_overview(5)

        assert overview.wallet == wallet
        assert overview.sol == Decimal("1.25")
        assert overview.tokens[0].ui_amount == Decimal("3")
        rpc.get_sol_balance.assert_awaited_with(wallet.address)

    @pytest.mark.asyncio
    async def test_sol_balance_and_history(self, service, rpc):
        wallet, _ = await service.ensure_wallet(6)
        rpc.get_sol_balance.return_value = 500_000_000
        rpc.get_recent_transactions.return_value = []

        assert await service.get_sol_balance(6) == Decimal("0.5")
        assert await service.get_recent_transactions(6, limit=3) == []
        rpc.get_recent_transactions.assert_awaited_with(wallet.address, limit=3)


class TestTransferService:
    """Tests for SOL and token transfers."""

    @pytest.mark.asyncio
    async def test_transfer_sol(self, rpc, assembler, broadcaster, wallet):
        rpc.get_sol_balance.return_value = 2_000_000_000
        service = TransferService(rpc, assembler)

        result = await service.transfer_sol(wallet, RECIPIENT, "0.5")

        assert result.amount == Decimal("0.5")
        assert result.recipient == RECIPIENT
        sent = VersionedTransaction.from_bytes(broadcaster.submitted[0])
        assert str(sent.signatures[0]) == result.signature
        assert sent.message.recent_blockhash == broadcaster.blockhash
        assert missing_signers(sent) == []
        keys = sent.message.account_keys
        (ix,) = sent.message.instructions
        assert keys[ix.program_id_index] == SYSTEM_PROGRAM_ID

    @pytest.mark.asyncio
    async def test_transfer_sol_insufficient(self, rpc, assembler, broadcaster, wallet):
        rpc.get_sol_balance.return_value = 100
        service = TransferService(rpc, assembler)

        with pytest.raises(InsufficientBalanceError) as exc_info:
            await service.transfer_sol(wallet, RECIPIENT, "1")

        assert exc_info.value.need == Decimal("1")
        assert broadcaster.blockhash_calls == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("address,amount,error", [
        ("not-an-address", "1", InvalidAddressError),
        (RECIPIENT, "0", InvalidAmountError),
        (RECIPIENT, "-2", InvalidAmountError),
        (RECIPIENT, "abc", InvalidAmountError),
        (RECIPIENT, "0.0000000001", InvalidAmountError),
        (RECIPIENT, "1e25", InvalidAmountError),
    ])
    async def test_transfer_sol_invalid_input(self, rpc, assembler, wallet, address, amount, error):
        with pytest.raises(error):
            await TransferService(rpc, assembler).transfer_sol(wallet, address, amount)
        rpc.get_sol_balance.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_transfer_token_creates_recipient_account(self, rpc, assembler, broadcaster, wallet):
        rpc.get_token_decimals.return_value = 6
        rpc.get_token_balance.return_value = 10_000_000
        rpc.account_exists.return_value = False

        result = await TransferService(rpc, assembler).transfer_token(wallet, RECIPIENT, USDC, "2.5")

        assert result.mint == USDC
        sent = VersionedTransaction.from_bytes(broadcaster.submitted[0])
        keys = sent.message.account_keys
        programs = [keys[ix.program_id_index] for ix in sent.message.instructions]
        assert programs == [ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_PROGRAM_ID]
        assert missing_signers(sent) == []

    @pytest.mark.asyncio
    async def test_transfer_token_existing_account(self, rpc, assembler, broadcaster, wallet):
        rpc.get_token_decimals.return_value = 6
        rpc.get_token_balance.return_value = 10_000_000
        rpc.account_exists.return_value = True

        await TransferService(rpc, assembler).transfer_token(wallet, RECIPIENT, USDC, "1")

        sent = VersionedTransaction.from_bytes(broadcaster.submitted[0])
        assert len(sent.message.instructions) == 1

    @pytest.mark.asyncio
    async def test_transfer_token_insufficient(self, rpc, assembler, wallet):
        rpc.get_token_decimals.return_value = 6
        rpc.get_token_balance.return_value = 1_000_000

        with pytest.raises(InsufficientBalanceError) as exc_info:
            await TransferService(rpc, assembler).transfer_token(wallet, RECIPIENT, USDC, "2")

        assert exc_info.value.have == Decimal("1")
        assert exc_info.value.asset == USDC

    @pytest.mark.asyncio
    async def test_transfer_token_amount_too_large(self, rpc, assembler, broadcaster, wallet):
        rpc.get_token_decimals.return_value = 6

        with pytest.raises(InvalidAmountError):
            await TransferService(rpc, assembler).transfer_token(wallet, RECIPIENT, USDC, "1e25")

        rpc.get_token_balance.assert_not_awaited()
        assert broadcaster.blockhash_calls == 0


class TestSwapService:
    """Tests for aggregator swaps."""

    def order_for(self, wallet) -> SwapOrder:
        tx = versioned_tx([deposit_ix(wallet.pubkey, Pubkey.new_unique())], wallet.pubkey)
        return SwapOrder(
            request_id="req-1",
            transaction=base64.b64encode(bytes(tx)).decode(),
            input_mint="So11111111111111111111111111111111111111112",
            output_mint=USDC,
            in_amount=100_000_000,
            out_amount=15_000_000,
        )

    @pytest.mark.asyncio
    async def test_swap_signs_order_as_is(self, signer, wallet):
        jupiter = AsyncMock(spec=JupiterUltraClient)
        jupiter.get_sol_balance.return_value = Decimal("1")
        order = self.order_for(wallet)
        jupiter.get_order.return_value = order
        jupiter.execute.return_value = SwapExecution(
            status="Success", signature="5sig", output_amount_result=14_900_000
        )

        result = await SwapService(jupiter, signer).swap_sol_for_token(wallet, USDC, "0.1")

        assert result.signature == "5sig"
        assert result.out_amount == 14_900_000
        jupiter.get_order.assert_awaited_once()
        assert jupiter.get_order.await_args.args[2] == 100_000_000
        signed_b64, request_id = jupiter.execute.await_args.args
        assert request_id == "req-1"
        signed = from_wire(base64.b64decode(signed_b64))
        original = from_wire(base64.b64decode(order.transaction))
        assert signed.message == original.message
        assert has_valid_signature(signed, wallet.pubkey)

    @pytest.mark.asyncio
    async def test_insufficient_sol(self, signer, wallet):
        jupiter = AsyncMock(spec=JupiterUltraClient)
        jupiter.get_sol_balance.return_value = Decimal("0.01")

        with pytest.raises(InsufficientBalanceError):
            await SwapService(jupiter, signer).swap_sol_for_token(wallet, USDC, "0.1")
        jupiter.get_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_amount_too_large(self, signer, wallet):
        jupiter = AsyncMock(spec=JupiterUltraClient)

        with pytest.raises(InvalidAmountError):
            await SwapService(jupiter, signer).swap_sol_for_token(wallet, USDC, "1e25")
        jupiter.get_sol_balance.assert_not_awaited()
        jupiter.get_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unsigned_order_is_not_executed(self, wallet):
        jupiter = AsyncMock(spec=JupiterUltraClient)
        jupiter.get_sol_balance.return_value = Decimal("1")
        jupiter.get_order.return_value = self.order_for(wallet)

        with pytest.raises(MissingSignerError):
            await SwapService(jupiter, EchoSigner()).swap_sol_for_token(wallet, USDC, "0.1")
        jupiter.execute.assert_not_awaited()


class TestLiquidityService:
    """Tests for DLMM positions."""

    @pytest.fixture
    def pool_info(self) -> PoolInfo:
        return PoolInfo(POOL, TokenInfo(USDC, 6), TokenInfo("So11111111111111111111111111111111111111112", 9), 25)

    @pytest.fixture
    def bridge(self, pool_info):
        bridge = AsyncMock(spec=DlmmBridge)
        bridge.get_pool.return_value = pool_info
        bridge.get_active_bin.return_value = ActiveBin(bin_id=100, x_amount=0, y_amount=0, price=Decimal("1"))
        return bridge

    @pytest.fixture
    def service(self, bridge, assembler) -> LiquidityService:
        return LiquidityService(bridge, assembler, PoolCache(), default_range_interval=10)

    @staticmethod
    def position_builder(shape=versioned_tx):
        """Sidecar double: create-account tx signed by the position, then a deposit tx."""
        async def build(pool, user, position, total_x, total_y, bins, strategy=None):
            payer = Pubkey.from_string(user)
            position_key = Pubkey.from_string(position)
            return [
                shape([create_position_ix(payer, position_key)], payer),
                shape([deposit_ix(payer, position_key)], payer),
            ]
        return build

    @pytest.mark.asyncio
    async def test_create_balance_position(self, service, bridge, broadcaster, wallet):
        bridge.build_create_position.side_effect = self.position_builder()

        result = await service.create_position(wallet, POOL, "balance", "100")

        assert result.bins == BinRange(90, 110)
        assert result.total_x == 100_000_000
        assert result.total_y is None
        assert len(result.signatures) == 2
        first = from_wire(broadcaster.submitted[0])
        assert has_valid_signature(first, Pubkey.from_string(result.position))
        assert missing_signers(first) == []

    @pytest.mark.asyncio
    async def test_create_imbalance_position(self, service, bridge, wallet):
        bridge.build_create_position.side_effect = self.position_builder(legacy_tx)

        result = await service.create_position(wallet, POOL, "imbalance", "100", range_interval=5)

        assert result.bins == BinRange(95, 105)
        assert result.total_y == 50_000_000_000

    @pytest.mark.asyncio
    async def test_create_one_side_position(self, service, bridge, wallet):
        bridge.build_create_position.side_effect = self.position_builder()

        result = await service.create_position(wallet, POOL, "one-side", "1")

        assert result.bins == BinRange(100, 120)
        assert result.total_y == 0

    @pytest.mark.asyncio
    async def test_fresh_position_key_per_call(self, service, bridge, wallet):
        bridge.build_create_position.side_effect = self.position_builder()

        first = await service.create_position(wallet, POOL, "balance", "1")
        second = await service.create_position(wallet, POOL, "balance", "1")

        assert first.position != second.position
        bridge.get_pool.assert_awaited_once_with(POOL)
        assert bridge.get_active_bin.await_count == 2

    @pytest.mark.asyncio
    async def test_invalid_position_kind(self, service, wallet):
        with pytest.raises(ServiceError):
            await service.create_position(wallet, POOL, "sideways", "1")

    @pytest.mark.asyncio
    async def test_failure_reports_completed(self, service, bridge, broadcaster, wallet):
        async def build(pool, user, position, total_x, total_y, bins, strategy=None):
            payer = Pubkey.from_string(user)
            return [versioned_tx([create_position_ix(payer, Pubkey.from_string(position))], payer), "AQAB"]

        bridge.build_create_position.side_effect = build

        with pytest.raises(ImmutableTemplateError) as exc_info:
            await service.create_position(wallet, POOL, "balance", "1")

        assert len(exc_info.value.completed) == 1
        assert len(broadcaster.submitted) == 1

    @pytest.mark.asyncio
    async def test_add_liquidity(self, service, bridge, broadcaster, wallet):
        position = str(Keypair().pubkey())
        bridge.get_positions.return_value = [PositionInfo(position, 90, 110)]
        bridge.build_add_liquidity.return_value = [
            versioned_tx([deposit_ix(wallet.pubkey, Pubkey.from_string(position))], wallet.pubkey)
        ]

        result = await service.add_liquidity(wallet, POOL, position, "10", "0.5")

        assert result.position == position
        args = bridge.build_add_liquidity.await_args.args
        assert args[3:] == (10_000_000, 500_000_000, BinRange(90, 110))
        assert len(broadcaster.submitted) == 1

    @pytest.mark.asyncio
    async def test_add_liquidity_unknown_position(self, service, bridge, wallet):
        bridge.get_positions.return_value = []

        with pytest.raises(PositionNotFoundError):
            await service.add_liquidity(wallet, POOL, str(Pubkey.new_unique()), "1", "1")

    @pytest.mark.asyncio
    async def test_create_position_amount_too_large(self, service, bridge, broadcaster, wallet):
        with pytest.raises(InvalidAmountError):
            await service.create_position(wallet, POOL, "balance", "1e25")

        bridge.build_create_position.assert_not_awaited()
        assert broadcaster.blockhash_calls == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("x_amount,y_amount", [("1e25", "1"), ("1", "1e25")])
    async def test_add_liquidity_amount_too_large(self, service, bridge, broadcaster, wallet, x_amount, y_amount):
        position = str(Keypair().pubkey())
        bridge.get_positions.return_value = [PositionInfo(position, 90, 110)]

        with pytest.raises(InvalidAmountError):
            await service.add_liquidity(wallet, POOL, position, x_amount, y_amount)

        bridge.build_add_liquidity.assert_not_awaited()
        assert broadcaster.blockhash_calls == 0

    @pytest.mark.asyncio
    async def test_remove_all_closes(self, service, bridge, broadcaster, wallet):
        position = str(Keypair().pubkey())
        info = PositionInfo(position, 90, 110)
        bridge.get_positions.return_value = [info]
        bridge.build_remove_liquidity.return_value = [
            versioned_tx([deposit_ix(wallet.pubkey, Pubkey.from_string(position), b"remove")], wallet.pubkey),
            legacy_tx([deposit_ix(wallet.pubkey, Pubkey.from_string(position), b"close")], wallet.pubkey),
        ]

        result = await service.remove_liquidity(wallet, POOL, position, "100")

        assert result.closed is True
        assert len(result.signatures) == 2
        bridge.build_remove_liquidity.assert_awaited_once_with(POOL, wallet.address, info, 10_000, True)

    @pytest.mark.asyncio
    async def test_remove_partial(self, service, bridge, wallet):
        position = str(Keypair().pubkey())
        bridge.get_positions.return_value = [PositionInfo(position, 90, 110)]
        bridge.build_remove_liquidity.return_value = []

        result = await service.remove_liquidity(wallet, POOL, position, "25")

        assert result.closed is False
        assert bridge.build_remove_liquidity.await_args.args[3:] == (2_500, False)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("percentage", ["0", "0.5", "101", "abc"])
    async def test_remove_percentage_range(self, service, bridge, wallet, percentage):
        with pytest.raises(InvalidAmountError):
            await service.remove_liquidity(wallet, POOL, str(Pubkey.new_unique()), percentage)
        bridge.get_positions.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_claim_fees_none_available(self, service, bridge, broadcaster, wallet):
        bridge.build_claim_fees.return_value = NoFeesAvailable("No fees to claim")

        result = await service.claim_fees(wallet, POOL)

        assert result == NoFeesAvailable("No fees to claim")
        assert broadcaster.blockhash_calls == 0

    @pytest.mark.asyncio
    async def test_claim_fees(self, service, bridge, broadcaster, wallet):
        position = str(Keypair().pubkey())
        bridge.get_positions.return_value = [PositionInfo(position, 90, 110)]
        bridge.build_claim_fees.return_value = FeesClaimable(
            [versioned_tx([deposit_ix(wallet.pubkey, Pubkey.from_string(position), b"claim")], wallet.pubkey)]
        )

        result = await service.claim_fees(wallet, POOL, position)

        assert isinstance(result, FeesClaimed)
        assert len(result.signatures) == 1
        bridge.build_claim_fees.assert_awaited_once_with(POOL, wallet.address, [position])

    @pytest.mark.asyncio
    async def test_pool_status(self, service, pool_info):
        status = await service.get_pool_status(POOL)

        assert status.pool == pool_info
        assert status.active_bin.bin_id == 100

    @pytest.mark.asyncio
    async def test_bad_pool_address(self, service, bridge):
        with pytest.raises(InvalidAddressError):
            await service.get_active_bin("nope")
        bridge.get_pool.assert_not_awaited()
