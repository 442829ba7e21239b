"""Dual-signer transaction assembly.

Takes a template produced by an external builder, rebuilds it around a
fresh blockhash with the custodial wallet as fee payer, gathers the local
co-signer's and the custodial service's signatures, and submits it.

Order per template (strictly sequential):
    classify -> extract -> signer pre-check -> blockhash -> rebuild
    -> local sign -> remote sign -> re-sign if needed -> verify -> submit
"""

import asyncio
import logging
from typing import Iterable, Optional

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from solcustody.assembly.errors import BroadcastTimeoutError, MissingSignerError
from solcustody.assembly.templates import (
    TransactionTemplate,
    apply_signature,
    classify_template,
    deserialize_like,
    extract_instructions,
    has_valid_signature,
    instruction_signers,
    message_bytes,
    missing_signers,
    rebuild,
    required_signers,
    serialize,
)
from solcustody.chain.base import Broadcaster
from solcustody.errors import SolcustodyError
from solcustody.signing.base import (
    CustodialWallet,
    RemoteSigner,
    RemoteSignerError,
    SigningTimeoutError,
)

logger = logging.getLogger(__name__)


class TransactionAssembler:
    """Assemble, co-sign and broadcast builder templates.

    Holds no per-operation state; one instance may serve concurrent calls.
    """

    def __init__(
        self,
        broadcaster: Broadcaster,
        signer: RemoteSigner,
        *,
        blockhash_commitment: str = "finalized",
        preflight_commitment: str = "confirmed",
        skip_preflight: bool = False,
        remote_sign_timeout: float = 30.0,
        submit_timeout: float = 30.0,
    ):
        self.broadcaster = broadcaster
        self.signer = signer
        self.blockhash_commitment = blockhash_commitment
        self.preflight_commitment = preflight_commitment
        self.skip_preflight = skip_preflight
        self.remote_sign_timeout = remote_sign_timeout
        self.submit_timeout = submit_timeout

    @staticmethod
    def _precheck_signers(
        required: list[Pubkey],
        payer: Pubkey,
        co_signer: Optional[Keypair],
    ) -> None:
        available = {payer}
        if co_signer is not None:
            co_pubkey = co_signer.pubkey()
            if co_pubkey not in required:
                raise MissingSignerError(
                    f"Co-signer {co_pubkey} is not a required signer of the template",
                    [str(co_pubkey)],
                )
            available.add(co_pubkey)

        unsignable = [pk for pk in required if pk not in available]
        if unsignable:
            names = [str(pk) for pk in unsignable]
            raise MissingSignerError(
                f"Template requires signers nobody here can provide: {', '.join(names)}",
                names,
            )

    async def assemble_and_send(
        self,
        template: object,
        co_signer: Optional[Keypair],
        wallet: CustodialWallet,
    ) -> str:
        """Assemble one template and broadcast it.

        Args:
            template: Builder result (classified or raw solders transaction)
            co_signer: Ephemeral keypair required by the template, if any
            wallet: Custodial wallet paying fees and signing remotely

        Returns:
            Transaction signature as reported by the node
        """
        # Everything up to the pre-check is local; bad templates never reach the network
        classified: TransactionTemplate = classify_template(template)
        instructions = extract_instructions(classified)
        payer = wallet.pubkey
        self._precheck_signers(instruction_signers(instructions, payer), payer, co_signer)

        logger.debug(
            f"Assembling {classified.shape} template: {len(instructions)} instruction(s), "
            f"payer={wallet.address}, co_signer={co_signer.pubkey() if co_signer else None}"
        )

        blockhash = await self.broadcaster.get_latest_blockhash(self.blockhash_commitment)
        logger.debug(f"Fresh blockhash {blockhash} ({self.blockhash_commitment})")

        unsigned = rebuild(classified.shape, instructions, payer, blockhash)
        partially_signed = apply_signature(unsigned, co_signer) if co_signer else unsigned

        try:
            returned = await asyncio.wait_for(
                self.signer.sign_transaction(wallet.wallet_id, serialize(partially_signed)),
                timeout=self.remote_sign_timeout,
            )
        except asyncio.TimeoutError as e:
            raise SigningTimeoutError(
                f"Remote signer did not answer within {self.remote_sign_timeout}s"
            ) from e

        try:
            signed = deserialize_like(classified.shape, returned)
        except Exception as e:
            raise RemoteSignerError(f"Remote signer returned an unreadable transaction: {e}") from e

        if message_bytes(signed) != message_bytes(partially_signed):
            raise RemoteSignerError("Remote signer returned a different message than it was sent")

        if co_signer is not None and not has_valid_signature(signed, co_signer.pubkey()):
            logger.warning(
                f"Co-signer signature lost in remote round trip, re-applying for {co_signer.pubkey()}"
            )
            signed = apply_signature(signed, co_signer)

        missing = missing_signers(signed)
        if missing:
            names = [str(pk) for pk in missing]
            raise MissingSignerError(f"Missing signatures from: {', '.join(names)}", names)

        try:
            signature = await asyncio.wait_for(
                self.broadcaster.submit(
                    serialize(signed),
                    skip_preflight=self.skip_preflight,
                    preflight_commitment=self.preflight_commitment,
                ),
                timeout=self.submit_timeout,
            )
        except asyncio.TimeoutError as e:
            raise BroadcastTimeoutError(
                f"no response from node within {self.submit_timeout}s"
            ) from e

        logger.info(
            f"Submitted {classified.shape} transaction ({len(instructions)} instruction(s)): {signature}"
        )
        return signature

    async def assemble_and_send_all(
        self,
        templates: Iterable[object],
        co_signer: Optional[Keypair],
        wallet: CustodialWallet,
    ) -> list[str]:
        """Assemble and send templates one after another, in the order given.

        ``co_signer`` is passed only to templates that list it as a signer.
        Stops at the first failure; the signatures that already landed are
        attached to the raised SolcustodyError as ``completed``. Other
        exceptions propagate untouched.
        """
        completed: list[str] = []
        for index, template in enumerate(templates):
            try:
                classified = classify_template(template)
                needs_co_signer = (
                    co_signer is not None
                    and co_signer.pubkey() in required_signers(classified.transaction)
                )
                completed.append(
                    await self.assemble_and_send(
                        classified, co_signer if needs_co_signer else None, wallet
                    )
                )
            except SolcustodyError as e:
                logger.error(f"Template {index} failed after {len(completed)} submitted: {e}")
                e.completed = list(completed)
                raise
            except Exception as e:
                logger.error(
                    f"Template {index} failed unexpectedly after {len(completed)} submitted "
                    f"({completed}): {e!r}"
                )
                raise
        return completed
