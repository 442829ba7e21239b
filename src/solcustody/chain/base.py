"""Broadcaster interface used by the transaction assembler."""

from typing import Protocol, runtime_checkable

from solders.hash import Hash


@runtime_checkable
class Broadcaster(Protocol):
    """Chain collaborator: fresh blockhashes in, signed bytes out.

    Implementations must be safe for concurrent use.
    """

    async def get_latest_blockhash(self, commitment: str) -> Hash:
        ...

    async def submit(
        self,
        data: bytes,
        *,
        skip_preflight: bool = False,
        preflight_commitment: str = "confirmed",
    ) -> str:
        """Send signed transaction bytes; returns the transaction signature.

        Raises:
            BroadcastRejected: If the node refuses the transaction
        """
        ...
