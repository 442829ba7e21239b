"""Transaction templates returned by external builders.

A template is classified exactly once, where the builder's result is
received. Everything downstream works on the tagged ``VersionedTemplate``
or ``LegacyTemplate`` and never inspects runtime types again.

Wire layout (both shapes):
    compact-u16 signature count | 64-byte signatures | message
A versioned message starts with a byte whose high bit is set (0x80 | version);
a legacy message starts with ``num_required_signatures`` (< 128).
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.message import Message, MessageHeader, MessageV0, to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction, VersionedTransaction

from solcustody.assembly.errors import (
    ImmutableTemplateError,
    MissingSignerError,
    UnsupportedTemplateShape,
)

logger = logging.getLogger(__name__)

VERSIONED = "versioned"
LEGACY = "legacy"

SolanaTransaction = Union[VersionedTransaction, Transaction]


@dataclass(frozen=True)
class VersionedTemplate:
    """Template built around a v0 message (flat key table + compiled instructions)."""
    transaction: VersionedTransaction

    shape = VERSIONED


@dataclass(frozen=True)
class LegacyTemplate:
    """Template built around a legacy message."""
    transaction: Transaction

    shape = LEGACY


TransactionTemplate = Union[VersionedTemplate, LegacyTemplate]


def classify_template(raw: object) -> TransactionTemplate:
    """Turn a builder result into a tagged template.

    Raises:
        ImmutableTemplateError: If the template is already serialized
        UnsupportedTemplateShape: If the type is not a known transaction shape
    """
    if isinstance(raw, (VersionedTemplate, LegacyTemplate)):
        return raw
    if isinstance(raw, VersionedTransaction):
        return VersionedTemplate(raw)
    if isinstance(raw, Transaction):
        return LegacyTemplate(raw)
    if isinstance(raw, (str, bytes, bytearray, memoryview)):
        raise ImmutableTemplateError(
            "Template arrived already serialized; its blockhash cannot be replaced"
        )
    raise UnsupportedTemplateShape(f"Unrecognised template type: {type(raw).__name__}")


def _account_flags(index: int, header: MessageHeader, key_count: int) -> tuple[bool, bool]:
    """Derive (is_signer, is_writable) for a static account index."""
    signed = header.num_required_signatures
    if index < signed:
        return True, index < signed - header.num_readonly_signed_accounts
    return False, index < key_count - header.num_readonly_unsigned_accounts


def extract_instructions(template: TransactionTemplate) -> list[Instruction]:
    """Decompile the template's instructions, in order.

    Program ids and data are copied verbatim; signer/writable flags are
    re-derived from the message header.
    """
    message = template.transaction.message

    if template.shape == VERSIONED and len(getattr(message, "address_table_lookups", [])) > 0:
        raise UnsupportedTemplateShape(
            "Versioned template uses address lookup tables; accounts cannot be re-addressed"
        )

    keys = list(message.account_keys)
    flags = [_account_flags(i, message.header, len(keys)) for i in range(len(keys))]

    instructions = []
    for position, compiled in enumerate(message.instructions):
        try:
            program_id = keys[compiled.program_id_index]
            accounts = [
                AccountMeta(keys[idx], is_signer=flags[idx][0], is_writable=flags[idx][1])
                for idx in compiled.accounts
            ]
        except IndexError as e:
            raise UnsupportedTemplateShape(
                f"Instruction {position} references an account outside the key table"
            ) from e
        instructions.append(Instruction(program_id, bytes(compiled.data), accounts))

    logger.debug(f"Extracted {len(instructions)} instruction(s) from {template.shape} template")
    return instructions


def instruction_signers(instructions: Iterable[Instruction], payer: Pubkey) -> list[Pubkey]:
    """Signers a message compiled from ``instructions`` will require, payer first."""
    signers = [payer]
    for ix in instructions:
        for meta in ix.accounts:
            if meta.is_signer and meta.pubkey not in signers:
                signers.append(meta.pubkey)
    return signers


def rebuild(
    shape: str,
    instructions: list[Instruction],
    payer: Pubkey,
    blockhash: Hash,
) -> SolanaTransaction:
    """Compile a fresh unsigned transaction of the given shape."""
    if shape == VERSIONED:
        message = MessageV0.try_compile(payer, instructions, [], blockhash)
        empty = [Signature.default()] * message.header.num_required_signatures
        return VersionedTransaction.populate(message, empty)

    message = Message.new_with_blockhash(instructions, payer, blockhash)
    empty = [Signature.default()] * message.header.num_required_signatures
    return Transaction.populate(message, empty)


def message_bytes(tx: SolanaTransaction) -> bytes:
    """Bytes covered by every signature of ``tx``."""
    message = tx.message
    if isinstance(message, Message):
        return bytes(message)
    return to_bytes_versioned(message)


def required_signers(tx: SolanaTransaction) -> list[Pubkey]:
    message = tx.message
    return list(message.account_keys[: message.header.num_required_signatures])


def _populate(tx: SolanaTransaction, signatures: list[Signature]) -> SolanaTransaction:
    if isinstance(tx, VersionedTransaction):
        return VersionedTransaction.populate(tx.message, signatures)
    return Transaction.populate(tx.message, signatures)


def apply_signature(tx: SolanaTransaction, keypair: Keypair) -> SolanaTransaction:
    """Return a copy of ``tx`` with ``keypair``'s signature in its slot.

    Other signature slots are left as they are.
    """
    pubkey = keypair.pubkey()
    signers = required_signers(tx)
    if pubkey not in signers:
        raise MissingSignerError(f"{pubkey} is not a required signer", [str(pubkey)])

    signatures = list(tx.signatures)
    if len(signatures) < len(signers):
        signatures.extend([Signature.default()] * (len(signers) - len(signatures)))

    signatures[signers.index(pubkey)] = keypair.sign_message(message_bytes(tx))
    return _populate(tx, signatures)


def has_valid_signature(tx: SolanaTransaction, pubkey: Pubkey) -> bool:
    signers = required_signers(tx)
    if pubkey not in signers:
        return False
    index = signers.index(pubkey)
    signatures = list(tx.signatures)
    if index >= len(signatures) or signatures[index] == Signature.default():
        return False
    return signatures[index].verify(pubkey, message_bytes(tx))


def missing_signers(tx: SolanaTransaction) -> list[Pubkey]:
    """Required signers without a valid signature."""
    return [pk for pk in required_signers(tx) if not has_valid_signature(tx, pk)]


def _decode_compact_u16(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode a compact-u16; returns (value, bytes consumed)."""
    value = 0
    for i in range(3):
        byte = data[offset + i]
        value |= (byte & 0x7F) << (7 * i)
        if not byte & 0x80:
            return value, i + 1
    raise ValueError("Invalid compact-u16 length prefix")


def wire_shape(data: bytes) -> str:
    """Tell a serialized versioned transaction from a legacy one."""
    try:
        count, size = _decode_compact_u16(data)
        prefix = data[size + 64 * count]
    except IndexError as e:
        raise ValueError("Transaction bytes are truncated") from e
    return VERSIONED if prefix & 0x80 else LEGACY


def from_wire(data: bytes, shape: Optional[str] = None) -> SolanaTransaction:
    """Deserialize transaction bytes, detecting the shape when not given."""
    shape = shape or wire_shape(data)
    if shape == VERSIONED:
        return VersionedTransaction.from_bytes(data)
    return Transaction.from_bytes(data)


def serialize(tx: SolanaTransaction) -> bytes:
    return bytes(tx)


def deserialize_like(shape: str, data: bytes) -> SolanaTransaction:
    """Deserialize ``data`` as the given shape, ignoring what the bytes claim."""
    return from_wire(data, shape)


def template_from_instructions(
    instructions: list[Instruction],
    payer: Pubkey,
    shape: str = VERSIONED,
) -> TransactionTemplate:
    """Wrap locally built instructions as a template.

    The placeholder blockhash is replaced during assembly.
    """
    tx = rebuild(shape, instructions, payer, Hash.default())
    if shape == VERSIONED:
        return VersionedTemplate(tx)
    return LegacyTemplate(tx)
