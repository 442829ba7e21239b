"""Dual-signer transaction assembly.

- templates: tagged builder templates and signing helpers
- assembler: TransactionAssembler (rebuild, co-sign, remote-sign, submit)
"""

from solcustody.assembly.assembler import TransactionAssembler
from solcustody.assembly.errors import (
    AssemblyError,
    BroadcastRejected,
    BroadcastTimeoutError,
    ImmutableTemplateError,
    MissingSignerError,
    UnsupportedTemplateShape,
)
from solcustody.assembly.templates import (
    LegacyTemplate,
    TransactionTemplate,
    VersionedTemplate,
    classify_template,
)

__all__ = [
    "TransactionAssembler",
    # Templates
    "TransactionTemplate",
    "VersionedTemplate",
    "LegacyTemplate",
    "classify_template",
    # Errors
    "AssemblyError",
    "UnsupportedTemplateShape",
    "ImmutableTemplateError",
    "MissingSignerError",
    "BroadcastRejected",
    "BroadcastTimeoutError",
]
