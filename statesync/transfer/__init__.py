"""Chunked transfer of serialized diffs."""

from statesync.transfer.chunker import (
    IncompleteTransferError,
    TransferChunker,
    TransferPart,
    reassemble,
)

__all__ = [
    "IncompleteTransferError",
    "TransferChunker",
    "TransferPart",
    "reassemble",
]
