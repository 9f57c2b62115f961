"""Transport package for ZeroLink.

This package contains the chunked QR transport: checksum, chunk wire
format, sender-side encoder and receiver-side decoder. QR image
rendering lives in zerolink.transport.qr and is imported on demand.
"""
from zerolink.transport.checksum import checksum
from zerolink.transport.chunk import Chunk
from zerolink.transport.decoder import (
    DecodeResult,
    DecodeStatus,
    DecoderState,
    TransferProgress,
    TransferSession,
    TransportDecoder,
)
from zerolink.transport.encoder import EncodedTransfer, TransportEncoder

__all__ = [
    "checksum",
    "Chunk",
    "DecodeResult",
    "DecodeStatus",
    "DecoderState",
    "EncodedTransfer",
    "TransferProgress",
    "TransferSession",
    "TransportDecoder",
    "TransportEncoder",
]
