"""Transport encoder (sender side).

Splits a serialized LogicDocument into QR-sized chunks. The per-chunk
framing overhead is measured by serializing a worst-case sample chunk
rather than estimated, so real metadata never pushes a chunk past the
budget the sample was measured against.
"""
import logging
import math
import uuid
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional

from zerolink.core.constants import TransportDefaults
from zerolink.logic.schema import LogicDocument, serialize_document
from zerolink.transport.chunk import Chunk


def new_session_id() -> str:
    """Generate a fresh random session id (uuid4 string)."""
    return str(uuid.uuid4())


@dataclass
class EncodedTransfer:
    """The ordered chunks of one encode() call."""
    session_id: str
    chunks: List[Chunk] = field(default_factory=list)

    @property
    def payloads(self) -> List[str]:
        """The wire strings, one per QR code, in chunk order."""
        return [c.to_wire() for c in self.chunks]

    @property
    def total_chunks(self) -> int:
        """Number of chunks in the transfer."""
        return len(self.chunks)

    def __len__(self) -> int:
        return len(self.chunks)

    def __iter__(self) -> Iterator[str]:
        return iter(self.payloads)


class TransportEncoder:
    """Encodes documents into ordered QR payload strings.

    Each call to encode() starts a new session, even for identical
    content, so a receiver can never merge chunks of two displays.
    """

    def __init__(
        self,
        budget: int = TransportDefaults.CHUNK_BUDGET,
        min_chunk_size: int = TransportDefaults.MIN_CHUNK_SIZE,
        session_id_factory: Optional[Callable[[], str]] = None
    ):
        """Initialize the encoder.

        Args:
            budget: Character budget per QR payload, framing included
            min_chunk_size: Floor for the data slice size, so tiny budgets
                cannot produce empty or endless chunk streams
            session_id_factory: Callable returning a new session id
        """
        if min_chunk_size < 1:
            raise ValueError("min_chunk_size must be at least 1")
        self.budget = budget
        self.min_chunk_size = min_chunk_size
        self._new_session_id = session_id_factory or new_session_id

    @staticmethod
    def measure_overhead(index_digits: int = 2) -> int:
        """Serialized length of a worst-case chunk carrying no data.

        Args:
            index_digits: Digits assumed for chunkIndex/totalChunks (min 2)
        """
        widest_index = int("9" * max(2, index_digits))
        sample = Chunk(
            session_id="a" * TransportDefaults.SESSION_ID_LENGTH,
            chunk_index=widest_index,
            total_chunks=widest_index,
            data="",
            checksum="x" * TransportDefaults.CHECKSUM_MAX_LENGTH,
        )
        return len(sample.to_wire())

    def effective_chunk_size(self, text_length: int) -> int:
        """Data characters per chunk for a serialized text of this length.

        The overhead is re-measured with wider indices when the chunk
        count needs more digits than the sample assumed.
        """
        digits = 2
        while True:
            overhead = self.measure_overhead(digits)
            size = max(self.min_chunk_size, self.budget - overhead)
            count = max(1, math.ceil(text_length / size))
            if len(str(count)) <= digits:
                return size
            digits = len(str(count))

    def encode_text(self, serialized: str) -> EncodedTransfer:
        """Split an already-serialized document into chunks."""
        session_id = self._new_session_id()
        size = self.effective_chunk_size(len(serialized))
        num_chunks = max(1, math.ceil(len(serialized) / size))

        transfer = EncodedTransfer(session_id=session_id)
        for i in range(1, num_chunks + 1):
            data = serialized[(i - 1) * size:i * size]
            transfer.chunks.append(Chunk.build(session_id, i, num_chunks, data))

        logging.debug(
            "Encoded %d chars into %d chunk(s) of <=%d chars (session %s)",
            len(serialized), num_chunks, size, session_id
        )
        return transfer

    def encode(self, document: LogicDocument) -> EncodedTransfer:
        """Serialize a document and split it into chunks.

        Args:
            document: The normalized document to send

        Returns:
            EncodedTransfer whose payloads are ready to render as QR codes
        """
        return self.encode_text(serialize_document(document))
