"""Chunk wire format.

One chunk is one QR code. On the wire it is a compact JSON object:

    {"sessionId":"<uuid4>","chunkIndex":1,"totalChunks":3,"data":"...","checksum":"1x2y3z"}

Single-chunk documents use the same frame with chunkIndex=1 and
totalChunks=1, so the decoder never has to branch on the format.
"""
import json
from dataclasses import dataclass

from zerolink.core.errors import ChunkFormatError
from zerolink.transport.checksum import checksum as compute_checksum

WIRE_FIELDS = ("sessionId", "chunkIndex", "totalChunks", "data", "checksum")


def dump_compact(obj) -> str:
    """Serialize to the compact JSON form used on the wire."""
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


def _require_int(obj: dict, key: str) -> int:
    value = obj.get(key)
    # bool is an int subclass; true/false are not indices
    if isinstance(value, bool) or not isinstance(value, int):
        raise ChunkFormatError(f"'{key}' must be an integer, got {value!r}")
    if value < 1:
        raise ChunkFormatError(f"'{key}' must be >= 1, got {value}")
    return value


def _require_str(obj: dict, key: str, allow_empty: bool = True) -> str:
    value = obj.get(key)
    if not isinstance(value, str):
        raise ChunkFormatError(f"'{key}' must be a string, got {type(value).__name__}")
    if not allow_empty and not value:
        raise ChunkFormatError(f"'{key}' must not be empty")
    return value


@dataclass(frozen=True)
class Chunk:
    """One wire unit: a slice of a serialized document plus integrity metadata."""

    session_id: str
    chunk_index: int
    total_chunks: int
    data: str
    checksum: str

    @classmethod
    def build(cls, session_id: str, chunk_index: int, total_chunks: int, data: str) -> 'Chunk':
        """Create a chunk for a data slice, computing its checksum."""
        return cls(
            session_id=session_id,
            chunk_index=chunk_index,
            total_chunks=total_chunks,
            data=data,
            checksum=compute_checksum(data),
        )

    def verify(self) -> bool:
        """Check that the data still matches the declared checksum."""
        return compute_checksum(self.data) == self.checksum

    def to_dict(self) -> dict:
        """Return the wire dict, keys in wire order."""
        return {
            "sessionId": self.session_id,
            "chunkIndex": self.chunk_index,
            "totalChunks": self.total_chunks,
            "data": self.data,
            "checksum": self.checksum,
        }

    def to_wire(self) -> str:
        """Serialize to the string encoded in the QR code."""
        return dump_compact(self.to_dict())

    @classmethod
    def from_wire(cls, raw: str) -> 'Chunk':
        """Parse a scanned string into a Chunk.

        Raises:
            ChunkFormatError: if raw is not a well-formed chunk object
        """
        try:
            obj = json.loads(raw)
        except RecursionError as e:
            raise ChunkFormatError("not JSON: nested too deeply") from e
        except (TypeError, ValueError) as e:
            raise ChunkFormatError(f"not JSON: {e}") from e

        if not isinstance(obj, dict):
            raise ChunkFormatError("not a JSON object")

        missing = [k for k in WIRE_FIELDS if k not in obj]
        if missing:
            raise ChunkFormatError(f"missing fields: {', '.join(missing)}")

        session_id = _require_str(obj, "sessionId", allow_empty=False)
        chunk_index = _require_int(obj, "chunkIndex")
        total_chunks = _require_int(obj, "totalChunks")
        data = _require_str(obj, "data")
        checksum = _require_str(obj, "checksum", allow_empty=False)

        if chunk_index > total_chunks:
            raise ChunkFormatError(
                f"chunkIndex {chunk_index} exceeds totalChunks {total_chunks}"
            )

        return cls(
            session_id=session_id,
            chunk_index=chunk_index,
            total_chunks=total_chunks,
            data=data,
            checksum=checksum,
        )
