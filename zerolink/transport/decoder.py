"""Transport decoder (receiver side).

A session-scoped state machine fed with every string the QR scanner
produces. Chunks may arrive in any order and any number of times; the
decoder de-duplicates them, verifies each checksum, refuses to mix
chunks of two sessions and reassembles the document once every index
has been seen.

States:
    IDLE        no transfer in progress
    COLLECTING  a session is open and chunks are missing
    LOADED      a document was loaded (by reassembly or as a standalone
                JSON document); chunks of a new session start a new one

Every call returns a DecodeResult; expected problems (corrupt chunk,
wrong session, incomplete set, invalid document) are statuses, not
exceptions.
"""
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from zerolink.core.errors import ChunkFormatError, LogicValidationError
from zerolink.core.event_bus import EventBus, EventType, event_bus
from zerolink.logic.schema import LogicDocument, load_document
from zerolink.transport.chunk import Chunk


class DecoderState(Enum):
    """Lifecycle state of a TransportDecoder."""
    IDLE = "idle"
    COLLECTING = "collecting"
    LOADED = "loaded"


class DecodeStatus(Enum):
    """Outcome of feeding one scanned string to the decoder."""
    IGNORED = "ignored"                        # not a chunk, not a document
    CHUNK_ACCEPTED = "chunk_accepted"          # stored, more chunks needed
    DUPLICATE_CHUNK = "duplicate_chunk"        # index already stored
    ALREADY_LOADED = "already_loaded"          # belongs to the loaded document
    CORRUPT_CHUNK = "corrupt_chunk"            # checksum mismatch, rescan it
    SESSION_MISMATCH = "session_mismatch"      # other transfer, reset first
    INCONSISTENT_CHUNK = "inconsistent_chunk"  # totalChunks disagrees with session
    ASSEMBLY_ERROR = "assembly_error"          # all chunks in, document invalid
    INCOMPLETE = "incomplete"                  # finalize() with missing chunks
    LOADED = "loaded"                          # document available


@dataclass
class TransferSession:
    """Receiver-side state of one in-progress multi-chunk transfer."""
    session_id: str
    total_chunks: int
    received: Dict[int, str] = field(default_factory=dict)
    last_activity: float = 0.0

    @property
    def missing(self) -> List[int]:
        """Chunk indices not yet received, ascending."""
        return [i for i in range(1, self.total_chunks + 1) if i not in self.received]

    @property
    def is_complete(self) -> bool:
        """True once every index has been received."""
        return len(self.received) == self.total_chunks

    def assemble(self) -> str:
        """Concatenate the received data in chunk index order."""
        return "".join(self.received[i] for i in sorted(self.received))


@dataclass
class TransferProgress:
    """Snapshot of the open session, for progress displays."""
    session_id: str
    received: int
    total: int
    missing: List[int]


@dataclass
class DecodeResult:  # pylint: disable=too-many-instance-attributes
    """What happened to one scanned string, with enough detail for a UI."""
    status: DecodeStatus
    session_id: Optional[str] = None
    chunk_index: Optional[int] = None
    total_chunks: Optional[int] = None
    received: int = 0
    missing: List[int] = field(default_factory=list)
    active_session_id: Optional[str] = None
    document: Optional[LogicDocument] = None
    error: Optional[str] = None

    @property
    def is_loaded(self) -> bool:
        """True if this result carries a freshly loaded document."""
        return self.status is DecodeStatus.LOADED and self.document is not None

    def describe(self) -> str:
        """One-line human readable message for this outcome."""
        status = self.status
        if status is DecodeStatus.CHUNK_ACCEPTED:
            return f"Scanned part {self.chunk_index} of {self.total_chunks} ({len(self.missing)} missing)."
        if status is DecodeStatus.DUPLICATE_CHUNK:
            return f"Part {self.chunk_index} was already scanned."
        if status is DecodeStatus.ALREADY_LOADED:
            return "This logic is already loaded."
        if status is DecodeStatus.CORRUPT_CHUNK:
            return f"Part {self.chunk_index} failed its checksum. Please rescan it."
        if status is DecodeStatus.SESSION_MISMATCH:
            return (
                "This QR code is from a different logic. "
                "Reset the scan before starting a new one."
            )
        if status is DecodeStatus.INCONSISTENT_CHUNK:
            return (
                f"Part {self.chunk_index} declares a different number of parts "
                f"than this transfer ({self.total_chunks})."
            )
        if status is DecodeStatus.ASSEMBLY_ERROR:
            return f"Failed to combine the scanned parts: {self.error}. Please scan again."
        if status is DecodeStatus.INCOMPLETE:
            missing = ", ".join(str(i) for i in self.missing)
            return f"Missing {len(self.missing)} part(s): {missing}."
        if status is DecodeStatus.LOADED:
            name = self.document.name if self.document else "?"
            return f"Loaded: {name}"
        return "Not a ZeroLink code."


class TransportDecoder:
    """Reassembles documents from scanned chunk strings.

    One decoder owns at most one TransferSession. All methods are meant
    to be called from a single thread (the scan callback); nothing here
    blocks or starts threads.
    """

    def __init__(
        self,
        bus: Optional[EventBus] = None,
        session_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """Initialize an idle decoder.

        Args:
            bus: Event bus for outcome events (defaults to the global one)
            session_timeout: Seconds without an accepted chunk after which
                an open session is abandoned; None keeps sessions forever
            clock: Monotonic time source
        """
        self.bus = bus if bus is not None else event_bus
        self.session_timeout = session_timeout
        self._clock = clock
        self._state = DecoderState.IDLE
        self._session: Optional[TransferSession] = None
        self._document: Optional[LogicDocument] = None
        self._completed_session_id: Optional[str] = None

    @property
    def state(self) -> DecoderState:
        """Current lifecycle state."""
        return self._state

    @property
    def document(self) -> Optional[LogicDocument]:
        """The last loaded document, if any."""
        return self._document

    @property
    def progress(self) -> Optional[TransferProgress]:
        """Progress of the open session, or None when not collecting."""
        if self._session is None:
            return None
        return TransferProgress(
            session_id=self._session.session_id,
            received=len(self._session.received),
            total=self._session.total_chunks,
            missing=self._session.missing,
        )

    def feed(self, raw: str) -> DecodeResult:
        """Process one string produced by the QR scanner.

        Args:
            raw: The decoded QR text (a chunk, a bare document, or noise)

        Returns:
            DecodeResult describing the outcome
        """
        self._expire_stale_session()

        try:
            chunk = Chunk.from_wire(raw)
        except ChunkFormatError as e:
            return self._load_standalone(raw, e)

        if not chunk.verify():
            logging.warning(
                "Chunk %d/%d of session %s failed checksum",
                chunk.chunk_index, chunk.total_chunks, chunk.session_id
            )
            return self._emit(EventType.CHUNK_CORRUPT, self._result(
                DecodeStatus.CORRUPT_CHUNK, chunk,
                error="checksum mismatch"
            ))

        if self._session is None:
            if chunk.session_id == self._completed_session_id:
                return self._result(DecodeStatus.ALREADY_LOADED, chunk, document=self._document)
            self._open_session(chunk)
        elif chunk.session_id != self._session.session_id:
            logging.warning(
                "Chunk from session %s while collecting %s; reset required",
                chunk.session_id, self._session.session_id
            )
            return self._emit(EventType.SESSION_MISMATCH, self._result(
                DecodeStatus.SESSION_MISMATCH, chunk,
                active_session_id=self._session.session_id,
                error="chunk belongs to a different transfer"
            ))
        elif chunk.total_chunks != self._session.total_chunks:
            return self._emit(EventType.CHUNK_INCONSISTENT, self._result(
                DecodeStatus.INCONSISTENT_CHUNK, chunk,
                error=(
                    f"declares {chunk.total_chunks} chunks, "
                    f"session has {self._session.total_chunks}"
                )
            ))

        session = self._session
        if chunk.chunk_index in session.received:
            return self._result(DecodeStatus.DUPLICATE_CHUNK, chunk)

        session.received[chunk.chunk_index] = chunk.data
        session.last_activity = self._clock()
        logging.info(
            "Scanned part %d of %d (session %s)",
            chunk.chunk_index, session.total_chunks, session.session_id
        )

        if session.is_complete:
            return self._reassemble(chunk)
        return self._emit(EventType.CHUNK_ACCEPTED, self._result(DecodeStatus.CHUNK_ACCEPTED, chunk))

    def finalize(self) -> DecodeResult:
        """Report the transfer outcome when the user says scanning is done."""
        self._expire_stale_session()
        if self._session is not None:
            return self._result(
                DecodeStatus.INCOMPLETE,
                error=f"{len(self._session.missing)} chunk(s) missing"
            )
        if self._state is DecoderState.LOADED:
            return DecodeResult(
                status=DecodeStatus.LOADED,
                session_id=self._completed_session_id,
                document=self._document,
            )
        return DecodeResult(status=DecodeStatus.IGNORED, error="no transfer in progress")

    def reset(self) -> None:
        """Discard any session and loaded document; back to IDLE.

        Safe to call in any state, any number of times.
        """
        if self._state is DecoderState.IDLE and self._session is None:
            return
        session_id = self._session.session_id if self._session else None
        self._clear()
        logging.info("Decoder reset")
        self.bus.publish(EventType.SESSION_RESET, {"session_id": session_id})

    def _clear(self) -> None:
        self._session = None
        self._document = None
        self._completed_session_id = None
        self._state = DecoderState.IDLE

    def _open_session(self, chunk: Chunk) -> None:
        self._session = TransferSession(
            session_id=chunk.session_id,
            total_chunks=chunk.total_chunks,
            last_activity=self._clock(),
        )
        self._state = DecoderState.COLLECTING
        if chunk.total_chunks > 1:
            logging.info(
                "Multipart logic detected: %d parts (session %s)",
                chunk.total_chunks, chunk.session_id
            )

    def _expire_stale_session(self) -> None:
        if self._session is None or self.session_timeout is None:
            return
        idle = self._clock() - self._session.last_activity
        if idle < self.session_timeout:
            return
        logging.info(
            "Abandoning session %s after %.0fs without progress",
            self._session.session_id, idle
        )
        self.bus.publish(EventType.SESSION_EXPIRED, {
            "session_id": self._session.session_id,
            "received": len(self._session.received),
            "total_chunks": self._session.total_chunks,
        })
        self._session = None
        self._state = DecoderState.LOADED if self._document else DecoderState.IDLE

    def _reassemble(self, last_chunk: Chunk) -> DecodeResult:
        session = self._session
        try:
            document = load_document(session.assemble())
        except Exception as e:  # pylint: disable=broad-exception-caught
            # Every chunk is already stored; keeping the session would turn
            # each rescan into a duplicate and wedge the decoder.
            if isinstance(e, LogicValidationError):
                logging.error("Reassembly of session %s failed: %s", session.session_id, e)
            else:
                logging.exception("Unexpected error reassembling session %s", session.session_id)
            result = self._result(DecodeStatus.ASSEMBLY_ERROR, last_chunk, error=str(e))
            self._clear()
            return self._emit(EventType.ASSEMBLY_ERROR, result)

        self._session = None
        self._document = document
        self._completed_session_id = session.session_id
        self._state = DecoderState.LOADED
        logging.info("Loaded logic '%s' from %d chunk(s)", document.name, session.total_chunks)
        return self._emit(EventType.DOCUMENT_LOADED, DecodeResult(
            status=DecodeStatus.LOADED,
            session_id=session.session_id,
            chunk_index=last_chunk.chunk_index,
            total_chunks=session.total_chunks,
            received=len(session.received),
            document=document,
        ))

    def _load_standalone(self, raw: str, chunk_error: ChunkFormatError) -> DecodeResult:
        """Fallback for strings that are not chunks: a complete bare document."""
        try:
            document = load_document(raw)
        except LogicValidationError as e:
            logging.debug("Ignoring scan (%s; %s)", chunk_error, e)
            return DecodeResult(status=DecodeStatus.IGNORED, error=str(chunk_error))

        if self._state is DecoderState.LOADED and self._session is None and document == self._document:
            return DecodeResult(status=DecodeStatus.ALREADY_LOADED, document=document)

        if self._session is not None:
            logging.info(
                "Standalone document replaces open session %s", self._session.session_id
            )
        self._session = None
        self._document = document
        self._completed_session_id = None
        self._state = DecoderState.LOADED
        logging.info("Loaded standalone logic '%s'", document.name)
        return self._emit(EventType.DOCUMENT_LOADED, DecodeResult(
            status=DecodeStatus.LOADED, document=document
        ))

    def _result(self, status: DecodeStatus, chunk: Optional[Chunk] = None, **kwargs) -> DecodeResult:
        """Build a result, filling progress from the open session."""
        result = DecodeResult(status=status, **kwargs)
        if chunk is not None:
            result.session_id = chunk.session_id
            result.chunk_index = chunk.chunk_index
            result.total_chunks = chunk.total_chunks
        session = self._session
        if session is not None:
            if result.session_id is None:
                result.session_id = session.session_id
            if result.total_chunks is None or status is DecodeStatus.INCONSISTENT_CHUNK:
                result.total_chunks = session.total_chunks
            result.received = len(session.received)
            result.missing = session.missing
        return result

    def _emit(self, event_type: EventType, result: DecodeResult) -> DecodeResult:
        data = {
            "status": result.status.value,
            "session_id": result.session_id,
            "chunk_index": result.chunk_index,
            "total_chunks": result.total_chunks,
            "received": result.received,
            "missing": list(result.missing),
        }
        if result.active_session_id:
            data["active_session_id"] = result.active_session_id
        if result.error:
            data["error"] = result.error
        if result.document is not None:
            data["document_name"] = result.document.name
        self.bus.publish(event_type, data)
        return result
