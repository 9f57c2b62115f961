"""Tests for the chunk wire format."""
import dataclasses
import json

import pytest

from zerolink.core.errors import ChunkFormatError
from zerolink.transport.checksum import checksum
from zerolink.transport.chunk import WIRE_FIELDS, Chunk, dump_compact

SESSION = "3f2b8c1e-5d6a-4e7f-9a0b-1c2d3e4f5a6b"


def wire(**overrides) -> str:
    """Build a wire string, overriding individual fields."""
    obj = {
        "sessionId": SESSION,
        "chunkIndex": 1,
        "totalChunks": 2,
        "data": '{"name":',
        "checksum": checksum('{"name":'),
    }
    obj.update(overrides)
    return json.dumps(obj)


class TestChunkBuild:
    """Tests for Chunk.build and verify."""

    def test_build_computes_checksum(self):
        """Test build fills in the checksum of the data."""
        chunk = Chunk.build(SESSION, 1, 1, "hello")
        assert chunk.checksum == checksum("hello")
        assert chunk.verify()

    def test_verify_detects_tampering(self):
        """Test verify fails when data no longer matches."""
        chunk = Chunk.build(SESSION, 1, 1, "hello")
        tampered = Chunk(chunk.session_id, 1, 1, "hellO", chunk.checksum)
        assert not tampered.verify()

    def test_chunk_is_immutable(self):
        """Test chunks are frozen."""
        chunk = Chunk.build(SESSION, 1, 1, "x")
        with pytest.raises(dataclasses.FrozenInstanceError):
            chunk.data = "y"


class TestChunkWire:
    """Tests for to_wire / from_wire."""

    def test_to_wire_is_compact_json_in_field_order(self):
        """Test the wire string has no spaces and the documented key order."""
        chunk = Chunk.build(SESSION, 2, 3, "abc")
        raw = chunk.to_wire()
        assert " " not in raw.replace(SESSION, "")
        assert list(json.loads(raw).keys()) == list(WIRE_FIELDS)

    def test_from_wire_parses_fields(self):
        """Test a valid wire string becomes a Chunk."""
        chunk = Chunk.from_wire(wire())
        assert chunk.session_id == SESSION
        assert chunk.chunk_index == 1
        assert chunk.total_chunks == 2
        assert chunk.data == '{"name":'
        assert chunk.verify()

    def test_wire_round_trip_preserves_unicode(self):
        """Test non-ASCII data survives serialization unescaped."""
        chunk = Chunk.build(SESSION, 1, 1, "Küche 🌡")
        raw = chunk.to_wire()
        assert "Küche" in raw
        assert Chunk.from_wire(raw) == chunk

    def test_dump_compact(self):
        """Test compact separators."""
        assert dump_compact({"a": 1, "b": [1, 2]}) == '{"a":1,"b":[1,2]}'

    @pytest.mark.parametrize("raw", [
        "not json",
        "",
        "[1, 2, 3]",
        '"just a string"',
        "42",
    ])
    def test_rejects_non_objects(self, raw):
        """Test non-JSON and non-object strings are rejected."""
        with pytest.raises(ChunkFormatError):
            Chunk.from_wire(raw)

    @pytest.mark.parametrize("field", WIRE_FIELDS)
    def test_rejects_missing_field(self, field):
        """Test every field is required."""
        obj = json.loads(wire())
        del obj[field]
        with pytest.raises(ChunkFormatError, match="missing fields"):
            Chunk.from_wire(json.dumps(obj))

    @pytest.mark.parametrize("overrides", [
        {"chunkIndex": "1"},
        {"chunkIndex": 1.5},
        {"chunkIndex": True},
        {"chunkIndex": 0},
        {"totalChunks": -1},
        {"totalChunks": None},
        {"sessionId": ""},
        {"sessionId": 123},
        {"data": None},
        {"checksum": ""},
        {"chunkIndex": 3, "totalChunks": 2},
    ])
    def test_rejects_bad_values(self, overrides):
        """Test type and range checks on each field."""
        with pytest.raises(ChunkFormatError):
            Chunk.from_wire(wire(**overrides))

    def test_logic_document_is_not_a_chunk(self):
        """Test a bare logic document is rejected as a chunk."""
        raw = '{"name":"X","triggers":[],"actions":[]}'
        with pytest.raises(ChunkFormatError):
            Chunk.from_wire(raw)

    def test_rejects_json_nested_past_parser_limit(self):
        """Test pathological nesting is a format error, not a crash."""
        with pytest.raises(ChunkFormatError, match="nested too deeply"):
            Chunk.from_wire("[" * 100000 + "]" * 100000)
