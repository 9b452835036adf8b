"""Tests for transcript_processor.chunking.partitioner module."""

import math

import pytest

from transcript_processor.chunking import Chunk, partition
from transcript_processor.config import MIB
from transcript_processor.utils.errors import EmptyInputError


class TestPartition:
    """Tests for partition()."""

    def test_chunks_cover_buffer_exactly(self) -> None:
        buffer = bytes(range(256)) * 10
        chunks = partition(buffer, 100)

        assert b"".join(c.to_bytes() for c in chunks) == buffer
        offset = 0
        for expected_index, chunk in enumerate(chunks):
            assert chunk.index == expected_index
            assert chunk.offset == offset
            offset = chunk.end
        assert offset == len(buffer)

    @pytest.mark.parametrize(
        "length,chunk_size", [(1, 1), (7, 3), (9, 3), (10, 100), (1000, 7)]
    )
    def test_chunk_count_is_ceiling(self, length: int, chunk_size: int) -> None:
        chunks = partition(b"\x01" * length, chunk_size)
        assert len(chunks) == math.ceil(length / chunk_size)
        assert all(0 < c.size <= chunk_size for c in chunks)

    def test_last_chunk_holds_remainder(self) -> None:
        # 2.5 MB with 1 MB chunks: [1 MB, 1 MB, 0.5 MB]
        buffer = b"\x00" * (5 * MIB // 2)
        chunks = partition(buffer, MIB)

        assert [c.size for c in chunks] == [MIB, MIB, MIB // 2]

    def test_exact_multiple_has_no_empty_tail(self) -> None:
        chunks = partition(b"\x00" * 12, 4)
        assert [c.size for c in chunks] == [4, 4, 4]

    def test_is_idempotent(self) -> None:
        buffer = b"abcdefghij"
        first = partition(buffer, 3)
        second = partition(buffer, 3)

        assert [(c.index, c.offset, c.to_bytes()) for c in first] == [
            (c.index, c.offset, c.to_bytes()) for c in second
        ]

    def test_chunks_are_read_only_views(self) -> None:
        buffer = bytearray(b"abcdef")
        chunk = partition(buffer, 4)[0]

        assert isinstance(chunk, Chunk)
        assert chunk.data.readonly
        with pytest.raises(TypeError):
            chunk.data[0] = 0

    def test_empty_buffer_raises(self) -> None:
        with pytest.raises(EmptyInputError):
            partition(b"", 4)

    @pytest.mark.parametrize("chunk_size", [0, -1])
    def test_non_positive_chunk_size_raises(self, chunk_size: int) -> None:
        with pytest.raises(ValueError):
            partition(b"abc", chunk_size)
