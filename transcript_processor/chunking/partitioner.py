"""Split a binary audio payload into ordered fixed-size byte ranges.

Chunks are zero-copy views over the source buffer. The buffer is shared
read-only by every chunk operation.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from transcript_processor.utils.errors import EmptyInputError, PartitionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Chunk:
    """A contiguous byte range of a source payload."""

    index: int
    offset: int
    data: memoryview

    @property
    def size(self) -> int:
        return self.data.nbytes

    @property
    def end(self) -> int:
        return self.offset + self.size

    def to_bytes(self) -> bytes:
        return self.data.tobytes()


def partition(buffer: bytes | bytearray | memoryview, chunk_size: int) -> list[Chunk]:
    """Split `buffer` into ceil(len / chunk_size) ordered chunks.

    The final chunk holds the remainder. Chunks partition the buffer
    exactly, with no gaps or overlaps.

    Args:
        buffer: Source payload.
        chunk_size: Maximum chunk size in bytes.

    Returns:
        Chunks ordered by index (0-based), which equals byte order.

    Raises:
        EmptyInputError: If `buffer` has zero length.
        ValueError: If `chunk_size` is not positive.
        PartitionError: If a slice unexpectedly comes back empty.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    view = memoryview(buffer).cast("B").toreadonly()
    total = view.nbytes
    if total == 0:
        raise EmptyInputError("Cannot partition an empty buffer")

    chunks: list[Chunk] = []
    for index, offset in enumerate(range(0, total, chunk_size)):
        piece = view[offset : offset + chunk_size]
        if piece.nbytes == 0:
            raise PartitionError(
                f"Created empty chunk at offset {offset}", offset=offset
            )
        chunks.append(Chunk(index=index, offset=offset, data=piece))

    expected = math.ceil(total / chunk_size)
    if len(chunks) != expected:
        raise PartitionError(
            f"Expected {expected} chunks but created {len(chunks)}"
        )

    logger.debug(
        "Partitioned %.2fMB into %d chunks of up to %.2fMB",
        total / (1024 * 1024),
        len(chunks),
        chunk_size / (1024 * 1024),
    )
    return chunks
