"""Byte-range partitioning of source payloads."""

from transcript_processor.chunking.partitioner import Chunk, partition

__all__ = ["Chunk", "partition"]
