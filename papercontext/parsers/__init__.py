"""Text splitting for extracted documents."""

from .chunk_splitter import ChunkSplitter, ChunkSplitterConfig, split_into_chunks

__all__ = ["ChunkSplitter", "ChunkSplitterConfig", "split_into_chunks"]
