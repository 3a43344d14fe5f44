"""Paragraph-aware chunk splitting for extracted document text.

Paragraphs (blank-line separated) are packed greedily into chunks of at most
``target_length`` characters. A paragraph that is longer than the target on
its own is cut into fixed windows that overlap by ``overlap`` characters, so
no chunk ever exceeds the target. Keeping chunk sizes bounded keeps the
packer's per-chunk token costs roughly uniform.
"""

import re
from dataclasses import dataclass

from loguru import logger

from papercontext.core.constants import CHUNK_OVERLAP, CHUNK_TARGET_LENGTH

_LINE_ENDINGS = re.compile(r"\r\n?")
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_PARAGRAPH_JOINER = "\n\n"


@dataclass
class ChunkSplitterConfig:
    """Configuration for paragraph chunking."""

    target_length: int = CHUNK_TARGET_LENGTH  # characters
    overlap: int = CHUNK_OVERLAP  # characters shared by adjacent hard-split windows

    def __post_init__(self) -> None:
        if self.target_length <= 0:
            raise ValueError(f"target_length must be positive, got {self.target_length}")
        if not 0 <= self.overlap < self.target_length:
            raise ValueError(
                f"overlap must be in [0, target_length), got {self.overlap} "
                f"for target_length {self.target_length}"
            )


class ChunkSplitter:
    """Splits document text into bounded, paragraph-aligned chunks."""

    def __init__(self, config: ChunkSplitterConfig | None = None):
        self.config = config or ChunkSplitterConfig()

    def split(self, text: str | None) -> list[str]:
        """Split text into chunks; empty or whitespace-only text yields []."""
        normalized = _LINE_ENDINGS.sub("\n", text or "").strip()
        if not normalized:
            return []

        target = self.config.target_length
        chunks: list[str] = []
        current = ""

        for raw in _PARAGRAPH_BREAK.split(normalized):
            paragraph = raw.strip()
            if not paragraph:
                continue

            if len(paragraph) > target:
                if current:
                    chunks.append(current)
                    current = ""
                chunks.extend(self._hard_split(paragraph))
                continue

            if not current:
                current = paragraph
            elif len(current) + len(paragraph) + len(_PARAGRAPH_JOINER) <= target:
                current = f"{current}{_PARAGRAPH_JOINER}{paragraph}"
            else:
                chunks.append(current)
                current = paragraph

        if current:
            chunks.append(current)

        logger.debug(
            f"Split {len(normalized)} chars into {len(chunks)} chunks "
            f"(target={target}, overlap={self.config.overlap})"
        )
        return chunks

    def _hard_split(self, paragraph: str) -> list[str]:
        """Cut an oversized paragraph into overlapping fixed windows."""
        target = self.config.target_length
        step = target - self.config.overlap
        windows: list[str] = []
        start = 0
        while start < len(paragraph):
            end = min(start + target, len(paragraph))
            window = paragraph[start:end].strip()
            if window:
                windows.append(window)
            if end >= len(paragraph):
                break
            start += step
        return windows


def split_into_chunks(
    text: str | None,
    target_length: int = CHUNK_TARGET_LENGTH,
    overlap: int = CHUNK_OVERLAP,
) -> list[str]:
    """Split text into paragraph-aware chunks of at most ``target_length`` chars."""
    splitter = ChunkSplitter(ChunkSplitterConfig(target_length=target_length, overlap=overlap))
    return splitter.split(text)
