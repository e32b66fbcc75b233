"""Data models for subtitle blocks and translation units."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class SubtitleBlock:
    """Represents a single subtitle block in SRT format."""

    id: str
    timestamp: str
    text_lines: Tuple[str, ...] = field(default_factory=tuple)

    def unique_id(self, line_index: int) -> str:
        """Return the unique id of one text line of this block."""
        return f"{self.id}-{line_index}"

    def to_srt(self) -> str:
        """Convert block to SRT format string (without trailing blank line)."""
        return "\n".join((self.id, self.timestamp, *self.text_lines))

    def copy(self, **changes) -> "SubtitleBlock":
        """Create a copy with optional field changes."""
        return SubtitleBlock(
            id=changes.get('id', self.id),
            timestamp=changes.get('timestamp', self.timestamp),
            text_lines=tuple(changes.get('text_lines', self.text_lines)),
        )


@dataclass(frozen=True)
class TranslationUnit:
    """One line of text within a block; the smallest translatable item."""

    unique_id: str
    original_text: str

    @property
    def block_id(self) -> str:
        # 块 id 本身可能包含 "-"，只切最后一段
        return self.unique_id.rsplit("-", 1)[0]

    def to_payload(self) -> dict:
        return {"uniqueId": self.unique_id, "originalText": self.original_text}


@dataclass
class TranslationResult:
    """单条翻译结果。"""

    unique_id: str
    translated_text: str
    failed: bool = False


@dataclass(frozen=True)
class TranslatingInfo:
    """The block currently being translated (advisory UI state)."""

    block_id: str
    timestamp: str
