"""SRT segmenting, flattening and file helpers."""

from __future__ import annotations

import re
import logging
from pathlib import Path
from typing import List, Sequence, Optional, Set

from .errors import MalformedInputError
from .models import SubtitleBlock, TranslationUnit

logger = logging.getLogger(__name__)

# 块之间以一个或多个空行分隔
_BLOCK_SEPARATOR = re.compile(r"\n\s*\n")

MAX_FILE_SIZE = 50 * 1024 * 1024


def parse_blocks(content: str) -> List[SubtitleBlock]:
    """
    Segment raw SRT content into ordered subtitle blocks.

    The first non-blank line of a block is its id, the second its timestamp,
    the remaining lines are text. Timestamps are passed through unmodified.

    Args:
        content: Raw SRT file content as string

    Returns:
        List of SubtitleBlock objects in document order

    Raises:
        MalformedInputError: content is empty, a block has no timestamp,
            or two blocks share the same id
    """
    if not content or not content.strip():
        raise MalformedInputError("Subtitle content is empty")

    # 预处理：标准化换行符
    content = content.replace('\r\n', '\n').replace('\r', '\n').strip()

    blocks: List[SubtitleBlock] = []
    seen_ids: Set[str] = set()

    for raw_block in _BLOCK_SEPARATOR.split(content):
        lines = [line.rstrip() for line in raw_block.split('\n')]
        while lines and not lines[0].strip():
            lines.pop(0)
        if not lines:
            continue

        block_id = lines[0]
        if len(lines) < 2 or not lines[1].strip():
            raise MalformedInputError(f"Subtitle block {block_id!r} has no timestamp line")
        if block_id in seen_ids:
            raise MalformedInputError(f"Duplicate subtitle block id {block_id!r}")
        seen_ids.add(block_id)

        blocks.append(SubtitleBlock(block_id, lines[1], tuple(lines[2:])))

    if not blocks:
        raise MalformedInputError("No subtitle blocks found in content")

    logger.debug(f"Segmented {len(blocks)} subtitle blocks")
    return blocks


def flatten_units(blocks: Sequence[SubtitleBlock]) -> List[TranslationUnit]:
    """Flatten blocks into translation units, block order then line order."""
    return [
        TranslationUnit(block.unique_id(i), line)
        for block in blocks
        for i, line in enumerate(block.text_lines)
    ]


def validate_srt_file(path: Path) -> Optional[str]:
    """
    Validate SRT file before processing.

    Args:
        path: Path to SRT file

    Returns:
        Error message if invalid, None if valid
    """
    if not path.exists():
        return f"File not found: {path}"

    if not path.is_file():
        return f"Not a file: {path}"

    suffix = path.suffix.lower()
    if suffix != '.srt':
        return f"Invalid file extension: {suffix} (expected .srt)"

    # 检查文件大小
    size = path.stat().st_size
    if size == 0:
        return "File is empty"
    if size > MAX_FILE_SIZE:
        return f"File too large: {size / 1024 / 1024:.1f}MB (max 50MB)"

    return None


def read_srt(path: Path) -> str:
    """Read SRT file content, dropping a UTF-8 BOM if present."""
    return path.read_text(encoding="utf-8-sig")


def save_text(text: str, path: Path) -> None:
    """
    Save subtitle text to a file.

    Args:
        text: Serialized subtitle content
        path: Output file path
    """
    # 确保父目录存在
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    logger.info(f"Saved {path}")
