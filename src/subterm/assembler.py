"""Map translated lines back onto the original subtitle blocks."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Sequence

from .errors import ReassemblyError
from .models import SubtitleBlock, TranslationResult
from .text_utils import normalize_translated_text

logger = logging.getLogger(__name__)


def translated_blocks(
    blocks: Sequence[SubtitleBlock],
    results: Iterable[TranslationResult],
) -> List[SubtitleBlock]:
    """
    Replace the text of every block with its normalized translation.

    Lines are looked up by unique id, never by position.

    Raises:
        ReassemblyError: a source line has no translation
    """
    translation_map: Dict[str, str] = {
        r.unique_id: normalize_translated_text(r.translated_text) for r in results
    }

    out: List[SubtitleBlock] = []
    for block in blocks:
        lines: List[str] = []
        for i, original in enumerate(block.text_lines):
            unique_id = block.unique_id(i)
            translated = translation_map.get(unique_id)
            if translated is None:
                raise ReassemblyError(unique_id, original)
            lines.append(translated)
        out.append(block.copy(text_lines=lines))
    return out


def serialize_blocks(blocks: Iterable[SubtitleBlock]) -> str:
    """Render blocks in SRT framing, separated by one blank line."""
    return "\n\n".join(block.to_srt() for block in blocks)


def reassemble(
    blocks: Sequence[SubtitleBlock],
    results: Iterable[TranslationResult],
) -> str:
    """Build the translated SRT text with the original ids and timestamps."""
    output = serialize_blocks(translated_blocks(blocks, results))
    logger.info(f"Reassembled {len(blocks)} subtitle blocks")
    return output
