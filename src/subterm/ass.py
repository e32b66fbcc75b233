"""SRT to ASS conversion with a separate style for bracketed annotations."""

from __future__ import annotations

import re
import logging
from typing import List

from .errors import MalformedInputError
from .parser import parse_blocks

logger = logging.getLogger(__name__)

_SRT_TIMESTAMP = re.compile(
    r"^\s*(\d{1,2}):(\d{2}):(\d{2})[,.](\d{3})\s*-->\s*(\d{1,2}):(\d{2}):(\d{2})[,.](\d{3})"
)

# 半形与全形括号内的注释
_ANNOTATION = re.compile(r"(\([^()]*\)|（[^（）]*）)")

ASS_HEADER = [
    "[Script Info]",
    "ScriptType: v4.00+",
    "Collisions: Normal",
    "PlayResX: 1920",
    "PlayResY: 1080",
    "WrapStyle: 0",
    "",
    "[V4+ Styles]",
    "Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, OutlineColour, BackColour, "
    "Bold, Italic, Underline, StrikeOut, ScaleX, ScaleY, Spacing, Angle, BorderStyle, Outline, "
    "Shadow, Alignment, MarginL, MarginR, MarginV, Encoding",
    "Style: Default,Microsoft JhengHei,64,&H00FFFFFF,&H000000FF,&H00000000,&H64000000,0,0,0,0,"
    "100,100,0,0,1,3,0,2,80,80,60,1",
    "Style: Annotation,Microsoft JhengHei,44,&H0000FFFF,&H000000FF,&H00000000,&H64000000,0,1,0,0,"
    "100,100,0,0,1,2,0,8,80,80,40,1",
    "",
    "[Events]",
    "Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text",
]


def _format_ass_time(h: str, m: str, s: str, ms: str) -> str:
    # ASS 精度为百分之一秒
    return f"{int(h):d}:{m}:{s}.{ms[:2]}"


def _style_annotations(text: str) -> str:
    return _ANNOTATION.sub(lambda m: "{\\rAnnotation}" + m.group(1) + "{\\r}", text)


def convert_srt_to_ass(srt_text: str) -> str:
    """
    Convert SRT content into an ASS script.

    Raises:
        MalformedInputError: content is empty or a timestamp cannot be read
    """
    events: List[str] = []
    for block in parse_blocks(srt_text):
        match = _SRT_TIMESTAMP.match(block.timestamp)
        if not match:
            raise MalformedInputError(
                f"Invalid timestamp in block {block.id}: {block.timestamp!r}"
            )
        g = match.groups()
        start = _format_ass_time(*g[:4])
        end = _format_ass_time(*g[4:])
        text = "\\N".join(_style_annotations(line.strip()) for line in block.text_lines)
        events.append(f"Dialogue: 0,{start},{end},Default,,0,0,0,,{text}")

    logger.info(f"Converted {len(events)} subtitle blocks to ASS")
    return "\n".join([*ASS_HEADER, *events]) + "\n"
