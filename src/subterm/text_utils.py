"""Text processing utilities."""

from __future__ import annotations

import re


# 全形逗号与顿号一律替换为半形空格
FULLWIDTH_SEPARATORS = re.compile(r"[，、]")

# 句末全形句号
TRAILING_FULLWIDTH_PERIOD = "。"

# 翻译失败时保留原文并加上此标记
FAILED_MARKER = "[翻譯失敗]"


def normalize_translated_text(text: str) -> str:
    """
    Apply the subtitle punctuation rules to one translated line.

    Every full-width comma or enumeration comma becomes a single space and
    one trailing full-width period is removed.

    Args:
        text: Translated line

    Returns:
        Normalized line
    """
    if not text:
        return ""

    text = FULLWIDTH_SEPARATORS.sub(" ", text)
    if text.endswith(TRAILING_FULLWIDTH_PERIOD):
        text = text[:-len(TRAILING_FULLWIDTH_PERIOD)]
    return text


def mark_failed(original: str) -> str:
    """Wrap an untranslated line with the failure marker."""
    return f"{FAILED_MARKER} {original}"


def is_failed(text: str) -> bool:
    return text.startswith(FAILED_MARKER)


def truncate_text(text: str, max_length: int, suffix: str = "...") -> str:
    """
    Truncate text to maximum length with suffix.

    Args:
        text: Text to truncate
        max_length: Maximum length including suffix
        suffix: Suffix to append if truncated

    Returns:
        Truncated text
    """
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix
