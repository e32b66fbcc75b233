"""Glossary parsing, merging and file utilities."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterator, Mapping, Tuple

logger = logging.getLogger(__name__)

PAIR_DELIMITER = ","
TERM_DELIMITER = ":"


class Glossary:
    """术语表：原文 -> 译文，键唯一，保持插入顺序。"""

    def __init__(self, terms: Mapping[str, str] | None = None):
        self._terms: Dict[str, str] = {}
        if terms:
            for term, translation in terms.items():
                self.add(term, translation)

    def add(self, term: str, translation: str) -> None:
        """添加术语；同名术语覆盖旧译文。"""
        term = term.strip()
        translation = translation.strip()
        if not term:
            return
        self._terms[term] = translation

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(self._terms.items())

    def to_dict(self) -> Dict[str, str]:
        return dict(self._terms)

    def copy(self) -> "Glossary":
        return Glossary(self._terms)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Glossary):
            return self._terms == other._terms
        if isinstance(other, dict):
            return self._terms == other
        return NotImplemented

    def __len__(self) -> int:
        return len(self._terms)

    def __bool__(self) -> bool:
        return len(self._terms) > 0

    def __repr__(self) -> str:
        return f"Glossary({self._terms!r})"


def parse_terms(text: str) -> Glossary:
    """
    Parse a flat "original:translation, ..." list into a Glossary.

    Pairs without exactly one ':' and pairs with an empty original are
    dropped silently, since the input is often noisy LLM output.
    """
    glossary = Glossary()
    if not text or not text.strip():
        return glossary

    for pair in text.split(PAIR_DELIMITER):
        parts = pair.split(TERM_DELIMITER)
        if len(parts) != 2:
            if pair.strip():
                logger.debug(f"Dropping glossary pair: {pair.strip()!r}")
            continue
        glossary.add(parts[0], parts[1])

    return glossary


def serialize_terms(glossary: Glossary) -> str:
    """Render a Glossary in the flat "original:translation" exchange format."""
    return f"{PAIR_DELIMITER} ".join(
        f"{term}{TERM_DELIMITER}{translation}" for term, translation in glossary.items()
    )


def merge_terms(base: Glossary, additions: Glossary) -> Glossary:
    """Union of both glossaries; entries from ``additions`` win on collision."""
    merged = base.copy()
    for term, translation in additions.items():
        merged.add(term, translation)
    return merged


def load_glossary(path: Path) -> Glossary:
    """
    Load glossary from a text file.

    Supported format:
        Term:Translation, Term:Translation
        Term:Translation        (one pair per line also works)
        # Comment lines

    Args:
        path: Path to glossary file

    Returns:
        Glossary instance
    """
    if not path.exists():
        logger.warning(f"Glossary file not found: {path}")
        return Glossary()

    content = path.read_text(encoding='utf-8-sig')
    # 跳过注释行，换行视作分隔符
    lines = [
        line for line in content.splitlines()
        if line.strip() and not line.strip().startswith('#')
    ]
    glossary = parse_terms(PAIR_DELIMITER.join(lines))

    logger.info(f"Loaded {len(glossary)} terms from glossary")
    return glossary


def save_glossary(glossary: Glossary, path: Path) -> None:
    """Write the glossary one pair per line so it is easy to edit by hand."""
    path.parent.mkdir(parents=True, exist_ok=True)
    body = "\n".join(
        f"{term}{TERM_DELIMITER}{translation}{PAIR_DELIMITER}"
        for term, translation in glossary.items()
    )
    path.write_text(body + "\n" if body else "", encoding='utf-8')
    logger.info(f"Saved {len(glossary)} terms to {path}")
