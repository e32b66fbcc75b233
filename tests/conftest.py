"""Shared fixtures: a scripted stand-in for the LLM service."""

from __future__ import annotations

import asyncio
import json
import re
from typing import Callable, Dict, List, Optional

import pytest

from subterm.config import TranslatorConfig
from subterm.glossary import parse_terms
from subterm.translator import PAYLOAD_HEADER

_TERMS_SECTION = re.compile(r"## Required terms \(original:translation\):\n(.*?)\n\n", re.S)


def payload_units(prompt: str) -> List[Dict[str, str]]:
    """Extract the {uniqueId, originalText} list sent in a translation prompt."""
    return json.loads(prompt.split(PAYLOAD_HEADER, 1)[1])["linesToTranslate"]


def prompt_terms(prompt: str) -> Dict[str, str]:
    match = _TERMS_SECTION.search(prompt)
    if not match or match.group(1) == "None":
        return {}
    return parse_terms(match.group(1)).to_dict()


def respond(units: List[Dict[str, str]], translate: Callable[[str], str]) -> str:
    return json.dumps(
        {
            "translatedLines": [
                {"uniqueId": u["uniqueId"], "translatedText": translate(u["originalText"])}
                for u in units
            ]
        },
        ensure_ascii=False,
    )


class FakeService:
    """
    Scripted TranslationService.

    ``responder(units, prompt)`` returns the raw response text for a
    translation call, or raises. By default every line is echoed back
    upper-cased.
    """

    def __init__(
        self,
        responder: Optional[Callable[[List[Dict[str, str]], str], str]] = None,
        analysis: object = "",
        delay: Optional[Callable[[List[Dict[str, str]]], float]] = None,
    ):
        self.responder = responder or (lambda units, prompt: respond(units, str.upper))
        self.analysis = analysis
        self.delay = delay
        self.text_prompts: List[str] = []
        self.json_calls: List[List[str]] = []
        self.completed: List[str] = []
        self.active = 0
        self.max_active = 0

    async def generate_text(self, prompt: str) -> str:
        self.text_prompts.append(prompt)
        await asyncio.sleep(0)
        if isinstance(self.analysis, BaseException):
            raise self.analysis
        return str(self.analysis)

    async def generate_json(self, prompt: str, *, system: str, schema: dict) -> str:
        units = payload_units(prompt)
        self.json_calls.append([u["uniqueId"] for u in units])
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay(units) if self.delay else 0)
            result = self.responder(units, prompt)
        finally:
            self.active -= 1
        self.completed.append(units[0]["uniqueId"])
        return result


def make_srt(count: int, lines_per_block: int = 1) -> str:
    blocks = []
    for i in range(1, count + 1):
        text = "\n".join(f"line {i}.{j}" for j in range(lines_per_block))
        blocks.append(f"{i}\n00:00:{i:02d},000 --> 00:00:{i:02d},900\n{text}")
    return "\n\n".join(blocks)


@pytest.fixture()
def config() -> TranslatorConfig:
    return TranslatorConfig(
        api_key="test-key",
        chunk_size=100,
        concurrency=3,
        max_attempts=3,
        retry_base_delay=0.0,
        request_timeout=5.0,
        analysis_tick_interval=0.01,
        program_intro="Medical drama. Kim Minseong (Minseong) is a surgeon.",
    )


@pytest.fixture()
def sample_srt() -> str:
    return (
        "1\n00:00:01,000 --> 00:00:02,000\n안녕\n\n"
        "2\n00:00:02,500 --> 00:00:03,500\nMinseong\n\n"
        "3\n00:00:04,000 --> 00:00:05,000\nKim Minseong"
    )
