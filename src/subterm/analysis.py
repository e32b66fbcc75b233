"""Terminology extraction pass run before translation."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from .errors import AnalysisError, TranslatorError
from .glossary import Glossary, merge_terms, parse_terms, serialize_terms
from .llm_client import TranslationService
from .progress import PeriodicTicker, ProgressCallback, SimulatedProgress

logger = logging.getLogger(__name__)


ANALYSIS_PROMPT = """You are an expert linguist specializing in Korean and Taiwanese Traditional Chinese. \
Extract high-value "Terms" from the subtitle text and give their Taiwanese translation, \
staying consistent with the previously established terms.

I. A "Term" is a proper noun or a culturally specific noun or short phrase:
- people's names, place names, organization names, brand names
- titles of works (movies, shows, books)
- unique cultural concepts or items
- technical or medical jargon

II. Never extract full sentences, clauses, common conversational phrases or verb phrases.

III. Protocol:
1. Read the Program Intro to learn the characters and setting.
2. Treat the Previously Established Terms as the source of truth.
3. Only output NEW terms that are not already established.
4. Omit a term if its translation would be identical to the original.
5. Output a comma-separated list in the form "original:translation" and nothing else.

IV. Name handling (highest priority):
- A full name (e.g. "Kim Minseong") is translated as a full name ("Kim Minseong:金民成").
- A first name alone (e.g. "Minseong") is translated as a first name only ("Minseong:民成").
- Never translate a first name into a full name. If both forms appear, output both.

Previously Established Terms:
---
{established}
---

Program Intro:
---
{program_intro}
---

Subtitle Text:
---
{subtitles}
---
"""


def build_analysis_prompt(subtitles: str, program_intro: str, established: Glossary) -> str:
    return ANALYSIS_PROMPT.format(
        established=serialize_terms(established) or "None",
        program_intro=program_intro or "None",
        subtitles=subtitles,
    )


async def extract_terms(
    service: TranslationService,
    subtitles: str,
    *,
    program_intro: str = "",
    established: Optional[Glossary] = None,
    current: Optional[Glossary] = None,
    on_progress: Optional[ProgressCallback] = None,
    tick_interval: float = 0.1,
    clock: Callable[[], float] = time.monotonic,
) -> Glossary:
    """
    Ask the LLM for new terminology and merge it into the working glossary.

    A single request covers the whole document. While it is outstanding a
    simulated progress estimate is reported through ``on_progress``; it
    reaches 100 only once the response has arrived.

    Args:
        service: LLM service
        subtitles: Full subtitle text
        program_intro: Free-text description of the program
        established: Terms already confirmed for this episode (prompt context)
        current: Working glossary the suggestions are merged into
        on_progress: Called with each new percentage
        tick_interval: Seconds between progress updates
        clock: Time source for the progress estimate

    Returns:
        A new Glossary; ``current`` is left untouched

    Raises:
        TranslatorError: the request failed; progress has been reset to 0
    """
    established = established if established is not None else Glossary()
    current = current if current is not None else Glossary()

    progress = SimulatedProgress(len(subtitles), on_progress, clock=clock)
    ticker = PeriodicTicker(tick_interval, progress.tick)
    prompt = build_analysis_prompt(subtitles, program_intro, established)

    logger.info(f"Analyzing terms in {len(subtitles)} characters of subtitles...")
    progress.start()
    ticker.start()
    try:
        suggestions = await service.generate_text(prompt)
    except TranslatorError:
        progress.reset()
        raise
    except Exception as e:
        progress.reset()
        raise AnalysisError(f"{type(e).__name__}: {e}") from e
    finally:
        await ticker.cancel()

    progress.complete()

    logger.debug(f"Raw term suggestions: {suggestions[:500]}")
    additions = parse_terms(suggestions.strip())
    merged = merge_terms(current, additions)
    logger.info(f"Term analysis suggested {len(additions)} terms, glossary now has {len(merged)}")
    return merged
