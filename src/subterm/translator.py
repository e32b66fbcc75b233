"""Chunked translation using LLM."""

from __future__ import annotations

import asyncio
import json
import re
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .config import TranslatorConfig
from .errors import ConsistencyError, CountMismatchError, LLMServiceError, SchemaError
from .glossary import Glossary, serialize_terms
from .llm_client import TranslationService
from .models import SubtitleBlock, TranslatingInfo, TranslationResult, TranslationUnit
from .progress import ChunkProgress, ChunkProgressCallback
from .text_utils import mark_failed, truncate_text

logger = logging.getLogger(__name__)


SYSTEM_INSTRUCTION = """You are a top subtitle translator fluent in Taiwanese Traditional Chinese, \
experienced with Korean dramas and variety shows. Translate the given list of single subtitle lines, \
line by line, into the most natural Traditional Chinese for a Taiwanese audience.

Principles:
1. Translate meaning, not words; keep tone, register and cultural nuance.
2. Use Taiwanese vocabulary and conventions; keep the language easy to understand.
3. Use full-width punctuation but never end a line with 「。」.
4. Put one half-width space between Chinese and Latin letters or digits.
5. If a source line starts with a dash (-), the translation must start with a dash.
6. Replace every 「，」 and 「、」 with a single half-width space.

Structure (highest priority):
- The input is a JSON array of objects, one per subtitle line, each with a `uniqueId`.
- Output exactly one object per input object, with the identical `uniqueId`.
- Never merge or split lines; no line breaks inside translated text.

Terminology:
- The "Required terms" list is an absolute override list: use its translations verbatim.
- When the source uses only a first name or nickname, translate it as that first name only, \
never as the full name.
- Stay consistent with the program intro and its characters.
"""

TRANSLATION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "translatedLines": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "uniqueId": {"type": "string"},
                    "translatedText": {"type": "string"},
                },
                "required": ["uniqueId", "translatedText"],
            },
        },
    },
    "required": ["translatedLines"],
}

PAYLOAD_HEADER = "## Subtitle lines to translate (JSON):"

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def chunk_units(units: Sequence[TranslationUnit], chunk_size: int) -> List[List[TranslationUnit]]:
    """Split units into contiguous chunks of at most ``chunk_size``."""
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    return [list(units[i:i + chunk_size]) for i in range(0, len(units), chunk_size)]


def _build_translation_prompt(
    chunk: Sequence[TranslationUnit],
    program_intro: str,
    glossary: Glossary,
) -> str:
    """Build the user prompt for one chunk."""
    payload = json.dumps(
        {"linesToTranslate": [unit.to_payload() for unit in chunk]},
        ensure_ascii=False,
        indent=2,
    )
    return (
        f"## Program intro:\n{program_intro or 'None'}\n\n"
        f"## Required terms (original:translation):\n{serialize_terms(glossary) or 'None'}\n\n"
        f"{PAYLOAD_HEADER}\n{payload}"
    )


def _parse_translation_response(
    raw: str,
    chunk: Sequence[TranslationUnit],
) -> List[TranslationResult]:
    """
    Validate a structured response and key it by uniqueId.

    Results come back in the chunk's input order whatever order the model
    used.

    Raises:
        SchemaError: no JSON object, wrong shape, unknown or duplicate ids
        CountMismatchError: line count differs from the chunk size
    """
    match = _JSON_OBJECT.search(raw or "")
    if not match:
        raise SchemaError(f"No JSON object in response: {truncate_text(raw or '', 200)}")

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise SchemaError(f"JSON parse failed: {e}") from e

    lines = data.get("translatedLines") if isinstance(data, dict) else None
    if not isinstance(lines, list):
        raise SchemaError("'translatedLines' is not a list")

    if len(lines) != len(chunk):
        raise CountMismatchError(len(chunk), len(lines))

    translated: Dict[str, str] = {}
    for item in lines:
        if not isinstance(item, dict):
            raise SchemaError(f"Translated line is not an object: {item!r}")
        unique_id = item.get("uniqueId")
        text = item.get("translatedText")
        if not isinstance(unique_id, str) or not isinstance(text, str):
            raise SchemaError(f"Translated line has invalid fields: {item!r}")
        if unique_id in translated:
            raise SchemaError(f"Duplicate uniqueId in response: {unique_id}")
        translated[unique_id] = text

    missing = [unit.unique_id for unit in chunk if unit.unique_id not in translated]
    if missing:
        raise SchemaError(f"Response is missing uniqueIds: {missing}")

    return [TranslationResult(unit.unique_id, translated[unit.unique_id]) for unit in chunk]


def _fallback_results(chunk: Sequence[TranslationUnit]) -> List[TranslationResult]:
    return [
        TranslationResult(unit.unique_id, mark_failed(unit.original_text), failed=True)
        for unit in chunk
    ]


async def translate_chunk_with_retries(
    service: TranslationService,
    chunk: Sequence[TranslationUnit],
    chunk_index: int,
    *,
    program_intro: str,
    glossary: Glossary,
    max_attempts: int = 3,
    retry_base_delay: float = 1.0,
    timeout: Optional[float] = None,
) -> List[TranslationResult]:
    """
    Translate one chunk, retrying on invalid responses.

    Schema failures, timeouts, retryable service errors and any other error
    raised by the service share one attempt budget with a linear back-off of
    ``attempt * retry_base_delay`` seconds. When the budget is spent the chunk
    degrades to fallback results instead of failing the run. Cancellation is
    not caught.

    Returns:
        One TranslationResult per unit, in chunk order
    """
    prompt = _build_translation_prompt(chunk, program_intro, glossary)
    label = f"#{chunk_index + 1}"

    attempts_used = 0
    for attempt in range(1, max_attempts + 1):
        attempts_used = attempt
        try:
            raw = await asyncio.wait_for(
                service.generate_json(prompt, system=SYSTEM_INSTRUCTION, schema=TRANSLATION_SCHEMA),
                timeout=timeout,
            )
            logger.debug(f"Chunk {label} raw response: {truncate_text(raw, 300)}")
            return _parse_translation_response(raw, chunk)

        except LLMServiceError as e:
            if not e.retryable:
                logger.error(f"Chunk {label}: non-retryable error ({e.error_type}): {e}")
                break
            logger.warning(f"Chunk {label} attempt {attempt}/{max_attempts} failed ({e.error_type}): {e}")
        except asyncio.TimeoutError:
            logger.warning(f"Chunk {label} attempt {attempt}/{max_attempts} timed out after {timeout}s")
        except SchemaError as e:
            logger.warning(f"Chunk {label} attempt {attempt}/{max_attempts} failed: {e}")
        except Exception as e:
            logger.warning(
                f"Chunk {label} attempt {attempt}/{max_attempts} failed unexpectedly: "
                f"{type(e).__name__}: {e}"
            )

        if attempt < max_attempts:
            await asyncio.sleep(attempt * retry_base_delay)

    logger.error(f"Chunk {label} failed after {attempts_used} attempt(s), keeping original text")
    return _fallback_results(chunk)


def _translating_info(
    chunk: Sequence[TranslationUnit],
    blocks_by_id: Mapping[str, SubtitleBlock],
) -> Optional[TranslatingInfo]:
    if not chunk:
        return None
    block = blocks_by_id.get(chunk[0].block_id)
    if block is None:
        return None
    return TranslatingInfo(block.id, block.timestamp)


async def run_translation(
    service: TranslationService,
    units: Sequence[TranslationUnit],
    glossary: Glossary,
    config: TranslatorConfig,
    *,
    blocks: Sequence[SubtitleBlock] = (),
    on_progress: Optional[ChunkProgressCallback] = None,
) -> List[TranslationResult]:
    """
    Translate all units through a bounded pool of concurrent workers.

    Workers pull (index, chunk) tasks from one shared queue until it is
    empty. Each chunk's results land in the slot of its index, so the
    output order is the chunk order no matter which worker finishes first.

    Args:
        service: LLM service
        units: All translation units in document order
        glossary: Terms frozen for this run
        config: Chunk size, concurrency and retry settings
        blocks: Source blocks, used for the "currently translating" info
        on_progress: Called with (percentage, current block) per finished chunk

    Returns:
        One TranslationResult per unit, in document order

    Raises:
        ConsistencyError: the flattened result count differs from the unit count
    """
    chunks = chunk_units(units, config.chunk_size)
    slots: List[Optional[List[TranslationResult]]] = [None] * len(chunks)
    frozen = glossary.copy()
    blocks_by_id = {block.id: block for block in blocks}
    progress = ChunkProgress(len(chunks), on_progress)

    queue: asyncio.Queue = asyncio.Queue()
    for task in enumerate(chunks):
        queue.put_nowait(task)

    async def worker(worker_id: int) -> None:
        while True:
            # get_nowait 是唯一的同步点：同一任务只会被一个 worker 取走
            try:
                index, chunk = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            logger.debug(f"Worker {worker_id} took chunk #{index + 1}")
            slots[index] = await translate_chunk_with_retries(
                service,
                chunk,
                index,
                program_intro=config.program_intro,
                glossary=frozen,
                max_attempts=config.max_attempts,
                retry_base_delay=config.retry_base_delay,
                timeout=config.request_timeout,
            )
            progress.mark_completed(_translating_info(chunk, blocks_by_id))
            queue.task_done()

    pool_size = min(config.concurrency, len(chunks))
    logger.info(
        f"Translating {len(units)} lines in {len(chunks)} chunks with {pool_size} workers..."
    )

    workers = [asyncio.create_task(worker(i)) for i in range(pool_size)]
    try:
        await asyncio.gather(*workers)
    except BaseException:
        for w in workers:
            w.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        raise

    results = [result for slot in slots if slot is not None for result in slot]
    if len(results) != len(units):
        raise ConsistencyError(len(units), len(results))

    failed = sum(1 for r in results if r.failed)
    if failed:
        logger.warning(f"{failed}/{len(results)} lines kept their original text")
    return results
