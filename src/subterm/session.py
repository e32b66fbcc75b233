"""Phase state machine for one translation session."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple, Union

from .analysis import extract_terms
from .assembler import reassemble
from .config import TranslatorConfig
from .errors import InvalidTransitionError, MalformedInputError
from .glossary import Glossary
from .llm_client import TranslationService, create_service
from .models import SubtitleBlock, TranslatingInfo
from .parser import flatten_units, parse_blocks
from .translator import run_translation

logger = logging.getLogger(__name__)

Blocks = Tuple[SubtitleBlock, ...]


# ---------------------------------------------------------------------------
# States
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CollectingContext:
    program_intro: str = ""
    glossary: Glossary = field(default_factory=Glossary)
    error: str = ""


@dataclass(frozen=True)
class AwaitingUpload:
    program_intro: str
    glossary: Glossary
    established: Glossary
    error: str = ""


@dataclass(frozen=True)
class Analyzing:
    program_intro: str
    glossary: Glossary
    established: Glossary
    file_name: str
    subtitles: str
    blocks: Blocks
    progress: int = 0


@dataclass(frozen=True)
class Reviewing:
    program_intro: str
    glossary: Glossary
    established: Glossary
    file_name: str
    subtitles: str
    blocks: Blocks
    error: str = ""


@dataclass(frozen=True)
class Translating:
    program_intro: str
    glossary: Glossary
    established: Glossary
    file_name: str
    subtitles: str
    blocks: Blocks
    progress: int = 0
    current: Optional[TranslatingInfo] = None


@dataclass(frozen=True)
class Done:
    program_intro: str
    glossary: Glossary
    established: Glossary
    file_name: str
    blocks: Blocks
    output: str


SessionState = Union[CollectingContext, AwaitingUpload, Analyzing, Reviewing, Translating, Done]


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ContextSubmitted:
    program_intro: str


@dataclass(frozen=True)
class FileUploaded:
    content: str
    file_name: str = ""


@dataclass(frozen=True)
class AnalysisProgressed:
    percentage: int


@dataclass(frozen=True)
class AnalysisSucceeded:
    glossary: Glossary


@dataclass(frozen=True)
class AnalysisFailed:
    message: str


@dataclass(frozen=True)
class GlossaryEdited:
    glossary: Glossary


@dataclass(frozen=True)
class TranslationStarted:
    pass


@dataclass(frozen=True)
class TranslationProgressed:
    percentage: int
    current: Optional[TranslatingInfo] = None


@dataclass(frozen=True)
class TranslationSucceeded:
    output: str


@dataclass(frozen=True)
class TranslationFailed:
    message: str


@dataclass(frozen=True)
class Reset:
    pass


Event = Union[
    ContextSubmitted, FileUploaded, AnalysisProgressed, AnalysisSucceeded, AnalysisFailed,
    GlossaryEdited, TranslationStarted, TranslationProgressed, TranslationSucceeded,
    TranslationFailed, Reset,
]


def transition(state: SessionState, event: Event) -> SessionState:
    """
    Compute the next state. Pure: neither argument is modified.

    Raises:
        InvalidTransitionError: the event is not allowed in this state
    """
    if isinstance(event, Reset):
        return CollectingContext()

    if isinstance(state, CollectingContext) and isinstance(event, ContextSubmitted):
        if not event.program_intro.strip():
            return dataclasses.replace(state, error="Please provide a program intro first")
        return AwaitingUpload(
            program_intro=event.program_intro.strip(),
            glossary=state.glossary,
            established=state.glossary.copy(),
        )

    if isinstance(state, AwaitingUpload) and isinstance(event, FileUploaded):
        try:
            blocks = tuple(parse_blocks(event.content))
        except MalformedInputError as e:
            return dataclasses.replace(state, error=f"Invalid subtitle file: {e}")
        return Analyzing(
            program_intro=state.program_intro,
            glossary=state.glossary,
            established=state.established,
            file_name=event.file_name,
            subtitles=event.content,
            blocks=blocks,
        )

    if isinstance(state, Analyzing):
        if isinstance(event, AnalysisProgressed):
            return dataclasses.replace(state, progress=event.percentage)
        if isinstance(event, AnalysisSucceeded):
            return Reviewing(
                program_intro=state.program_intro,
                glossary=event.glossary,
                established=state.established,
                file_name=state.file_name,
                subtitles=state.subtitles,
                blocks=state.blocks,
            )
        if isinstance(event, AnalysisFailed):
            return AwaitingUpload(
                program_intro=state.program_intro,
                glossary=state.glossary,
                established=state.established,
                error=f"Term analysis failed: {event.message}",
            )

    if isinstance(state, Reviewing):
        if isinstance(event, GlossaryEdited):
            return dataclasses.replace(state, glossary=event.glossary, error="")
        if isinstance(event, TranslationStarted):
            return Translating(
                program_intro=state.program_intro,
                glossary=state.glossary,
                established=state.glossary.copy(),
                file_name=state.file_name,
                subtitles=state.subtitles,
                blocks=state.blocks,
            )

    if isinstance(state, Translating):
        if isinstance(event, TranslationProgressed):
            return dataclasses.replace(state, progress=event.percentage, current=event.current)
        if isinstance(event, TranslationSucceeded):
            return Done(
                program_intro=state.program_intro,
                glossary=state.glossary,
                established=state.established,
                file_name=state.file_name,
                blocks=state.blocks,
                output=event.output,
            )
        if isinstance(event, TranslationFailed):
            return Reviewing(
                program_intro=state.program_intro,
                glossary=state.glossary,
                established=state.established,
                file_name=state.file_name,
                subtitles=state.subtitles,
                blocks=state.blocks,
                error=f"Translation failed: {event.message}",
            )

    raise InvalidTransitionError(
        f"{type(event).__name__} is not allowed in state {type(state).__name__}"
    )


class TranslationSession:
    """
    Drives the phases of one session and applies state transitions.

    The listener (if any) is called with every new state; it is the only
    link to a presentation layer.
    """

    def __init__(
        self,
        config: TranslatorConfig,
        service: Optional[TranslationService] = None,
        *,
        glossary: Optional[Glossary] = None,
        listener: Optional[Callable[[SessionState], None]] = None,
    ):
        self.config = config
        self._service = service
        self._listener = listener
        self.state: SessionState = CollectingContext(glossary=glossary or Glossary())

    def dispatch(self, event: Event) -> SessionState:
        self.state = transition(self.state, event)
        if self._listener:
            self._listener(self.state)
        return self.state

    def _require_service(self) -> TranslationService:
        if self._service is None:
            self._service = create_service(self.config)
        return self._service

    def submit_context(self, program_intro: str) -> SessionState:
        state = self.dispatch(ContextSubmitted(program_intro))
        if isinstance(state, CollectingContext):
            raise MalformedInputError(state.error)
        return state

    async def upload(self, content: str, file_name: str = "", analyze: bool = True) -> Glossary:
        """
        Segment the file and run the term analysis pass.

        With ``analyze=False`` the current glossary goes to review unchanged
        and no request is made.
        """
        state = self.dispatch(FileUploaded(content, file_name))
        if not isinstance(state, Analyzing):
            raise MalformedInputError(getattr(state, "error", "") or "Invalid subtitle file")

        logger.info(f"Uploaded {file_name or 'subtitles'}: {len(state.blocks)} blocks")
        if not analyze:
            self.dispatch(AnalysisSucceeded(state.glossary))
            return state.glossary

        try:
            service = self._require_service()
            merged = await extract_terms(
                service,
                state.subtitles,
                program_intro=state.program_intro,
                established=state.established,
                current=state.glossary,
                on_progress=lambda pct: self.dispatch(AnalysisProgressed(pct)),
                tick_interval=self.config.analysis_tick_interval,
            )
        except BaseException as e:
            # 取消也要回滚到上一个稳定阶段
            logger.error(f"Term analysis failed: {e!r}")
            self.dispatch(AnalysisFailed(str(e) or type(e).__name__))
            raise

        self.dispatch(AnalysisSucceeded(merged))
        return merged

    def edit_glossary(self, glossary: Glossary) -> SessionState:
        return self.dispatch(GlossaryEdited(glossary))

    async def translate(self) -> str:
        """Translate with the reviewed glossary; returns the SRT output."""
        state = self.dispatch(TranslationStarted())

        units = flatten_units(state.blocks)
        run_config = dataclasses.replace(self.config, program_intro=state.program_intro)
        try:
            service = self._require_service()
            results = await run_translation(
                service,
                units,
                state.established,
                run_config,
                blocks=state.blocks,
                on_progress=lambda pct, info: self.dispatch(TranslationProgressed(pct, info)),
            )
            output = reassemble(state.blocks, results)
        except BaseException as e:
            # 取消也要回滚到上一个稳定阶段
            logger.error(f"Translation failed: {e!r}")
            self.dispatch(TranslationFailed(str(e) or type(e).__name__))
            raise

        self.dispatch(TranslationSucceeded(output))
        return output

    def reset(self) -> SessionState:
        return self.dispatch(Reset())
