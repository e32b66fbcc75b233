"""Command-line interface for subterm."""

from __future__ import annotations

import asyncio
import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from .ass import convert_srt_to_ass
from .config import TranslatorConfig, GLOSSARY_SUFFIX
from .errors import TranslatorError
from .glossary import Glossary, load_glossary, save_glossary
from .parser import read_srt, save_text, validate_srt_file
from .session import Analyzing, SessionState, TranslationSession, Translating
from .text_utils import FAILED_MARKER, is_failed

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S"
    )


def parse_arguments(argv: Optional[list] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="LLM subtitle translator with episode-wide terminology consistency",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s ep01.srt --intro "Medical drama, Kim Minseong (Minseong) is a surgeon"
  %(prog)s ep01.srt out.srt --intro-file intro.txt -g terms.txt
  %(prog)s ep01.srt --intro-file intro.txt --review      # edit terms before translating
  %(prog)s ep01.srt --intro-file intro.txt --analyze-only
        """
    )

    # Positional arguments
    parser.add_argument("input_path", help="Input SRT file path")
    parser.add_argument("output_path", nargs='?', default=None, help="Output SRT file path")

    # Program context
    intro = parser.add_mutually_exclusive_group()
    intro.add_argument("--intro", dest="program_intro", help="Program intro text")
    intro.add_argument("--intro-file", dest="intro_file", help="File containing the program intro")

    # Glossary
    parser.add_argument("-g", "--glossary", dest="glossary_path", help="Glossary file path")
    parser.add_argument("--glossary-out", dest="glossary_out", help="Where to write the reviewed glossary")
    parser.add_argument("--review", action="store_true", help="Pause after term analysis to edit the glossary")
    phase = parser.add_mutually_exclusive_group()
    phase.add_argument("--analyze-only", action="store_true", help="Only run term analysis and save the glossary")
    phase.add_argument("--skip-analysis", action="store_true", help="Translate with the -g glossary only")

    # Output
    parser.add_argument("--ass", action="store_true", help="Also write an .ass file")

    # API options
    parser.add_argument("--api-key", help="API key (or set SUBTERM_API_KEY)")
    parser.add_argument("--base-url", default=None)
    parser.add_argument("--model", dest="model_name", default=None)
    parser.add_argument("--analysis-model", dest="analysis_model_name", default=None)

    # Performance
    parser.add_argument("--concurrency", type=int, default=3, help="Max concurrent requests")
    parser.add_argument("--chunk-size", dest="chunk_size", type=int, default=100)
    parser.add_argument("--max-attempts", dest="max_attempts", type=int, default=3)
    parser.add_argument("--timeout", type=float, default=120.0, help="Per-request timeout in seconds")

    # Misc
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")

    return parser.parse_args(argv)


class ProgressRenderer:
    """Renders session progress with tqdm bars."""

    def __init__(self):
        self._bar: Optional[tqdm] = None
        self._phase: Optional[type] = None

    def __call__(self, state: SessionState) -> None:
        if isinstance(state, (Analyzing, Translating)):
            if self._phase is not type(state):
                self.close()
                desc = "Analyzing terms" if isinstance(state, Analyzing) else "Translating"
                self._bar = tqdm(total=100, desc=desc, unit="%")
                self._phase = type(state)
            self._bar.n = state.progress
            if isinstance(state, Translating) and state.current:
                self._bar.set_postfix_str(f"#{state.current.block_id} {state.current.timestamp}", refresh=False)
            self._bar.refresh()
        else:
            self.close()

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
        self._bar = None
        self._phase = None


def _read_intro(args: argparse.Namespace) -> str:
    if args.intro_file:
        return Path(args.intro_file).expanduser().read_text(encoding="utf-8").strip()
    return (args.program_intro or "").strip()


async def main_async(args: argparse.Namespace) -> int:
    """Main async workflow."""
    config = TranslatorConfig.from_args(args)

    # 验证配置
    error = config.validate()
    if error:
        logger.error(error)
        return 1

    # 验证输入文件
    in_path = Path(args.input_path).expanduser().resolve()
    error = validate_srt_file(in_path)
    if error:
        logger.error(error)
        return 1

    logger.info(f"Reading: {in_path}")
    content = read_srt(in_path)

    # 加载术语表
    seed = Glossary()
    if args.glossary_path:
        seed = load_glossary(Path(args.glossary_path).expanduser().resolve())

    glossary_out = (
        Path(args.glossary_out) if args.glossary_out
        else in_path.with_name(in_path.stem + GLOSSARY_SUFFIX)
    )

    renderer = ProgressRenderer()
    session = TranslationSession(config, glossary=seed, listener=renderer)

    try:
        session.submit_context(_read_intro(args))
        glossary = await session.upload(content, in_path.name, analyze=not args.skip_analysis)

        save_glossary(glossary, glossary_out)
        if args.analyze_only:
            logger.info(f"Glossary written to {glossary_out}")
            return 0

        if args.review:
            await asyncio.to_thread(
                input, f"Edit {glossary_out} if needed, then press Enter to translate..."
            )
            session.edit_glossary(load_glossary(glossary_out))

        output = await session.translate()
    finally:
        renderer.close()

    out_path = (
        Path(args.output_path) if args.output_path
        else in_path.with_name(in_path.stem + config.output_suffix)
    )
    save_text(output, out_path)

    failed = sum(1 for line in output.splitlines() if is_failed(line))
    if failed:
        logger.warning(f"{failed} lines were not translated; search the output for {FAILED_MARKER}")

    if args.ass:
        save_text(convert_srt_to_ass(output), out_path.with_suffix(".ass"))

    logger.info(f"Done! Saved to {out_path}")
    return 0


def main() -> None:
    """CLI entry point."""
    args = parse_arguments()
    setup_logging(args.verbose)

    try:
        exit_code = asyncio.run(main_async(args))
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
        sys.exit(130)
    except TranslatorError as e:
        logging.error(str(e))
        sys.exit(1)
    except Exception as e:
        logging.error(f"Fatal error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


def ass_main(argv: Optional[list] = None) -> None:
    """Standalone SRT to ASS converter entry point."""
    parser = argparse.ArgumentParser(description="Convert an SRT file to ASS")
    parser.add_argument("input_path", help="Input SRT file path")
    parser.add_argument("output_path", nargs='?', default=None, help="Output ASS file path")
    args = parser.parse_args(argv)
    setup_logging()

    in_path = Path(args.input_path).expanduser().resolve()
    error = validate_srt_file(in_path)
    if error:
        logging.error(error)
        sys.exit(1)

    try:
        ass_text = convert_srt_to_ass(read_srt(in_path))
    except TranslatorError as e:
        logging.error(f"Conversion failed: {e}")
        sys.exit(1)

    out_path = Path(args.output_path) if args.output_path else in_path.with_suffix(".ass")
    save_text(ass_text, out_path)


if __name__ == "__main__":
    main()
