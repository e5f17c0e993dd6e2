"""Command line interface for the Lingo.dev SDK."""

from __future__ import annotations

import argparse
import logging
import pathlib
import re
import sys
import time
from dataclasses import dataclass
from typing import Iterable, Optional

from .configuration import EngineConfig, build_config, get_settings
from .documents import detect_handler
from .engine import Engine
from .errors import LingoDotDevError, OverwriteRefusedError
from .providers import build_client


@dataclass
class TranslationSummary:
    """Report returned after translating a file."""

    input_path: pathlib.Path
    output_path: pathlib.Path
    document_type: str
    target_locale: str
    source_locale: str | None
    elapsed_seconds: float


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lingodotdev",
        description=(
            "Localize text, JSON objects and HTML pages with the Lingo.dev API."
        ),
    )
    parser.add_argument(
        "input_file",
        nargs="?",
        help="Path to the .html, .htm or .json file to localize.",
    )
    parser.add_argument(
        "-t",
        "--target-locale",
        help="Destination locale code (e.g. es, fr, ja).",
    )
    parser.add_argument(
        "-s",
        "--source-locale",
        help="Optional source locale code.",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Output file path. Defaults to appending the target locale code.",
    )
    parser.add_argument(
        "--text",
        help="Localize this text instead of a file and print the result.",
    )
    parser.add_argument(
        "--recognize",
        metavar="TEXT",
        help="Detect the locale of TEXT and print it.",
    )
    parser.add_argument(
        "--whoami",
        action="store_true",
        help="Print the account the API key belongs to.",
    )
    parser.add_argument(
        "--fast",
        action="store_true",
        help="Ask the service for lower-latency translation.",
    )
    parser.add_argument(
        "--concurrent",
        action="store_true",
        help="Send chunks in parallel (disables progress output).",
    )
    parser.add_argument(
        "-p",
        "--provider",
        help="Localization client identifier (default: http; 'echo' for a dry run).",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Allow overwriting the output file if it already exists.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed progress information.",
    )
    parser.add_argument(
        "--debug-client",
        action="store_true",
        help="Log complete service requests and responses for troubleshooting.",
    )
    return parser


def sanitise_locale_for_filename(locale: str) -> str:
    """Generate a filesystem-friendly suffix from a locale code."""

    collapsed = re.sub(r"\s+", "-", locale.strip())
    ascii_only = collapsed.encode("ascii", "ignore").decode("ascii")
    cleaned = re.sub(r"[^A-Za-z0-9\-]+", "", ascii_only)
    return cleaned or "localized"


def derive_output_path(input_path: pathlib.Path, locale: str) -> pathlib.Path:
    addition = sanitise_locale_for_filename(locale)
    return input_path.with_name(f"{input_path.stem}_{addition}{input_path.suffix}")


def validate_paths(
    input_path: pathlib.Path,
    output_path: pathlib.Path,
    force_overwrite: bool,
) -> None:
    """Validate input/output path combinations and overwrite policy."""

    if not input_path.exists():
        raise FileNotFoundError(
            "Input file not found. Please provide a readable .html or .json file."
        )
    if not input_path.is_file():
        raise LingoDotDevError("Input path must be a file.")

    if input_path.resolve() == output_path.resolve():
        raise OverwriteRefusedError(
            "The output path matches the input document. Refusing to overwrite the source file."
        )

    if output_path.exists() and not force_overwrite:
        raise OverwriteRefusedError(
            "The output file already exists. Rename it or use the overwrite flag."
        )


def build_engine(config: EngineConfig, provider: str | None) -> Engine:
    return Engine.from_config(config, client=build_client(provider, config))


def translate_file(
    engine: Engine,
    *,
    input_file: str,
    output_file: str | None,
    target_locale: str,
    source_locale: str | None,
    fast: bool,
    concurrent: bool,
    force_overwrite: bool,
    verbose: bool,
) -> TranslationSummary:
    """Localize one file and write the result next to it."""

    start_time = time.time()
    input_path = pathlib.Path(input_file).expanduser().resolve()
    output_path = (
        pathlib.Path(output_file).expanduser().resolve()
        if output_file
        else derive_output_path(input_path, target_locale)
    )
    validate_paths(input_path, output_path, force_overwrite=force_overwrite)
    handler = detect_handler(input_path)

    def _report(percentage: int) -> None:
        print(f"  {percentage:3d}% complete")

    content = handler.translate(
        engine,
        target_locale=target_locale,
        source_locale=source_locale,
        fast=fast,
        concurrent=concurrent,
        on_progress=_report if verbose and not concurrent else None,
    )
    output_path.parent.mkdir(parents=True, exist_ok=True)
    handler.save(output_path, content)

    return TranslationSummary(
        input_path=input_path,
        output_path=output_path,
        document_type=handler.document_type,
        target_locale=target_locale,
        source_locale=source_locale,
        elapsed_seconds=time.time() - start_time,
    )


def print_summary(summary: TranslationSummary) -> None:
    """Output a friendly report once processing completes."""

    print("\nLocalization complete.")
    print(f"  Input file:      {summary.input_path}")
    print(f"  Output file:     {summary.output_path}")
    print(f"  Document type:   {summary.document_type}")
    if summary.source_locale:
        print(f"  Source locale:   {summary.source_locale}")
    print(f"  Target locale:   {summary.target_locale}")
    print(f"  Elapsed time:    {summary.elapsed_seconds:.2f} seconds")


def _resolve_config(debug_client: bool, provider: str | None) -> EngineConfig:
    normalized = (provider or "").strip().lower()
    if normalized in {"echo", "noop", "mock"}:
        return build_config(api_key="offline", debug=debug_client)
    config = get_settings()
    if debug_client:
        config = config.model_copy(update={"debug": True})
    return config


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

    if args.input_file is None and args.text is None and not (
        args.recognize or args.whoami
    ):
        parser.error("provide an input file, --text, --recognize or --whoami")
    if (args.input_file is not None or args.text is not None) and not args.target_locale:
        parser.error("the following arguments are required: -t/--target-locale")

    try:
        config = _resolve_config(args.debug_client, args.provider)
    except LingoDotDevError as exc:
        print(exc)
        return 1

    try:
        with build_engine(config, args.provider) as engine:
            if args.whoami:
                user = engine.whoami()
                print(f"{user['email']} ({user['id']})" if user else "Not authenticated.")
                return 0 if user else 1
            if args.recognize:
                print(engine.recognize_locale(args.recognize))
                return 0
            if args.text is not None:
                print(
                    engine.localize_text(
                        args.text,
                        target_locale=args.target_locale,
                        source_locale=args.source_locale,
                        fast=args.fast,
                        concurrent=args.concurrent,
                    )
                )
                return 0
            summary = translate_file(
                engine,
                input_file=args.input_file,
                output_file=args.output,
                target_locale=args.target_locale,
                source_locale=args.source_locale,
                fast=args.fast,
                concurrent=args.concurrent,
                force_overwrite=args.force,
                verbose=args.verbose,
            )
    except FileNotFoundError as exc:
        print(exc)
        return 1
    except LingoDotDevError as exc:
        print(exc)
        return 1
    except KeyboardInterrupt:
        print("Localization interrupted by user.")
        return 2

    print_summary(summary)
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
