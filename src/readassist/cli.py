"""CLI entrypoint for dictionary lookups and stream correction."""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import replace
import json
import logging
from pathlib import Path
import sys
from typing import Iterator, Sequence

from readassist.cedict.sqlite_store import build_database
from readassist.config import Settings
from readassist.pipeline import build_services
from readassist.upstream import ChatCompletionsUpstream, UpstreamError

DEFAULT_CHUNK_SIZE = 4096


def _read_chunks(path: Path, chunk_size: int) -> Iterator[bytes]:
    """Yield a recorded stream from ``path`` in fixed-size byte chunks."""

    with path.open("rb") as handle:
        while True:
            chunk = handle.read(chunk_size)
            if not chunk:
                return
            yield chunk


def _write(chunk: bytes) -> None:
    sys.stdout.write(chunk.decode("utf-8"))
    sys.stdout.flush()


def build_arg_parser() -> argparse.ArgumentParser:
    """Construct CLI argument parser.

    Returns:
        Parser with ``lookup``, ``correct`` and ``import-cedict`` commands.
    """

    parser = argparse.ArgumentParser(
        description="Chinese reading assistant: dictionary lookups and pinyin correction."
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    parser.add_argument(
        "--dictionary",
        type=Path,
        default=None,
        help="CC-CEDICT .u8 file or imported .sqlite database (default: from environment).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    lookup = subparsers.add_parser("lookup", help="Look up a token and print JSON entries.")
    lookup.add_argument("token", help="Simplified or traditional token to look up.")

    correct = subparsers.add_parser(
        "correct", help="Relay a segmentation stream with corrected pinyin to stdout."
    )
    correct.add_argument("--sentence", required=True, help="Sentence being segmented.")
    correct.add_argument(
        "--input",
        type=Path,
        default=None,
        help="Recorded SSE stream to relay instead of calling the upstream service.",
    )
    correct.add_argument(
        "--chunk-size",
        type=int,
        default=DEFAULT_CHUNK_SIZE,
        help="Bytes read per chunk from --input.",
    )

    importer = subparsers.add_parser(
        "import-cedict", help="Build a SQLite dictionary database from CC-CEDICT."
    )
    importer.add_argument("--cedict", required=True, type=Path, help="Path to cedict_ts.u8.")
    importer.add_argument(
        "--output",
        type=Path,
        default=Path("data") / "cedict.sqlite",
        help="Destination SQLite path.",
    )
    return parser


def _run_lookup(settings: Settings, token: str) -> int:
    services = build_services(settings)
    result = services.dictionary.definition_lookup(token)
    if result is None:
        print(f"No entries found for '{token.strip()}'.", file=sys.stderr)
        return 1
    print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    return 0


def _run_correct(settings: Settings, args: argparse.Namespace) -> int:
    if args.chunk_size < 1:
        raise SystemExit(f"--chunk-size must be positive, got {args.chunk_size}")
    if args.input is not None and not args.input.exists():
        raise SystemExit(f"Input stream not found: {args.input}")
    if args.input is None:
        settings.validate(require_upstream=True)

    services = build_services(settings)
    if args.input is not None:
        source = _read_chunks(args.input, args.chunk_size)
        for chunk in services.pipeline.run(args.sentence, source):
            _write(chunk)
        return 0

    upstream = ChatCompletionsUpstream(
        base_url=settings.upstream_base_url,
        api_key=settings.upstream_api_key,
        model=settings.upstream_model,
        timeout=settings.upstream_timeout,
    )
    messages = [{"role": "user", "content": args.sentence}]

    async def write(chunk: bytes) -> None:
        _write(chunk)

    try:
        asyncio.run(services.pipeline.pump(args.sentence, upstream.stream(messages), write))
    except UpstreamError as exc:
        print(f"Upstream failed: {exc}", file=sys.stderr)
        return 2
    return 0


def _run_import(args: argparse.Namespace) -> int:
    if not args.cedict.exists():
        raise SystemExit(f"CC-CEDICT file not found: {args.cedict}")
    stats = build_database(args.cedict, args.output)
    print(f"Imported {stats.entries} entries into {args.output}")
    print(
        "Skipped lines: "
        f"comments={stats.comments}, empty={stats.empty}, malformed={stats.skipped} "
        f"({stats.elapsed_seconds:.2f}s)"
    )
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the selected command.

    Args:
        argv: Arguments without the program name; defaults to ``sys.argv[1:]``.

    Returns:
        Zero on success, non-zero when a lookup finds nothing or the upstream
        fails.
    """

    parser = build_arg_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "import-cedict":
        return _run_import(args)

    settings = Settings.from_env()
    if args.dictionary is not None:
        settings = replace(settings, dictionary_path=args.dictionary)
    if not settings.dictionary_path.exists():
        raise SystemExit(f"Dictionary not found: {settings.dictionary_path}")

    if args.command == "lookup":
        try:
            return _run_lookup(settings, args.token)
        except ValueError as exc:
            raise SystemExit(str(exc)) from exc
    return _run_correct(settings, args)


if __name__ == "__main__":
    raise SystemExit(main())
