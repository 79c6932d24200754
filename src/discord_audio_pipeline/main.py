#!/usr/bin/env python3
"""Command-line entry point: resolve a query or stream its decoded audio."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from contextlib import ExitStack
from typing import IO

from discord_audio_pipeline.domain.shared.exceptions import PipelineError, ResolutionError
from discord_audio_pipeline.domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_PIPELINE_FAILED = 1
EXIT_RESOLUTION_FAILED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="discord-audio-pipeline",
        description="Resolve media links or search queries and stream them as raw PCM.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s resolve "never gonna give you up"
  %(prog)s stream https://youtu.be/dQw4w9WgXcQ -o song.pcm
  %(prog)s stream "lofi beats" | ffplay -f s16le -ar 48000 -ac 2 -
        """,
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="override LOG_LEVEL from the environment",
    )

    subparsers = parser.add_subparsers(dest="action", required=True)

    resolve = subparsers.add_parser("resolve", help="print title, link and duration")
    resolve.add_argument("query", help="media link or free-text search query")

    stream = subparsers.add_parser("stream", help="write s16le 48 kHz stereo PCM")
    stream.add_argument("query", help="media link or free-text search query")
    stream.add_argument(
        "--output",
        "-o",
        default=None,
        help="output file (default: stdout)",
    )

    return parser


async def run_resolve(container, query: str, out: IO[str]) -> int:
    try:
        track = await container.metadata_resolver.resolve(query)
    except ResolutionError as e:
        logger.error(LogTemplates.CLI_FATAL_ERROR, e)
        return EXIT_RESOLUTION_FAILED

    print(track.title, file=out)
    print(track.url, file=out)
    print(track.duration_formatted, file=out)
    return EXIT_OK


async def run_stream(container, query: str, sink: IO[bytes], sink_name: str = "stdout") -> int:
    try:
        track = await container.metadata_resolver.resolve(query)
    except ResolutionError as e:
        logger.error(LogTemplates.CLI_FATAL_ERROR, e)
        return EXIT_RESOLUTION_FAILED

    try:
        pipeline = await track.start()
    except PipelineError as e:
        logger.error(LogTemplates.CLI_FATAL_ERROR, e)
        return EXIT_PIPELINE_FAILED

    logger.info(LogTemplates.CLI_STREAMING, track.title, sink_name)
    try:
        async for chunk in pipeline.output:
            sink.write(chunk)
        sink.flush()
        outcome = await pipeline.wait()
    finally:
        await track.stop()

    if outcome.failed:
        logger.error(LogTemplates.CLI_FATAL_ERROR, outcome.reason)
        return EXIT_PIPELINE_FAILED

    logger.info(LogTemplates.CLI_STREAM_FINISHED, track.title, pipeline.output.bytes_read)
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    from discord_audio_pipeline.config.container import create_container
    from discord_audio_pipeline.config.settings import get_settings
    from discord_audio_pipeline.utils.logging import setup_logging

    settings = get_settings()
    setup_logging(args.log_level or settings.log_level)
    container = create_container(settings)

    try:
        if args.action == "resolve":
            return asyncio.run(run_resolve(container, args.query, sys.stdout))

        with ExitStack() as stack:
            if args.output:
                sink = stack.enter_context(open(args.output, "wb"))
                return asyncio.run(run_stream(container, args.query, sink, args.output))
            return asyncio.run(run_stream(container, args.query, sys.stdout.buffer))
    except KeyboardInterrupt:
        logger.info(LogTemplates.CLI_INTERRUPTED)
        return EXIT_OK
    except BrokenPipeError:
        # Downstream reader (e.g. a player) went away
        return EXIT_OK
    except Exception as e:
        logger.exception(LogTemplates.CLI_FATAL_ERROR, e)
        return EXIT_PIPELINE_FAILED


def cli() -> None:
    """Console script entry point (used by pyproject.toml [project.scripts])."""
    sys.exit(main())


if __name__ == "__main__":
    cli()  # pragma: no cover
