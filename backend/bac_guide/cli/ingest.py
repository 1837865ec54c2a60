"""Batch ingestion CLI: load the guide documents into the knowledge store.

Usage::

    python -m bac_guide.cli.ingest                       # every file of DOCUMENTS_DIR
    python -m bac_guide.cli.ingest --dir ./pdfs
    python -m bac_guide.cli.ingest --file ./pdfs/scores_2024.pdf --type score

Uses the same service container as the API, so the embedding model and
dimension always match what the query path expects.
"""

import argparse
import asyncio
import json
import logging
import sys

from bac_guide.config import get_settings
from bac_guide.domain.entities import BatchSummary, ResourceType
from bac_guide.infrastructure.database.session import init_schema
from bac_guide.infrastructure.dependencies import ServiceContainer, build_container
from bac_guide.infrastructure.logging.log_config import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bac-guide-ingest",
        description="Extract, chunk, embed and store the guide documents.",
    )
    target = parser.add_mutually_exclusive_group()
    target.add_argument(
        "--dir",
        dest="directory",
        help="Directory to ingest (default: DOCUMENTS_DIR setting).",
    )
    target.add_argument(
        "--file",
        dest="file_path",
        help="Ingest a single document instead of a directory.",
    )
    parser.add_argument(
        "--type",
        dest="resource_type",
        choices=[t.value for t in ResourceType],
        help="Resource type for --file (default: guessed from the filename).",
    )
    return parser


async def _run(args: argparse.Namespace, container: ServiceContainer) -> tuple[BatchSummary, int]:
    await init_schema(container.engine)
    ingestor = container.document_ingestor

    if args.file_path:
        declared = ResourceType(args.resource_type) if args.resource_type else None
        result = await ingestor.ingest(args.file_path, declared)
        summary = BatchSummary()
        summary.add(result)
        if not result.success:
            print(f"{result.filename}: {result.failure_reason}", file=sys.stderr)
        return summary, 0 if result.success else 1

    directory = args.directory or container.settings.documents_dir
    summary = await ingestor.ingest_directory(directory)
    for result in summary.results:
        if not result.success:
            print(f"{result.filename}: {result.failure_reason}", file=sys.stderr)
    return summary, 0


async def _main_async(args: argparse.Namespace) -> int:
    container = build_container(get_settings())
    try:
        summary, exit_code = await _run(args, container)
    finally:
        await container.close()

    print(json.dumps(summary.as_dict(), indent=2))
    return exit_code


def main(argv: list[str] | None = None) -> int:
    """Console-script entry point; returns the process exit code."""
    args = build_parser().parse_args(argv)
    if args.resource_type and not args.file_path:
        build_parser().error("--type only applies to --file")

    setup_logging()
    return asyncio.run(_main_async(args))


if __name__ == "__main__":
    sys.exit(main())
