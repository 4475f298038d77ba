"""
Command-line interface for importing documents.

Usage:
    python -m docimport.cli.import_cli import <collection> [documents...|-] [options]
"""

import argparse
import sys

from docimport.batch.pipeline import ImportPipeline
from docimport.batch.readers import FileReader
from docimport.config import Settings, load_settings
from docimport.core.errors import ProcessedCountMismatchError
from docimport.core.models import ImportOptions, InferenceOptions
from docimport.observability.logger import configure_logging, get_logger
from docimport.observability.metrics import write_metrics_file
from docimport.store.base import CollectionStore
from docimport.store.connection import DatabaseConnectionPool
from docimport.store.memory import InMemoryCollectionStore
from docimport.store.postgres import PostgresCollectionStore

logger = get_logger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_INTERNAL_ERROR = 2


def split_names(values: list[str] | None) -> list[str]:
    """Flatten repeated, comma separated name options."""
    names = []
    for value in values or ():
        names.extend(name.strip() for name in value.split(",") if name.strip())
    return names


def build_options(args) -> ImportOptions:
    """
    Build import options from parsed arguments.

    Args:
        args: Command-line arguments

    Returns:
        ImportOptions
    """
    return ImportOptions(
        auto_create=not args.no_create_collection,
        append=args.append,
        inference_depth=args.inference_depth,
        primary_key=split_names(args.primary_key),
        autogenerate=split_names(args.autogenerate),
        cleanup_null_values=args.cleanup_null_values,
        batch_size=args.batch_size,
        inference=InferenceOptions(
            detect_byte_arrays=not args.no_detect_byte_arrays,
            detect_uuids=not args.no_detect_uuids,
            detect_times=not args.no_detect_times,
            detect_integers=not args.no_detect_integers,
        ),
    )


def create_store(settings: Settings) -> CollectionStore:
    """
    Create the collection store selected by the settings.

    Args:
        settings: Importer settings

    Returns:
        Ready to use collection store
    """
    if settings.store == "memory":
        logger.info("Using in-memory collection store (documents are not persisted)")
        return InMemoryCollectionStore(settings.max_document_size, settings.max_transaction_size)

    db = settings.database
    logger.info("Initializing database connection...", extra={"host": db.host, "port": db.port})
    pool = DatabaseConnectionPool(
        host=db.host,
        port=db.port,
        database=db.name,
        user=db.user,
        password=db.password,
        min_size=db.min_pool_size,
        max_size=db.max_pool_size,
        timeout=settings.timeout_seconds,
    )
    pool.open()

    store = PostgresCollectionStore(pool, settings.max_document_size, settings.max_transaction_size)
    try:
        store.initialize()
    except Exception:
        store.close()
        raise

    return store


def read_batches(args, reader: FileReader):
    """
    Select the document source given on the command line.

    Documents come from ``--file``, from inline arguments, or from
    standard input when no documents or ``-`` are given.
    """
    if args.file:
        return reader.read(args.file, file_format=args.format)

    if args.documents and args.documents != ["-"]:
        if args.format != "json":
            raise ValueError("inline documents must be JSON, use --file for CSV input")
        return reader.read_arguments(args.documents)

    return reader.read("-", file_format=args.format)


def import_command(args) -> int:
    """
    Execute import command.

    Args:
        args: Command-line arguments

    Returns:
        Process exit code
    """
    try:
        settings = load_settings(args.config)
    except (OSError, ValueError) as e:
        print(f"docimport: invalid configuration: {e}", file=sys.stderr)
        return EXIT_FAILURE

    if args.store:
        settings.store = args.store
    if args.metrics_file:
        settings.metrics_file = args.metrics_file

    configure_logging(args.log_level or settings.log_level, settings.log_format)

    if not args.file and not args.documents and sys.stdin.isatty():
        print("docimport: not enough arguments, pass documents, --file or '-'", file=sys.stderr)
        return EXIT_FAILURE

    try:
        options = build_options(args)
        reader = FileReader(
            batch_size=options.batch_size,
            delimiter=args.csv_delimiter,
            comment=args.csv_comment,
            trim_leading_space=args.csv_trim_leading_space,
        )
        batches = read_batches(args, reader)

        with create_store(settings) as store:
            pipeline = ImportPipeline(store, options)
            result = pipeline.run(args.collection, batches)

        logger.info("=" * 60)
        logger.info("IMPORT COMPLETE")
        logger.info("=" * 60)
        logger.info(f"Collection: {result['collection']}")
        logger.info(f"Documents imported: {result['total_documents']}")
        logger.info(f"Batches: {result['batches']} (splits: {result['batch_splits']})")
        logger.info(f"Schema updates: {result['schema_updates']}")
        logger.info(f"Null value cleanups: {result['null_cleanups']}")
        logger.info("=" * 60)

    except ProcessedCountMismatchError as e:
        logger.critical(f"Internal error: {e}", exc_info=True)
        return EXIT_INTERNAL_ERROR
    except Exception as e:
        logger.error(f"Error during import: {e}", exc_info=True)
        return EXIT_FAILURE
    finally:
        if settings.metrics_file:
            write_metrics_file(settings.metrics_file)

    return EXIT_SUCCESS


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="docimport",
        description="Import JSON or CSV documents into a collection, inferring its schema",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Import documents given inline
  docimport import users --primary-key=id \\
      '[{"id": 20, "name": "Jania McGrory"}, {"id": 21, "name": "Bunny Instone"}]'

  # Import a newline delimited stream from standard input
  cat users.jsonl | docimport import users -

  # Append CSV rows to an existing collection in PostgreSQL
  docimport import users --file users.csv --format csv --append --store postgres
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    import_parser = subparsers.add_parser("import", help="Import documents into a collection")
    import_parser.add_argument("collection", help="Collection name")
    import_parser.add_argument(
        "documents",
        nargs="*",
        help="Documents or arrays of documents, '-' reads standard input"
    )
    import_parser.add_argument(
        "--file",
        help="Read documents from a file ('-' for standard input)"
    )
    import_parser.add_argument(
        "--format",
        default="json",
        choices=list(FileReader.FORMATS),
        help="Input format (default: json)"
    )
    import_parser.add_argument(
        "-b", "--batch-size",
        type=int,
        default=100,
        help="Documents per batch (default: 100)"
    )
    import_parser.add_argument(
        "-a", "--append",
        action="store_true",
        help="Force append to existing collection"
    )
    import_parser.add_argument(
        "--no-create-collection",
        action="store_true",
        help="Do not create or evolve the collection schema automatically"
    )
    import_parser.add_argument(
        "-d", "--inference-depth",
        type=int,
        default=0,
        help="Documents examined per batch to detect field types (default: batch size)"
    )
    import_parser.add_argument(
        "--primary-key",
        action="append",
        help="Comma separated primary key field names (top level only)"
    )
    import_parser.add_argument(
        "--autogenerate",
        action="append",
        help="Comma separated auto-generated field names (top level only)"
    )
    import_parser.add_argument(
        "--cleanup-null-values",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Remove null values and empty arrays before the last insert attempt"
    )

    # Type detection
    import_parser.add_argument("--no-detect-byte-arrays", action="store_true", help="Do not detect base64 strings")
    import_parser.add_argument("--no-detect-uuids", action="store_true", help="Do not detect UUID strings")
    import_parser.add_argument("--no-detect-times", action="store_true", help="Do not detect date-time strings")
    import_parser.add_argument("--no-detect-integers", action="store_true", help="Classify all numbers as number")

    # CSV options
    import_parser.add_argument("--csv-delimiter", default=",", help="CSV delimiter (default: ',')")
    import_parser.add_argument("--csv-comment", default=None, help="CSV comment character")
    import_parser.add_argument(
        "--csv-trim-leading-space",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Trim leading space in CSV fields"
    )

    # Runtime
    import_parser.add_argument("--config", help="Path to settings YAML file")
    import_parser.add_argument(
        "--store",
        choices=["memory", "postgres"],
        help="Collection store backend (overrides settings)"
    )
    import_parser.add_argument("--metrics-file", help="Write Prometheus metrics to this file after the import")
    import_parser.add_argument("--log-level", help="Log level (overrides settings)")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_FAILURE

    if args.batch_size <= 0:
        parser.error("--batch-size must be positive")
    if args.inference_depth < 0:
        parser.error("--inference-depth must not be negative")

    return import_command(args)


if __name__ == "__main__":
    sys.exit(main())
