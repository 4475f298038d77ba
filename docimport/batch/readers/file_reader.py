"""
Generic document reader for multiple formats (JSON, CSV).
"""

import sys
from collections.abc import Iterator, Sequence
from typing import TextIO

from .csv_reader import CsvDocumentReader
from .json_reader import JsonDocumentReader

STDIN_PATH = "-"


class FileReader:
    """
    Generic document reader supporting multiple formats.
    """

    FORMATS = ("json", "csv")

    def __init__(self, batch_size: int = 100, **csv_options):
        """
        Initialize file reader.

        Args:
            batch_size: Maximum documents per batch
            **csv_options: Options passed to CsvDocumentReader
        """
        self.batch_size = batch_size
        self.json_reader = JsonDocumentReader(batch_size)
        self.csv_reader = CsvDocumentReader(batch_size, **csv_options)

    def read_stream(self, stream: TextIO, file_format: str = "json") -> Iterator[list[str]]:
        """
        Read batches of documents from an open stream.

        Raises:
            ValueError: If file format is unsupported
        """
        file_format = file_format.lower()
        if file_format == "json":
            return self.json_reader.read(stream)
        elif file_format == "csv":
            return self.csv_reader.read(stream)
        else:
            raise ValueError(f"Unsupported file format: {file_format}")

    def read(self, file_path: str, file_format: str = "json") -> Iterator[list[str]]:
        """
        Read batches of documents from a file.

        Args:
            file_path: Path to file, or ``-`` for standard input
            file_format: Format (json, csv)

        Yields:
            Batches of raw JSON documents

        Raises:
            ValueError: If file format is unsupported
        """
        if file_format.lower() not in self.FORMATS:
            raise ValueError(f"Unsupported file format: {file_format}")

        if file_path == STDIN_PATH:
            yield from self.read_stream(sys.stdin, file_format)
            return

        with open(file_path, encoding="utf-8", newline="") as f:
            yield from self.read_stream(f, file_format)

    def read_arguments(self, documents: Sequence[str]) -> Iterator[list[str]]:
        """
        Read batches from documents given inline, each a document or an array.
        """
        return self.json_reader.read_texts(documents)
