"""
CSV document reader.

The header row names the columns; dotted names build nested objects.
"""

import csv
import json
import math
import re
from collections.abc import Iterator
from typing import Any, TextIO

from docimport.observability.logger import get_logger

from .json_reader import DocumentReadError, batched

logger = get_logger(__name__)

NUMBER_PATTERN = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")

LITERALS = {"null": None, "true": True, "false": False}

# Integral floats below this magnitude are written as integers
MAX_INTEGRAL = 1e21


def convert_value(value: str) -> Any:
    """
    Convert a CSV cell to a JSON value.

    Numbers become numbers (integral ones integers), ``null``, ``true``
    and ``false`` become JSON literals, everything else stays a string.
    """
    if NUMBER_PATTERN.fullmatch(value):
        number = float(value)
        if math.isfinite(number):
            if number.is_integer() and abs(number) < MAX_INTEGRAL:
                return int(number)
            return number

    literal = value.strip()
    if literal in LITERALS:
        return LITERALS[literal]

    return value


class CsvDocumentReader:
    """
    Converts CSV rows to JSON documents and groups them into batches.
    """

    def __init__(
        self,
        batch_size: int = 100,
        delimiter: str = ",",
        comment: str | None = None,
        trim_leading_space: bool = True,
    ):
        """
        Initialize CSV reader.

        Args:
            batch_size: Maximum documents per batch
            delimiter: Field delimiter (one character)
            comment: Lines starting with this character are skipped
            trim_leading_space: Ignore spaces following a delimiter

        Raises:
            ValueError: If delimiter or comment is longer than one character
        """
        if len(delimiter) != 1:
            raise ValueError("delimiter should be one character")
        if comment is not None and len(comment) != 1:
            raise ValueError("comment should be one character")
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")

        self.batch_size = batch_size
        self.delimiter = delimiter
        self.comment = comment
        self.trim_leading_space = trim_leading_space

    def _build_document(self, names: list[list[str]], row: list[str], line: int) -> dict[str, Any]:
        document: dict[str, Any] = {}

        for path, cell in zip(names, row):
            target = document
            for part in path[:-1]:
                nested = target.get(part)
                if nested is None:
                    nested = target[part] = {}
                elif not isinstance(nested, dict):
                    raise DocumentReadError(f"line {line}: column '{'.'.join(path)}' conflicts with '{part}'")
                target = nested

            target[path[-1]] = convert_value(cell)

        return document

    def iter_documents(self, stream: TextIO) -> Iterator[str]:
        """
        Convert CSV rows to JSON documents.

        Raises:
            DocumentReadError: On rows with a wrong number of fields
        """
        lines = stream
        if self.comment is not None:
            lines = (line for line in stream if not line.startswith(self.comment))

        reader = csv.reader(lines, delimiter=self.delimiter, skipinitialspace=self.trim_leading_space)

        header = next(reader, None)
        if header is None:
            return

        names = [column.split(".") for column in header]
        logger.debug(f"CSV columns: {header}")

        for row in reader:
            if not row:
                continue
            if len(row) != len(names):
                raise DocumentReadError(
                    f"line {reader.line_num}: expected {len(names)} fields, got {len(row)}"
                )

            yield json.dumps(self._build_document(names, row, reader.line_num))

    def read(self, stream: TextIO) -> Iterator[list[str]]:
        """
        Read batches of JSON documents from a CSV stream.

        Args:
            stream: Open text stream

        Yields:
            Batches of raw documents
        """
        return batched(self.iter_documents(stream), self.batch_size)
