"""
JSON document reader.

Accepts either a JSON array of documents or a stream of concatenated or
newline-delimited documents. Each document is yielded as its raw text so
numeric literals reach inference and the store unchanged.
"""

import io
import json
from collections.abc import Iterable, Iterator
from itertools import islice
from typing import TextIO, TypeVar

T = TypeVar("T")

_WHITESPACE = " \t\n\r"

CHUNK_SIZE = 64 * 1024


class DocumentReadError(ValueError):
    """Raised when the input cannot be split into documents."""
    pass


def batched(items: Iterable[T], batch_size: int) -> Iterator[list[T]]:
    """Group items into lists of at most ``batch_size``, preserving order."""
    iterator = iter(items)
    while True:
        batch = list(islice(iterator, batch_size))
        if not batch:
            return
        yield batch


def _skip_whitespace(text: str, index: int) -> int:
    while index < len(text) and text[index] in _WHITESPACE:
        index += 1
    return index


class _StreamBuffer:
    """Sliding window over a text stream, refilled chunk by chunk."""

    def __init__(self, stream: TextIO, chunk_size: int):
        self.stream = stream
        self.chunk_size = chunk_size
        self.text = ""
        self.index = 0
        self.offset = 0
        self.eof = False

    @property
    def position(self) -> int:
        """Character position in the whole stream."""
        return self.offset + self.index

    def fill(self) -> bool:
        """Append the next chunk, dropping consumed text. False at end of input."""
        if self.eof:
            return False

        chunk = self.stream.read(self.chunk_size)
        if not chunk:
            self.eof = True
            return False

        self.offset += self.index
        self.text = self.text[self.index:] + chunk
        self.index = 0
        return True

    def skip_whitespace(self) -> None:
        while True:
            self.index = _skip_whitespace(self.text, self.index)
            if self.index < len(self.text) or not self.fill():
                return

    def peek(self) -> str:
        """Next character, empty at end of input. Call after skip_whitespace."""
        return self.text[self.index:self.index + 1]

    def decode(self, decoder: json.JSONDecoder) -> str:
        """Consume one JSON value and return its raw text."""
        while True:
            try:
                _, end = decoder.raw_decode(self.text, self.index)
            except json.JSONDecodeError as e:
                if self.fill():
                    continue
                raise DocumentReadError(f"invalid JSON document at position {self.position}: {e.msg}") from e

            # A value ending at the buffer edge may continue in the next chunk
            if end == len(self.text) and self.fill():
                continue

            document = self.text[self.index:end]
            self.index = end
            return document


class JsonDocumentReader:
    """
    Splits JSON input into raw documents and groups them into batches.

    Streams are decoded incrementally, so only the current document and
    the current batch are held in memory.
    """

    def __init__(self, batch_size: int = 100, chunk_size: int = CHUNK_SIZE):
        """
        Initialize JSON reader.

        Args:
            batch_size: Maximum documents per batch
            chunk_size: Characters read from a stream at a time
        """
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.batch_size = batch_size
        self.chunk_size = chunk_size
        self._decoder = json.JSONDecoder()

    def _iter_array(self, buffer: _StreamBuffer) -> Iterator[str]:
        buffer.skip_whitespace()
        if buffer.peek() == "]":
            buffer.index += 1
            return

        while True:
            yield buffer.decode(self._decoder)

            buffer.skip_whitespace()
            separator = buffer.peek()
            if separator == ",":
                buffer.index += 1
                buffer.skip_whitespace()
            elif separator == "]":
                buffer.index += 1
                return
            else:
                raise DocumentReadError(f"expected ',' or ']' at position {buffer.position}")

    def iter_stream(self, stream: TextIO) -> Iterator[str]:
        """
        Split a JSON text stream into raw documents.

        An input whose first non-space character is ``[`` is read as an
        array of documents, anything else as a document stream.

        Raises:
            DocumentReadError: If the input is not valid JSON
        """
        buffer = _StreamBuffer(stream, self.chunk_size)
        buffer.skip_whitespace()

        if buffer.peek() == "[":
            buffer.index += 1
            yield from self._iter_array(buffer)
            buffer.skip_whitespace()
            if buffer.peek():
                raise DocumentReadError(f"unexpected data after array at position {buffer.position}")
            return

        while buffer.peek():
            yield buffer.decode(self._decoder)
            buffer.skip_whitespace()

    def iter_documents(self, text: str) -> Iterator[str]:
        """Split JSON text into raw documents, see iter_stream()."""
        return self.iter_stream(io.StringIO(text))

    def read_texts(self, texts: Iterable[str]) -> Iterator[list[str]]:
        """
        Read documents from several JSON inputs as one sequence of batches.

        Args:
            texts: JSON inputs, each an array or a document stream

        Yields:
            Batches of raw documents
        """
        documents = (doc for text in texts for doc in self.iter_documents(text))
        return batched(documents, self.batch_size)

    def read(self, stream: TextIO) -> Iterator[list[str]]:
        """
        Read batches of raw documents from a text stream.

        Args:
            stream: Open text stream

        Yields:
            Batches of raw documents
        """
        return batched(self.iter_stream(stream), self.batch_size)
