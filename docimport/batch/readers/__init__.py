"""
Document source readers.
"""

from .csv_reader import CsvDocumentReader
from .file_reader import FileReader
from .json_reader import DocumentReadError, JsonDocumentReader

__all__ = [
    "CsvDocumentReader",
    "DocumentReadError",
    "FileReader",
    "JsonDocumentReader",
]
