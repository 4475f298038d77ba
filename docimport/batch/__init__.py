"""
Batch import module.
"""

from .orchestrator import ImportOrchestrator, cleanup_null_values
from .pipeline import ImportPipeline
from .readers import CsvDocumentReader, FileReader, JsonDocumentReader
from .submitter import AdaptiveBatchSubmitter

__all__ = [
    "AdaptiveBatchSubmitter",
    "ImportOrchestrator",
    "ImportPipeline",
    "cleanup_null_values",
    "CsvDocumentReader",
    "FileReader",
    "JsonDocumentReader",
]
