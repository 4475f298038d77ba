"""
docimport - schema-inferring, failure-tolerant bulk import of JSON documents.
"""

__version__ = "0.1.0"
