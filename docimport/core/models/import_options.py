"""
Options controlling schema inference and the import flow.
"""

from pydantic import BaseModel, Field


class InferenceOptions(BaseModel):
    """
    Content sniffing switches for the type translator.

    A disabled detector still applies when the field already recorded in
    the schema carries that format, so narrowed fields stay narrowed.
    """

    detect_byte_arrays: bool = True
    detect_uuids: bool = True
    detect_times: bool = True
    detect_integers: bool = True


class ImportOptions(BaseModel):
    """
    Per-invocation import options.

    Attributes:
        auto_create: Create or evolve the collection schema when inserts are rejected
        append: Allow importing into a collection that already exists
        inference_depth: Documents examined per batch for inference (0 = whole batch)
        primary_key: Explicit primary key field names
        autogenerate: Top-level field names the store generates
        cleanup_null_values: Strip nulls and empty arrays before the final retry
        batch_size: Maximum documents per batch read from the source
        inference: Type sniffing switches
    """

    auto_create: bool = True
    append: bool = False
    inference_depth: int = Field(0, ge=0)
    primary_key: list[str] = Field(default_factory=list)
    autogenerate: list[str] = Field(default_factory=list)
    cleanup_null_values: bool = True
    batch_size: int = Field(100, gt=0)
    inference: InferenceOptions = Field(default_factory=InferenceOptions)
