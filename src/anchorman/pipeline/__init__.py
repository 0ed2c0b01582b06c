"""Commit ingestion pipelines: hook-triggered ingest and historical import."""

from anchorman.pipeline.importer import CommitImporter, ImportOptions, ImportResult
from anchorman.pipeline.ingest import CommitIngestor, IngestResult

__all__ = [
    "CommitIngestor",
    "IngestResult",
    "CommitImporter",
    "ImportOptions",
    "ImportResult",
]
