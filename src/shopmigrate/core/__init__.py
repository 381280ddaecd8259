"""Core engines: dump I/O, reference enrichment, destination index and resolution."""

from .dump_io import RecordAssembler, metaobject_dump_files, read_jsonl, write_jsonl
from .enricher import EnrichmentReport, ReferenceEnricher, SourceKeyMaps
from .index import DestinationIndex, DestinationIndexBuilder
from .relinker import FileIndex, FileRelinker
from .resolver import ReferenceResolver, ResolutionStats

__all__ = [
    "DestinationIndex",
    "DestinationIndexBuilder",
    "EnrichmentReport",
    "FileIndex",
    "FileRelinker",
    "RecordAssembler",
    "ReferenceEnricher",
    "ReferenceResolver",
    "ResolutionStats",
    "SourceKeyMaps",
    "metaobject_dump_files",
    "read_jsonl",
    "write_jsonl",
]
