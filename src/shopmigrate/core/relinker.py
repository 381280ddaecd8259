"""
File reference relinking.

File GIDs differ between stores, and files are not indexed by handle: the
files phase uploads or matches every source file and produces a FileIndex.
FileRelinker uses it to substitute destination file ids into file-reference
entries before the resolver applies its write policies.

Unresolved files:
- single reference: the entry is left untouched (with a warning); the
  resolver then treats it as unresolved and omits or skips the write
- list reference: unresolved file entries are dropped, the same as the
  resolver does for every other list reference
"""

import json
from dataclasses import dataclass, field
from typing import Any

import structlog

from ..models.references import FileRef, dump_reference, entry_references, is_list_type

logger = structlog.get_logger(__name__)


@dataclass
class FileIndex:
    """
    Output of the files phase.

    Attributes:
        url_to_id: Source file URL -> destination file GID
        source_id_to_id: Source file GID -> destination file GID
        source_id_to_url: Source file GID -> URL usable as a media source
    """

    url_to_id: dict[str, str] = field(default_factory=dict)
    source_id_to_id: dict[str, str] = field(default_factory=dict)
    source_id_to_url: dict[str, str] = field(default_factory=dict)

    def add(self, source_id: str, source_url: str | None, dest_id: str, dest_url: str | None) -> None:
        self.source_id_to_id[source_id] = dest_id
        if source_url:
            self.url_to_id[source_url] = dest_id
        url = dest_url or source_url
        if url:
            self.source_id_to_url[source_id] = url

    def __len__(self) -> int:
        return len(self.source_id_to_id)


class FileRelinker:
    """Substitutes destination file ids into file-reference entries."""

    def __init__(self, file_index: FileIndex | None = None):
        self.file_index = file_index if file_index is not None else FileIndex()
        self.relinked = 0
        self.unresolved = 0

    def lookup(self, ref: FileRef) -> str | None:
        """Destination id of a file, by URL first and source GID second."""
        if ref.destinationId:
            return ref.destinationId
        if ref.url and ref.url in self.file_index.url_to_id:
            return self.file_index.url_to_id[ref.url]
        return self.file_index.source_id_to_id.get(ref.gid)

    def relink_entry(self, entry: dict[str, Any]) -> dict[str, Any]:
        """
        Substitute file references in one metafield or field entry.

        Returns:
            A new entry with destination ids in ``value`` and ``destinationId``
            set on relinked refs, or the original entry when it holds no
            file reference
        """
        refs = entry_references(entry)
        if not refs or not any(isinstance(ref, FileRef) for ref in refs):
            return entry

        if not is_list_type(entry.get("type")):
            return self._relink_single(entry, refs[0])
        return self._relink_list(entry, refs)

    def _relink_single(self, entry: dict[str, Any], ref: FileRef) -> dict[str, Any]:
        dest_id = self.lookup(ref)
        if dest_id is None:
            self.unresolved += 1
            logger.warning(
                "File reference not relinked, keeping original value",
                key=entry.get("key"),
                gid=ref.gid,
                url=ref.url,
            )
            return entry

        self.relinked += 1
        relinked = dict(entry)
        relinked["value"] = dest_id
        relinked["ref"] = dump_reference(ref.model_copy(update={"destinationId": dest_id}))
        return relinked

    def _relink_list(self, entry: dict[str, Any], refs: list[Any]) -> dict[str, Any]:
        values: list[str] = []
        kept: list[dict[str, Any]] = []
        for ref in refs:
            if not isinstance(ref, FileRef):
                values.append(ref.gid)
                kept.append(dump_reference(ref))
                continue
            dest_id = self.lookup(ref)
            if dest_id is None:
                self.unresolved += 1
                logger.warning(
                    "Dropping unrelinked file from list",
                    key=entry.get("key"),
                    gid=ref.gid,
                    url=ref.url,
                )
                continue
            self.relinked += 1
            values.append(dest_id)
            kept.append(dump_reference(ref.model_copy(update={"destinationId": dest_id})))

        relinked = dict(entry)
        relinked["value"] = json.dumps(values)
        relinked["refs"] = kept
        return relinked
