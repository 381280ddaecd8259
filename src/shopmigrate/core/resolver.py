"""
Reference resolution against the destination index.

The resolver turns tagged references into destination GIDs. It never raises
for a missing target: during a partial migration most unresolved references
are expected, and each write context decides what to do with them.

Write policies:
- Object attribute (metaobject field): an unresolved single reference omits
  that field; a list drops unresolved entries and is omitted when empty.
  Other fields of the record still write.
- Top-level metafield (product, collection, page, shop, ...): an unresolved
  single reference skips the whole write, as does a list that resolves to
  nothing.

Both builders return ``None`` to mean "do not write this value".
"""

import json
from dataclasses import dataclass
from typing import Any

import structlog

from ..models.references import (
    FileRef,
    UnresolvableRef,
    VariantRef,
    entry_references,
    is_list_type,
    is_reference_type,
)
from ..observability.metrics import get_global_collector
from .index import DestinationIndex
from .relinker import FileRelinker

logger = structlog.get_logger(__name__)


@dataclass
class ResolutionStats:
    """Counters across every resolve() call of one resolver."""

    resolved: int = 0
    unresolved: int = 0
    passthrough: int = 0


class ReferenceResolver:
    """
    Resolves references through an explicitly passed DestinationIndex.

    Args:
        relinker: Resolves file references; without one, file references
            only resolve when already relinked
    """

    def __init__(self, relinker: FileRelinker | None = None):
        self.relinker = relinker
        self.stats = ResolutionStats()
        self.collector = get_global_collector()

    def resolve(self, ref: Any, index: DestinationIndex) -> str | None:
        """
        Resolve one reference.

        Args:
            ref: Reference variant (ProductRef, VariantRef, ...)
            index: Destination index to resolve against

        Returns:
            Destination GID, or None when the target is not in the index
        """
        if isinstance(ref, UnresolvableRef):
            # Platform-wide ids (taxonomy values, ...) are valid as-is
            self.stats.passthrough += 1
            self.collector.count_resolution(ref.kind, "passthrough")
            return ref.gid

        if isinstance(ref, FileRef):
            dest_id = ref.destinationId or (self.relinker.lookup(ref) if self.relinker else None)
        elif isinstance(ref, VariantRef):
            dest_id = None
            for key in ref.natural_keys():
                dest_id = index.lookup(ref.kind, key)
                if dest_id:
                    break
        else:
            dest_id = index.lookup(ref.kind, ref.natural_key())

        if dest_id is None:
            self.stats.unresolved += 1
            self.collector.count_resolution(ref.kind, "unresolved")
            logger.debug(
                "Unresolved reference", kind=ref.kind, key=ref.natural_key(), gid=ref.gid
            )
            return None

        self.stats.resolved += 1
        self.collector.count_resolution(ref.kind, "resolved")
        return dest_id

    def resolve_list(self, refs: list[Any], index: DestinationIndex) -> list[str]:
        """
        Resolve a list of references, preserving order.

        Unresolved entries are omitted rather than replaced with placeholders.
        """
        resolved = []
        for ref in refs:
            dest_id = self.resolve(ref, index)
            if dest_id is not None:
                resolved.append(dest_id)
        return resolved

    def _resolve_entry(self, entry: dict[str, Any], index: DestinationIndex) -> tuple[bool, Any]:
        """
        Shared part of both write policies.

        Returns:
            (is_reference, value) where value is None when nothing usable
            resolved
        """
        if not is_reference_type(entry.get("type")):
            return False, entry.get("value")

        refs = entry_references(entry)
        if refs is None:
            logger.warning(
                "Unparsable reference value",
                key=entry.get("key"),
                type=entry.get("type"),
            )
            return True, None

        if is_list_type(entry.get("type")):
            ids = self.resolve_list(refs, index)
            return True, json.dumps(ids) if ids else None

        return True, self.resolve(refs[0], index) if refs else None

    def build_field_value(self, entry: dict[str, Any], index: DestinationIndex) -> str | None:
        """
        Value for a metaobject field, or None to omit the field.

        Non-reference fields return their value unchanged.
        """
        _, value = self._resolve_entry(entry, index)
        return value

    def build_metafield_value(self, entry: dict[str, Any], index: DestinationIndex) -> str | None:
        """
        Value for a top-level metafield write, or None to skip the write.

        Non-reference metafields return their value unchanged.
        """
        is_reference, value = self._resolve_entry(entry, index)
        if is_reference and value is None:
            logger.debug(
                "Skipping metafield with unresolved reference",
                namespace=entry.get("namespace"),
                key=entry.get("key"),
            )
        return value

    def has_unresolved(self, entry: dict[str, Any], index: DestinationIndex) -> bool:
        """
        Whether any reference in an entry is currently unresolvable.

        Does not touch the stats counters.
        """
        refs = entry_references(entry)
        if not refs:
            return False
        for ref in refs:
            if isinstance(ref, UnresolvableRef):
                continue
            if isinstance(ref, FileRef):
                if not (ref.destinationId or (self.relinker and self.relinker.lookup(ref))):
                    return True
            elif isinstance(ref, VariantRef):
                if not any(index.lookup(ref.kind, k) for k in ref.natural_keys()):
                    return True
            elif not index.lookup(ref.kind, ref.natural_key()):
                return True
        return False
