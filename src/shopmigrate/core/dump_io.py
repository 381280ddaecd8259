"""
Dump file I/O.

Dumps are JSON Lines files, one per entity kind. Raw bulk-export output is
flat: nested connections arrive as separate lines tagged with ``__parentId``.
RecordAssembler rebuilds the hierarchy so the rest of the pipeline only ever
sees nested records.
"""

import json
import os
import tempfile
from collections import defaultdict
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog

from ..constants import METAOBJECT_FILE_PATTERN, PARENT_CHILD_LISTS
from ..models.references import gid_type
from ..utils.exceptions import DumpError

logger = structlog.get_logger(__name__)

PARENT_ID_FIELD = "__parentId"
DEFAULT_CHILD_LIST = "children"


class RecordAssembler:
    """
    Reassembles a flat, parent-tagged export stream into nested records.

    Children may arrive before their parent. They are buffered by parent id
    and attached when the parent shows up. Children whose parent never
    appears are reported by orphans().

    Example:
        >>> assembler = RecordAssembler()
        >>> for line in lines:
        ...     assembler.add(line)
        >>> products = assembler.roots()
    """

    def __init__(self) -> None:
        self._nodes: dict[str, dict[str, Any]] = {}
        self._roots: list[dict[str, Any]] = []
        self._pending: dict[str, list[dict[str, Any]]] = defaultdict(list)

    def add(self, record: dict[str, Any]) -> None:
        parent_id = record.pop(PARENT_ID_FIELD, None)
        node_id = record.get("id")

        if isinstance(node_id, str):
            self._nodes[node_id] = record
            for child in self._pending.pop(node_id, []):
                self._attach(record, child)

        if parent_id is None:
            self._roots.append(record)
        elif parent_id in self._nodes:
            self._attach(self._nodes[parent_id], record)
        else:
            self._pending[parent_id].append(record)

    @staticmethod
    def _attach(parent: dict[str, Any], child: dict[str, Any]) -> None:
        list_name = PARENT_CHILD_LISTS.get(gid_type(child.get("id")), DEFAULT_CHILD_LIST)
        children = parent.get(list_name)
        if not isinstance(children, list):
            children = []
            parent[list_name] = children
        children.append(child)

    def roots(self) -> list[dict[str, Any]]:
        return self._roots

    def orphans(self) -> dict[str, list[dict[str, Any]]]:
        """Children whose parent id was never seen, keyed by that parent id."""
        return dict(self._pending)


def read_jsonl(path: Path) -> list[dict[str, Any]]:
    """
    Read a dump file.

    Blank lines are skipped. When any line carries ``__parentId`` the stream
    is reassembled into nested records.

    Args:
        path: JSONL file

    Returns:
        Decoded records in file order

    Raises:
        DumpError: File unreadable, or a line is not a JSON object
    """
    records: list[dict[str, Any]] = []
    flat = False

    try:
        with open(path, "rb") as f:
            for line_number, raw in enumerate(f, start=1):
                try:
                    line = raw.decode("utf-8").strip()
                except UnicodeDecodeError as e:
                    raise DumpError(
                        str(path), f"invalid UTF-8 at byte {e.start}", line_number
                    ) from e
                if not line:
                    continue
                try:
                    record = json.loads(line)
                except json.JSONDecodeError as e:
                    raise DumpError(str(path), f"invalid JSON: {e.msg}", line_number) from e
                if not isinstance(record, dict):
                    raise DumpError(
                        str(path),
                        f"expected a JSON object, got {type(record).__name__}",
                        line_number,
                    )
                if PARENT_ID_FIELD in record:
                    flat = True
                records.append(record)
    except OSError as e:
        raise DumpError(str(path), f"cannot read file: {e}") from e

    if not flat:
        return records

    assembler = RecordAssembler()
    for record in records:
        assembler.add(record)
    orphans = assembler.orphans()
    if orphans:
        logger.warning(
            "Dropped records whose parent is missing from the dump",
            path=str(path),
            parents=len(orphans),
            records=sum(len(children) for children in orphans.values()),
        )
    return assembler.roots()


def encode_record(record: dict[str, Any]) -> str:
    """Compact single-line JSON encoding used for every dump line."""
    return json.dumps(record, separators=(",", ":"), ensure_ascii=False)


def write_jsonl(path: Path, records: Iterable[dict[str, Any]]) -> None:
    """
    Write records to a dump file atomically.

    The content goes to a temporary file in the same directory, which then
    replaces the target, so a crash never leaves a half-written dump.
    """
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            for record in records:
                f.write(encode_record(record))
                f.write("\n")
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def metaobject_dump_files(dump_dir: Path) -> list[tuple[str, Path]]:
    """
    Find per-type metaobject dumps.

    Returns:
        (metaobject type, path) pairs sorted by type
    """
    if not dump_dir.is_dir():
        return []
    found = []
    for path in dump_dir.iterdir():
        match = METAOBJECT_FILE_PATTERN.match(path.name)
        if match and path.is_file():
            found.append((match.group(1), path))
    return sorted(found)
