"""
Files phase.

Files have no handle, so they are matched by filename: a source file whose
filename already exists in the destination is reused, anything else is
created from its source URL with fileCreate. The resulting FileIndex feeds
the FileRelinker and product media inputs.
"""

from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from ..constants import FILES_FILE
from ..core.dump_io import read_jsonl
from ..core.relinker import FileIndex
from ..models.records import FileRecord, filename_from_url
from ..models.results import ApplyStats
from ..observability.metrics import get_global_collector
from ..shopify.client import ShopifyClient
from ..shopify.queries import Mutations, Queries
from ..utils.exceptions import ShopifyAPIError, ValidationError

logger = structlog.get_logger(__name__)

_CONTENT_TYPES = {"MediaImage": "IMAGE", "Video": "VIDEO"}


def _node_url(node: dict[str, Any]) -> str | None:
    """Best URL for a destination file node, whatever its concrete type."""
    image = node.get("image") or {}
    source = node.get("originalSource") or {}
    return image.get("url") or node.get("url") or source.get("url")


class FileSync:
    """Uploads or matches every dumped file in the destination."""

    def __init__(self, client: ShopifyClient, page_size: int, dry_run: bool = False):
        self.client = client
        self.page_size = page_size
        self.dry_run = dry_run

    async def destination_files(self) -> dict[str, tuple[str, str | None]]:
        """Destination files as filename -> (GID, URL)."""
        by_name: dict[str, tuple[str, str | None]] = {}
        async for node in self.client.paginate(Queries.FILES, "files", page_size=self.page_size):
            url = _node_url(node)
            name = node.get("filename") or filename_from_url(url)
            if name and name not in by_name:
                by_name[name] = (node["id"], url)
        logger.debug("Listed destination files", files=len(by_name))
        return by_name

    async def _create(self, record: FileRecord) -> tuple[str, str | None]:
        file_input: dict[str, Any] = {
            "originalSource": record.source_url,
            "contentType": _CONTENT_TYPES.get(record.mediaType or "", "FILE"),
        }
        if record.alt:
            file_input["alt"] = record.alt
        payload = await self.client.mutate(
            Mutations.FILE_CREATE, {"files": [file_input]}, "fileCreate"
        )
        created = (payload.get("files") or [None])[0]
        if not created or not created.get("id"):
            raise ShopifyAPIError("fileCreate returned no file")
        return created["id"], _node_url(created)

    async def sync(self, dump_dir: Path) -> tuple[FileIndex, ApplyStats]:
        """
        Match or create every file in files.jsonl.

        Returns:
            (FileIndex, stats); a missing dump yields an empty index
        """
        file_index = FileIndex()
        stats = ApplyStats()
        path = dump_dir / FILES_FILE
        if not path.exists():
            logger.warning("Files dump not found", path=str(path))
            return file_index, stats

        collector = get_global_collector()
        existing = await self.destination_files()

        for raw in read_jsonl(path):
            stats.total += 1
            try:
                record = FileRecord.model_validate(raw)
            except PydanticValidationError:
                stats.record_failure(str(raw.get("id", "<unknown>")), "Invalid file record")
                continue

            key = record.filename or record.id
            if not record.source_url:
                stats.record_failure(key, "File has no source URL")
                collector.count_outcome("files", "failed")
                continue

            match = existing.get(record.filename) if record.filename else None
            if match:
                dest_id, dest_url = match
                file_index.add(record.id, record.source_url, dest_id, dest_url)
                stats.updated += 1
                collector.count_outcome("files", "updated")
                logger.debug("Matched existing file", key=key, id=dest_id)
                continue

            if self.dry_run:
                stats.skipped += 1
                logger.debug("Dry run", key=key, action="create")
                continue

            try:
                dest_id, dest_url = await self._create(record)
            except (ValidationError, ShopifyAPIError) as e:
                stats.record_failure(key, str(e))
                collector.count_outcome("files", "failed")
                logger.warning("Failed to create file", key=key, error=str(e))
                continue

            file_index.add(record.id, record.source_url, dest_id, dest_url)
            if record.filename:
                existing[record.filename] = (dest_id, dest_url)
            stats.created += 1
            collector.count_outcome("files", "created")
            logger.debug("Created file", key=key, id=dest_id)

        logger.info("Files synced", summary=stats.get_summary())
        return file_index, stats
