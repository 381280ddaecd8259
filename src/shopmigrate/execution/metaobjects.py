"""
Metaobject writes.

Each dumped type is (re)indexed before its records are applied, then every
record is written with metaobjectUpsert keyed by (type, handle). The platform
performs the create-or-update merge, so no existence check is needed; the
index is only consulted to attribute the outcome as created or updated.

Fields follow the object-attribute policy: an unresolved reference omits
that field only. Records that omitted a reference are revisited once all
types are written, and upserted again if more of their references resolve
now. That makes the final state independent of record order.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from ..core.dump_io import metaobject_dump_files, read_jsonl
from ..core.index import DestinationIndexBuilder
from ..core.relinker import FileRelinker
from ..models.records import MetaobjectRecord
from ..models.references import ReferenceKind
from ..models.results import ApplyStats
from ..observability.logger import LogContext
from ..observability.metrics import get_global_collector
from ..shopify.queries import Mutations
from ..utils.exceptions import ShopifyAPIError, ValidationError
from .handlers import ApplyContext

logger = structlog.get_logger(__name__)


@dataclass
class _Revisit:
    record: MetaobjectRecord
    raw_fields: list[dict[str, Any]]
    written: list[dict[str, str]]


class MetaobjectWriter:
    """Applies every ``metaobjects-{type}.jsonl`` dump."""

    def __init__(
        self, ctx: ApplyContext, relinker: FileRelinker, builder: DestinationIndexBuilder
    ):
        self.ctx = ctx
        self.relinker = relinker
        self.builder = builder
        self._revisit: list[_Revisit] = []

    def build_fields(self, raw_fields: list[dict[str, Any]]) -> tuple[list[dict[str, str]], bool]:
        """
        Field inputs for one record.

        Returns:
            (fields to write, whether any reference was left unresolved)
        """
        fields: list[dict[str, str]] = []
        incomplete = False
        for entry in raw_fields:
            relinked = self.relinker.relink_entry(entry)
            if self.ctx.resolver.has_unresolved(relinked, self.ctx.index):
                incomplete = True
            value = self.ctx.resolver.build_field_value(relinked, self.ctx.index)
            if value is None:
                logger.debug("Omitting field", field=entry.get("key"))
                continue
            fields.append({"key": entry["key"], "value": value})
        return fields, incomplete

    async def _upsert(self, record: MetaobjectRecord, fields: list[dict[str, str]]) -> str:
        payload = await self.ctx.client.mutate(
            Mutations.METAOBJECT_UPSERT,
            {
                "handle": {"type": record.type, "handle": record.handle},
                "metaobject": {"fields": fields},
            },
            "metaobjectUpsert",
        )
        gid = (payload.get("metaobject") or {}).get("id")
        if not gid:
            raise ShopifyAPIError("metaobjectUpsert returned no id")
        self.ctx.index.insert(ReferenceKind.METAOBJECT, record.natural_key, gid)
        return gid

    async def apply_record(self, raw: dict[str, Any], mo_type: str, stats: ApplyStats) -> None:
        stats.total += 1
        collector = get_global_collector()
        raw.setdefault("type", mo_type)
        try:
            record = MetaobjectRecord.model_validate(raw)
        except PydanticValidationError:
            key = f"{mo_type}:{raw.get('handle', '<unknown>')}"
            stats.record_failure(key, "Invalid metaobject record")
            collector.count_outcome("metaobjects", "failed")
            return

        key = record.natural_key
        raw_fields = raw.get("fields") or []
        fields, incomplete = self.build_fields(raw_fields)
        existed = self.ctx.index.lookup(ReferenceKind.METAOBJECT, key) is not None

        if self.ctx.dry_run:
            stats.skipped += 1
            collector.count_outcome("metaobjects", "skipped")
            logger.debug("Dry run", key=key, fields=len(fields))
            return

        try:
            gid = await self._upsert(record, fields)
        except (ValidationError, ShopifyAPIError) as e:
            stats.record_failure(key, str(e))
            collector.count_outcome("metaobjects", "failed")
            logger.warning("Failed to upsert metaobject", key=key, error=str(e))
            return

        if existed:
            stats.updated += 1
            collector.count_outcome("metaobjects", "updated")
        else:
            stats.created += 1
            collector.count_outcome("metaobjects", "created")
        logger.debug("Upserted metaobject", key=key, id=gid, created=not existed)

        if incomplete:
            self._revisit.append(_Revisit(record, raw_fields, fields))

    async def revisit(self, stats: ApplyStats) -> int:
        """
        Re-upsert records whose omitted references resolve now.

        Returns:
            Number of records written again
        """
        rewritten = 0
        for item in self._revisit:
            fields, _ = self.build_fields(item.raw_fields)
            if fields == item.written:
                continue
            key = item.record.natural_key
            try:
                await self._upsert(item.record, fields)
            except (ValidationError, ShopifyAPIError) as e:
                stats.record_failure(key, f"second pass: {e}")
                logger.warning("Failed to re-upsert metaobject", key=key, error=str(e))
                continue
            rewritten += 1
            logger.debug("Re-upserted metaobject with newly resolved references", key=key)
        self._revisit = []
        return rewritten

    async def apply(self, dump_dir: Path) -> ApplyStats:
        stats = ApplyStats()
        dumps = metaobject_dump_files(dump_dir)
        if not dumps:
            logger.warning("No metaobject dumps found", dump_dir=str(dump_dir))
            return stats

        for mo_type, path in dumps:
            with LogContext(metaobject_type=mo_type):
                try:
                    await self.builder.index_metaobject_type(self.ctx.index, mo_type)
                except ShopifyAPIError as e:
                    logger.warning("Could not index metaobject type", error=str(e))
                records = read_jsonl(path)
                for raw in records:
                    await self.apply_record(raw, mo_type, stats)
                logger.info("Applied metaobjects", records=len(records))

        rewritten = await self.revisit(stats)
        if rewritten:
            logger.info("Second pass re-upserted metaobjects", records=rewritten)
        return stats
