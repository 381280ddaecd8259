"""Result types for apply runs."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class RecordError:
    """
    One per-record failure.

    Attributes:
        key: Natural key of the record (handle, type:handle, ...)
        message: Error details
    """

    key: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"key": self.key, "message": self.message}


@dataclass
class ApplyStats:
    """
    Counters for one phase.

    Attributes:
        total: Records read from the phase input
        created: Records created in the destination
        updated: Records that already existed and were updated
        skipped: Records deliberately not written (dry run, unresolved value, missing owner)
        failed: Records rejected or lost to transport errors
        publications_synced: Resources whose publications were applied
        publication_errors: Resources where a publish/unpublish call failed
        errors: Per-record failures, in the order they happened
    """

    total: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    publications_synced: int = 0
    publication_errors: int = 0
    errors: list[RecordError] = field(default_factory=list)

    def record_failure(self, key: str, message: str, count: int = 1) -> None:
        self.failed += count
        self.errors.append(RecordError(key=key, message=message))

    def merge(self, other: "ApplyStats") -> "ApplyStats":
        """
        Add another phase's counters into this one.

        Returns:
            ApplyStats: self, for chaining.
        """
        self.total += other.total
        self.created += other.created
        self.updated += other.updated
        self.skipped += other.skipped
        self.failed += other.failed
        self.publications_synced += other.publications_synced
        self.publication_errors += other.publication_errors
        self.errors.extend(other.errors)
        return self

    @property
    def succeeded(self) -> int:
        return self.created + self.updated

    def get_summary(self) -> str:
        """
        Get a human-readable summary.

        Returns:
            str: e.g. "12 total: 3 created, 8 updated, 0 skipped, 1 failed"
        """
        return (
            f"{self.total} total: {self.created} created, {self.updated} updated, "
            f"{self.skipped} skipped, {self.failed} failed"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "created": self.created,
            "updated": self.updated,
            "skipped": self.skipped,
            "failed": self.failed,
            "publications_synced": self.publications_synced,
            "publication_errors": self.publication_errors,
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass
class RunSummary:
    """
    Aggregated result of an apply run.

    Attributes:
        phases: Ordered (name, stats) pairs, one per phase or sub-phase that ran
        started_at: Start timestamp
        finished_at: Completion timestamp
        dry_run: Whether mutations were suppressed
    """

    phases: list[tuple[str, ApplyStats]] = field(default_factory=list)
    started_at: datetime | None = None
    finished_at: datetime | None = None
    dry_run: bool = False

    def add(self, name: str, stats: ApplyStats) -> None:
        self.phases.append((name, stats))

    def get(self, name: str) -> ApplyStats | None:
        """Return the stats recorded under name, if that phase ran."""
        for phase_name, stats in self.phases:
            if phase_name == name:
                return stats
        return None

    def totals(self) -> ApplyStats:
        total = ApplyStats()
        for _, stats in self.phases:
            total.merge(stats)
        return total

    @property
    def duration_seconds(self) -> float:
        if not self.started_at or not self.finished_at:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def has_failures(self) -> bool:
        return any(stats.failed for _, stats in self.phases)

    def error_sample(self, limit: int) -> list[tuple[str, RecordError]]:
        """
        Get the first errors across phases.

        Args:
            limit: Maximum number of errors to return

        Returns:
            List of (phase name, error) pairs
        """
        sample: list[tuple[str, RecordError]] = []
        for name, stats in self.phases:
            for error in stats.errors:
                if len(sample) >= limit:
                    return sample
                sample.append((name, error))
        return sample
