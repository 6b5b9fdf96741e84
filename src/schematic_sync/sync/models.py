"""Data contracts for schematic reconciliation.

- ``SchematicRecord``: one schematic (category, name, base64 content).
- ``SchematicCollection``: identity-keyed map of records.
- ``SyncAction``: what happened to one record during a run.
- ``SyncResult``: outcome of one record operation.
- ``SyncReport``: aggregate results for a full run.
- ``RowRejection``: a spreadsheet row dropped during parsing.

Pydantic models are frozen: records are never mutated after construction.
"""

from __future__ import annotations

import base64
from enum import Enum
from pathlib import Path
from typing import Iterator

from pydantic import BaseModel

from schematic_sync.validators import sanitize_name

SchematicKey = tuple[str, str]


class SchematicRecord(BaseModel):
    """One schematic blueprint.

    Attributes:
        category: Grouping, used as the sub-directory name.
        name: Display name (from the sheet, or the file stem on disk).
        content: Base64-encoded blueprint bytes.
    """

    category: str
    name: str
    content: str

    model_config = {"frozen": True}

    @property
    def file_stem(self) -> str:
        """Sanitised name used as the file name."""
        return sanitize_name(self.name)

    @property
    def key(self) -> SchematicKey:
        """Identity key: ``(category, file_stem)``."""
        return (self.category, self.file_stem)

    @property
    def payload(self) -> bytes:
        """Decoded blueprint bytes."""
        return base64.b64decode(self.content)

    def path(self, root: Path, suffix: str) -> Path:
        """Location of this record's file under *root*."""
        return root / self.category / f"{self.file_stem}{suffix}"

    def same_as(self, other: SchematicRecord) -> bool:
        """Return True if writing *self* over *other* would change nothing.

        Compares the identity key and the decoded bytes, so a record read
        back from disk matches the sheet row it was written from.
        """
        return self.key == other.key and self.payload == other.payload

    @classmethod
    def from_bytes(
        cls, category: str, name: str, data: bytes
    ) -> SchematicRecord:
        return cls(
            category=category,
            name=name,
            content=base64.b64encode(data).decode("ascii"),
        )


class SchematicCollection:
    """Mapping from identity key to ``SchematicRecord``.

    Adding a record whose key is already present replaces it.
    """

    def __init__(self, records: list[SchematicRecord] | None = None) -> None:
        self._records: dict[SchematicKey, SchematicRecord] = {}
        for record in records or []:
            self.add(record)

    def add(self, record: SchematicRecord) -> SchematicRecord | None:
        """Insert *record*; return the record it replaced, if any."""
        previous = self._records.get(record.key)
        self._records[record.key] = record
        return previous

    def get(self, key: SchematicKey) -> SchematicRecord | None:
        return self._records.get(key)

    def keys(self) -> set[SchematicKey]:
        return set(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def __iter__(self) -> Iterator[SchematicRecord]:
        return iter(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"SchematicCollection({len(self)} records)"


class SyncAction(str, Enum):
    """Possible outcomes for one schematic."""

    CREATE = "create"
    UPDATE = "update"
    SKIP = "skip"
    DELETE = "delete"


class SyncResult(BaseModel):
    """Result of reconciling one schematic.

    Attributes:
        category: Schematic category.
        name: Sanitised schematic name.
        path: File path that was (or would be) written or deleted.
        action: Action that was performed.
        success: Whether the filesystem operation succeeded.
        error: Error message if the operation failed.
    """

    category: str
    name: str
    path: str
    action: SyncAction
    success: bool = True
    error: str | None = None

    model_config = {"frozen": True}


class RowRejection(BaseModel):
    """A spreadsheet row excluded from the current dataset.

    Attributes:
        row: 1-based row number in the sheet.
        name: Schematic name cell (may be empty).
        author: Author cell (may be empty).
        reason: Why the row was dropped.
    """

    row: int
    name: str = ""
    author: str = ""
    reason: str

    model_config = {"frozen": True}


class SyncReport(BaseModel):
    """Aggregate report for a full run.

    Attributes:
        output_dir: Output root that was reconciled.
        dry_run: Whether this was a dry run (no changes applied).
        results: Per-record results from both phases.
        rejected: Spreadsheet rows dropped during parsing.
        started_at: ISO 8601 timestamp when the run started.
        completed_at: ISO 8601 timestamp when the run completed.
    """

    output_dir: str
    dry_run: bool = False
    results: list[SyncResult] = []
    rejected: list[RowRejection] = []
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    def _by_action(self, action: SyncAction) -> list[SyncResult]:
        return [r for r in self.results if r.action == action]

    @property
    def created(self) -> list[SyncResult]:
        """Successful CREATE results."""
        return [r for r in self._by_action(SyncAction.CREATE) if r.success]

    @property
    def updated(self) -> list[SyncResult]:
        """Successful UPDATE results."""
        return [r for r in self._by_action(SyncAction.UPDATE) if r.success]

    @property
    def skipped(self) -> list[SyncResult]:
        """Results where action is SKIP."""
        return self._by_action(SyncAction.SKIP)

    @property
    def deleted(self) -> list[SyncResult]:
        """Successful DELETE results."""
        return [r for r in self._by_action(SyncAction.DELETE) if r.success]

    @property
    def errors(self) -> list[SyncResult]:
        """Results where success is False."""
        return [r for r in self.results if not r.success]

    @property
    def total(self) -> int:
        """Size of the current collection (every non-delete result)."""
        return sum(1 for r in self.results if r.action != SyncAction.DELETE)

    @property
    def saved(self) -> int:
        """Number of schematic files actually written."""
        return len(self.created) + len(self.updated)

    def summary(self) -> str:
        """Format a short multi-line summary with counts."""
        lines = [
            f"Sync report for '{self.output_dir}'"
            + (" (dry run)" if self.dry_run else ""),
            f"  Total:     {self.total}",
            f"  Saved:     {self.saved}",
            f"  Unchanged: {len(self.skipped)}",
            f"  Deleted:   {len(self.deleted)}",
            f"  Rejected:  {len(self.rejected)}",
            f"  Errors:    {len(self.errors)}",
        ]
        return "\n".join(lines)
