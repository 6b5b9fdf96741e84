"""Reconciler that converges the output tree to the current collection.

A run has two phases:

1. **Sync** -- every current record is compared with the record holding the
   same identity key in the last collection.  Unchanged records are skipped
   without I/O; new or changed records are written.
2. **Prune** -- every last record whose key is absent from the current
   collection has its file removed.  Category directories left empty are
   removed afterwards.

Records are independent: each file operation runs as its own task, and a
failure is recorded in its ``SyncResult`` without affecting any other.
"""

from __future__ import annotations

import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path

from schematic_sync.core.async_utils import gather_settled, run_sync
from schematic_sync.sync.models import (
    RowRejection,
    SchematicCollection,
    SchematicRecord,
    SyncAction,
    SyncReport,
    SyncResult,
)

logger = logging.getLogger(__name__)


def write_schematic(path: Path, data: bytes) -> int:
    """Write *data* to *path*, creating the category directory as needed.

    Returns:
        Number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return len(data)


def remove_path(path: Path) -> None:
    """Remove a file, or a whole directory tree, at *path*."""
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def remove_empty_dirs(root: Path) -> list[Path]:
    """Remove empty category directories directly under *root*."""
    removed: list[Path] = []
    if not root.is_dir():
        return removed
    for entry in root.iterdir():
        if entry.is_dir() and not any(entry.iterdir()):
            entry.rmdir()
            removed.append(entry)
    return removed


class Reconciler:
    """Converge one output directory to a current collection.

    Args:
        output_dir: Output root directory.
        suffix: Schematic file suffix (e.g. ``.msch``).
        max_parallel: Optional bound on concurrent file operations.
    """

    def __init__(
        self,
        output_dir: Path,
        suffix: str,
        max_parallel: int | None = None,
    ) -> None:
        self.output_dir = output_dir
        self.suffix = suffix
        self.max_parallel = max_parallel

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    async def run(
        self,
        current: SchematicCollection,
        last: SchematicCollection,
        dry_run: bool = False,
        rejected: list[RowRejection] | None = None,
    ) -> SyncReport:
        """Run the sync phase, then the prune phase.

        Args:
            current: Collection parsed from the latest spreadsheet.
            last: Collection rebuilt from the output tree.
            dry_run: If ``True``, compute actions but touch nothing.
            rejected: Parse rejections to carry into the report.

        Returns:
            A ``SyncReport`` summarising what was (or would be) done.
        """
        started_at = datetime.now(timezone.utc).isoformat()

        results = await self.sync(current, last, dry_run=dry_run)
        results += await self.prune(current, last, dry_run=dry_run)

        return SyncReport(
            output_dir=str(self.output_dir),
            dry_run=dry_run,
            results=results,
            rejected=rejected or [],
            started_at=started_at,
            completed_at=datetime.now(timezone.utc).isoformat(),
        )

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def sync(
        self,
        current: SchematicCollection,
        last: SchematicCollection,
        dry_run: bool = False,
    ) -> list[SyncResult]:
        """Write every current record that is new or has changed content."""
        records = list(current)
        outcomes = await gather_settled(
            [self._sync_record(r, last, dry_run) for r in records],
            max_parallel=self.max_parallel,
        )
        results = [
            self._settle(
                record,
                SyncAction.UPDATE
                if record.key in last
                else SyncAction.CREATE,
                outcome,
            )
            for record, outcome in zip(records, outcomes)
        ]

        written = sum(
            1
            for r in results
            if r.success and r.action != SyncAction.SKIP
        )
        logger.info(
            "Saved %d of %d schematics (%d unchanged)",
            written,
            len(results),
            sum(1 for r in results if r.action == SyncAction.SKIP),
        )
        return results

    async def prune(
        self,
        current: SchematicCollection,
        last: SchematicCollection,
        dry_run: bool = False,
    ) -> list[SyncResult]:
        """Delete the files of last records absent from *current*."""
        stale = [r for r in last if r.key not in current]
        outcomes = await gather_settled(
            [self._delete_record(r, dry_run) for r in stale],
            max_parallel=self.max_parallel,
        )
        results = [
            self._settle(record, SyncAction.DELETE, outcome)
            for record, outcome in zip(stale, outcomes)
        ]

        if stale and not dry_run:
            try:
                for path in await run_sync(
                    remove_empty_dirs, self.output_dir
                ):
                    logger.info("Removed empty category %s", path.name)
            except OSError as exc:
                logger.warning(
                    "Could not clean up empty categories: %s", exc
                )

        if stale:
            logger.info("Deleted %d stale schematics", len(stale))
        return results

    # ------------------------------------------------------------------
    # Per-record operations
    # ------------------------------------------------------------------

    async def _sync_record(
        self,
        record: SchematicRecord,
        last: SchematicCollection,
        dry_run: bool,
    ) -> SyncResult:
        path = record.path(self.output_dir, self.suffix)
        previous = last.get(record.key)

        if previous is not None and record.same_as(previous):
            return self._result(record, path, SyncAction.SKIP)

        action = (
            SyncAction.CREATE if previous is None else SyncAction.UPDATE
        )
        if not dry_run:
            await run_sync(write_schematic, path, record.payload)
            logger.debug("Saved schematic %s", path)
        return self._result(record, path, action)

    async def _delete_record(
        self, record: SchematicRecord, dry_run: bool
    ) -> SyncResult:
        path = record.path(self.output_dir, self.suffix)
        if not dry_run:
            await run_sync(remove_path, path)
            logger.debug("Deleted schematic %s", path)
        return self._result(record, path, SyncAction.DELETE)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _result(
        self,
        record: SchematicRecord,
        path: Path,
        action: SyncAction,
        error: str | None = None,
    ) -> SyncResult:
        return SyncResult(
            category=record.category,
            name=record.file_stem,
            path=str(path),
            action=action,
            success=error is None,
            error=error,
        )

    def _settle(
        self,
        record: SchematicRecord,
        failed_action: SyncAction,
        outcome: SyncResult | BaseException,
    ) -> SyncResult:
        """Turn a task outcome into a result, logging failures."""
        if not isinstance(outcome, BaseException):
            return outcome

        path = record.path(self.output_dir, self.suffix)
        if failed_action == SyncAction.DELETE:
            logger.error("Failed to delete %s: %s", path, outcome)
        else:
            logger.error("Failed to save %s: %s", path, outcome)
        return self._result(
            record, path, failed_action, error=str(outcome) or repr(outcome)
        )
