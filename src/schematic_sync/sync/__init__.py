"""Schematic reconciliation.

Converges a directory tree of schematic files to the collection parsed from
the latest spreadsheet export.

Architecture
------------
There is no state file: the **last** collection is rebuilt from the output
tree itself (``snapshot``), and compared key by key with the **current**
collection.  Records with identical content are skipped, so re-exporting an
unchanged sheet produces no writes.

Modules:

- ``models``    -- ``SchematicRecord``, ``SchematicCollection``,
  ``SyncAction``, ``SyncResult``, ``SyncReport``, ``RowRejection``.
- ``snapshot``  -- ``read_snapshot``: output tree to collection.
- ``engine``    -- ``Reconciler``: sync (write) and prune (delete) phases.
- ``reporter``  -- Human-readable and JSON report formatting.

Usage example
-------------
::

    from pathlib import Path
    from schematic_sync.sync import (
        Reconciler, format_sync_report, read_snapshot,
    )

    root = Path("schematics")
    last = await read_snapshot(root, ".msch")
    report = await Reconciler(root, ".msch").run(current, last)
    print(format_sync_report(report))
"""

from .engine import Reconciler
from .models import (
    RowRejection,
    SchematicCollection,
    SchematicRecord,
    SyncAction,
    SyncReport,
    SyncResult,
)
from .reporter import format_sync_report, report_to_json
from .snapshot import read_snapshot

__all__ = [
    "Reconciler",
    "RowRejection",
    "SchematicCollection",
    "SchematicRecord",
    "SyncAction",
    "SyncReport",
    "SyncResult",
    "format_sync_report",
    "read_snapshot",
    "report_to_json",
]
