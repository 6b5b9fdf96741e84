"""Rebuild the last-synced collection from the output tree.

The output tree is the only persisted state: each category directory holds
one ``<name><suffix>`` file per schematic.  Reading it back before a run
makes the tool stateless between runs and tolerant of manual edits.
"""

from __future__ import annotations

import logging
from pathlib import Path

from schematic_sync.core.async_utils import gather_settled, run_sync
from schematic_sync.sync.models import SchematicCollection, SchematicRecord

logger = logging.getLogger(__name__)


def list_schematic_files(root: Path, suffix: str) -> list[tuple[str, Path]]:
    """Return ``(category, file_path)`` pairs for every schematic file.

    Only regular files directly inside a category directory and ending in
    *suffix* are returned.
    """
    if not root.is_dir():
        return []

    found: list[tuple[str, Path]] = []
    for category_dir in sorted(root.iterdir()):
        if not category_dir.is_dir():
            logger.debug("Ignoring non-category entry %s", category_dir)
            continue
        for entry in sorted(category_dir.iterdir()):
            if entry.is_file() and entry.name.endswith(suffix):
                found.append((category_dir.name, entry))
            else:
                logger.debug("Ignoring %s", entry)
    return found


async def _read_record(
    category: str, path: Path, suffix: str
) -> SchematicRecord:
    data = await run_sync(path.read_bytes)
    name = path.name[: -len(suffix)]
    return SchematicRecord.from_bytes(category, name, data)


async def read_snapshot(
    root: Path, suffix: str, max_parallel: int | None = None
) -> SchematicCollection:
    """Read every schematic file under *root* into a collection.

    A missing *root* gives an empty collection.  Files that cannot be read
    are logged and left out; they do not fail the snapshot.

    Args:
        root: Output root directory.
        suffix: Schematic file suffix (e.g. ``.msch``).
        max_parallel: Optional bound on concurrent file reads.

    Returns:
        The last-synced ``SchematicCollection``.
    """
    files = await run_sync(list_schematic_files, root, suffix)
    outcomes = await gather_settled(
        [_read_record(category, path, suffix) for category, path in files],
        max_parallel=max_parallel,
    )

    collection = SchematicCollection()
    for (category, path), outcome in zip(files, outcomes):
        if isinstance(outcome, BaseException):
            logger.error("Failed to read schematic %s: %s", path, outcome)
            continue
        collection.add(outcome)

    logger.info(
        "Read %d existing schematics from %s", len(collection), root
    )
    return collection
