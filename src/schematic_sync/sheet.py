"""Spreadsheet parsing: workbook bytes to the current collection.

The schematic sheet has a header row followed by one row per schematic:

    category | author | name | (unused) | base64 content

Rows that are malformed, denylisted or carry invalid base64 are dropped and
reported; they never abort the run.
"""

from __future__ import annotations

import io
import logging
import re
import zipfile
from dataclasses import dataclass, field
from typing import Any, Iterable

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .config import Denylist
from .errors import SheetError
from .sync.models import RowRejection, SchematicCollection, SchematicRecord
from .validators import check_denylist, validate_base64, validate_category

logger = logging.getLogger(__name__)

COLUMN_COUNT = 5
_WHITESPACE = re.compile(r"\s+")


@dataclass
class ParseResult:
    """Current collection plus the rows that were rejected."""

    collection: SchematicCollection = field(
        default_factory=SchematicCollection
    )
    rejected: list[RowRejection] = field(default_factory=list)


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def read_sheet_rows(data: bytes, sheet_name: str) -> list[tuple[Any, ...]]:
    """Return every row of *sheet_name* (header included) as value tuples.

    Raises:
        SheetError: If the workbook cannot be opened or lacks the sheet.
    """
    try:
        workbook = load_workbook(
            io.BytesIO(data), read_only=True, data_only=True
        )
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise SheetError(f"Cannot open workbook: {exc}") from exc

    try:
        if sheet_name not in workbook.sheetnames:
            raise SheetError(
                f"Sheet '{sheet_name}' not found "
                f"(available: {', '.join(workbook.sheetnames)})"
            )
        return list(workbook[sheet_name].iter_rows(values_only=True))
    finally:
        workbook.close()


def parse_rows(
    rows: Iterable[tuple[Any, ...]], denylist: Denylist
) -> ParseResult:
    """Validate data rows and build the current collection.

    Args:
        rows: Sheet rows, header included (the first row is skipped).
        denylist: Names and authors to exclude.

    Returns:
        ``ParseResult`` with the surviving records and the rejections.
    """
    result = ParseResult()

    for row_number, row in enumerate(rows, start=1):
        if row_number == 1:
            continue
        cells = [_cell_text(v) for v in row]
        if not any(c.strip() for c in cells):
            continue

        cells += [""] * (COLUMN_COUNT - len(cells))
        category, author, name, _, content = cells[:COLUMN_COUNT]
        category = category.strip()
        author = author.strip()
        content = _WHITESPACE.sub("", content)

        def reject(reason: str) -> None:
            logger.warning(
                "Skipping row %d (%s): %s", row_number, name or "?", reason
            )
            result.rejected.append(
                RowRejection(
                    row=row_number, name=name, author=author, reason=reason
                )
            )

        if not category or not name.strip():
            reject("malformed row: category and name are required")
            continue

        valid, reason = validate_category(category)
        if not valid:
            reject(f"malformed row: {reason}")
            continue

        allowed, reason = check_denylist(name, author, denylist)
        if not allowed:
            reject(reason)
            continue

        valid, reason = validate_base64(content)
        if not valid:
            reject(reason)
            continue

        record = SchematicRecord(category=category, name=name, content=content)
        replaced = result.collection.add(record)
        if replaced is not None:
            logger.warning(
                "Row %d duplicates %s/%s; keeping the later row",
                row_number,
                category,
                record.file_stem,
            )

    logger.info(
        "Parsed %d schematics (%d rows rejected)",
        len(result.collection),
        len(result.rejected),
    )
    return result


def parse_schematics(
    data: bytes, sheet_name: str, denylist: Denylist
) -> ParseResult:
    """Parse workbook bytes into the current collection."""
    return parse_rows(read_sheet_rows(data, sheet_name), denylist)
