"""Sync report formatting functions.

- ``format_sync_report`` -- post-run summary for the console.
- ``report_to_json`` -- structured dict for ``--json`` output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import SyncReport, SyncResult

from .models import SyncAction

# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def _entry(r: SyncResult) -> str:
    return f"  {r.category}/{r.name}"


def format_sync_report(report: SyncReport) -> str:
    """Format a complete sync report as human-readable text.

    Sections are only included when they contain at least one entry.
    Unchanged schematics are summarised by count only.

    Args:
        report: The completed sync report.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    header = f"Sync report for '{report.output_dir}'"
    if report.dry_run:
        header += " (DRY RUN)"
    lines.append(header)
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    verb = "would be saved" if report.dry_run else "saved"
    lines.append(
        f"Total schematics: {report.total}, {report.saved} {verb}, "
        f"{len(report.skipped)} unchanged, "
        f"{len(report.deleted)} deleted, "
        f"{len(report.errors)} errors"
    )
    lines.append("")

    if report.created:
        lines.append("Created:")
        lines.extend(_entry(r) for r in report.created)
        lines.append("")

    if report.updated:
        lines.append("Updated:")
        lines.extend(_entry(r) for r in report.updated)
        lines.append("")

    if report.deleted:
        lines.append("Deleted:")
        lines.extend(_entry(r) for r in report.deleted)
        lines.append("")

    if report.rejected:
        lines.append("Rejected rows:")
        for rej in report.rejected:
            label = rej.name or "(unnamed)"
            lines.append(f"  row {rej.row} {label}: {rej.reason}")
        lines.append("")

    if report.errors:
        lines.append("Errors:")
        for r in report.errors:
            lines.append(f"  {r.path} ({r.action.value}): {r.error}")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: SyncReport) -> dict:
    """Convert a sync report to a structured dict for JSON serialisation.

    Unchanged schematics are counted but not listed.

    Args:
        report: The sync report.

    Returns:
        Dict with run info, counts, changed entries, rejections and errors.
    """
    changes = []
    for r in report.results:
        if r.action == SyncAction.SKIP and r.success:
            continue
        entry: dict = {
            "category": r.category,
            "name": r.name,
            "path": r.path,
            "action": r.action.value,
            "success": r.success,
        }
        if r.error:
            entry["error"] = r.error
        changes.append(entry)

    return {
        "output_dir": report.output_dir,
        "dry_run": report.dry_run,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "counts": {
            "total": report.total,
            "saved": report.saved,
            "created": len(report.created),
            "updated": len(report.updated),
            "skipped": len(report.skipped),
            "deleted": len(report.deleted),
            "rejected": len(report.rejected),
            "errors": len(report.errors),
        },
        "changes": changes,
        "rejected": [rej.model_dump() for rej in report.rejected],
    }
