"""Obtain the workbook and turn it into the current collection.

The workbook comes either from a local file (offline / development mode) or
from a remote export job awaited with ``poll_until``.  Any failure here is
fatal to the run: without the workbook there is no current dataset.
"""

import asyncio
import logging
from pathlib import Path

from .config import Config
from .core.async_utils import poll_until, run_sync
from .core.export_client import DocExportClient, ExportProgress
from .errors import ExportError
from .sheet import ParseResult, parse_schematics

logger = logging.getLogger(__name__)


async def fetch_workbook(
    client: DocExportClient,
    interval: float = 1.0,
    timeout: float | None = None,
) -> bytes:
    """Run a remote export and download the resulting workbook.

    Args:
        client: Export API client.
        interval: Seconds between progress polls.
        timeout: Optional overall limit on waiting for the export.

    Raises:
        ExportError: On submission failure, timeout, a terminal status other
            than ``Done``, or download failure.
    """
    operation_id = await run_sync(client.submit_export)

    wait = poll_until(
        lambda: run_sync(client.query_progress, operation_id),
        finished=lambda p: not p.processing,
        interval=interval,
    )
    try:
        progress: ExportProgress = await asyncio.wait_for(wait, timeout)
    except asyncio.TimeoutError:
        raise ExportError(
            f"Export {operation_id} still processing after {timeout}s"
        ) from None

    if progress.status != "Done" or not progress.file_url:
        raise ExportError(
            f"Export {operation_id} ended with status '{progress.status}'"
        )

    logger.info(
        "Fetch %s (%s bytes)",
        progress.file_name or progress.file_url,
        progress.file_size if progress.file_size is not None else "?",
    )
    return await run_sync(client.download, progress.file_url)


def _read_local(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise ExportError(f"Cannot read workbook {path}: {exc}") from exc


def _save_copy(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


async def load_workbook_bytes(config: Config) -> bytes:
    """Return the raw workbook, from ``config.local_file`` or a remote export."""
    if config.local_file:
        logger.info("Using local workbook %s", config.local_file)
        return await run_sync(_read_local, Path(config.local_file))

    client = DocExportClient(config)
    try:
        data = await fetch_workbook(
            client, config.poll_interval, config.poll_timeout
        )
    finally:
        client.close()

    if config.save_workbook:
        try:
            await run_sync(_save_copy, Path(config.save_workbook), data)
            logger.info("Saved workbook copy to %s", config.save_workbook)
        except OSError as exc:
            logger.warning(
                "Could not save workbook copy to %s: %s",
                config.save_workbook,
                exc,
            )
    return data


async def build_current(config: Config) -> ParseResult:
    """Fetch and parse the workbook into the current collection."""
    data = await load_workbook_bytes(config)
    return await run_sync(
        parse_schematics, data, config.sheet_name, config.denylist
    )
