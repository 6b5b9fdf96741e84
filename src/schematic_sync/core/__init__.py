"""Async helpers and the document export client."""

from .async_utils import gather_settled, poll_until, run_sync
from .export_client import DocExportClient, ExportProgress

__all__ = [
    "DocExportClient",
    "ExportProgress",
    "gather_settled",
    "poll_until",
    "run_sync",
]
