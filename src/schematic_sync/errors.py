"""Error taxonomy and process exit codes.

Failures that prevent building the current dataset abort the run and map
to a dedicated exit code.  Failures scoped to a single schematic are never
raised: they are carried in the ``SyncReport`` instead.
"""

EXIT_OK = 0
EXIT_RECORD_FAILURES = 1
EXIT_CONFIG_ERROR = 2
EXIT_EXPORT_ERROR = 3
EXIT_INTERRUPTED = 130


class SchematicSyncError(Exception):
    """Base class for errors that abort a whole run."""

    exit_code = EXIT_EXPORT_ERROR


class ConfigError(SchematicSyncError, ValueError):
    """Missing or invalid configuration (e.g. no export cookie)."""

    exit_code = EXIT_CONFIG_ERROR


class ExportError(SchematicSyncError):
    """The spreadsheet could not be obtained.

    Raised for submission failures, a terminal export status other than
    ``Done``, download failures and unreadable local workbook files.
    """

    exit_code = EXIT_EXPORT_ERROR


class SheetError(ExportError):
    """The workbook was obtained but the schematic sheet cannot be read."""
