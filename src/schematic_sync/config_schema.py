"""YAML configuration schema for schematic-sync.

Defines Pydantic models for the config file sections (export, output,
denylist, logging) and an adapter that flattens a validated file into the
fallback dict consumed by ``config.load_config()``.

Usage:
    from schematic_sync.config_schema import build_config, to_fallbacks

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = load_config(yaml_fallbacks=to_fallbacks(unified))
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigError

# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class ExportSection(BaseModel):
    """Remote document export settings.

    All fields are optional: env vars and CLI args can supply them instead.
    """

    cookies: str | None = Field(
        default=None, description="Cookie header for the export API"
    )
    doc_id: str | None = Field(default=None, description="Document id")
    sheet_name: str | None = Field(
        default=None, description="Sheet holding the schematics"
    )
    base_url: str | None = Field(
        default=None, description="Export API base URL"
    )
    local_file: str | None = Field(
        default=None, description="Use this workbook instead of exporting"
    )
    save_workbook: str | None = Field(
        default=None, description="Keep a copy of the exported workbook"
    )
    poll_interval: float = Field(
        default=1.0, gt=0, description="Seconds between status polls"
    )
    poll_timeout: float | None = Field(
        default=None, gt=0, description="Give up on the export after N seconds"
    )

    model_config = {"frozen": True}


class OutputSection(BaseModel):
    """Output tree settings."""

    dir: str | None = Field(default=None, description="Output root")
    suffix: str = Field(default=".msch", description="Schematic file suffix")
    max_parallel_io: int = Field(
        default=16,
        ge=1,
        le=256,
        description="Maximum concurrent file operations (1-256)",
    )

    model_config = {"frozen": True}


class DenylistSection(BaseModel):
    """Entries excluded from the output.

    Some schematics trigger a buffer mismatch when loaded by the game; they
    are listed here by name or by author.
    """

    names: list[str] = Field(default_factory=list)
    authors: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class LoggingSection(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
        format: ``text`` or ``json``.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")
    format: str = Field(default="text", pattern="^(text|json)$")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level file configuration.

    Every section has defaults, so ``UnifiedConfig()`` is always valid.
    """

    export: ExportSection = Field(default_factory=ExportSection)
    output: OutputSection = Field(default_factory=OutputSection)
    denylist: DenylistSection = Field(default_factory=DenylistSection)
    logging: LoggingSection = Field(default_factory=LoggingSection)
    debug: bool = False

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the merged YAML dict.

    Missing sections get defaults.

    Raises:
        ConfigError: If the file content fails validation.
    """
    if not raw_data:
        return UnifiedConfig()

    try:
        return UnifiedConfig(**raw_data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config file: {exc}") from exc


def to_fallbacks(unified: UnifiedConfig) -> dict[str, Any]:
    """Flatten a ``UnifiedConfig`` into ``load_config()`` fallback values.

    ``None`` values are dropped so they never shadow built-in defaults.
    """
    flat: dict[str, Any] = {
        **unified.export.model_dump(),
        "output_dir": unified.output.dir,
        "suffix": unified.output.suffix,
        "max_parallel_io": unified.output.max_parallel_io,
        "denied_names": list(unified.denylist.names),
        "denied_authors": list(unified.denylist.authors),
        "debug": unified.debug,
    }
    return {k: v for k, v in flat.items() if v is not None}
