"""Run configuration for schematic-sync.

Reads settings from CLI args, environment variables, .env files, and YAML
config file fallbacks.  The resulting ``Config`` is built once at startup
and passed explicitly to every component.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    SCHEMATIC_SYNC_COOKIES: Cookie header for the document export API
        (required unless a local workbook is used). ``QQ_DOC_COOKIES`` is
        accepted as a deprecated alias.
    SCHEMATIC_SYNC_DOC_ID: Document id to export
    SCHEMATIC_SYNC_SHEET: Name of the sheet holding the schematics
    SCHEMATIC_SYNC_BASE_URL: Export API base URL
    SCHEMATIC_SYNC_OUTPUT_DIR: Output root directory (default: ./schematics)
    SCHEMATIC_SYNC_LOCAL_FILE: Read this workbook instead of exporting
    SCHEMATIC_SYNC_POLL_INTERVAL: Seconds between export status polls
    SCHEMATIC_SYNC_POLL_TIMEOUT: Give up waiting for the export after N seconds
    SCHEMATIC_SYNC_MAX_PARALLEL_IO: Max concurrent file operations
    SCHEMATIC_SYNC_DENIED_NAMES: Comma-separated schematic names to skip
    SCHEMATIC_SYNC_DENIED_AUTHORS: Comma-separated author names to skip
    SCHEMATIC_SYNC_DEBUG: Enable debug logging
"""

import logging
import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_DOC_ID = "300000000$TshKyHrmMlQR"
DEFAULT_SHEET_NAME = "智能表1"
DEFAULT_BASE_URL = "https://docs.qq.com"
DEFAULT_OUTPUT_DIR = "./schematics"
SCHEMATIC_SUFFIX = ".msch"


@dataclass
class Denylist:
    """Schematic names and author names excluded from the output."""

    names: frozenset[str] = frozenset()
    authors: frozenset[str] = frozenset()


@dataclass
class Config:
    cookies: str = ""
    doc_id: str = DEFAULT_DOC_ID
    sheet_name: str = DEFAULT_SHEET_NAME
    base_url: str = DEFAULT_BASE_URL
    output_dir: str = DEFAULT_OUTPUT_DIR
    suffix: str = SCHEMATIC_SUFFIX
    local_file: str | None = None
    save_workbook: str | None = None
    poll_interval: float = 1.0
    poll_timeout: float | None = None
    max_parallel_io: int = 16
    denylist: Denylist = field(default_factory=Denylist)
    dry_run: bool = False
    debug: bool = False


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ConfigError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ConfigError: If the export cookie is missing for a remote export,
            the base URL is malformed, or a numeric setting is out of range.
    """
    if config.local_file is None:
        if not config.cookies.strip():
            raise ConfigError(
                "Export cookie not found. Set SCHEMATIC_SYNC_COOKIES "
                "environment variable, add 'cookies' to config.yml, "
                "or pass --local-file to use a local workbook."
            )

        config.base_url = config.base_url.strip()
        parsed = urlparse(config.base_url)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ConfigError(
                f"Invalid export base URL '{config.base_url}': "
                "must be an http:// or https:// URL with a hostname"
            )
        config.base_url = config.base_url.removesuffix("/")

    if not config.suffix.startswith(".") or len(config.suffix) < 2:
        raise ConfigError(
            f"Invalid schematic suffix '{config.suffix}': must start with '.'"
        )

    if config.poll_interval <= 0:
        raise ConfigError(
            f"Invalid poll interval {config.poll_interval}: must be positive"
        )

    if config.poll_timeout is not None and config.poll_timeout <= 0:
        raise ConfigError(
            f"Invalid poll timeout {config.poll_timeout}: must be positive"
        )

    if not (1 <= config.max_parallel_io <= 256):
        raise ConfigError(
            f"Invalid max_parallel_io {config.max_parallel_io}: "
            "must be a number between 1 and 256"
        )


def _split_list(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def _get_number_env(key: str, kind: type) -> float | int | None:
    """Return the numeric value of env var *key*, or None if unset."""
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return None
    try:
        return kind(raw)
    except ValueError:
        raise ConfigError(f"Invalid {key} '{raw}': must be a number") from None


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def _resolve_cookies(fallback: str | None) -> str:
    cookies = os.getenv("SCHEMATIC_SYNC_COOKIES")
    if not cookies:
        cookies = os.getenv("QQ_DOC_COOKIES")
        if cookies:
            logger.warning(
                "QQ_DOC_COOKIES is deprecated; "
                "use SCHEMATIC_SYNC_COOKIES instead"
            )
    return (cookies or fallback or "").strip()


def load_config(
    output_dir: str | None = None,
    local_file: str | None = None,
    save_workbook: str | None = None,
    sheet_name: str | None = None,
    doc_id: str | None = None,
    dry_run: bool = False,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        output_dir: Override output root directory.
        local_file: Read this workbook instead of running a remote export.
        save_workbook: Keep a copy of the exported workbook at this path.
        sheet_name: Override the schematic sheet name.
        doc_id: Override the exported document id.
        dry_run: Report planned changes without touching the output tree.
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Flat dict of values from the YAML config file,
            as produced by ``config_schema.to_fallbacks()``.

    Returns:
        Validated Config instance.

    Raises:
        ConfigError: If required config is missing or a value is invalid.
    """
    fb = yaml_fallbacks or {}

    # --- String fields: CLI > env > YAML > default ---

    cookies = _resolve_cookies(fb.get("cookies"))
    final_doc_id = (
        doc_id or os.getenv("SCHEMATIC_SYNC_DOC_ID") or fb.get("doc_id")
        or DEFAULT_DOC_ID
    )
    final_sheet = (
        sheet_name
        or os.getenv("SCHEMATIC_SYNC_SHEET")
        or fb.get("sheet_name")
        or DEFAULT_SHEET_NAME
    )
    base_url = (
        os.getenv("SCHEMATIC_SYNC_BASE_URL")
        or fb.get("base_url")
        or DEFAULT_BASE_URL
    )
    final_output_dir = (
        output_dir
        or os.getenv("SCHEMATIC_SYNC_OUTPUT_DIR")
        or fb.get("output_dir")
        or DEFAULT_OUTPUT_DIR
    )
    suffix = fb.get("suffix") or SCHEMATIC_SUFFIX
    final_local_file = (
        local_file
        or os.getenv("SCHEMATIC_SYNC_LOCAL_FILE")
        or fb.get("local_file")
        or None
    )
    final_save_workbook = save_workbook or fb.get("save_workbook") or None

    # --- Numeric fields: env > YAML > default ---

    poll_interval = _get_number_env("SCHEMATIC_SYNC_POLL_INTERVAL", float)
    if poll_interval is None:
        poll_interval = float(fb.get("poll_interval", 1.0))

    poll_timeout = _get_number_env("SCHEMATIC_SYNC_POLL_TIMEOUT", float)
    if poll_timeout is None and fb.get("poll_timeout") is not None:
        poll_timeout = float(fb["poll_timeout"])

    max_parallel = _get_number_env("SCHEMATIC_SYNC_MAX_PARALLEL_IO", int)
    if max_parallel is None:
        max_parallel = int(fb.get("max_parallel_io", 16))

    # --- Denylist: env entries are added to YAML entries ---

    denied_names = set(fb.get("denied_names", []))
    denied_names.update(
        _split_list(os.getenv("SCHEMATIC_SYNC_DENIED_NAMES", ""))
    )
    denied_authors = set(fb.get("denied_authors", []))
    denied_authors.update(
        _split_list(os.getenv("SCHEMATIC_SYNC_DENIED_AUTHORS", ""))
    )

    # --- Boolean fields: CLI > env > YAML > default ---

    if debug:
        final_debug = True
    else:
        env_debug = _get_bool_env("SCHEMATIC_SYNC_DEBUG")
        if env_debug is not None:
            final_debug = env_debug
        else:
            final_debug = bool(fb.get("debug", False))

    config = Config(
        cookies=cookies,
        doc_id=final_doc_id,
        sheet_name=final_sheet,
        base_url=base_url,
        output_dir=final_output_dir,
        suffix=suffix,
        local_file=final_local_file,
        save_workbook=final_save_workbook,
        poll_interval=poll_interval,
        poll_timeout=poll_timeout,
        max_parallel_io=max_parallel,
        denylist=Denylist(
            names=frozenset(denied_names),
            authors=frozenset(denied_authors),
        ),
        dry_run=dry_run,
        debug=final_debug,
    )

    validate_config(config)

    return config
