"""
Input validation for spreadsheet rows.

Checks run on every parsed row before it becomes a ``SchematicRecord``.
Validators return ``(is_valid, reason)`` tuples so the caller can log and
collect rejections without raising.
"""

import base64
import binascii
import re

from .config import Denylist

_BASE64_PATTERN = re.compile(r"^[A-Za-z0-9+/=]*$")


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Content")
        reason: Description of validation failure (e.g., "cannot be empty")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def sanitize_name(name: str) -> str:
    """Make a schematic display name safe to use as a file name.

    Path separators and newlines become ``-``.
    """
    return name.replace("/", "-").replace("\n", "-")


def validate_category(category: str) -> tuple[bool, str]:
    """
    Validate a category before it is used as a directory name.

    A category must be a single path component directly under the output
    root, so separators, newlines and the relative names ``.`` and ``..``
    are refused.

    Returns:
        (True, "") if valid, (False, reason) if invalid.
    """
    if any(ch in category for ch in ("/", "\\", "\n")):
        return (
            False,
            format_validation_error(
                f"Category '{category}'", "contains a path separator"
            ),
        )
    if category in (".", ".."):
        return (
            False,
            format_validation_error(
                f"Category '{category}'", "is not a directory name"
            ),
        )
    return (True, "")


def validate_base64(content: str) -> tuple[bool, str]:
    """
    Structurally validate base64 schematic content.

    Args:
        content: The base64 text from the spreadsheet

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.

    Validation rules:
        - Cannot be empty
        - Only characters from [A-Za-z0-9+/=]
        - Length must be a multiple of 4
        - Must decode (padding only at the end)
    """
    if not content:
        return (
            False,
            format_validation_error("Content", "cannot be empty"),
        )

    if not _BASE64_PATTERN.match(content):
        return (
            False,
            format_validation_error(
                "Content", "contains characters outside the base64 alphabet"
            ),
        )

    if len(content) % 4 != 0:
        return (
            False,
            format_validation_error(
                "Content",
                f"length {len(content)} is not a multiple of 4",
            ),
        )

    try:
        base64.b64decode(content, validate=True)
    except binascii.Error:
        return (
            False,
            format_validation_error("Content", "is not decodable base64"),
        )

    return (True, "")


def check_denylist(
    name: str, author: str, denylist: Denylist
) -> tuple[bool, str]:
    """
    Check a row against the configured denylist.

    Returns:
        (True, "") if the row is allowed, (False, reason) if denied.
    """
    if name in denylist.names:
        return (
            False,
            format_validation_error(f"Schematic '{name}'", "is denylisted"),
        )
    if author in denylist.authors:
        return (
            False,
            format_validation_error(f"Author '{author}'", "is denylisted"),
        )
    return (True, "")
