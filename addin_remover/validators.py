# Copyright (C) 2025 the contributors
# SPDX-License-Identifier: AGPL-3.0-or-later
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.

"""Shared input validation used by the MCP tools and the REST endpoints.

Provides file name and magic-byte checks, path safety, size limits, add-in
id list validation, and the resolve_file_input() helper that lets tools
accept either a file_path or base64-encoded bytes.
"""

from __future__ import annotations

import base64
import binascii
import json
from pathlib import Path

# Maximum file size in bytes (50 MB); checked before reading into memory
MAX_FILE_SIZE = 50 * 1024 * 1024

# Maximum base64 string length (~67 MB encoded ≈ 50 MB decoded)
MAX_BASE64_LENGTH = 67 * 1024 * 1024

# Maximum total uncompressed size of an archive (zip bomb guard)
MAX_UNCOMPRESSED_SIZE = 500 * 1024 * 1024

# Maximum number of ids in a single remove_addins call
MAX_ADDIN_IDS = 1_000

SUPPORTED_EXTENSION = ".xlsx"

# .xlsx is a ZIP archive
_MAGIC_BYTES = b"PK"


def validate_file_name(file_name: str) -> None:
    """Reject file names that do not carry the .xlsx extension."""
    if not file_name.lower().endswith(SUPPORTED_EXTENSION):
        raise ValueError("Only .xlsx files are supported")


def validate_file_bytes(file_bytes: bytes) -> None:
    """Basic sanity check that file_bytes looks like an .xlsx archive.

    Raises ValueError if validation fails.
    """
    if not file_bytes:
        raise ValueError("file_bytes is empty")

    if not file_bytes.startswith(_MAGIC_BYTES):
        raise ValueError("file_bytes does not appear to be a valid .xlsx file")


def validate_path_safe(file_path: str) -> Path:
    """Resolve a user-supplied path and check for traversal attacks.

    Rejects null bytes and ensures the resolved path is a real filesystem
    location (not /dev/*, /proc/*, /sys/*).  Returns the resolved Path.
    """
    if "\x00" in file_path:
        raise ValueError("Invalid file path")

    resolved = Path(file_path).resolve()

    # Block virtual filesystem paths that could cause hangs or info leaks
    blocked_prefixes = ("/dev/", "/proc/", "/sys/")
    resolved_str = str(resolved)
    if any(resolved_str.startswith(p) for p in blocked_prefixes):
        raise ValueError("Access to system paths is not allowed")

    return resolved


def validate_addin_ids(addin_ids: object) -> list[str]:
    """Check that *addin_ids* is a list of non-empty strings.

    Duplicates are dropped, first occurrence wins.
    """
    if not isinstance(addin_ids, list):
        raise ValueError(
            f"addin_ids must be a list of strings, got {type(addin_ids).__name__}"
        )
    if len(addin_ids) > MAX_ADDIN_IDS:
        raise ValueError(
            f"Too many add-in ids ({len(addin_ids)}). Max is {MAX_ADDIN_IDS}."
        )
    bad = [i for i, v in enumerate(addin_ids) if not isinstance(v, str) or not v.strip()]
    if bad:
        raise ValueError(
            f"addin_ids entries must be non-empty strings (bad index: {bad})"
        )
    return list(dict.fromkeys(addin_ids))


def parse_addin_ids_json(raw: str | None) -> list[str]:
    """Parse the selectedAddinIds form field (a JSON array string).

    A missing or blank field means no add-ins are selected.
    """
    if raw is None or not raw.strip():
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        raise ValueError("selectedAddinIds must be a JSON array of strings")
    return validate_addin_ids(data)


def resolve_file_input(
    file_bytes_b64: str | None,
    file_path: str | None,
) -> tuple[bytes, str]:
    """Resolve file input from either a disk path or base64-encoded bytes.

    When file_path is provided, reads the file from disk; the path must end
    in .xlsx. When file_bytes_b64 is provided instead, decodes the base64
    string.

    Returns (raw_bytes, file_name).  Raises ValueError on bad input.
    """
    if file_path:
        return _resolve_from_path(file_path)

    if file_bytes_b64:
        return _resolve_from_base64(file_bytes_b64), "workbook.xlsx"

    raise ValueError(
        "Provide either file_path or file_bytes_b64. Neither was supplied."
    )


def _resolve_from_path(file_path: str) -> tuple[bytes, str]:
    """Read bytes from disk after path, extension and size checks."""
    path = validate_path_safe(file_path)
    validate_file_name(path.name)
    if not path.is_file():
        raise ValueError("File not found or not accessible")

    if path.stat().st_size > MAX_FILE_SIZE:
        raise ValueError(
            f"File exceeds maximum size ({MAX_FILE_SIZE // (1024 * 1024)} MB)"
        )

    raw = path.read_bytes()
    validate_file_bytes(raw)
    return raw, path.name


def _resolve_from_base64(file_bytes_b64: str) -> bytes:
    """Decode base64 bytes and check they look like an .xlsx archive."""
    if len(file_bytes_b64) > MAX_BASE64_LENGTH:
        raise ValueError(
            f"Base64 input exceeds maximum size "
            f"({MAX_BASE64_LENGTH // (1024 * 1024)} MB encoded)"
        )

    try:
        raw = base64.b64decode(file_bytes_b64, validate=True)
    except (binascii.Error, ValueError):
        raise ValueError("Invalid base64 encoding in file_bytes_b64")
    validate_file_bytes(raw)
    return raw
