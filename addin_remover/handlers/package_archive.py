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

"""Package archive I/O — unpack .xlsx bytes into a directory and pack a
directory back into .xlsx bytes.

Extraction guards against members escaping the destination and against
archives that would expand past MAX_UNCOMPRESSED_SIZE. Assembly writes
[Content_Types].xml first and every other file in sorted order, so the
output depends only on the directory contents.
"""

from __future__ import annotations

import logging
import zipfile
from io import BytesIO
from pathlib import Path

from addin_remover.package_layout import CONTENT_TYPES
from addin_remover.validators import MAX_UNCOMPRESSED_SIZE

logger = logging.getLogger(__name__)


class PackageProcessingError(RuntimeError):
    """Extraction or reassembly of a package failed; no output is produced."""


def _check_members(zf: zipfile.ZipFile, destination: Path) -> None:
    total = 0
    root = destination.resolve()
    for info in zf.infolist():
        target = (destination / info.filename).resolve()
        if target != root and root not in target.parents:
            raise PackageProcessingError(
                f"Archive member escapes the package root: {info.filename!r}"
            )
        total += info.file_size
    if total > MAX_UNCOMPRESSED_SIZE:
        raise PackageProcessingError(
            f"Archive expands beyond {MAX_UNCOMPRESSED_SIZE // (1024 * 1024)} MB"
        )


def extract_package(file_bytes: bytes, destination: Path) -> None:
    """Extract every member of the archive into *destination*.

    Raises PackageProcessingError if the bytes are not a readable zip or the
    archive fails the safety checks.
    """
    try:
        with zipfile.ZipFile(BytesIO(file_bytes)) as zf:
            _check_members(zf, destination)
            zf.extractall(destination)
    except PackageProcessingError:
        raise
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, ValueError) as exc:
        raise PackageProcessingError(f"Could not extract package: {exc}") from exc
    logger.debug("Extracted package into %s", destination)


def _package_files(package_root: Path) -> list[Path]:
    files = sorted(
        (p for p in package_root.rglob("*") if p.is_file()),
        key=lambda p: p.relative_to(package_root).as_posix(),
    )
    content_types = package_root / CONTENT_TYPES
    if content_types in files:
        files.remove(content_types)
        files.insert(0, content_types)
    return files


def assemble_package(package_root: Path) -> bytes:
    """Zip every file under *package_root* and return the archive bytes.

    Entry names are POSIX paths relative to *package_root*. Raises
    PackageProcessingError if a file cannot be read or written.
    """
    buf = BytesIO()
    try:
        with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
            for path in _package_files(package_root):
                zf.write(path, path.relative_to(package_root).as_posix())
    except (OSError, ValueError) as exc:
        raise PackageProcessingError(f"Could not assemble package: {exc}") from exc
    return buf.getvalue()
