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

"""Request-scoped working directory for one extracted package.

    with PackageWorkspace(file_bytes) as ws:
        addins = scan_descriptors(ws.root)
        remove_addins(ws.root, ids)
        result = ws.assemble()

The directory is created and filled on entry and removed on exit, whether
the block succeeded or raised. Cleanup failures are logged, never raised.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

from addin_remover.handlers.package_archive import (
    assemble_package,
    extract_package,
)

logger = logging.getLogger(__name__)

TEMP_PREFIX = "addin-remover-"


class PackageWorkspace:
    """Owns the temporary directory a package is extracted into."""

    def __init__(self, file_bytes: bytes) -> None:
        self._file_bytes = file_bytes
        self._root: Path | None = None

    @property
    def root(self) -> Path:
        if self._root is None:
            raise RuntimeError("PackageWorkspace is not open")
        return self._root

    def __enter__(self) -> PackageWorkspace:
        self._root = Path(tempfile.mkdtemp(prefix=TEMP_PREFIX))
        try:
            extract_package(self._file_bytes, self._root)
        except BaseException:
            self.cleanup()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def assemble(self) -> bytes:
        return assemble_package(self.root)

    def cleanup(self) -> None:
        """Remove the working directory; log rather than raise on failure."""
        if self._root is None:
            return
        root, self._root = self._root, None
        try:
            shutil.rmtree(root)
        except OSError as exc:
            logger.error("Could not clean up %s: %s", root, exc)
