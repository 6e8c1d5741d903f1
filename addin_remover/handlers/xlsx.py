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

"""Excel (.xlsx) handler — list add-ins, remove add-ins, verify.

Thin entry point over bytes: each call extracts the package into its own
PackageWorkspace, delegates to descriptor_scanner, removal and
package_verifier, and releases the workspace before returning.
"""

from __future__ import annotations

from collections.abc import Iterable

from addin_remover.handlers.descriptor_scanner import scan_descriptors
from addin_remover.handlers.package_verifier import (
    verify_package,  # noqa: F401 (re-exported)
)
from addin_remover.handlers.removal import remove_addins as _remove_addins_in_place
from addin_remover.models import PackageSummary, RemovalReport
from addin_remover.package_workspace import PackageWorkspace


def list_addins(file_bytes: bytes, file_name: str = "") -> PackageSummary:
    """Return the add-ins declared in the workbook."""
    with PackageWorkspace(file_bytes) as ws:
        addins = scan_descriptors(ws.root)
    return PackageSummary(
        file_name=file_name, addins=addins, addin_count=len(addins)
    )


def remove_addins(
    file_bytes: bytes, addin_ids: Iterable[str]
) -> tuple[bytes, RemovalReport]:
    """Remove the given add-ins and return (new .xlsx bytes, report).

    With no ids the package is still unpacked and repacked unchanged.
    Raises PackageProcessingError if the package cannot be extracted or
    reassembled.
    """
    with PackageWorkspace(file_bytes) as ws:
        report = _remove_addins_in_place(ws.root, addin_ids)
        result = ws.assemble()
    return result, report
