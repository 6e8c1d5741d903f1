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

"""Add-in removal engine — delete descriptor parts from an extracted package
and keep every index that points at them consistent.

Steps, in order:

1. Nothing to do without xl/webextensions or without requested ids.
2. Mark the descriptor files whose identity was requested.
3. Delete the marked files.
4. If every descriptor was marked, delete xl/webextensions outright.
5. Otherwise detach the marked files from taskpanes.xml and its .rels; if
   that fails, fall back to deleting xl/webextensions outright.
6. Drop their overrides from [Content_Types].xml.
7. Drop the root taskpanes relationship once no descriptors remain.

Steps 3, 6 and 7 record failures on the report and carry on. The package
never ends up with a half-edited taskpane registry.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from pathlib import Path

from addin_remover.diagnostics import Diagnostics
from addin_remover.handlers.descriptor_parser import read_descriptor_id
from addin_remover.handlers.descriptor_scanner import list_descriptor_files
from addin_remover.handlers.package_indexes import (
    STEP_CONTENT_TYPES,
    STEP_ROOT_RELS,
    STEP_TASKPANES,
    detach_descriptors,
    update_content_types,
    update_root_relationships,
)
from addin_remover.models import RemovalReport, RemovalStatus
from addin_remover.package_layout import WEBEXTENSIONS_DIR, webextensions_dir

logger = logging.getLogger(__name__)

STEP_MARK = "mark"
STEP_DELETE = "delete"
STEP_SUBTREE = "subtree"


def _mark_for_removal(
    directory: Path,
    filenames: list[str],
    requested: set[str],
    diagnostics: Diagnostics,
) -> dict[str, str]:
    """Return {filename: addin_id} for descriptor files whose id was requested."""
    marked: dict[str, str] = {}
    for filename in filenames:
        try:
            addin_id = read_descriptor_id((directory / filename).read_bytes())
        except OSError as exc:
            diagnostics.warning(STEP_MARK, f"Could not read part: {exc}", part=filename)
            continue
        if addin_id is not None and addin_id in requested:
            marked[filename] = addin_id
    return marked


def _delete_files(
    directory: Path, marked: dict[str, str], diagnostics: Diagnostics
) -> dict[str, str]:
    """Unlink the marked files; return the ones actually deleted."""
    deleted: dict[str, str] = {}
    for filename, addin_id in marked.items():
        try:
            (directory / filename).unlink()
        except OSError as exc:
            diagnostics.error(STEP_DELETE, f"Could not delete part: {exc}", part=filename)
            continue
        deleted[filename] = addin_id
    return deleted


def _remove_subtree(directory: Path, diagnostics: Diagnostics) -> bool:
    try:
        shutil.rmtree(directory)
    except OSError as exc:
        diagnostics.error(STEP_SUBTREE, f"Could not remove {WEBEXTENSIONS_DIR}: {exc}")
        return False
    diagnostics.info(STEP_SUBTREE, f"Removed {WEBEXTENSIONS_DIR}")
    return True


def remove_addins(package_root: Path, addin_ids: Iterable[str]) -> RemovalReport:
    """Remove the add-ins whose descriptor id is in *addin_ids*.

    package_root: directory holding the extracted package; edited in place.
    addin_ids: descriptor ids (the "{GUID}" values reported by scan).
    Returns a RemovalReport. Step failures never escape: they are recorded
    as events and the status becomes partial_failure.
    """
    requested = list(dict.fromkeys(addin_ids))
    report = RemovalReport(requested_ids=requested)
    diagnostics = Diagnostics()

    directory = webextensions_dir(package_root)
    if not requested or not directory.is_dir():
        logger.debug("Nothing to remove")
        return report

    # 2. mark
    existing = list_descriptor_files(package_root)
    marked = _mark_for_removal(directory, existing, set(requested), diagnostics)
    if not marked:
        diagnostics.info(STEP_MARK, "No descriptor matches the requested ids")
        report.events = diagnostics.events
        return report

    # 3. delete
    deleted = _delete_files(directory, marked, diagnostics)
    removed_files = list(deleted)

    # 4. whole-subtree shortcut, 5. partial edit with fallback
    if len(marked) == len(existing):
        report.subtree_removed = _remove_subtree(directory, diagnostics)
        if report.subtree_removed:
            deleted = marked
            removed_files = list(marked)
    elif removed_files:
        try:
            detach_descriptors(package_root, removed_files, diagnostics)
        except Exception as exc:
            diagnostics.error(
                STEP_TASKPANES,
                f"Partial edit failed ({exc}); removing {WEBEXTENSIONS_DIR} instead",
            )
            collateral = list_descriptor_files(package_root)
            report.fallback_used = True
            report.subtree_removed = _remove_subtree(directory, diagnostics)
            if report.subtree_removed and collateral:
                diagnostics.warning(
                    STEP_SUBTREE,
                    "Unrequested add-ins removed with the directory: "
                    + ", ".join(collateral),
                )

    # 6. content types
    try:
        update_content_types(package_root, removed_files, diagnostics)
    except Exception as exc:
        diagnostics.error(STEP_CONTENT_TYPES, f"Could not update content types: {exc}")

    # 7. root relationships
    try:
        update_root_relationships(package_root, diagnostics)
    except Exception as exc:
        diagnostics.error(STEP_ROOT_RELS, f"Could not update root relationships: {exc}")

    report.removed_parts = removed_files
    report.removed_ids = list(dict.fromkeys(deleted.values()))
    report.events = diagnostics.events
    if report.fallback_used or diagnostics.has_errors:
        report.status = RemovalStatus.PARTIAL_FAILURE

    logger.info(
        "Removed %d add-in part(s) (%s)",
        len(removed_files),
        report.status.value,
    )
    return report
