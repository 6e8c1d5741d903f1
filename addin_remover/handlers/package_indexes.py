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

"""Index updates that follow a descriptor deletion.

Three indexes point at descriptor parts: the taskpane registry with its
relationship file, the content-type registry, and the root relationship
file. Each updater edits its part through lxml, writes it back only when a
node was actually removed, and drops the part when its container is empty.

Updaters raise on I/O or parse failures; removal.py decides how a failure
is handled for each step.
"""

from __future__ import annotations

from pathlib import Path

from addin_remover.diagnostics import Diagnostics
from addin_remover.handlers.descriptor_scanner import list_descriptor_files
from addin_remover.handlers.relationship_index import (
    find_relationship_id,
    remove_relationship,
    remove_taskpane_entries,
)
from addin_remover.package_layout import (
    CONTENT_TYPES,
    ROOT_RELS,
    TASKPANES_REL_TYPE,
    TASKPANES_RELS,
    WEBEXTENSIONS_PART_PREFIX,
    content_types_path,
    descriptor_part_name,
    root_rels_path,
    taskpanes_path,
    taskpanes_rels_path,
)
from addin_remover.xml_utils import children_named, read_part, save_or_strip

STEP_TASKPANES = "taskpanes"
STEP_CONTENT_TYPES = "content_types"
STEP_ROOT_RELS = "root_relationships"


# ── Taskpane registry + descriptor relationships ───────────────────────────────


def detach_descriptors(
    package_root: Path, filenames: list[str], diagnostics: Diagnostics
) -> None:
    """Remove the taskpane entries and relationships of deleted descriptors.

    A descriptor with no relationship targeting it is already detached: the
    step is skipped for that file and a warning is recorded, since any
    taskpane entry that pointed at it cannot be located.
    """
    rels_path = taskpanes_rels_path(package_root)
    if not rels_path.is_file():
        diagnostics.info(STEP_TASKPANES, "No descriptor relationship file; nothing to detach")
        return

    rels_tree = read_part(rels_path)
    rels_root = rels_tree.getroot()

    pane_path = taskpanes_path(package_root)
    pane_tree = read_part(pane_path) if pane_path.is_file() else None

    rels_changed = False
    panes_changed = False

    for filename in filenames:
        rel_id = find_relationship_id(rels_root, filename)
        if rel_id is None:
            diagnostics.warning(
                STEP_TASKPANES,
                "No relationship targets this part; dangling reference tolerated",
                part=filename,
            )
            continue

        if pane_tree is not None:
            if remove_taskpane_entries(pane_tree.getroot(), rel_id):
                panes_changed = True
            else:
                diagnostics.info(
                    STEP_TASKPANES, f"No taskpane entry references {rel_id}", part=filename
                )

        if remove_relationship(rels_root, rel_id):
            rels_changed = True

    if panes_changed and save_or_strip(pane_path, pane_tree, "taskpane"):
        diagnostics.info(STEP_TASKPANES, "Taskpane registry emptied and removed")
    if rels_changed and save_or_strip(rels_path, rels_tree, "Relationship"):
        diagnostics.info(STEP_TASKPANES, f"{TASKPANES_RELS} emptied and removed")


# ── [Content_Types].xml ────────────────────────────────────────────────────────


def _part_exists(package_root: Path, part_name: str) -> bool:
    return (package_root / part_name.lstrip("/")).is_file()


def update_content_types(
    package_root: Path, filenames: list[str], diagnostics: Diagnostics
) -> int:
    """Drop the Override entries of deleted descriptors.

    Matches each deleted file by its exact part name, and also drops any
    other override under /xl/webextensions/ whose part is no longer on disk
    (whole-directory removal takes the taskpane registry with it).
    Returns the number of overrides removed.
    """
    path = content_types_path(package_root)
    if not path.is_file():
        diagnostics.info(STEP_CONTENT_TYPES, f"{CONTENT_TYPES} not found")
        return 0

    tree = read_part(path)
    root = tree.getroot()
    deleted = {descriptor_part_name(name) for name in filenames}

    removed = 0
    for override in children_named(root, "Override"):
        part_name = override.get("PartName", "")
        if part_name in deleted or (
            part_name.startswith(WEBEXTENSIONS_PART_PREFIX)
            and not _part_exists(package_root, part_name)
        ):
            root.remove(override)
            removed += 1

    if removed:
        diagnostics.info(STEP_CONTENT_TYPES, f"Removed {removed} override(s)")
        if save_or_strip(path, tree, "Default", "Override"):
            diagnostics.warning(STEP_CONTENT_TYPES, f"{CONTENT_TYPES} emptied and removed")
    return removed


# ── _rels/.rels ────────────────────────────────────────────────────────────────


def update_root_relationships(
    package_root: Path, diagnostics: Diagnostics
) -> int:
    """Drop the webextensiontaskpanes relationship once the subsystem is gone.

    The subsystem is gone when no descriptor parts remain or the taskpane
    registry itself no longer exists. Returns the number of entries removed.
    """
    path = root_rels_path(package_root)
    if not path.is_file():
        diagnostics.info(STEP_ROOT_RELS, f"{ROOT_RELS} not found")
        return 0

    remaining = list_descriptor_files(package_root)
    if remaining and taskpanes_path(package_root).is_file():
        return 0

    tree = read_part(path)
    root = tree.getroot()

    removed = 0
    for rel in children_named(root, "Relationship"):
        if rel.get("Type") == TASKPANES_REL_TYPE:
            root.remove(rel)
            removed += 1

    if removed:
        diagnostics.info(STEP_ROOT_RELS, "Removed web extension taskpanes relationship")
        if save_or_strip(path, tree, "Relationship"):
            diagnostics.warning(STEP_ROOT_RELS, f"{ROOT_RELS} emptied and removed")
    return removed
