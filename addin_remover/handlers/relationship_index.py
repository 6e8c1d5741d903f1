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

"""Relationship index — descriptor file → relationship id → taskpane entry.

The taskpane registry (taskpanes.xml) never names descriptor files directly.
Each <wetp:taskpane> holds a <wetp:webextensionref r:id="rIdN"/>, and
_rels/taskpanes.xml.rels maps rIdN to the descriptor filename. These helpers
walk that chain on parsed trees; nothing here touches the filesystem.
"""

from __future__ import annotations

import posixpath

from lxml import etree

from addin_remover.package_layout import WEBEXTENSIONS_PART_PREFIX
from addin_remover.xml_utils import R_ID, children_named


def _target_filename(target: str) -> str | None:
    """Resolve a relationship Target to a filename inside xl/webextensions.

    Relative targets resolve against the directory that owns the _rels
    folder; absolute targets are package part names. Targets that land
    outside xl/webextensions return None.
    """
    if target.startswith("/"):
        if not target.startswith(WEBEXTENSIONS_PART_PREFIX):
            return None
        rest = target[len(WEBEXTENSIONS_PART_PREFIX):]
    else:
        rest = posixpath.normpath(target)
    if not rest or "/" in rest or rest.startswith(".."):
        return None
    return rest


def relationships(rels_root: etree._Element) -> list[etree._Element]:
    return children_named(rels_root, "Relationship")


def taskpanes(taskpanes_root: etree._Element) -> list[etree._Element]:
    return children_named(taskpanes_root, "taskpane")


def find_relationship_id(
    rels_root: etree._Element, filename: str
) -> str | None:
    """Return the Id of the relationship targeting *filename*, or None."""
    for rel in relationships(rels_root):
        target = rel.get("Target")
        if target is not None and _target_filename(target) == filename:
            return rel.get("Id")
    return None


def relationship_targets(rels_root: etree._Element) -> dict[str, str | None]:
    """Map every relationship Id to the descriptor filename it targets."""
    return {
        rel.get("Id"): _target_filename(rel.get("Target", ""))
        for rel in relationships(rels_root)
        if rel.get("Id") is not None
    }


def _taskpane_rel_ids(taskpane: etree._Element) -> list[str]:
    return [
        ref.get(R_ID)
        for ref in children_named(taskpane, "webextensionref")
        if ref.get(R_ID) is not None
    ]


def taskpane_relationship_ids(taskpanes_root: etree._Element) -> list[str]:
    """Relationship ids referenced by the taskpane entries, in document order."""
    ids: list[str] = []
    for taskpane in taskpanes(taskpanes_root):
        ids.extend(_taskpane_rel_ids(taskpane))
    return ids


def remove_taskpane_entries(
    taskpanes_root: etree._Element, rel_id: str
) -> int:
    """Remove every <wetp:taskpane> whose webextensionref points at *rel_id*."""
    removed = 0
    for taskpane in taskpanes(taskpanes_root):
        if rel_id in _taskpane_rel_ids(taskpane):
            taskpanes_root.remove(taskpane)
            removed += 1
    return removed


def remove_relationship(rels_root: etree._Element, rel_id: str) -> int:
    """Remove the <Relationship> entries with Id *rel_id*."""
    removed = 0
    for rel in relationships(rels_root):
        if rel.get("Id") == rel_id:
            rels_root.remove(rel)
            removed += 1
    return removed
