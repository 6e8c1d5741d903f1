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

"""Post-removal verification of an .xlsx package.

Checks that the web extension indexes agree with each other:

- every taskpane entry resolves to a relationship, whose target part exists
  and has a content-type override;
- no override under /xl/webextensions/ points at a missing part;
- with no descriptors left, there is no taskpane registry, no descriptor
  relationship file and no root taskpanes relationship;

and finally that openpyxl can load the workbook at all.
"""

from __future__ import annotations

from io import BytesIO
from pathlib import Path

import openpyxl
from lxml import etree

from addin_remover.handlers.descriptor_scanner import (
    list_descriptor_files,
    scan_descriptors,
)
from addin_remover.handlers.relationship_index import (
    relationship_targets,
    taskpane_relationship_ids,
)
from addin_remover.models import IntegrityReport
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
    webextensions_dir,
)
from addin_remover.package_workspace import PackageWorkspace
from addin_remover.xml_utils import children_named, read_part


def verify_package(file_bytes: bytes) -> IntegrityReport:
    """Verify the web extension indexes of an .xlsx and that it opens.

    Raises PackageProcessingError if the bytes cannot be extracted.
    """
    with PackageWorkspace(file_bytes) as ws:
        issues = check_package_root(ws.root)
        addin_count = len(scan_descriptors(ws.root))

    opens, open_error = _opens_in_openpyxl(file_bytes)
    if not opens:
        issues.append(f"openpyxl could not load the workbook: {open_error}")

    return IntegrityReport(
        structural_issues=issues,
        addin_count=addin_count,
        opens_in_openpyxl=opens,
        valid=not issues,
    )


def check_package_root(package_root: Path) -> list[str]:
    """Return the consistency problems found in an extracted package."""
    issues: list[str] = []

    overrides = _read_overrides(package_root, issues)
    descriptors = list_descriptor_files(package_root)
    pane_path = taskpanes_path(package_root)
    rels_path = taskpanes_rels_path(package_root)
    has_root_rel = _has_root_taskpanes_rel(package_root, issues)

    for part_name in sorted(overrides):
        if part_name.startswith(WEBEXTENSIONS_PART_PREFIX) and not (
            package_root / part_name.lstrip("/")
        ).is_file():
            issues.append(f"{CONTENT_TYPES} overrides missing part {part_name}")

    if not descriptors:
        if pane_path.is_file():
            issues.append("Taskpane registry present with no descriptors")
        if rels_path.is_file():
            issues.append(f"{TASKPANES_RELS} present with no descriptors")
        if has_root_rel:
            issues.append(f"{ROOT_RELS} declares taskpanes with no descriptors")
        return issues

    if has_root_rel and not pane_path.is_file():
        issues.append(f"{ROOT_RELS} declares taskpanes but the registry is missing")

    issues.extend(_check_taskpane_chain(package_root, overrides))
    return issues


def _check_taskpane_chain(package_root: Path, overrides: set[str]) -> list[str]:
    pane_path = taskpanes_path(package_root)
    rels_path = taskpanes_rels_path(package_root)
    if not pane_path.is_file():
        return []

    issues: list[str] = []
    try:
        rel_ids = taskpane_relationship_ids(read_part(pane_path).getroot())
        targets = (
            relationship_targets(read_part(rels_path).getroot())
            if rels_path.is_file() else {}
        )
    except (etree.XMLSyntaxError, OSError) as exc:
        return [f"Could not parse taskpane registry or relationships: {exc}"]

    directory = webextensions_dir(package_root)
    for rel_id in rel_ids:
        if rel_id not in targets:
            issues.append(f"Taskpane references unknown relationship {rel_id}")
            continue
        filename = targets[rel_id]
        if filename is None or not (directory / filename).is_file():
            issues.append(f"Relationship {rel_id} targets a missing part")
            continue
        if descriptor_part_name(filename) not in overrides:
            issues.append(f"No content-type override for {filename}")
    return issues


def _read_overrides(package_root: Path, issues: list[str]) -> set[str]:
    path = content_types_path(package_root)
    if not path.is_file():
        issues.append(f"{CONTENT_TYPES} is missing")
        return set()
    try:
        root = read_part(path).getroot()
    except etree.XMLSyntaxError as exc:
        issues.append(f"Could not parse {CONTENT_TYPES}: {exc}")
        return set()
    return {o.get("PartName", "") for o in children_named(root, "Override")}


def _has_root_taskpanes_rel(package_root: Path, issues: list[str]) -> bool:
    path = root_rels_path(package_root)
    if not path.is_file():
        return False
    try:
        root = read_part(path).getroot()
    except etree.XMLSyntaxError as exc:
        issues.append(f"Could not parse {ROOT_RELS}: {exc}")
        return False
    return any(
        rel.get("Type") == TASKPANES_REL_TYPE
        for rel in children_named(root, "Relationship")
    )


def _opens_in_openpyxl(file_bytes: bytes) -> tuple[bool, str | None]:
    try:
        wb = openpyxl.load_workbook(BytesIO(file_bytes))
    except Exception as exc:
        return False, str(exc)
    wb.close()
    return True, None
