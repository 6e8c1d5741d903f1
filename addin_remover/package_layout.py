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

"""On-disk layout of the web extension parts inside an extracted .xlsx.

These paths are fixed by the package format; every handler resolves them
through the helpers here rather than building its own.
"""

from __future__ import annotations

from pathlib import Path

WEBEXTENSIONS_DIR = "xl/webextensions"
TASKPANES_FILE = "taskpanes.xml"
TASKPANES_RELS = "xl/webextensions/_rels/taskpanes.xml.rels"
CONTENT_TYPES = "[Content_Types].xml"
ROOT_RELS = "_rels/.rels"

DESCRIPTOR_PREFIX = "webextension"
DESCRIPTOR_SUFFIX = ".xml"

# Part names as they appear in [Content_Types].xml
WEBEXTENSIONS_PART_PREFIX = "/xl/webextensions/"

TASKPANES_REL_TYPE = (
    "http://schemas.microsoft.com/office/2011/relationships/webextensiontaskpanes"
)
WEBEXTENSION_REL_TYPE = (
    "http://schemas.microsoft.com/office/2011/relationships/webextension"
)
WEBEXTENSION_CONTENT_TYPE = "application/vnd.ms-office.webextension+xml"
TASKPANES_CONTENT_TYPE = "application/vnd.ms-office.webextensiontaskpanes+xml"

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def webextensions_dir(package_root: Path) -> Path:
    return package_root / WEBEXTENSIONS_DIR


def taskpanes_path(package_root: Path) -> Path:
    return package_root / WEBEXTENSIONS_DIR / TASKPANES_FILE


def taskpanes_rels_path(package_root: Path) -> Path:
    return package_root / TASKPANES_RELS


def content_types_path(package_root: Path) -> Path:
    return package_root / CONTENT_TYPES


def root_rels_path(package_root: Path) -> Path:
    return package_root / ROOT_RELS


def is_descriptor_filename(name: str) -> bool:
    """True for webextension*.xml; the taskpane registry never matches."""
    return (
        name.startswith(DESCRIPTOR_PREFIX)
        and name.endswith(DESCRIPTOR_SUFFIX)
        and name != TASKPANES_FILE
    )


def descriptor_part_name(filename: str) -> str:
    """Content-type part name for a descriptor file, e.g. /xl/webextensions/webextension1.xml."""
    return f"{WEBEXTENSIONS_PART_PREFIX}{filename}"
