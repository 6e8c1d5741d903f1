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

"""Pydantic models for add-in discovery, removal reports and verification."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


# ── Enums ──────────────────────────────────────────────────────────────────────

class RemovalStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"


class EventLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


# ── list_addins ────────────────────────────────────────────────────────────────

class AddinDescriptor(BaseModel):
    """One web extension declared by a webextension*.xml part.

    id: the descriptor's own identity (GUID-like, unique within a package).
    name: the store reference id (e.g. WA200006846).
    file_path: backing part, relative to the package root.

    Serialises to camelCase (storeType, filePath) for the REST endpoints.
    """
    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    id: str
    name: str
    version: str
    store: str
    store_type: str
    file_path: str


class PackageSummary(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    file_name: str
    addins: list[AddinDescriptor]
    addin_count: int


# ── remove_addins ──────────────────────────────────────────────────────────────

class DiagnosticEvent(BaseModel):
    level: EventLevel
    step: str
    message: str
    part: str | None = None


class RemovalReport(BaseModel):
    """Outcome of one removal request.

    removed_parts: descriptor filenames deleted from xl/webextensions.
    subtree_removed: the whole xl/webextensions directory was deleted.
    fallback_used: the partial edit failed and the subtree was deleted instead.
    events: diagnostics recorded while the request ran.
    """
    status: RemovalStatus = RemovalStatus.SUCCESS
    requested_ids: list[str] = []
    removed_ids: list[str] = []
    removed_parts: list[str] = []
    subtree_removed: bool = False
    fallback_used: bool = False
    events: list[DiagnosticEvent] = []


# ── verify_package ─────────────────────────────────────────────────────────────

class IntegrityReport(BaseModel):
    structural_issues: list[str]
    addin_count: int
    opens_in_openpyxl: bool
    valid: bool
