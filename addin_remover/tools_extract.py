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

"""MCP tools for inspecting a workbook: list its add-ins and verify its
web extension indexes.

These are the read-only tools in the pipeline. Each function is decorated
with @mcp.tool() to register it on the shared FastMCP instance.
"""

from __future__ import annotations

from addin_remover.handlers import xlsx as xlsx_handler
from addin_remover.mcp_app import mcp
from addin_remover.tool_errors import resolve_file_for_tool


@mcp.tool()
def list_addins(
    file_bytes_b64: str = "",
    file_path: str = "",
) -> dict:
    """List the Office add-ins (web extensions) embedded in an .xlsx workbook.

    Each add-in has an 'id' (the value to pass to remove_addins), the store
    reference 'name', 'version', 'store', 'store_type' and the 'file_path'
    of its descriptor part inside the package.

    file_path: path to the workbook on disk (preferred for interactive use).
    file_bytes_b64: base64-encoded file bytes (for programmatic use).
    Provide one or the other.
    """
    raw, file_name = resolve_file_for_tool(
        "list_addins", file_bytes_b64 or None, file_path or None,
    )
    return xlsx_handler.list_addins(raw, file_name).model_dump()


@mcp.tool()
def verify_package(
    file_bytes_b64: str = "",
    file_path: str = "",
) -> dict:
    """Check that a workbook's add-in indexes are consistent and that it opens.

    Use after remove_addins. Reports dangling taskpane entries, relationships
    pointing at missing parts, stale content-type overrides, a taskpane
    subsystem left behind with no add-ins, and whether openpyxl can load it.
    """
    raw, _ = resolve_file_for_tool(
        "verify_package", file_bytes_b64 or None, file_path or None,
    )
    return xlsx_handler.verify_package(raw).model_dump()
