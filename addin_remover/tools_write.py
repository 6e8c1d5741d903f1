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

"""MCP tool for removing add-ins from a workbook.

This is the write-side tool in the pipeline. It is decorated with
@mcp.tool() to register it on the shared FastMCP instance.
"""

from __future__ import annotations

import base64

from addin_remover.handlers import xlsx as xlsx_handler
from addin_remover.mcp_app import mcp
from addin_remover.tool_errors import (
    resolve_file_for_tool,
    validate_addin_ids_for_tool,
)
from addin_remover.validators import validate_file_name, validate_path_safe


@mcp.tool()
def remove_addins(
    addin_ids: list[str],
    file_bytes_b64: str = "",
    file_path: str = "",
    output_file_path: str = "",
) -> dict:
    """Remove the selected add-ins and return the cleaned workbook.

    addin_ids: the 'id' values reported by list_addins. Ids not present in
        the workbook are ignored.
    file_path: path to the workbook on disk (preferred for interactive use).
    file_bytes_b64: base64-encoded file bytes (for programmatic use).
    output_file_path: when provided, writes the result to disk instead of
        returning base64.

    Returns {file_bytes_b64: ..., report: ...} or {file_path: ..., report: ...}.
    The report lists removed parts and any diagnostics; status is
    'partial_failure' if some index could not be updated cleanly.
    """
    ids = validate_addin_ids_for_tool("remove_addins", addin_ids)
    raw, _ = resolve_file_for_tool(
        "remove_addins", file_bytes_b64 or None, file_path or None,
    )

    out = None
    if output_file_path:
        out = validate_path_safe(output_file_path)
        validate_file_name(out.name)

    result_bytes, report = xlsx_handler.remove_addins(raw, ids)

    if out is not None:
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(result_bytes)
        return {"file_path": str(out), "report": report.model_dump()}

    return {
        "file_bytes_b64": base64.b64encode(result_bytes).decode(),
        "report": report.model_dump(),
    }
