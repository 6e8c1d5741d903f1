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

"""Plain HTTP endpoints for browser uploads, served next to /mcp.

- POST /api/analyze-excel   multipart ``file`` → JSON list of add-ins
- POST /api/process-excel   multipart ``file`` + ``selectedAddinIds`` (JSON
  array) → cleaned .xlsx as an attachment
- GET on either path        → short JSON description

Input problems are 400 with ``{"error": ...}``; any processing failure is a
single generic 500 so no partial output ever leaves the server. The
blocking pipeline runs in a worker thread.
"""

from __future__ import annotations

import logging

import anyio
from starlette.datastructures import UploadFile
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from addin_remover.handlers import xlsx as xlsx_handler
from addin_remover.mcp_app import mcp
from addin_remover.package_layout import XLSX_MIME
from addin_remover.validators import (
    MAX_FILE_SIZE,
    parse_addin_ids_json,
    validate_file_bytes,
    validate_file_name,
)

logger = logging.getLogger(__name__)

ANALYZE_PATH = "/api/analyze-excel"
PROCESS_PATH = "/api/process-excel"


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _attachment_name(file_name: str) -> str:
    """processed_<name>, restricted to characters safe in a quoted header."""
    safe = "".join(
        c if c.isascii() and c.isprintable() and c not in '"\\' else "_"
        for c in file_name
    )
    return f"processed_{safe}"


async def _read_upload(request: Request) -> tuple[bytes, str, str | None]:
    """Return (file bytes, file name, selectedAddinIds) from a multipart body.

    Raises ValueError for every input rejection.
    """
    form = await request.form()
    upload = form.get("file")
    if not isinstance(upload, UploadFile):
        raise ValueError("No file provided")

    file_name = upload.filename or ""
    validate_file_name(file_name)

    data = await upload.read()
    if len(data) > MAX_FILE_SIZE:
        raise ValueError(
            f"File exceeds maximum size ({MAX_FILE_SIZE // (1024 * 1024)} MB)"
        )
    validate_file_bytes(data)

    selected = form.get("selectedAddinIds")
    return data, file_name, selected if isinstance(selected, str) else None


@mcp.custom_route(ANALYZE_PATH, methods=["POST"])
async def analyze_excel(request: Request) -> Response:
    try:
        data, file_name, _ = await _read_upload(request)
    except ValueError as exc:
        return _error(str(exc), 400)

    try:
        summary = await anyio.to_thread.run_sync(
            xlsx_handler.list_addins, data, file_name
        )
    except Exception:
        logger.exception("Error analyzing %s", file_name)
        return _error("Failed to analyze Excel file", 500)

    return JSONResponse(summary.model_dump(by_alias=True))


@mcp.custom_route(PROCESS_PATH, methods=["POST"])
async def process_excel(request: Request) -> Response:
    try:
        data, file_name, selected = await _read_upload(request)
        addin_ids = parse_addin_ids_json(selected)
    except ValueError as exc:
        return _error(str(exc), 400)

    try:
        result, report = await anyio.to_thread.run_sync(
            xlsx_handler.remove_addins, data, addin_ids
        )
    except Exception:
        logger.exception("Error processing %s", file_name)
        return _error("Failed to process Excel file", 500)

    return Response(
        content=result,
        media_type=XLSX_MIME,
        headers={
            "Content-Disposition": f'attachment; filename="{_attachment_name(file_name)}"',
            "X-Removal-Status": report.status.value,
        },
    )


@mcp.custom_route(ANALYZE_PATH, methods=["GET"])
async def analyze_excel_info(request: Request) -> Response:
    return JSONResponse({
        "message": "Excel Addin Analyzer API",
        "description": "Analyze Excel files and return addin information",
        "method": "POST",
        "body": 'FormData with "file" field containing .xlsx file',
    })


@mcp.custom_route(PROCESS_PATH, methods=["GET"])
async def process_excel_info(request: Request) -> Response:
    return JSONResponse({
        "message": "Excel Addin Remover API",
        "endpoints": {
            f"POST {PROCESS_PATH}": "Process Excel file and remove selected addins",
            f"POST {ANALYZE_PATH}": "Analyze Excel file and return addin information",
        },
    })
