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

"""HTTP transport runner with port conflict detection and graceful shutdown.

Serves one Starlette app that carries both the MCP streamable-HTTP endpoint
(/mcp) and the upload endpoints registered in http_api.py:

- ``check_port_available()`` — fail fast with a clear error instead of a
  cryptic uvicorn traceback when the port is already bound.
- ``build_app()`` — the Starlette app with a JSON 404 handler.
- ``start_http()`` — runs uvicorn with ``timeout_graceful_shutdown`` so
  in-flight uploads are given time to complete on Ctrl-C.
"""

from __future__ import annotations

import errno
import socket
import sys

import anyio
import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse

import addin_remover.http_api  # noqa: F401 -- register upload routes
import addin_remover.tools_extract  # noqa: F401 -- register tools
import addin_remover.tools_write  # noqa: F401
from addin_remover.mcp_app import mcp

GRACEFUL_SHUTDOWN_TIMEOUT = 5  # seconds


def check_port_available(host: str, port: int) -> bool:
    """Check if *host*:*port* is available for binding.

    Returns ``True`` if the port is free, ``False`` if it is already in use
    (``errno.EADDRINUSE``).  Any other ``OSError`` is re-raised.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind((host, port))
        return True
    except OSError as e:
        if e.errno == errno.EADDRINUSE:
            return False
        raise
    finally:
        sock.close()


async def _json_rpc_404_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return a JSON-RPC error body for 404 Not Found.

    Starlette's default 404 returns plain text (``text/plain``). MCP clients
    expect JSON-RPC error bodies on all error responses.
    """
    return JSONResponse(
        {
            "jsonrpc": "2.0",
            "id": "server-error",
            "error": {"code": -32600, "message": "Not Found"},
        },
        status_code=404,
    )


def build_app() -> Starlette:
    """Build the Starlette app serving /mcp and the /api upload routes."""
    app = mcp.streamable_http_app()
    app.exception_handlers[404] = _json_rpc_404_handler
    return app


async def _run_http_async(host: str, port: int, log_level: str) -> None:
    """Start uvicorn serving the combined app."""
    config = uvicorn.Config(
        build_app(),
        host=host,
        port=port,
        log_level=log_level.lower(),
        timeout_graceful_shutdown=GRACEFUL_SHUTDOWN_TIMEOUT,
    )
    server = uvicorn.Server(config)
    await server.serve()


def start_http(host: str, port: int, log_level: str = "INFO") -> None:
    """Check port availability, then start the HTTP server.

    Prints a user-friendly error and exits non-zero if the port is in use.
    Otherwise hands off to uvicorn via ``anyio.run()``.
    """
    if not check_port_available(host, port):
        print(
            f"Error: Port {port} is already in use. Try: --port {port + 1}",
            file=sys.stderr,
        )
        sys.exit(1)
    anyio.run(_run_http_async, host, port, log_level)
