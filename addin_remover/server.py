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

"""Server entry point — configuration, logging, transport selection.

    addin-remover                         # MCP over stdio
    addin-remover --transport http --port 8000

Every option defaults from an ADDIN_REMOVER_* environment variable.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

import addin_remover.http_api  # noqa: F401 -- register upload routes
import addin_remover.tools_extract  # noqa: F401 -- register tools
import addin_remover.tools_write  # noqa: F401
from addin_remover.http_transport import start_http
from addin_remover.mcp_app import mcp

ENV_PREFIX = "ADDIN_REMOVER_"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _env(name: str, default: str) -> str:
    return os.environ.get(f"{ENV_PREFIX}{name}", default)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="addin-remover",
        description="Remove Office add-ins (web extensions) from .xlsx workbooks.",
    )
    parser.add_argument(
        "--transport",
        choices=("stdio", "http"),
        default=_env("TRANSPORT", "stdio"),
        help="MCP transport (default: stdio)",
    )
    parser.add_argument(
        "--host",
        default=_env("HOST", "127.0.0.1"),
        help="bind address for --transport http",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(_env("PORT", "8000")),
        help="port for --transport http",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default=_env("LOG_LEVEL", "INFO").upper(),
    )
    return parser


def configure_logging(level: str) -> None:
    """Log to stderr; stdout carries the stdio transport."""
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    if args.transport == "http":
        start_http(args.host, args.port, args.log_level)
    else:
        mcp.run()


if __name__ == "__main__":
    main()
