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

"""Request-scoped diagnostic events.

Each removal request gets its own Diagnostics collector. Events end up on the
RemovalReport returned to the caller and are mirrored to the logger so that
operators see them in the server log as well.
"""

from __future__ import annotations

import logging

from addin_remover.models import DiagnosticEvent, EventLevel

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    EventLevel.INFO: logging.INFO,
    EventLevel.WARNING: logging.WARNING,
    EventLevel.ERROR: logging.ERROR,
}


class Diagnostics:
    """Collects DiagnosticEvents for one request."""

    def __init__(self) -> None:
        self.events: list[DiagnosticEvent] = []

    def record(
        self,
        level: EventLevel,
        step: str,
        message: str,
        part: str | None = None,
    ) -> None:
        self.events.append(
            DiagnosticEvent(level=level, step=step, message=message, part=part)
        )
        suffix = f" [{part}]" if part else ""
        logger.log(_LOG_LEVELS[level], "%s: %s%s", step, message, suffix)

    def info(self, step: str, message: str, part: str | None = None) -> None:
        self.record(EventLevel.INFO, step, message, part)

    def warning(self, step: str, message: str, part: str | None = None) -> None:
        self.record(EventLevel.WARNING, step, message, part)

    def error(self, step: str, message: str, part: str | None = None) -> None:
        self.record(EventLevel.ERROR, step, message, part)

    @property
    def has_errors(self) -> bool:
        return any(e.level == EventLevel.ERROR for e in self.events)
