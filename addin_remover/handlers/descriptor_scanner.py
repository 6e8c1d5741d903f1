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

"""Enumerate the web extension descriptor parts of an extracted package."""

from __future__ import annotations

import logging
from pathlib import Path

from addin_remover.handlers.descriptor_parser import parse_descriptor
from addin_remover.models import AddinDescriptor
from addin_remover.package_layout import (
    WEBEXTENSIONS_DIR,
    is_descriptor_filename,
    webextensions_dir,
)

logger = logging.getLogger(__name__)


def list_descriptor_files(package_root: Path) -> list[str]:
    """Return the webextension*.xml filenames, sorted. Empty if no directory."""
    directory = webextensions_dir(package_root)
    if not directory.is_dir():
        return []
    return sorted(
        entry.name for entry in directory.iterdir()
        if entry.is_file() and is_descriptor_filename(entry.name)
    )


def scan_descriptors(package_root: Path) -> list[AddinDescriptor]:
    """Parse every descriptor part and return the valid ones in filename order.

    A package without xl/webextensions simply has no add-ins.
    """
    directory = webextensions_dir(package_root)
    descriptors: list[AddinDescriptor] = []

    for filename in list_descriptor_files(package_root):
        try:
            content = (directory / filename).read_bytes()
        except OSError as exc:
            logger.warning("Could not read %s: %s", filename, exc)
            continue
        descriptor = parse_descriptor(content, f"{WEBEXTENSIONS_DIR}/{filename}")
        if descriptor is not None:
            descriptors.append(descriptor)

    logger.debug("Found %d add-in descriptor(s)", len(descriptors))
    return descriptors
