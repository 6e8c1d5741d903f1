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

"""Web extension descriptor parsing — one webextension*.xml part in, one
AddinDescriptor (or None) out.

Shared by descriptor_scanner.py (full descriptors) and removal.py (identity
only). Foreign or malformed parts are never an error: they return None and
the caller skips them.
"""

from __future__ import annotations

import logging

from lxml import etree

from addin_remover.models import AddinDescriptor
from addin_remover.xml_utils import children_named, parse_xml

logger = logging.getLogger(__name__)

# Attributes a <we:reference> must carry for the part to count as a descriptor
_REFERENCE_ATTRS = ("id", "version", "store", "storeType")


def _parse_root(xml_text: str | bytes) -> etree._Element | None:
    try:
        return parse_xml(xml_text)
    except (etree.XMLSyntaxError, ValueError):
        return None


def read_descriptor_id(xml_text: str | bytes) -> str | None:
    """Return the descriptor's own id attribute, or None if unreadable."""
    root = _parse_root(xml_text)
    if root is None:
        return None
    return root.get("id")


def parse_descriptor(
    xml_text: str | bytes, source_path: str
) -> AddinDescriptor | None:
    """Parse a webextension part into an AddinDescriptor.

    The identity comes from the root element's id attribute. The store
    reference comes from the first <we:reference> child, which must carry
    id, version, store and storeType (in any order); otherwise the part is
    not a descriptor and None is returned.
    """
    root = _parse_root(xml_text)
    if root is None:
        logger.debug("Skipping %s: not well-formed XML", source_path)
        return None

    references = children_named(root, "reference")
    if not references:
        logger.debug("Skipping %s: no reference element", source_path)
        return None

    reference = references[0]
    values = {attr: reference.get(attr) for attr in _REFERENCE_ATTRS}
    missing = [attr for attr, value in values.items() if value is None]
    if missing:
        logger.debug(
            "Skipping %s: reference lacks %s", source_path, ", ".join(missing)
        )
        return None

    return AddinDescriptor(
        id=root.get("id", ""),
        name=values["id"],
        version=values["version"],
        store=values["store"],
        store_type=values["storeType"],
        file_path=source_path,
    )
