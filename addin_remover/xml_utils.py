"""OOXML utilities — namespaces, secure parsing, element lookup by local name,
and rewriting package parts in place."""

from __future__ import annotations

from pathlib import Path

from lxml import etree

# OOXML namespaces (canonical source)
NAMESPACES = {
    "we": "http://schemas.microsoft.com/office/webextensions/webextension/2010/11",
    "wetp": "http://schemas.microsoft.com/office/webextensions/taskpanes/2010/11",
    "r": "http://schemas.openxmlformats.org/officeDocument/2006/relationships",
    "rel": "http://schemas.openxmlformats.org/package/2006/relationships",
    "ct": "http://schemas.openxmlformats.org/package/2006/content-types",
}

# Package parts come from untrusted uploads: no DTD entities, no network.
SECURE_PARSER = etree.XMLParser(
    resolve_entities=False, no_network=True, huge_tree=False
)

R_ID = f"{{{NAMESPACES['r']}}}id"


def parse_xml(xml_text: str | bytes) -> etree._Element:
    """Parse XML text with the secure parser and return the root element.

    str input is encoded first so parts carrying an encoding declaration
    parse the same way whether read as text or bytes.
    Raises etree.XMLSyntaxError on malformed input.
    """
    if isinstance(xml_text, str):
        xml_text = xml_text.encode("utf-8")
    return etree.fromstring(xml_text, SECURE_PARSER)


def read_part(path: Path) -> etree._ElementTree:
    """Parse a package part from disk."""
    return etree.parse(str(path), SECURE_PARSER)


def write_part(path: Path, tree: etree._ElementTree) -> None:
    """Serialise *tree* back to *path* with the standard OOXML declaration."""
    tree.write(
        str(path),
        xml_declaration=True,
        encoding="UTF-8",
        standalone=True,
    )


def local_name(element: etree._Element) -> str:
    """Return the tag of *element* without its namespace."""
    return etree.QName(element).localname


def children_named(parent: etree._Element, name: str) -> list[etree._Element]:
    """Direct element children of *parent* whose local name is *name*.

    Comments and processing instructions are skipped. Matching on the local
    name keeps lookups working when a producer used an unexpected prefix or
    default namespace.
    """
    return [
        child for child in parent
        if isinstance(child.tag, str) and local_name(child) == name
    ]


def strip_empty_container(
    path: Path, tree: etree._ElementTree, *entry_names: str
) -> bool:
    """Remove the part at *path* when its root holds none of *entry_names*.

    A container element with no entries cannot be serialised as a useful
    part, so the whole part leaves the package. Returns True if removed.
    """
    root = tree.getroot()
    if any(children_named(root, name) for name in entry_names):
        return False
    path.unlink()
    return True


def save_or_strip(
    path: Path, tree: etree._ElementTree, *entry_names: str
) -> bool:
    """Write *tree* back to *path*, or drop the part if it has no entries left.

    Returns True if the part was dropped.
    """
    if strip_empty_container(path, tree, *entry_names):
        return True
    write_part(path, tree)
    return False
