"""Tests for the add-in removal engine on extracted packages."""

from pathlib import Path

import pytest
from lxml import etree

from addin_remover.handlers import removal
from addin_remover.handlers.descriptor_scanner import scan_descriptors
from addin_remover.handlers.package_verifier import check_package_root
from addin_remover.handlers.relationship_index import (
    relationship_targets,
    taskpane_relationship_ids,
)
from addin_remover.handlers.removal import remove_addins
from addin_remover.models import EventLevel, RemovalStatus
from addin_remover.package_layout import TASKPANES_REL_TYPE
from tests.package_builder import (
    ADDIN_A,
    ADDIN_B,
    ADDIN_C,
    Addin,
    build_xlsx,
    extract_to,
    read_text,
    snapshot,
)

WEBEXT = "xl/webextensions"


def _overrides(root: Path) -> list[str]:
    tree = etree.parse(str(root / "[Content_Types].xml"))
    return [
        el.get("PartName")
        for el in tree.getroot()
        if etree.QName(el).localname == "Override"
        and el.get("PartName").startswith("/xl/webextensions/")
    ]


def _root_rel_types(root: Path) -> list[str]:
    tree = etree.parse(str(root / "_rels/.rels"))
    return [el.get("Type") for el in tree.getroot()]


# ── No-op paths ───────────────────────────────────────────────────────────────


class TestNoOp:
    def test_empty_id_list_changes_nothing(self, two_addin_root: Path) -> None:
        before = snapshot(two_addin_root)
        report = remove_addins(two_addin_root, [])
        assert report.status == RemovalStatus.SUCCESS
        assert report.removed_parts == []
        assert snapshot(two_addin_root) == before

    def test_no_webextensions_directory(self, plain_root: Path) -> None:
        before = snapshot(plain_root)
        report = remove_addins(plain_root, [ADDIN_A])
        assert report.status == RemovalStatus.SUCCESS
        assert snapshot(plain_root) == before

    def test_unknown_id_changes_nothing(self, two_addin_root: Path) -> None:
        before = snapshot(two_addin_root)
        report = remove_addins(two_addin_root, ["{00000000-0000-0000-0000-000000000000}"])
        assert report.status == RemovalStatus.SUCCESS
        assert report.removed_ids == []
        assert snapshot(two_addin_root) == before

    def test_second_removal_is_idempotent(self, two_addin_root: Path) -> None:
        remove_addins(two_addin_root, [ADDIN_A])
        after_first = snapshot(two_addin_root)
        report = remove_addins(two_addin_root, [ADDIN_A])
        assert report.removed_parts == []
        assert snapshot(two_addin_root) == after_first


# ── Whole-subtree removal ─────────────────────────────────────────────────────


class TestRemoveAll:
    def test_single_addin_removed(self, single_addin_root: Path) -> None:
        report = remove_addins(single_addin_root, [ADDIN_A])
        assert report.status == RemovalStatus.SUCCESS
        assert report.subtree_removed is True
        assert report.removed_ids == [ADDIN_A]
        assert report.removed_parts == ["webextension1.xml"]
        assert scan_descriptors(single_addin_root) == []
        assert not (single_addin_root / WEBEXT).exists()

    def test_subsystem_cleaned_up(self, two_addin_root: Path) -> None:
        remove_addins(two_addin_root, [ADDIN_A, ADDIN_B])
        assert not (two_addin_root / WEBEXT).exists()
        assert not (two_addin_root / WEBEXT / "taskpanes.xml").exists()
        assert not (two_addin_root / WEBEXT / "_rels/taskpanes.xml.rels").exists()
        assert TASKPANES_REL_TYPE not in _root_rel_types(two_addin_root)
        assert _overrides(two_addin_root) == []
        assert check_package_root(two_addin_root) == []

    def test_other_root_relationships_kept(self, single_addin_root: Path) -> None:
        before = _root_rel_types(single_addin_root)
        remove_addins(single_addin_root, [ADDIN_A])
        after = _root_rel_types(single_addin_root)
        assert len(after) == len(before) - 1
        assert any(t.endswith("/officeDocument") for t in after)

    def test_duplicate_ids_count_once(self, single_addin_root: Path) -> None:
        report = remove_addins(single_addin_root, [ADDIN_A, ADDIN_A])
        assert report.requested_ids == [ADDIN_A]
        assert report.removed_ids == [ADDIN_A]


# ── Partial removal ───────────────────────────────────────────────────────────


class TestRemoveSome:
    def test_remaining_addin_survives(self, two_addin_root: Path) -> None:
        report = remove_addins(two_addin_root, [ADDIN_A])
        assert report.status == RemovalStatus.SUCCESS
        assert report.subtree_removed is False
        remaining = scan_descriptors(two_addin_root)
        assert [a.id for a in remaining] == [ADDIN_B]

    def test_one_override_left(self, two_addin_root: Path) -> None:
        remove_addins(two_addin_root, [ADDIN_A])
        assert sorted(_overrides(two_addin_root)) == [
            "/xl/webextensions/taskpanes.xml",
            "/xl/webextensions/webextension2.xml",
        ]

    def test_taskpane_and_relationship_detached(self, two_addin_root: Path) -> None:
        remove_addins(two_addin_root, [ADDIN_A])
        panes = etree.fromstring(
            (two_addin_root / WEBEXT / "taskpanes.xml").read_bytes()
        )
        rels = etree.fromstring(
            (two_addin_root / WEBEXT / "_rels/taskpanes.xml.rels").read_bytes()
        )
        assert taskpane_relationship_ids(panes) == ["rId2"]
        assert relationship_targets(rels) == {"rId2": "webextension2.xml"}

    def test_root_relationship_kept_while_addins_remain(
        self, two_addin_root: Path
    ) -> None:
        remove_addins(two_addin_root, [ADDIN_A])
        assert TASKPANES_REL_TYPE in _root_rel_types(two_addin_root)
        assert check_package_root(two_addin_root) == []

    def test_monotonic_removal_of_subset(self, tmp_path: Path) -> None:
        root = extract_to(
            tmp_path / "pkg",
            build_xlsx([Addin(ADDIN_A), Addin(ADDIN_B), Addin(ADDIN_C)]),
        )
        original = scan_descriptors(root)
        remove_addins(root, [ADDIN_A, ADDIN_C])
        assert scan_descriptors(root) == [a for a in original if a.id == ADDIN_B]
        assert check_package_root(root) == []

    def test_unrelated_files_untouched(self, two_addin_root: Path) -> None:
        before = snapshot(two_addin_root)
        remove_addins(two_addin_root, [ADDIN_A])
        after = snapshot(two_addin_root)
        for name, data in before.items():
            if name.startswith("xl/webextensions/") or name in (
                "[Content_Types].xml", "_rels/.rels",
            ):
                continue
            assert after[name] == data

    def test_unparseable_part_left_alone(self, two_addin_root: Path) -> None:
        junk = two_addin_root / WEBEXT / "webextension7.xml"
        junk.write_text("not xml at all")
        remove_addins(two_addin_root, [ADDIN_A])
        assert junk.read_text() == "not xml at all"


# ── Tolerated inconsistencies and failures ────────────────────────────────────


class TestDanglingAndFallback:
    def test_unbound_descriptor_is_removed_with_warning(self, tmp_path: Path) -> None:
        root = extract_to(
            tmp_path / "pkg",
            build_xlsx([Addin(ADDIN_A), Addin(ADDIN_B, bound=False)]),
        )
        report = remove_addins(root, [ADDIN_B])
        assert report.status == RemovalStatus.SUCCESS
        assert report.removed_ids == [ADDIN_B]
        warnings = [e for e in report.events if e.level == EventLevel.WARNING]
        assert len(warnings) == 1
        assert "dangling" in warnings[0].message
        assert warnings[0].part == "webextension2.xml"
        assert [a.id for a in scan_descriptors(root)] == [ADDIN_A]

    def test_empty_registry_is_stripped(self, tmp_path: Path) -> None:
        root = extract_to(
            tmp_path / "pkg",
            build_xlsx([Addin(ADDIN_A), Addin(ADDIN_B, bound=False)]),
        )
        remove_addins(root, [ADDIN_A])
        assert [a.id for a in scan_descriptors(root)] == [ADDIN_B]
        assert not (root / WEBEXT / "taskpanes.xml").exists()
        assert not (root / WEBEXT / "_rels/taskpanes.xml.rels").exists()
        assert TASKPANES_REL_TYPE not in _root_rel_types(root)
        assert _overrides(root) == ["/xl/webextensions/webextension2.xml"]
        assert check_package_root(root) == []

    def test_partial_edit_failure_falls_back_to_subtree(
        self, two_addin_root: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def _boom(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr(removal, "detach_descriptors", _boom)
        report = remove_addins(two_addin_root, [ADDIN_A])

        assert report.fallback_used is True
        assert report.subtree_removed is True
        assert report.status == RemovalStatus.PARTIAL_FAILURE
        assert not (two_addin_root / WEBEXT).exists()
        assert _overrides(two_addin_root) == []
        assert TASKPANES_REL_TYPE not in _root_rel_types(two_addin_root)
        assert check_package_root(two_addin_root) == []
        messages = " ".join(e.message for e in report.events)
        assert "disk full" in messages
        assert "webextension2.xml" in messages

    def test_content_types_failure_does_not_stop_root_update(
        self, single_addin_root: Path
    ) -> None:
        (single_addin_root / "[Content_Types].xml").write_text("<Types")
        report = remove_addins(single_addin_root, [ADDIN_A])

        assert report.status == RemovalStatus.PARTIAL_FAILURE
        errors = [e for e in report.events if e.level == EventLevel.ERROR]
        assert [e.step for e in errors] == ["content_types"]
        assert TASKPANES_REL_TYPE not in _root_rel_types(single_addin_root)

    def test_missing_content_types_is_not_an_error(
        self, single_addin_root: Path
    ) -> None:
        (single_addin_root / "[Content_Types].xml").unlink()
        report = remove_addins(single_addin_root, [ADDIN_A])
        assert report.status == RemovalStatus.SUCCESS

    def test_missing_relationship_file_still_removes(
        self, two_addin_root: Path
    ) -> None:
        (two_addin_root / WEBEXT / "_rels/taskpanes.xml.rels").unlink()
        report = remove_addins(two_addin_root, [ADDIN_A])
        assert report.status == RemovalStatus.SUCCESS
        assert [a.id for a in scan_descriptors(two_addin_root)] == [ADDIN_B]
        assert "webextension1.xml" not in read_text(
            two_addin_root, "[Content_Types].xml"
        )
