"""Validation wrappers that produce rich, agent-friendly error messages.

Each wrapper replaces inline validation in tools_extract.py and
tools_write.py. When an agent passes bad inputs, the error names the tool,
the exact problem, and includes a mini usage example — so any agent can
self-correct in one retry.
"""

from __future__ import annotations

from addin_remover.validators import resolve_file_input, validate_addin_ids


# ── Usage examples per tool ──────────────────────────────────────────────────

USAGE: dict[str, str] = {
    "list_addins": (
        'list_addins(file_path="workbook.xlsx")'
    ),
    "remove_addins": (
        'remove_addins(file_path="workbook.xlsx", '
        'addin_ids=["{95AE2F8B-2D0F-4002-A049-EEA6ACF6B70B}"], '
        'output_file_path="workbook.clean.xlsx")'
    ),
    "verify_package": (
        'verify_package(file_path="workbook.clean.xlsx")'
    ),
}


# ── File input wrapper ───────────────────────────────────────────────────────

def resolve_file_for_tool(
    tool_name: str,
    file_bytes_b64: str | None,
    file_path: str | None,
) -> tuple[bytes, str]:
    """Wrap resolve_file_input with tool-specific context on failure."""
    try:
        return resolve_file_input(file_bytes_b64, file_path)
    except ValueError as exc:
        example = USAGE.get(tool_name, tool_name)
        raise ValueError(
            f"{tool_name} error: {exc}\n"
            f"  Example: {example}"
        ) from exc


# ── Add-in id wrapper ────────────────────────────────────────────────────────

def validate_addin_ids_for_tool(tool_name: str, addin_ids: object) -> list[str]:
    """Validate the addin_ids argument, pointing at list_addins on failure."""
    try:
        return validate_addin_ids(addin_ids)
    except ValueError as exc:
        raise ValueError(
            f"{tool_name} error: {exc}\n"
            f"  Use the 'id' values returned by list_addins.\n"
            f"  Example: {USAGE.get(tool_name, tool_name)}"
        ) from exc
