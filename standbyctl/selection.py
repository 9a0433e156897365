"""Choosing which disks to exclude: whiptail checklist or typed paths."""

import shlex

from standbyctl.core.context import Context
from standbyctl.disks import Disk


DIALOG_TITLE = "LVM global_filter disk exclude"
DIALOG_TEXT = "Choose disks to exclude from LVM scanning (prevents spin-up):"
DIALOG_SIZE = ["22", "90", "12"]


class SelectionError(Exception):
    """No usable selection was made."""

    pass


def checklist_items(disks: list[Disk]) -> list[str]:
    """Flat tag/description/status triplets, all unchecked."""
    items = []
    for disk in disks:
        items.extend([disk.stable_path or disk.device, disk.label, "OFF"])
    return items


def whiptail_select(disks: list[Disk], context: Context) -> list[str]:
    """
    Show a checklist and return the checked stable paths.

    Raises:
        SelectionError: If the dialog is cancelled
    """
    cmd = ["whiptail", "--title", DIALOG_TITLE, "--checklist", DIALOG_TEXT, *DIALOG_SIZE]
    cmd.extend(checklist_items(disks))

    result = context.run_dialog(cmd)
    if result.returncode != 0:
        raise SelectionError("Selection cancelled.")

    # whiptail prints the checked tags quoted and space separated
    return shlex.split(result.stderr or "")


def manual_prompt_text(disks: list[Disk]) -> str:
    lines = ["Available disks (best by-id shown):"]
    for disk in disks:
        lines.append(f"  - {disk.stable_path or disk.device} ({disk.label})")
    lines.append("")
    lines.append("Enter space-separated paths to exclude (e.g. /dev/disk/by-id/ata-... /dev/disk/by-id/scsi-...):")
    return "\n".join(lines) + "\n> "


def manual_select(disks: list[Disk], context: Context) -> list[str]:
    """
    Ask for paths on the terminal.

    Raises:
        SelectionError: If input is closed
    """
    try:
        answer = context.prompt(manual_prompt_text(disks))
    except (EOFError, KeyboardInterrupt):
        raise SelectionError("Selection cancelled.")
    return answer.split()


def choose_disks(disks: list[Disk], context: Context, manual: bool = False) -> list[str]:
    """
    Pick disks to exclude, through whiptail when available.

    Returns:
        Selected paths in the order given, without repeats

    Raises:
        SelectionError: No disks to choose from, cancelled, or nothing chosen
    """
    if not disks:
        raise SelectionError("No disks found via lsblk.")

    if not manual and context.check_tool("whiptail"):
        selected = whiptail_select(disks, context)
    else:
        selected = manual_select(disks, context)

    selected = list(dict.fromkeys(selected))
    if not selected:
        raise SelectionError("No disks selected.")
    return selected


def missing_paths(paths: list[str], context: Context) -> list[str]:
    """Selected paths that do not exist on this host."""
    return [p for p in paths if not context.file_exists(p)]
