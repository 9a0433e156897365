"""Tests for disk selection."""

import subprocess

import pytest

from standbyctl.disks import Disk
from standbyctl.selection import (
    SelectionError,
    checklist_items,
    choose_disks,
    manual_select,
    missing_paths,
    whiptail_select,
)


HDD = Disk(name="sda", model="WDC WD40EFRX", size="3.6T", rotational=True,
           stable_path="/dev/disk/by-id/ata-WDC_WD40EFRX")
SSD = Disk(name="sdb", model="", size="931.5G", rotational=False)


def dialog(stderr: str, returncode: int = 0) -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(["whiptail"], returncode=returncode, stdout="", stderr=stderr)


class TestChecklistItems:
    """Tests for checklist_items."""

    def test_triplets(self):
        """Stable path as tag, label as description, unchecked."""
        assert checklist_items([HDD, SSD]) == [
            "/dev/disk/by-id/ata-WDC_WD40EFRX", "sda(HDD,3.6T) WDC WD40EFRX", "OFF",
            "/dev/sdb", "sdb(SSD,931.5G)", "OFF",
        ]


class TestWhiptailSelect:
    """Tests for whiptail_select."""

    def test_parses_quoted_tags(self, mock_context):
        """Quoted tags from stderr become paths."""
        ctx = mock_context(dialog_result=dialog('"/dev/disk/by-id/ata-WDC_WD40EFRX" "/dev/sdb"'))

        selected = whiptail_select([HDD, SSD], ctx)

        assert selected == ["/dev/disk/by-id/ata-WDC_WD40EFRX", "/dev/sdb"]
        cmd = ctx.dialogs_run[0]
        assert cmd[:3] == ["whiptail", "--title", "LVM global_filter disk exclude"]
        assert "--checklist" in cmd

    def test_cancel(self, mock_context):
        """Non-zero exit (Cancel/Esc) raises SelectionError."""
        ctx = mock_context(dialog_result=dialog("", returncode=1))

        with pytest.raises(SelectionError, match="cancelled"):
            whiptail_select([HDD], ctx)


class TestManualSelect:
    """Tests for manual_select."""

    def test_splits_on_whitespace(self, mock_context):
        """Space separated answer becomes a list."""
        ctx = mock_context(prompt_answers=["  /dev/sda   /dev/sdb "])

        assert manual_select([HDD, SSD], ctx) == ["/dev/sda", "/dev/sdb"]
        assert "/dev/disk/by-id/ata-WDC_WD40EFRX (sda(HDD,3.6T) WDC WD40EFRX)" in ctx.prompts[0]

    def test_eof(self, mock_context):
        """Closed stdin raises SelectionError."""
        ctx = mock_context(prompt_answers=[])

        with pytest.raises(SelectionError):
            manual_select([HDD], ctx)


class TestChooseDisks:
    """Tests for choose_disks."""

    def test_uses_whiptail_when_available(self, mock_context):
        """whiptail is preferred when installed."""
        ctx = mock_context(tools_available=["whiptail"], dialog_result=dialog('"/dev/sdb"'))

        assert choose_disks([HDD, SSD], ctx) == ["/dev/sdb"]
        assert ctx.prompts == []

    def test_falls_back_to_prompt(self, mock_context):
        """Without whiptail the operator types paths."""
        ctx = mock_context(tools_available=[], prompt_answers=["/dev/sdb"])

        assert choose_disks([HDD, SSD], ctx) == ["/dev/sdb"]
        assert ctx.dialogs_run == []

    def test_manual_flag_skips_whiptail(self, mock_context):
        """manual=True prompts even when whiptail exists."""
        ctx = mock_context(tools_available=["whiptail"], prompt_answers=["/dev/sda"])

        assert choose_disks([HDD], ctx, manual=True) == ["/dev/sda"]

    def test_no_disks(self, mock_context):
        """Nothing to choose from is an error."""
        with pytest.raises(SelectionError, match="No disks found"):
            choose_disks([], mock_context())

    def test_nothing_selected(self, mock_context):
        """An empty selection is an error."""
        ctx = mock_context(tools_available=["whiptail"], dialog_result=dialog(""))

        with pytest.raises(SelectionError, match="No disks selected"):
            choose_disks([HDD], ctx)

    def test_duplicates_removed(self, mock_context):
        """Typing a path twice selects it once."""
        ctx = mock_context(prompt_answers=["/dev/sda /dev/sda /dev/sdb"])

        assert choose_disks([HDD, SSD], ctx) == ["/dev/sda", "/dev/sdb"]


class TestMissingPaths:
    """Tests for missing_paths."""

    def test_reports_absent(self, mock_context):
        """Paths that do not exist are returned."""
        ctx = mock_context(symlinks={"/dev/disk/by-id/ata-X": "/dev/sda"})

        assert missing_paths(["/dev/disk/by-id/ata-X", "/dev/sdq"], ctx) == ["/dev/sdq"]
