"""Editing the LVM device filter."""

from standbyctl.lvm.conffile import (
    FilterBlockError,
    MissingSectionError,
    UpdateResult,
    apply_update,
    locate,
    merge_document,
    read_entries,
    splice,
)
from standbyctl.lvm.filter import ACCEPT_ALL, Rule, merge, merge_rules, parse_entries, reject_rule

__all__ = [
    "ACCEPT_ALL",
    "FilterBlockError",
    "MissingSectionError",
    "Rule",
    "UpdateResult",
    "apply_update",
    "locate",
    "merge",
    "merge_document",
    "merge_rules",
    "parse_entries",
    "read_entries",
    "reject_rule",
    "splice",
]
