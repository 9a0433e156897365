"""Disk enumeration and stable /dev/disk/by-id path resolution."""

import json
from dataclasses import dataclass
from typing import Any

from standbyctl.core.context import Context
from standbyctl.lib.process import CommandError, run_command


LSBLK_CMD = ["lsblk", "-d", "-J", "-o", "NAME,MODEL,SIZE,ROTA,TYPE"]

# by-id prefixes tied to the drive's own identity, best first
PREFERRED_PREFIXES = ("ata-", "scsi-", "nvme-")
# never preferred, only used as a plain fallback alias
UNSTABLE_PREFIXES = ("nvme-eui.",)


@dataclass
class Disk:
    """A whole physical disk as lsblk reports it."""

    name: str
    model: str
    size: str
    rotational: bool
    stable_path: str | None = None

    @property
    def device(self) -> str:
        return f"/dev/{self.name}"

    @property
    def kind(self) -> str:
        return "HDD" if self.rotational else "SSD"

    @property
    def label(self) -> str:
        """Short checklist description: sda(HDD,4T) MODEL."""
        text = f"{self.name}({self.kind},{self.size})"
        if self.model:
            text += f" {self.model}"
        return text

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind,
            "size": self.size,
            "model": self.model,
            "stable_path": self.stable_path or self.device,
        }


def _is_rotational(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip() in ("1", "true")


def parse_lsblk(stdout: str) -> list[Disk]:
    """Whole disks from `lsblk -J` output; partitions, loop and rom devices are dropped."""
    data = json.loads(stdout or "{}")
    disks = []
    for dev in data.get("blockdevices", []):
        if dev.get("type") != "disk":
            continue
        disks.append(
            Disk(
                name=dev["name"],
                model=(dev.get("model") or "").strip(),
                size=dev.get("size") or "",
                rotational=_is_rotational(dev.get("rota")),
            )
        )
    return disks


def list_disks(context: Context) -> list[Disk]:
    """
    Enumerate physical disks.

    Raises:
        CommandError: If lsblk fails or prints something unparseable
    """
    stdout = run_command(LSBLK_CMD, context, check=True)
    try:
        return parse_lsblk(stdout)
    except (ValueError, KeyError) as e:
        raise CommandError(f"Unexpected lsblk output: {e}") from e


def _aliases(device: str, by_id_dir: str, context: Context) -> list[str]:
    """by-id names pointing at device, in directory order."""
    try:
        names = context.listdir(by_id_dir)
    except OSError:
        return []
    return [n for n in names if context.realpath(f"{by_id_dir}/{n}") == device]


def resolve_stable_path(device: str, context: Context, by_id_dir: str = "/dev/disk/by-id") -> str:
    """
    Most specific persistent alias of a raw device node.

    Identity-derived ata-/scsi-/nvme- names win, then any other by-id name,
    then the raw device path itself.
    """
    aliases = _aliases(device, by_id_dir, context)

    for name in aliases:
        if name.startswith(PREFERRED_PREFIXES) and not name.startswith(UNSTABLE_PREFIXES):
            return f"{by_id_dir}/{name}"

    if aliases:
        return f"{by_id_dir}/{aliases[0]}"

    return device


def list_disks_with_paths(context: Context, by_id_dir: str = "/dev/disk/by-id") -> list[Disk]:
    """list_disks() with stable_path filled in."""
    disks = list_disks(context)
    for disk in disks:
        disk.stable_path = resolve_stable_path(disk.device, context, by_id_dir)
    return disks
