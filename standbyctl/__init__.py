"""Keep idle Proxmox VE disks in standby."""

__version__ = "0.1.0"
