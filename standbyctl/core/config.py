"""Configuration loading with layered overrides."""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from standbyctl.core.logging import default_log_dir


SYSTEM_CONFIG = Path("/etc/standbyctl/config.yaml")


def user_config_path() -> Path:
    return Path.home() / ".config" / "standbyctl" / "config.yaml"


class ConfigError(Exception):
    """Error loading or validating configuration."""

    pass


@dataclass
class Settings:
    """Paths and names the commands operate on."""

    lvm_conf: str = "/etc/lvm/lvm.conf"
    by_id_dir: str = "/dev/disk/by-id"
    diskmanage_module: str = "/usr/share/perl5/PVE/Diskmanage.pm"
    apt_hook: str = "/etc/apt/apt.conf.d/99standbyctl-smart-standby"
    services: list[str] = field(default_factory=lambda: ["pvedaemon", "pveproxy"])
    cache_refresh: list[list[str]] = field(
        default_factory=lambda: [["pvscan", "--cache"], ["vgscan", "--cache"]]
    )
    log_dir: str = field(default_factory=lambda: str(default_log_dir()))


def load_config_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML config file if it exists.

    Raises:
        ConfigError: If the file is not valid YAML or not a mapping
    """
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config must be a YAML mapping: {path}")
    return data


def _check_value(name: str, value: Any, source: Path) -> Any:
    if name == "services":
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigError(f"'{name}' must be a list of strings ({source})")
    elif name == "cache_refresh":
        if not isinstance(value, list) or not all(
            isinstance(cmd, list) and cmd and all(isinstance(a, str) for a in cmd)
            for cmd in value
        ):
            raise ConfigError(f"'{name}' must be a list of commands ({source})")
    elif not isinstance(value, str):
        raise ConfigError(f"'{name}' must be a string ({source})")
    return value


def load_settings(explicit: Path | None = None) -> Settings:
    """
    Build settings from defaults, system config, user config and an
    explicit file, later layers overriding earlier ones.

    Raises:
        ConfigError: If any layer is invalid, or the explicit file is missing
    """
    settings = Settings()
    known = {f.name for f in fields(Settings)}

    layers = [SYSTEM_CONFIG, user_config_path()]
    if explicit is not None:
        if not explicit.exists():
            raise ConfigError(f"Config file not found: {explicit}")
        layers.append(explicit)

    for path in layers:
        data = load_config_file(path)
        for key, value in data.items():
            if key not in known:
                continue
            setattr(settings, key, _check_value(key, value, path))

    settings.log_dir = str(Path(settings.log_dir).expanduser())
    return settings
