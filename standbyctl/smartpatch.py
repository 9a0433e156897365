"""
Make Proxmox's SMART queries leave sleeping disks alone.

PVE::Diskmanage builds its smartctl command as ``[$SMARTCTL, '-H']``. Adding
``'-n', 'standby'`` right after the program makes smartctl return without
touching a disk that is spun down. The edit is marked with a comment so it is
applied once, and an APT hook re-applies it after package upgrades replace
the module.
"""

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from standbyctl.lib.filesystem import FileError, read_file, replace_file, update_file

if TYPE_CHECKING:
    from standbyctl.core.context import Context


MARKER = "# standbyctl: smartctl -n standby"
STANDBY_ARGS = "'-n', 'standby'"

_COMMAND_RE = re.compile(r"\[\s*\$SMARTCTL\b")
_HAS_ARGS_RE = re.compile(r"""\$SMARTCTL\s*,\s*['"]-n['"]\s*,\s*['"]standby['"]""")
# '-n standby' passed as one argument; smartctl rejects it
_BAD_SINGLE_RE = re.compile(r"""(['"])-n standby\1""")
_DUPLICATE_RE = re.compile(
    r"""(['"]-n['"]\s*,\s*['"]standby['"])(?:\s*,\s*['"]-n['"]\s*,\s*['"]standby['"])+"""
)

HOOK_COMMAND = (
    "if command -v standbyctl >/dev/null 2>&1; then "
    "standbyctl smart-patch --no-hook >/dev/null 2>&1 || true; fi"
)


class PatchError(Exception):
    """The module does not look the way the patch expects."""

    pass


@dataclass
class PatchResult:
    """Outcome of patching the module text."""

    text: str
    patched: list[int] = field(default_factory=list)
    repaired: list[int] = field(default_factory=list)
    marker_added: bool = False
    backup: str | None = None

    @property
    def changed(self) -> bool:
        return bool(self.patched or self.repaired or self.marker_added)

    @property
    def status(self) -> str:
        if self.patched or self.marker_added:
            return "patched"
        if self.repaired:
            return "repaired"
        return "unchanged"


def _repair(line: str) -> str:
    line = _BAD_SINGLE_RE.sub(r"\1-n\1, \1standby\1", line)
    return _DUPLICATE_RE.sub(r"\1", line)


def _insert_args(line: str) -> str:
    return re.sub(r"(\$SMARTCTL)\b", rf"\1, {STANDBY_ARGS}", line, count=1)


def patch_text(text: str) -> PatchResult:
    """
    Add the standby flag to every smartctl command line.

    Line numbers in the result are 1-based and refer to the input text.

    Raises:
        PatchError: No smartctl command line found
    """
    lines = text.split("\n")
    targets = [i for i, line in enumerate(lines) if _COMMAND_RE.search(line) and not line.lstrip().startswith("#")]
    if not targets:
        raise PatchError("No '[$SMARTCTL, ...]' command line found; refusing to guess")

    result = PatchResult(text=text)
    for i in targets:
        line = lines[i]
        fixed = _repair(line)
        if fixed != line:
            result.repaired.append(i + 1)
        if not _HAS_ARGS_RE.search(fixed):
            fixed = _insert_args(fixed)
            if not _HAS_ARGS_RE.search(fixed):
                raise PatchError(f"Cannot patch line {i + 1}: {line.strip()}")
            result.patched.append(i + 1)
        lines[i] = fixed

    if MARKER not in text:
        first = targets[0]
        indent = lines[first][: len(lines[first]) - len(lines[first].lstrip())]
        lines.insert(first, f"{indent}{MARKER}")
        result.marker_added = True

    result.text = "\n".join(lines)
    return result


def apply_patch(path: str, context: "Context", logger=None, dry_run: bool = False) -> PatchResult:
    """
    Patch the module file, backing it up first when it changes.

    Raises:
        FileError: Missing module, failed backup or write
        PatchError: Unrecognised module content
    """
    original = read_file(path, context=context)
    result = patch_text(original)

    if result.changed and not dry_run:
        result.backup = update_file(path, result.text, context)
        if logger is not None:
            logger.info(
                "Patched smartctl invocation",
                path=path,
                backup=result.backup,
                patched=result.patched,
                repaired=result.repaired,
            )
    return result


def hook_content(command: str = HOOK_COMMAND) -> str:
    return (
        "// Installed by standbyctl: re-apply the smartctl standby patch after package upgrades.\n"
        "// Remove with: standbyctl smart-patch --remove\n"
        f'DPkg::Post-Invoke {{ "{command}"; }};\n'
    )


def install_hook(path: str, context: "Context", logger=None) -> bool:
    """
    Write the APT hook file.

    Returns:
        False if an identical hook was already installed
    """
    content = hook_content()
    if read_file(path, context=context, default="") == content:
        return False
    replace_file(path, content, context)
    if logger is not None:
        logger.info("Installed APT hook", path=path)
    return True


def remove_hook(path: str, context: "Context", logger=None) -> bool:
    """
    Delete the APT hook file. Module edits already made stay in place.

    Returns:
        False if there was no hook to remove
    """
    if not context.file_exists(path):
        return False
    try:
        context.remove_file(path)
    except OSError as e:
        raise FileError(f"Cannot remove {path}: {e}")
    if logger is not None:
        logger.info("Removed APT hook", path=path)
    return True
