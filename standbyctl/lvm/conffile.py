"""
Locate and replace the ``devices { global_filter = [...] }`` block in lvm.conf.

Structure is found on a masked copy of the document in which comments and
quoted strings are blanked out, so commented-out examples and brackets inside
rules never look like syntax. Offsets in the masked copy match the original.
"""

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from standbyctl.lib.filesystem import read_file, update_file
from standbyctl.lvm.filter import Rule, merge, parse_entries, suspicious_rules

if TYPE_CHECKING:
    from standbyctl.core.context import Context


SECTION = "devices"
LIST_NAME = "global_filter"

_SECTION_RE = re.compile(rf"(?<![\w/.]){SECTION}\s*\{{")
_ASSIGN_RE = re.compile(rf"(?<![\w/.]){LIST_NAME}\s*=\s*\[")


class FilterBlockError(Exception):
    """lvm.conf does not have the expected shape."""

    pass


class MissingSectionError(FilterBlockError):
    """The devices section is absent."""

    pass


def mask(text: str) -> str:
    """Blank comments and string literals, keeping length and newlines."""
    out = list(text)
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "#":
            while i < n and text[i] != "\n":
                out[i] = " "
                i += 1
        elif ch == '"':
            out[i] = " "
            i += 1
            while i < n and text[i] != '"':
                step = 2 if text[i] == "\\" else 1
                for j in range(i, min(i + step, n)):
                    if text[j] != "\n":
                        out[j] = " "
                i += step
            if i < n:
                out[i] = " "
                i += 1
        else:
            i += 1
    return "".join(out)


def _matching_brace(masked: str, open_index: int) -> int | None:
    depth = 0
    for i in range(open_index, len(masked)):
        if masked[i] == "{":
            depth += 1
        elif masked[i] == "}":
            depth -= 1
            if depth == 0:
                return i
    return None


def _line_start(text: str, index: int) -> int:
    return text.rfind("\n", 0, index) + 1


def _indent_step(indent: str) -> str:
    return "\t" if "\t" in indent else "    "


@dataclass
class FilterLocation:
    """Where the devices section and its global_filter sit in a document."""

    section_open: int
    section_close: int
    start: int | None = None
    open_bracket: int | None = None
    close_bracket: int | None = None
    indent: str = field(default="    ")

    @property
    def exists(self) -> bool:
        return self.open_bracket is not None

    @property
    def entry_indent(self) -> str:
        return self.indent + _indent_step(self.indent)

    def inner(self, text: str) -> str:
        """Text between the brackets, empty when there is no filter yet."""
        if not self.exists:
            return ""
        return text[self.open_bracket + 1 : self.close_bracket]


def locate(text: str) -> FilterLocation:
    """
    Find the devices section and the global_filter list inside it.

    Raises:
        MissingSectionError: No devices section
        FilterBlockError: Section or list is not closed
    """
    masked = mask(text)

    section = _SECTION_RE.search(masked)
    if section is None:
        raise MissingSectionError(f"missing '{SECTION} {{ }}' section")

    section_open = section.end() - 1
    section_close = _matching_brace(masked, section_open)
    if section_close is None:
        raise FilterBlockError(f"unterminated '{SECTION}' section")

    location = FilterLocation(section_open=section_open, section_close=section_close)

    assign = _ASSIGN_RE.search(masked, section_open + 1, section_close)
    if assign is None:
        location.indent = _body_indent(masked, section_open, section_close)
        return location

    open_bracket = assign.end() - 1
    close_bracket = masked.find("]", open_bracket + 1, section_close)
    if close_bracket == -1:
        raise FilterBlockError(f"unterminated '{LIST_NAME}' list")

    line_start = _line_start(text, assign.start())
    leading = text[line_start : assign.start()]
    if leading.strip():
        location.start = assign.start()
        location.indent = ""
    else:
        location.start = line_start
        location.indent = leading
    location.open_bracket = open_bracket
    location.close_bracket = close_bracket
    return location


def _body_indent(masked: str, section_open: int, section_close: int) -> str:
    """Indentation of the first line with settings inside the section."""
    offset = section_open + 1
    for line in masked[offset:section_close].split("\n")[1:]:
        if line.strip():
            return line[: len(line) - len(line.lstrip())]
    return "    "


def render_assignment(merged_block_text: str, indent: str) -> str:
    return f"{indent}{LIST_NAME} = [\n{merged_block_text}\n{indent}]"


def splice(text: str, merged_block_text: str, location: FilterLocation | None = None) -> str:
    """
    Put a merged filter block into the document.

    An existing global_filter is replaced in place; otherwise a new one
    becomes the first entry of the devices section.

    Raises:
        MissingSectionError: No devices section to put the filter in
    """
    if location is None:
        location = locate(text)

    assignment = render_assignment(merged_block_text, location.indent)

    if location.exists:
        return text[: location.start] + assignment + text[location.close_bracket + 1 :]

    brace = location.section_open
    newline = text.find("\n", brace)
    if newline != -1 and not mask(text[brace + 1 : newline]).strip():
        return text[: newline + 1] + assignment + "\n" + text[newline + 1 :]
    return text[: brace + 1] + "\n" + assignment + "\n" + text[brace + 1 :]


def read_entries(text: str) -> list[Rule]:
    """Current global_filter rules; empty when the list is absent."""
    location = locate(text)
    return parse_entries(location.inner(text))


def merge_document(text: str, new_reject_paths: list[str]) -> str:
    """New document text with the reject paths merged into global_filter."""
    location = locate(text)
    merged = merge(location.inner(text), new_reject_paths, indent=location.entry_indent)
    return splice(text, merged, location)


@dataclass
class UpdateResult:
    """What apply_update changed."""

    path: str
    backup: str
    inserted: bool
    previous: list[Rule]
    entries: list[Rule]
    suspicious: list[Rule]


def apply_update(path: str, new_reject_paths: list[str], context: "Context", logger=None) -> UpdateResult:
    """
    Merge reject paths into an lvm.conf on disk.

    The new text is computed first so structural errors leave the file
    alone; then the file is backed up and replaced.

    Raises:
        FileError: Missing file, failed backup or write
        FilterBlockError: Unexpected file structure
    """
    original = read_file(path, context=context)
    location = locate(original)
    existing = parse_entries(location.inner(original))
    merged = merge(location.inner(original), new_reject_paths, indent=location.entry_indent)
    updated = splice(original, merged, location)

    backup = update_file(path, updated, context)
    entries = read_entries(updated)
    suspicious = suspicious_rules(existing)

    if logger is not None:
        logger.info(
            "Updated global_filter",
            path=path,
            backup=backup,
            inserted=not location.exists,
            added=list(new_reject_paths),
            entries=[r.text for r in entries],
        )
        for rule in suspicious:
            logger.warning("Preserved rule looks malformed", rule=rule.text)

    return UpdateResult(
        path=path,
        backup=backup,
        inserted=not location.exists,
        previous=existing,
        entries=entries,
        suspicious=suspicious,
    )
