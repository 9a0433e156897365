"""
LVM filter rules and the filter-block merger.

A filter block is the content between the brackets of a ``global_filter``
assignment in lvm.conf: a comma separated list of double-quoted rules such as
``"r|/dev/zd.*|"`` (reject) or ``"a|.*|"`` (accept). LVM applies the first
rule whose pattern matches a device, so new rejects go first and the
accept-all rule goes last.

Rule text is kept exactly as written between the quotes, escapes included.
Anything on a line after its leading quoted strings is carried through
untouched as an opaque entry.
"""

from dataclasses import dataclass
from typing import Iterable


ACCEPT_ALL = "a|.*|"
DELIMITER = "|"
DEFAULT_INDENT = "        "

# Characters that need a backslash inside a rendered reject rule
_ESCAPED = ("\\", DELIMITER, '"')


@dataclass(frozen=True)
class Rule:
    """One filter entry."""

    text: str
    opaque: bool = False

    @property
    def action(self) -> str | None:
        """'a' or 'r' for well-formed rules, None otherwise."""
        if self.opaque or len(self.text) < 3 or self.text[0] not in "ar":
            return None
        delim = self.text[1]
        if delim.isalnum() or delim.isspace() or self.text[-1] != delim:
            return None
        return self.text[0]

    @property
    def is_accept_all(self) -> bool:
        return not self.opaque and self.text == ACCEPT_ALL

    def render(self) -> str:
        """Text as it appears in lvm.conf, without trailing comma."""
        if self.opaque:
            return self.text
        return f'"{self.text}"'


def escape_path(path: str) -> str:
    """Backslash-escape characters that would end the pattern or the string."""
    return "".join(f"\\{ch}" if ch in _ESCAPED else ch for ch in path)


def unescape(text: str) -> str:
    """Inverse of escape_path: drop the backslash from every escape pair."""
    out = []
    chars = iter(text)
    for ch in chars:
        if ch == "\\":
            out.append(next(chars, "\\"))
        else:
            out.append(ch)
    return "".join(out)


def reject_rule(path: str) -> Rule:
    """Reject rule for a literal device path."""
    return Rule(f"r{DELIMITER}{escape_path(path)}{DELIMITER}")


def rule_path(rule: Rule) -> str | None:
    """Recover the pattern of a rule with its escapes removed."""
    if rule.action is None:
        return None
    return unescape(rule.text[2:-1])


def has_unescaped_delimiter(rule: Rule) -> bool:
    """True when the pattern body contains its own delimiter unescaped."""
    if rule.action is None:
        return False
    delim = rule.text[1]
    body = rule.text[2:-1]
    i = 0
    while i < len(body):
        if body[i] == "\\":
            i += 2
            continue
        if body[i] == delim:
            return True
        i += 1
    return False


def suspicious_rules(rules: Iterable[Rule]) -> list[Rule]:
    """Preserved entries LVM is likely to reject or misread."""
    return [r for r in rules if r.action is None or has_unescaped_delimiter(r)]


def _read_string(line: str, start: int) -> int | None:
    """Index just past the closing quote of the string opened at start."""
    i = start + 1
    while i < len(line):
        if line[i] == "\\":
            i += 2
            continue
        if line[i] == '"':
            return i + 1
        i += 1
    return None


def _parse_line(line: str) -> list[Rule]:
    rules = []
    i = 0
    while i < len(line):
        ch = line[i]
        if ch.isspace() or ch == ",":
            i += 1
            continue
        if ch == "#":
            return rules
        end = _read_string(line, i) if ch == '"' else None
        if end is None:
            # quoted rules before this point stay rules; the rest is kept as written
            rules.append(Rule(line[i:].strip(), opaque=True))
            return rules
        rules.append(Rule(line[i + 1 : end - 1]))
        i = end
    return rules


def parse_entries(block_text: str | None) -> list[Rule]:
    """
    Split filter block text into rules.

    Blank and comment-only lines are dropped. Several quoted rules on one
    line are split apart. From the first thing on a line that is not a
    quoted string, the rest of the line is kept as one opaque entry.
    """
    rules: list[Rule] = []
    for line in (block_text or "").splitlines():
        rules.extend(_parse_line(line))
    return rules


def dedupe(rules: Iterable[Rule]) -> list[Rule]:
    """Drop textual duplicates, keeping the first occurrence."""
    seen = set()
    result = []
    for rule in rules:
        key = rule.render()
        if key in seen:
            continue
        seen.add(key)
        result.append(rule)
    return result


def merge_rules(existing: Iterable[Rule], new_reject_paths: Iterable[str]) -> list[Rule]:
    """
    Merge new reject paths into existing rules.

    Result order: new rejects as given, preserved rules in source order,
    then a single accept-all rule.
    """
    candidates = [reject_rule(p) for p in new_reject_paths]
    candidates.extend(r for r in existing if not r.is_accept_all)
    candidates.append(Rule(ACCEPT_ALL))
    return dedupe(candidates)


def render_block(rules: list[Rule], indent: str = DEFAULT_INDENT) -> str:
    """One rule per line, comma after every quoted rule except the last."""
    lines = []
    for i, rule in enumerate(rules):
        text = rule.render()
        if not rule.opaque and i < len(rules) - 1:
            text += ","
        lines.append(f"{indent}{text}")
    return "\n".join(lines)


def merge(
    existing_block_text: str | None,
    new_reject_paths: Iterable[str],
    indent: str = DEFAULT_INDENT,
) -> str:
    """Replacement text for a filter block with new reject paths merged in."""
    rules = merge_rules(parse_entries(existing_block_text), new_reject_paths)
    return render_block(rules, indent)
