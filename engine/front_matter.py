"""Front-matter editor. Parses the leading ``---`` block and merges generated fields.

The block is kept as an ordered list of raw-line entries so that keys we do
not manage survive byte-for-byte.  Only ``description``, ``tags`` and
``categories`` are ever rewritten.

Blank lines stay with a multi-line value when the value continues after
them.  Known limitation: a value whose continuation line starts at column 0
and looks like ``key: ...`` is read as a new top-level key.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from schemas.response import GenerationResult

logger = logging.getLogger("autodesc.engine.front_matter")

MARKER = "---"

_KEY_LINE = re.compile(r"^([^\s#\-][^:]*?)\s*:(?:\s|$)")


class FrontMatterError(ValueError):
    """The document starts a front-matter block that cannot be parsed."""


@dataclass
class Entry:
    """One top-level key with its raw lines, or a run of key-less lines (``key is None``)."""

    key: str | None
    lines: list[str] = field(default_factory=list)


@dataclass
class FrontMatter:
    opening: str
    entries: list[Entry] = field(default_factory=list)

    @property
    def newline(self) -> str:
        return "\r\n" if self.opening.endswith("\r\n") else "\n"

    def keys(self) -> list[str]:
        return [e.key for e in self.entries if e.key is not None]

    def get(self, key: str) -> Entry | None:
        return next((e for e in self.entries if e.key == key), None)

    def set(self, key: str, lines: list[str]) -> None:
        """Replace the first *key* entry in place, or append it before the closing marker."""
        replaced = False
        kept: list[Entry] = []
        for entry in self.entries:
            if entry.key == key:
                if replaced:
                    logger.debug("Dropping duplicate front-matter key %r", key)
                    continue
                entry = Entry(key, list(lines))
                replaced = True
            kept.append(entry)
        if not replaced:
            kept.append(Entry(key, list(lines)))
        self.entries = kept

    def remove(self, key: str) -> None:
        self.entries = [e for e in self.entries if e.key != key]

    def render(self) -> str:
        return self.opening + "".join(line for e in self.entries for line in e.lines)


def _is_continuation(line: str) -> bool:
    return (line[:1].isspace() and line.strip() != "") or line.startswith("-")


def _blank_inside_value(lines: list[str], index: int) -> bool:
    """A blank line belongs to the value when the next non-blank line continues it."""
    following = next((line for line in lines[index + 1 :] if line.strip()), None)
    return following is not None and _is_continuation(following)


def _parse_entries(lines: list[str]) -> list[Entry]:
    entries: list[Entry] = []
    for index, line in enumerate(lines):
        match = _KEY_LINE.match(line)
        if match:
            entries.append(Entry(match.group(1).strip(), [line]))
        elif entries and (
            _is_continuation(line)
            or entries[-1].key is None
            or (not line.strip() and _blank_inside_value(lines, index))
        ):
            entries[-1].lines.append(line)
        else:
            entries.append(Entry(None, [line]))
    return entries


def parse_document(text: str) -> tuple[FrontMatter | None, str]:
    """Split *text* into its front matter and the rest.

    The rest starts at the closing marker line and is returned verbatim.
    Returns ``(None, text)`` when the first line is not a marker.
    """
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip() != MARKER:
        return None, text

    for index in range(1, len(lines)):
        if lines[index].rstrip() == MARKER:
            break
    else:
        raise FrontMatterError("Front matter block has no closing '---' line.")

    front = FrontMatter(opening=lines[0], entries=_parse_entries(lines[1:index]))
    return front, "".join(lines[index:])


def _quote(text: str) -> str:
    escaped = (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\r\n", "\n")
        .replace("\n", "\\n")
    )
    return f'"{escaped}"'


# Leading characters that YAML reads as syntax rather than as a plain scalar.
_INDICATORS = tuple("#[]{}&*!|>'\"%@`,")


def _list_item(value: str) -> str:
    """Write *value* plain when YAML reads it back unchanged, quoted otherwise."""
    if (
        not value
        or value != value.strip()
        or value.startswith(_INDICATORS)
        or value.startswith(("- ", "? ", ": "))
        or value.endswith(":")
        or ": " in value
        or " #" in value
        or "\n" in value
    ):
        return _quote(value)
    return value


def render_description(text: str, newline: str = "\n") -> list[str]:
    return [f"description: {_quote(text)}{newline}"]


def render_list(key: str, values: list[str], newline: str = "\n") -> list[str] | None:
    """Block-list declaration for *key*; ``None`` when there is nothing to write."""
    if not values:
        return None
    return [f"{key}:{newline}", *(f"  - {_list_item(v)}{newline}" for v in values)]


def apply_generation(text: str, result: GenerationResult) -> str:
    """Return *text* with the generated fields merged into its front matter.

    An empty ``tags`` / ``categories`` list omits the key, removing one that
    was already there.
    """
    front, rest = parse_document(text)

    if front is None:
        newline = "\r\n" if "\r\n" in text else "\n"
        lines = [MARKER + newline, *render_description(result.description, newline)]
        for key, values in (("tags", result.tags), ("categories", result.categories)):
            lines.extend(render_list(key, values, newline) or [])
        lines.extend([MARKER + newline, newline])
        return "".join(lines) + text

    newline = front.newline
    front.set("description", render_description(result.description, newline))
    for key, values in (("tags", result.tags), ("categories", result.categories)):
        block = render_list(key, values, newline)
        if block is None:
            front.remove(key)
        else:
            front.set(key, block)
    return front.render() + rest
