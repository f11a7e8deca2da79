"""Minimal JSONPath support for document reads and partial updates.

Supported syntax is the subset agents actually use: ``$`` for the whole
document, dotted member access (``$.settings.theme``), bracketed indices
(``$.items[0]``) and quoted members (``$['odd key']``).

Values are immutable, so ``set_at`` and ``delete_at`` return new documents.
"""

from __future__ import annotations

import re

from ..errors import StoreError
from .values import Array, Object, Value

Segment = str | int

_TOKEN = re.compile(
    r"""
    \.(?P<member>[A-Za-z_$][\w$-]*)      # .name
    | \[(?P<index>-?\d+)\]               # [0]
    | \[(?P<quote>['"])(?P<quoted>.*?)(?P=quote)\]   # ['name']
    """,
    re.VERBOSE,
)


def _invalid(path: str, reason: str) -> StoreError:
    return StoreError("INVALID_PATH", f"invalid path '{path}': {reason}")


def parse_path(path: str) -> list[Segment]:
    """Parse a path into member names and array indices.

    Raises:
        StoreError: INVALID_PATH if the path is malformed.
    """
    if not path.startswith("$"):
        raise _invalid(path, "must start with '$'")

    segments: list[Segment] = []
    pos = 1
    while pos < len(path):
        m = _TOKEN.match(path, pos)
        if m is None:
            raise _invalid(path, f"unexpected character at offset {pos}")
        if m.group("member") is not None:
            segments.append(m.group("member"))
        elif m.group("index") is not None:
            segments.append(int(m.group("index")))
        else:
            segments.append(m.group("quoted"))
        pos = m.end()
    return segments


def get_at(doc: Value, segments: list[Segment]) -> Value | None:
    """Return the value at ``segments``, or None if any step is missing."""
    current: Value = doc
    for seg in segments:
        if isinstance(seg, int):
            if not isinstance(current, Array):
                return None
            if not -len(current.items) <= seg < len(current.items):
                return None
            current = current.items[seg]
        else:
            if not isinstance(current, Object) or seg not in current.entries:
                return None
            current = current.entries[seg]
    return current


def set_at(doc: Value | None, segments: list[Segment], new: Value, *, path: str = "$") -> Value:
    """Return a copy of ``doc`` with ``new`` written at ``segments``.

    Missing intermediate members are created as objects. Array indices must
    address an existing element, or be exactly one past the end (append).
    """
    if not segments:
        return new

    head, rest = segments[0], segments[1:]
    if isinstance(head, int):
        if not isinstance(doc, Array):
            raise _invalid(path, "index applied to a non-array")
        items = list(doc.items)
        idx = head + len(items) if head < 0 else head
        if idx == len(items):
            items.append(set_at(None, rest, new, path=path))
        elif 0 <= idx < len(items):
            items[idx] = set_at(items[idx], rest, new, path=path)
        else:
            raise _invalid(path, f"index {head} out of bounds")
        return Array(items)

    if doc is None:
        doc = Object()
    if not isinstance(doc, Object):
        raise _invalid(path, f"member '{head}' applied to a non-object")
    entries = dict(doc.entries)
    entries[head] = set_at(entries.get(head), rest, new, path=path)
    return Object(entries)


def delete_at(doc: Value, segments: list[Segment]) -> tuple[Value, bool]:
    """Return ``(new_doc, removed)`` with the value at ``segments`` removed."""
    if not segments:
        raise ValueError("cannot delete the document root through delete_at")

    head, rest = segments[0], segments[1:]
    if isinstance(head, int):
        if not isinstance(doc, Array) or not -len(doc.items) <= head < len(doc.items):
            return doc, False
        items = list(doc.items)
        if rest:
            items[head], removed = delete_at(items[head], rest)
        else:
            del items[head]
            removed = True
        return Array(items), removed

    if not isinstance(doc, Object) or head not in doc.entries:
        return doc, False
    entries = dict(doc.entries)
    if rest:
        entries[head], removed = delete_at(entries[head], rest)
    else:
        del entries[head]
        removed = True
    return Object(entries), removed
