#!/usr/bin/env python3
"""
deps.py

Heuristic dependency detection for component source text.

Two regular-expression scans stand in for a real parser:

* import bindings  — ``import { Input, Foo as Bar } from "./x"`` and
  ``import Button from "./Button"``
* uppercase tags   — ``<Icon size={16} />``

Names are returned in first-seen order with all import matches scanned
before any tag matches.  The result only has to be good enough for
dependency hints; swap :func:`extract_names` for a parse tree if it
ever has to be exact.

Author: Eric G. Suchanek, PhD
"""

from __future__ import annotations

import re
from typing import List, Optional, Protocol, Sequence

_IMPORT_RE = re.compile(r"import\s+(?:\{([^}]+)\}|(\w+))\s+from")
_TAG_RE = re.compile(r"<([A-Z]\w+)")
_ALIAS_RE = re.compile(r"\s+as\s+")


class NameLookup(Protocol):
    """Anything that can resolve a list of names to catalog rows."""

    def components_by_names(self, names: Sequence[str]) -> List[dict]: ...


# ---------------------------------------------------------------------------
# Name extraction (pure)
# ---------------------------------------------------------------------------


def extract_names(code: str) -> List[str]:
    """
    Return identifiers referenced by *code*.

    Aliased imports contribute the original name, not the alias.
    Lowercase-initial tags (native markup) are ignored.

    :param code: Component source text.
    :return: Deduplicated names, imports first, each family in text order.
    """
    seen: dict[str, None] = {}

    for m in _IMPORT_RE.finditer(code):
        named, default = m.group(1), m.group(2)
        if named:
            for part in named.split(","):
                clean = _ALIAS_RE.split(part.strip())[0].strip()
                if clean:
                    seen.setdefault(clean, None)
        if default:
            seen.setdefault(default, None)

    for m in _TAG_RE.finditer(code):
        seen.setdefault(m.group(1), None)

    return list(seen)


# ---------------------------------------------------------------------------
# Catalog matching
# ---------------------------------------------------------------------------


def match_dependencies(
    store: NameLookup,
    code: str,
    exclude_id: Optional[int] = None,
) -> List[dict]:
    """
    Resolve the names referenced by *code* against the catalog.

    No lookup is issued when *code* references nothing.  A component never
    depends on itself: the row whose id equals *exclude_id* is dropped.

    :param store: Catalog exposing ``components_by_names``.
    :param code: Component source text.
    :param exclude_id: Id of the component that owns *code*.
    :return: ``[{"id": ..., "name": ...}]`` in extraction order.
    """
    names = extract_names(code)
    if not names:
        return []

    rows = store.components_by_names(names)
    order = {name: i for i, name in enumerate(names)}
    rows = sorted(rows, key=lambda r: order.get(r["name"], len(order)))

    if exclude_id is not None:
        rows = [r for r in rows if r["id"] != exclude_id]
    return [{"id": r["id"], "name": r["name"]} for r in rows]
