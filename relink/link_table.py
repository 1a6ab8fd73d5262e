"""
# relink
# Copyright (c) 2026 relink contributors
# Licensed under the MIT License. See LICENSE in the project root.

link_table.py - Accumulates unresolved links between the scan and resolve phases

Links are grouped by the object that owns the HTML (its type and migration
id), then by the field the HTML came from:

    (item_type, migration_id) -> field -> [LinkDescriptor, ...]

The table serializes to plain JSON so the resolve phase can run in a
different process after the destination ids exist.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterator, List, Tuple

from relink.descriptor import LinkDescriptor


TableKey = Tuple[str, str]


class UnresolvedLinkTable:
    """Insertion-ordered map of unresolved links per owning object and field"""

    def __init__(self):
        self._entries: Dict[TableKey, Dict[str, List[LinkDescriptor]]] = {}

    def add(self, link: LinkDescriptor, item_type: str, migration_id: str, field: str) -> None:
        key = (item_type, str(migration_id))
        self._entries.setdefault(key, {}).setdefault(field, []).append(link)

    def get(self, item_type: str, migration_id: str) -> Dict[str, List[LinkDescriptor]]:
        return self._entries.get((item_type, str(migration_id)), {})

    def reset(self) -> None:
        self._entries = {}

    def __iter__(self) -> Iterator[Tuple[TableKey, str, List[LinkDescriptor]]]:
        for key, by_field in self._entries.items():
            for field, links in by_field.items():
                yield key, field, links

    def __len__(self) -> int:
        return sum(len(links) for _, _, links in self)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def links(self) -> Iterator[LinkDescriptor]:
        for _, _, links in self:
            yield from links

    def missing_links(self) -> List[LinkDescriptor]:
        """Links that resolved only to a best-effort guess."""
        return [link for link in self.links() if link.missing_url]

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict:
        return {
            "entries": [
                {
                    "type": item_type,
                    "migration_id": migration_id,
                    "fields": {
                        field: [link.to_dict() for link in links]
                        for field, links in by_field.items()
                    },
                }
                for (item_type, migration_id), by_field in self._entries.items()
            ]
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "UnresolvedLinkTable":
        table = cls()
        for entry in data.get("entries", []):
            for field, links in entry.get("fields", {}).items():
                for link in links:
                    table.add(
                        LinkDescriptor.from_dict(link),
                        entry["type"],
                        entry["migration_id"],
                        field,
                    )
        return table

    def save(self, path: Path) -> None:
        Path(path).write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")

    @classmethod
    def load(cls, path: Path) -> "UnresolvedLinkTable":
        path = Path(path)
        if not path.exists():
            return cls()
        return cls.from_dict(json.loads(path.read_text(encoding="utf-8")))
