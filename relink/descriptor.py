"""
# relink
# Copyright (c) 2026 relink contributors
# Licensed under the MIT License. See LICENSE in the project root.

descriptor.py - The record produced by classification and consumed by resolution

A LinkDescriptor is created by the classifier for every candidate link,
stored in the unresolved link table by the parser, and filled in (new_value
or missing_url) by the resolver.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict, fields
from enum import Enum
from typing import Any, Dict, Optional


class LinkType(Enum):
    WIKI_PAGE = "wiki_page"
    DISCUSSION_TOPIC = "discussion_topic"
    MODULE_ITEM = "module_item"
    OBJECT = "object"              # generic, see LinkDescriptor.type
    FILE = "file"
    FILE_REF = "file_ref"
    MEDIA_OBJECT = "media_object"
    RESOLVED = "resolved"          # terminal, nothing left to do


@dataclass
class LinkDescriptor:
    """A classified link, possibly waiting for destination ids"""
    link_type: LinkType
    migration_id: Optional[str] = None
    type: Optional[str] = None       # object sub-tag, e.g. "assignments"
    query: Optional[str] = None
    rest: Optional[str] = None       # file_ref residual path/query
    rel_path: Optional[str] = None
    target_blank: bool = False
    in_media_iframe: bool = False
    old_value: Optional[str] = None
    placeholder: Optional[str] = None
    new_value: Optional[str] = None
    missing_url: Optional[str] = None

    @classmethod
    def resolved(cls, new_url: Optional[str] = None) -> "LinkDescriptor":
        return cls(LinkType.RESOLVED, new_value=new_url)

    @property
    def is_resolved(self) -> bool:
        return self.link_type is LinkType.RESOLVED

    @property
    def replacement(self) -> Optional[str]:
        """The value written in place of the placeholder."""
        if self.new_value is not None:
            return self.new_value
        if self.missing_url is not None:
            return self.missing_url
        return self.old_value

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["link_type"] = self.link_type.value
        return {k: v for k, v in data.items() if v is not None and v is not False}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LinkDescriptor":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        values["link_type"] = LinkType(values["link_type"])
        return cls(**values)
