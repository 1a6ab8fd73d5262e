"""
# relink
# Copyright (c) 2026 relink contributors
# Licensed under the MIT License. See LICENSE in the project root.

converter.py - Scan, resolve and substitute in one call

For callers that already have the complete resource map when they read the
HTML (course copy, tests, the `relink convert` command). Migrations that
only learn destination ids later run LinkParser and LinkResolver separately
and call replace_placeholders() themselves.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from relink.descriptor import LinkDescriptor
from relink.link_parser import LinkParser
from relink.link_resolver import LinkResolver
from relink.link_table import UnresolvedLinkTable
from relink.resource_map import ResourceMapService


logger = logging.getLogger(__name__)


def replace_placeholders(html: str, links: Iterable[LinkDescriptor]) -> str:
    """Substitute each link's final value for its placeholder token."""
    for link in links:
        if not link.placeholder:
            continue
        replacement = link.replacement
        if replacement is None:
            logger.debug("No value for placeholder %s, leaving it in place", link.placeholder)
            continue
        html = html.replace(link.placeholder, replacement)
    return html


class HtmlConverter:
    """Rewrites exported HTML against a known resource map."""

    def __init__(
        self,
        resource_map: Optional[Dict[str, Any]] = None,
        service: Optional[ResourceMapService] = None,
    ):
        self.service = service or ResourceMapService(resource_map or {})
        self.link_parser = LinkParser(self.service)
        self.link_resolver = LinkResolver(self.service)

    @property
    def unresolved_link_map(self) -> UnresolvedLinkTable:
        return self.link_parser.unresolved_link_map

    def convert_exported_html(
        self,
        input_html: Optional[str],
        item_type: str = "type",
        migration_id: str = "lookup_id",
        field: str = "field",
        remove_outer_nodes_if_one_child: bool = False,
    ) -> Tuple[str, List[LinkDescriptor]]:
        """
        Returns:
            (html, bad_links) where bad_links holds every link that only
            resolved to a best-effort missing_url
        """
        new_html = self.link_parser.convert(
            input_html,
            item_type,
            migration_id,
            field,
            remove_outer_nodes_if_one_child=remove_outer_nodes_if_one_child,
        )
        table = self.unresolved_link_map
        self.link_resolver.resolve_links(table)
        new_html = replace_placeholders(new_html, table.links())
        bad_links = table.missing_links()
        self.link_parser.reset()
        return new_html, bad_links
