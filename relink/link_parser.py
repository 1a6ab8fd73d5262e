"""
# relink
# Copyright (c) 2026 relink contributors
# Licensed under the MIT License. See LICENSE in the project root.

link_parser.py - Scan phase: replace unresolved links with placeholders

LinkParser.convert() walks an HTML fragment, normalizes legacy media markup
into the canonical iframe shape, classifies every link-bearing attribute and

- writes already-resolved values straight back into the attribute, or
- swaps the value (or, for media, the whole element) for a placeholder token
  and records the link in the UnresolvedLinkTable.

Placeholders are content addressed (md5 of the original value), so the same
original value always gets the same token.
"""

from __future__ import annotations

import hashlib
import logging
import re
from typing import Optional

from bs4 import BeautifulSoup, ParserRejectedMarkup
from bs4.element import Tag
from bs4.formatter import HTMLFormatter

from relink.classifier import (
    INLINE_MEDIA_CLASS,
    REFERENCE_KEYWORDS,
    RCE_MEDIA_TYPES,
    LinkClassifier,
    NodeContext,
)
from relink.descriptor import LinkDescriptor, LinkType
from relink.link_table import UnresolvedLinkTable
from relink.resource_map import ResourceMapService
from relink.url_utils import relative_url, strip_host


logger = logging.getLogger(__name__)


# ============================================================================
# Constants
# ============================================================================

LINK_PLACEHOLDER = "LINK.PLACEHOLDER"
CONTAINER_TYPES = ("div", "p", "body")
LINK_ATTRS = ("rel", "href", "src", "srcset", "data", "value", "longdesc", "data-download-url")

# iframes rebuilt from old media anchors have no size of their own
LEGACY_MEDIA_STYLE = "width: 320px; height: 240px; display: inline-block;"

FILEBASE_VALUE = re.compile(r"IMS(?:-|_)CC(?:-|_)FILEBASE")
MEDIA_SUBTYPE = re.compile(r"(audio|video)")


# ============================================================================
# Serialization
# ============================================================================

def escape_text(value: str) -> str:
    return (
        value.replace("&", "&amp;")
        .replace("\xa0", "&nbsp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
    )


def escape_attribute(value: str) -> str:
    return value.replace("&", "&amp;").replace("\xa0", "&nbsp;").replace('"', "&quot;")


class Html5Formatter(HTMLFormatter):
    """
    Serializes the way an HTML5 serializer does: attributes in document
    order, void elements without " /", non-breaking spaces as &nbsp;, and
    only the characters that must be escaped in text and attribute values.
    """

    def __init__(self):
        super().__init__(entity_substitution=escape_text, void_element_close_prefix=None)

    def attributes(self, tag):
        return list(tag.attrs.items()) if tag.attrs else []

    def attribute_value(self, value):
        return escape_attribute(value)


HTML_FORMATTER = Html5Formatter()


# ============================================================================
# Fragment helpers
# ============================================================================

def parse_fragment(html: str) -> BeautifulSoup:
    """Parse an HTML fragment without adding <html>/<body> wrappers."""
    return BeautifulSoup(html or "", "html.parser", multi_valued_attributes=None)


def to_html(node) -> str:
    return node.decode(formatter=HTML_FORMATTER)


def inner_html(node) -> str:
    return node.decode_contents(formatter=HTML_FORMATTER)


def placeholder(old_value: str) -> str:
    return f"{LINK_PLACEHOLDER}_{hashlib.md5(old_value.encode('utf-8')).hexdigest()}"


def normalize_media_sources(doc: BeautifulSoup) -> None:
    """<video|audio><source data-media-*></video|audio> -> <iframe src=...>"""
    for source in doc.find_all("source"):
        if not (source.has_attr("data-media-type") or source.has_attr("data-media-id")):
            continue
        media_node = source.parent
        if media_node is None or media_node.name not in RCE_MEDIA_TYPES:
            continue
        media_node.name = "iframe"
        for attr in ("data-media-id", "data-media-type"):
            if source.has_attr(attr) and not media_node.has_attr(attr):
                media_node[attr] = source[attr]
        if source.get("src") is not None:
            media_node["src"] = source["src"]
        source.extract()


def normalize_media_comment_anchors(doc: BeautifulSoup) -> None:
    """Old inline media comment anchors -> fullscreen-capable iframes."""
    for media_node in doc.find_all("a", id=re.compile("media_comment_")):
        if INLINE_MEDIA_CLASS not in (media_node.get("class") or ""):
            continue
        media_node.name = "iframe"
        media_node["style"] = LEGACY_MEDIA_STYLE
        media_node["title"] = media_node.get_text()
        media_node.clear()
        subtype = MEDIA_SUBTYPE.search(media_node["class"])
        if subtype:
            media_node["data-media-type"] = subtype.group(1)
        if media_node.get("href") is not None:
            media_node["src"] = media_node["href"]
            del media_node["href"]
        media_node["allowfullscreen"] = "allowfullscreen"
        media_node["allow"] = "fullscreen"
        media_node["data-media-id"] = media_node["id"].replace("media_comment_", "", 1)


def unwrap_single_children(doc):
    """Descend through attribute-less div/p/body wrappers that hold everything."""
    while len(doc.contents) == 1:
        child = doc.contents[0]
        if not (isinstance(child, Tag) and child.contents):
            break
        if child.name not in CONTAINER_TYPES or child.attrs:
            break
        doc = child
    return doc


# ============================================================================
# Parser
# ============================================================================

class LinkParser:
    """Rewrites links in imported HTML and records what is left to resolve."""

    def __init__(self, service: ResourceMapService, table: Optional[UnresolvedLinkTable] = None):
        self.service = service
        self.classifier = LinkClassifier(service)
        self.unresolved_link_map = table if table is not None else UnresolvedLinkTable()

    def reset(self) -> None:
        self.unresolved_link_map.reset()

    def add_unresolved_link(self, link: LinkDescriptor, item_type: str, migration_id: str, field: str) -> None:
        self.unresolved_link_map.add(link, item_type, migration_id, field)

    def placeholder(self, old_value: str) -> str:
        return placeholder(old_value)

    def convert(
        self,
        html: Optional[str],
        item_type: str,
        migration_id,
        field: str,
        remove_outer_nodes_if_one_child: bool = False,
    ) -> str:
        """
        Rewrite every link in ``html``.

        Args:
            html: HTML fragment exported with the object
            item_type: owning object type, e.g. "assignment"
            migration_id: owning object's migration id
            field: the field the HTML came from, e.g. "description"
            remove_outer_nodes_if_one_child: drop bare div/p/body wrappers

        Returns:
            The rewritten fragment, or "" if the markup cannot be parsed.
        """
        migration_id = str(migration_id)
        try:
            doc = parse_fragment(html)
        except ParserRejectedMarkup as e:
            logger.warning("Could not parse %s %s %s: %s", item_type, migration_id, field, e)
            return ""

        normalize_media_sources(doc)
        normalize_media_comment_anchors(doc)

        for node in doc.find_all(True):
            # children of a media element already swapped for its placeholder
            if not any(parent is doc for parent in node.parents):
                continue
            for attr in LINK_ATTRS:
                if self.convert_link(node, attr, item_type, migration_id, field):
                    break

        if remove_outer_nodes_if_one_child:
            doc = unwrap_single_children(doc)

        return inner_html(doc)

    def convert_link(self, node: Tag, attr: str, item_type: str, migration_id: str, field: str) -> bool:
        """
        Classify and rewrite one attribute.

        Returns True when the whole element was replaced by a placeholder.
        """
        value = node.get(attr)
        if not value:
            return False
        if attr == "value" and not (FILEBASE_VALUE.search(value) or "CANVAS_COURSE_REFERENCE" in value):
            return False

        url = value
        for ref in REFERENCE_KEYWORDS:
            url = url.replace(f"%24{ref}%24", f"${ref}$")

        result = self.classifier.classify(url, NodeContext.for_node(node, attr))
        if result.is_resolved:
            self.handle_resolved_link(url, result, node, attr)
            return False
        return self.handle_unresolved_link(url, result, node, attr, item_type, migration_id, field)

    def handle_resolved_link(self, url: str, result: LinkDescriptor, node: Tag, attr: str) -> None:
        new_url = result.new_value or url
        if not relative_url(new_url):
            new_url = self.service.process_domain_substitutions(new_url) or new_url
            # relative-ize absolute links into one of the destination's own hosts
            new_url = strip_host(new_url, self.service.context_hosts())
        node[attr] = new_url

    def handle_unresolved_link(
        self,
        url: str,
        result: LinkDescriptor,
        node: Optional[Tag],
        attr: Optional[str],
        item_type: str,
        migration_id: str,
        field: str,
    ) -> bool:
        replaced = False
        if result.link_type is LinkType.MEDIA_OBJECT:
            # the resolver may rewrite the element itself, so the whole
            # element is swapped for the placeholder
            result.old_value = to_html(node) if node is not None else result.rel_path
            result.placeholder = self.placeholder(result.old_value)
            if node is not None:
                node.replace_with(result.placeholder)
                replaced = True
        else:
            result.old_value = node[attr] if node is not None else url
            result.placeholder = self.placeholder(result.old_value)
            if node is not None:
                if (
                    node.name == "a"
                    and attr == "href"
                    and node[attr] == inner_html(node).replace("\n", "").strip()
                ):
                    node.string = result.placeholder
                node[attr] = result.placeholder
        self.add_unresolved_link(result, item_type, migration_id, field)
        return replaced

    def parse_single_url(self, url: str, link_type: Optional[str] = None) -> LinkDescriptor:
        """Classify a URL that has no owning element."""
        return self.classifier.classify(url, NodeContext(), link_type)
