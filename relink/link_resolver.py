"""
# relink
# Copyright (c) 2026 relink contributors
# Licensed under the MIT License. See LICENSE in the project root.

link_resolver.py - Resolve phase: turn recorded links into final URLs

Runs after the migration has created every destination object. For each
LinkDescriptor in the table it looks up destination ids through the
ResourceMapService and sets either

- new_value: the final URL (or, for media, the final element markup), or
- missing_url: a best-effort guess for a link that could not be resolved.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl, quote_plus

from relink.descriptor import LinkDescriptor, LinkType
from relink.errors import unrecognized_link_type_error
from relink.link_parser import parse_fragment, to_html
from relink.link_table import UnresolvedLinkTable
from relink.resource_map import ResourceMapService
from relink.url_utils import (
    add_query_param,
    escape_path,
    join_path,
    path_components,
    split_keep_leading,
)


logger = logging.getLogger(__name__)


# md5 of "" with the exporter's "g" prefix; faulty cartridges use it for files
EMPTY_MIGRATION_ID = "gd41d8cd98f00b204e9800998ecf8427e"
VERIFIER_PARAM = "verifier"
COURSE_REFERENCE_MARKER = "$CANVAS_COURSE_REFERENCE$"

CANVAS_QS_PARAM = re.compile(r"canvas_qs_(.*)")
CANVAS_ACTION_PARAM = re.compile(r"canvas_(.+)")
MEDIA_ATTACHMENT_PATH = re.compile(r"/media_attachments_iframe/\d+")
MEDIA_OBJECT_PATH = re.compile(r"media_objects(?:_iframe)?/([^?.]+)")


class LinkResolver:
    """Computes final values for links recorded by LinkParser."""

    def __init__(self, service: ResourceMapService):
        self.service = service
        self._path_lookup_lower: Optional[Dict[str, str]] = None

    def context_path(self) -> str:
        return self.service.context_path()

    def attachment_path_id_lookup(self) -> Optional[Dict[str, str]]:
        return self.service.attachment_path_id_lookup()

    def attachment_path_id_lookup_lower(self) -> Optional[Dict[str, str]]:
        if self._path_lookup_lower is None:
            lookup = self.attachment_path_id_lookup()
            if lookup is not None:
                self._path_lookup_lower = {k.lower(): v for k, v in lookup.items()}
        return self._path_lookup_lower

    def resolve_links(self, table: UnresolvedLinkTable) -> None:
        for link in table.links():
            self.resolve_link(link)

    def resolve_link(self, link: LinkDescriptor) -> None:
        """Set link.new_value or link.missing_url in place."""
        handlers = {
            LinkType.WIKI_PAGE: self._resolve_wiki_page,
            LinkType.DISCUSSION_TOPIC: self._resolve_discussion_topic,
            LinkType.MODULE_ITEM: self._resolve_module_item,
            LinkType.OBJECT: self._resolve_object,
            LinkType.MEDIA_OBJECT: self._resolve_media_object,
            LinkType.FILE: self._resolve_file,
            LinkType.FILE_REF: self._resolve_file_ref,
        }
        handler = handlers.get(link.link_type)
        if handler is None:
            raise unrecognized_link_type_error(link.link_type, link.placeholder)
        handler(link)

    # ------------------------------------------------------------------
    # Per link type
    # ------------------------------------------------------------------

    def _resolve_wiki_page(self, link: LinkDescriptor) -> None:
        slug = self.service.convert_wiki_page_migration_id_to_slug(link.migration_id)
        if slug:
            link.new_value = f"{self.context_path()}/pages/{slug}{link.query or ''}"

    def _resolve_discussion_topic(self, link: LinkDescriptor) -> None:
        topic_id = self.service.convert_discussion_topic_migration_id(link.migration_id)
        if topic_id:
            link.new_value = f"{self.context_path()}/discussion_topics/{topic_id}{link.query or ''}"

    def _resolve_module_item(self, link: LinkDescriptor) -> None:
        tag_id = self.service.convert_context_module_tag_migration_id(link.migration_id)
        if tag_id:
            link.new_value = f"{self.context_path()}/modules/items/{tag_id}{link.query or ''}"

    def _resolve_object(self, link: LinkDescriptor) -> None:
        type_for_url = link.type
        type = link.type
        migration_id = link.migration_id
        if type == "modules":
            type = "context_modules"
        if type == "wiki":
            type = "pages"

        if type == "pages":
            query = self.resolve_module_item_query(link.query)
            slug = self.service.convert_wiki_page_migration_id_to_slug(migration_id) or migration_id
            link.new_value = f"{self.context_path()}/pages/{slug}{query or ''}"
        elif type == "attachments":
            att_id, uuid = self.service.convert_attachment_migration_id(migration_id) or (None, None)
            if att_id:
                new_url = f"{self.context_path()}/files/{att_id}/preview"
                if uuid:
                    new_url = self.add_verifier_to_query(new_url, uuid)
                link.new_value = new_url
        elif type == "media_attachments_iframe":
            att_id, uuid = self.service.convert_attachment_migration_id(migration_id) or (None, None)
            new_url = f"/media_attachments_iframe/{att_id}{link.query or ''}" if att_id else link.old_value
            if uuid:
                new_url = self.add_verifier_to_query(new_url, uuid)
            link.new_value = new_url
        else:
            object_id = self.service.convert_migration_id(type, migration_id)
            if object_id:
                query = self.resolve_module_item_query(link.query)
                link.new_value = f"{self.context_path()}/{type_for_url}/{object_id}{query or ''}"

    def _resolve_media_object(self, link: LinkDescriptor) -> None:
        # LinkParser replaced the whole element with the placeholder, so the
        # stored old_value is the element's markup
        rel_path = link.rel_path or ""
        doc = parse_fragment(link.old_value or "")
        node = doc.find(True)

        new_url = self.resolve_media_data(node, rel_path) if node is not None else None
        new_url = new_url or self.resolve_relative_file_url(rel_path)
        if not new_url:
            if f"{self.context_path()}/file_contents" in rel_path:
                new_url = rel_path
            else:
                new_url = self.missing_relative_file_url(rel_path)
            link.missing_url = new_url

        if node is None:
            link.new_value = new_url
            return
        if node.name in ("iframe", "source"):
            node["src"] = new_url
        else:
            node["href"] = new_url
        link.new_value = to_html(node)

    def _resolve_file(self, link: LinkDescriptor) -> None:
        rel_path = link.rel_path or ""
        new_url = self.resolve_relative_file_url(rel_path)
        if not new_url and self.is_relative_user_url(rel_path):
            # personal files are outside the course's file tree
            new_url = rel_path
        if new_url:
            link.new_value = new_url
        else:
            link.missing_url = self.missing_relative_file_url(rel_path)

    def _resolve_file_ref(self, link: LinkDescriptor) -> None:
        file_id, uuid = self.service.convert_attachment_migration_id(link.migration_id) or (None, None)
        if not file_id:
            old_value = (link.old_value or "").replace("%24CANVAS_COURSE_REFERENCE%24", COURSE_REFERENCE_MARKER)
            link.missing_url = old_value.partition(COURSE_REFERENCE_MARKER)[2]
            return

        rest = link.rest or None
        if rest is None and not link.target_blank:
            rest = "/preview"
        rest = rest or ""

        # icon maker files stay off the course path so fetches are not
        # redirected to a non cross-origin friendly url
        if "icon_maker_icon=1" in rest:
            new_url = f"/files/{file_id}{rest}"
        elif link.in_media_iframe:
            new_url = f"/media_attachments_iframe/{file_id}{rest}"
        else:
            new_url = f"{self.context_path()}/files/{file_id}{rest}"
        if uuid:
            new_url = self.add_verifier_to_query(new_url, uuid)
        link.new_value = new_url

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def add_verifier_to_query(self, url: str, uuid: str) -> str:
        return add_query_param(url, VERIFIER_PARAM, uuid)

    def resolve_module_item_query(self, query: Optional[str]) -> Optional[str]:
        """Swap a nested module_item_id=<migration id> for the destination id."""
        if not query or "module_item_id=" not in query:
            return query
        original_param = next(
            p for p in query.replace("?", "", 1).split("&") if "module_item_id=" in p
        )
        migration_id = original_param.split("=")[-1]
        tag_id = self.service.convert_context_module_tag_migration_id(migration_id)
        if not tag_id:
            return query
        return query.replace(original_param, f"module_item_id={tag_id}", 1)

    def missing_relative_file_url(self, rel_path: str) -> str:
        # rel_path is expected to be escaped already
        base = escape_path(f"{self.context_path()}/file_contents/{self.service.root_folder_name()}")
        return join_path(base, rel_path.replace(" ", "%20"))

    def find_file_in_context(self, rel_path: str) -> Optional[Dict[str, Any]]:
        # older exports escape spaces in filenames as '+'
        alt_rel_path = rel_path.replace("+", " ")
        migration_id = None
        lookup = self.attachment_path_id_lookup()
        if lookup:
            migration_id = lookup.get(rel_path) or lookup.get(alt_rel_path)
        if not migration_id:
            lookup_lower = self.attachment_path_id_lookup_lower()
            if lookup_lower:
                migration_id = lookup_lower.get(rel_path.lower()) or lookup_lower.get(alt_rel_path.lower())

        if not migration_id or migration_id == EMPTY_MIGRATION_ID:
            return None
        return self.service.lookup_attachment_by_migration_id(migration_id)

    def resolve_relative_file_url(self, rel_path: str) -> Optional[str]:
        parts = split_keep_leading(rel_path, "?")
        qs = parts.pop() if len(parts) > 1 else None
        path = "?".join(parts)

        # a '?' may be part of the filename or start a query string
        new_url = self.resolve_relative_file_url_with_qs(path, qs)
        if not new_url and qs:
            new_url = self.resolve_relative_file_url_with_qs(rel_path, "")
        return new_url

    def resolve_relative_file_url_with_qs(self, rel_path: str, qs: Optional[str]) -> Optional[str]:
        components = path_components(rel_path)

        # "a/b/c.txt", then "b/c.txt", then "c.txt"
        while components:
            file = self.find_file_in_context("/".join(components))
            if file:
                return self._file_url(file, qs)
            components.pop(0)
        return None

    def _file_url(self, file: Dict[str, Any], qs: Optional[str]) -> str:
        new_url = f"{self.context_path()}/files/{file['id']}"
        # query params exported from the original path, see the exporter's
        # file_query_string
        query = []
        if file.get("uuid"):
            query.append(f"{VERIFIER_PARAM}={file['uuid']}")
        new_action = ""
        for key, value in parse_qsl(qs or "", keep_blank_values=True):
            qs_match = CANVAS_QS_PARAM.search(key)
            if qs_match:
                query.append(f"{quote_plus(qs_match.group(1))}={quote_plus(value)}")
                continue
            action_match = CANVAS_ACTION_PARAM.search(key)
            if action_match:
                new_action += f"/{action_match.group(1)}"
        new_url += new_action or "/preview"
        if query:
            new_url += "?" + "&".join(query)
        return new_url

    def media_attachment_iframe_url(self, file_id, uuid: Optional[str] = None, media_type: Optional[str] = None) -> str:
        url = f"/media_attachments_iframe/{file_id}?embedded=true"
        if media_type:
            url += f"&type={media_type}"
        if uuid:
            url += f"&{VERIFIER_PARAM}={uuid}"
        return url

    def resolve_media_data(self, node, rel_path: str) -> Optional[str]:
        """Find the media attachment behind a media element, trying each encoding."""
        media_type = node.get("data-media-type")
        path_only = rel_path.split("?", 1)[0]
        file = self.find_file_in_context(path_only) if path_only else None
        if file:
            if file.get("media_entry_id"):
                node["data-media-id"] = file["media_entry_id"]
            return self.media_attachment_iframe_url(file["id"], file.get("uuid"), media_type)

        if MEDIA_ATTACHMENT_PATH.search(rel_path):
            # already a media attachment, e.g. from another course
            return rel_path

        found = self.service.convert_attachment_media_id(node.get("data-media-id"))
        if found:
            file_id, uuid = found
            return self.media_attachment_iframe_url(file_id, uuid, media_type) if file_id else None

        path_match = MEDIA_OBJECT_PATH.search(rel_path)
        found = self.service.convert_attachment_media_id(path_match.group(1) if path_match else None)
        if found:
            file_id, uuid = found
            return self.media_attachment_iframe_url(file_id, uuid, media_type) if file_id else None

        for attr in ("class", "id", "style"):
            if node.has_attr(attr):
                del node[attr]
        return None

    def is_relative_user_url(self, rel_path: str) -> bool:
        return rel_path.startswith("/users/")
