"""
# relink
# Copyright (c) 2026 relink contributors
# Licensed under the MIT License. See LICENSE in the project root.

classifier.py - Decide what kind of course reference a link value is

Export packages encode references to course objects in several historical
ways ($WIKI_REFERENCE$/..., $CANVAS_COURSE_REFERENCE$/file_ref/...,
$IMS-CC-FILEBASE$/..., bare relative paths, ...). LinkClassifier runs an
ordered list of rules against one attribute value; the first rule that
returns a descriptor wins. The order matters: marker rules come before the
"leave alone" checks, which come before the relative-path catch-all.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from relink.descriptor import LinkDescriptor, LinkType
from relink.url_utils import relative_url, unescape

if TYPE_CHECKING:
    from relink.resource_map import ResourceMapService


logger = logging.getLogger(__name__)


# ============================================================================
# Constants
# ============================================================================

REFERENCE_KEYWORDS = (
    "CANVAS_COURSE_REFERENCE",
    "CANVAS_OBJECT_REFERENCE",
    "WIKI_REFERENCE",
    "IMS_CC_FILEBASE",
    "IMS-CC-FILEBASE",
)

KNOWN_REFERENCE_TYPES = frozenset({
    "announcements",
    "appointment_participants",
    "assignment_groups",
    "assignments",
    "attachments",
    "calendar_events",
    "context_external_tools",
    "context_module_tags",
    "context_modules",
    "course_paces",
    "created_learning_outcomes",
    "discussion_entries",
    "discussion_topics",
    "external_feeds",
    "grading_standards",
    "groups",
    "learning_outcome_groups",
    "learning_outcome_links",
    "learning_outcomes",
    "linked_learning_outcomes",
    "media_attachments_iframe",
    "modules",
    "pages",
    "quizzes",
    "rubrics",
    "wiki",
    "wiki_pages",
})

RCE_MEDIA_TYPES = frozenset({"audio", "video"})
MEDIA_CONTAINER_TAGS = frozenset({"iframe", "source"})
INLINE_MEDIA_CLASS = "instructure_inline_media_comment"

WIKI_PAGE_MIGRATION_ID = re.compile(r"wiki_page_migration_id=(.*)")
DISCUSSION_TOPIC_MIGRATION_ID = re.compile(r"discussion_topic_migration_id=(.*)")
MODULE_ITEM_REFERENCE = re.compile(r"\$CANVAS_COURSE_REFERENCE\$/modules/items/([^?]*)(\?.*)?")
FILE_REF_REFERENCE = re.compile(r"\$CANVAS_COURSE_REFERENCE\$/file_ref/([^/?#]+)(.*)")
OBJECT_REFERENCE = re.compile(r"(?:\$CANVAS_OBJECT_REFERENCE\$|\$WIKI_REFERENCE\$)/([^/]*)/([^?]*)(\?.*)?")
COURSE_REFERENCE = re.compile(r"\$CANVAS_COURSE_REFERENCE\$/(.*)")
FILEBASE_REFERENCE = re.compile(r"\$IMS(?:-|_)CC(?:-|_)FILEBASE\$/(.*)")
DATA_URI_IMAGE = re.compile(r"\Adata:(?P<mime_type>[-\w]+/[-\w+.]+)?;base64,(?P<image>.*)", re.DOTALL)
ASSESSMENT_QUESTION_FILE = re.compile(r"\A/assessment_questions/\d+/files/\d+")
COURSE_FILE = re.compile(r"\A/courses/\d+/files/\d+")


def media_params(media_type: Optional[str]) -> str:
    return f"?type={media_type or ''}&embedded=true"


@dataclass
class NodeContext:
    """The element a link value was read from (empty for a bare URL)"""
    tag: Optional[str] = None
    attr: Optional[str] = None
    attrs: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def for_node(cls, node, attr: str) -> "NodeContext":
        return cls(tag=node.name, attr=attr, attrs=dict(node.attrs))

    @property
    def has_node(self) -> bool:
        return self.tag is not None

    def get(self, name: str) -> Optional[str]:
        return self.attrs.get(name)

    def has_class(self, name: str) -> bool:
        return name in (self.attrs.get("class") or "")

    @property
    def is_media_iframe_src(self) -> bool:
        return (
            self.attr == "src"
            and self.tag in MEDIA_CONTAINER_TAGS
            and bool(self.get("data-media-id") or self.get("data-media-type"))
        )


Rule = Callable[[str, NodeContext, Optional[str]], Optional[LinkDescriptor]]


class LinkClassifier:
    """Maps one raw link value to a LinkDescriptor."""

    def __init__(self, service: "ResourceMapService"):
        self.service = service
        self.rules: List[Rule] = [
            self._migration_id_marker,
            self._module_item,
            self._file_ref,
            self._object_reference,
            self._course_reference,
            self._filebase,
            self._media_without_reference,
            self._embedded_image,
            self._leave_alone,
            self._relative_file,
        ]

    def classify(
        self,
        url: str,
        context: Optional[NodeContext] = None,
        link_type: Optional[str] = None,
    ) -> LinkDescriptor:
        """
        Classify ``url``.

        Args:
            url: attribute value with escaped reference markers already unescaped
            context: the owning element, if any
            link_type: caller hint, "media_object" or "image"

        Returns:
            The first descriptor a rule produces, or a resolved descriptor
            that leaves the value unchanged.
        """
        context = context or NodeContext()
        for rule in self.rules:
            result = rule(url, context, link_type)
            if result is not None:
                return result
        return LinkDescriptor.resolved()

    # ------------------------------------------------------------------
    # Rules, in priority order
    # ------------------------------------------------------------------

    def _migration_id_marker(self, url, context, link_type):
        match = WIKI_PAGE_MIGRATION_ID.search(url)
        if match:
            return LinkDescriptor(LinkType.WIKI_PAGE, migration_id=match.group(1))
        match = DISCUSSION_TOPIC_MIGRATION_ID.search(url)
        if match:
            return LinkDescriptor(LinkType.DISCUSSION_TOPIC, migration_id=match.group(1))
        return None

    def _module_item(self, url, context, link_type):
        match = MODULE_ITEM_REFERENCE.search(url)
        if not match:
            return None
        return LinkDescriptor(LinkType.MODULE_ITEM, migration_id=match.group(1), query=match.group(2))

    def _file_ref(self, url, context, link_type):
        match = FILE_REF_REFERENCE.search(url)
        if not match:
            return None
        in_media_iframe = context.is_media_iframe_src
        rest = media_params(context.get("data-media-type")) if in_media_iframe else match.group(2)
        return LinkDescriptor(
            LinkType.FILE_REF,
            migration_id=match.group(1),
            rest=rest,
            in_media_iframe=in_media_iframe,
            target_blank=(
                context.tag == "a" and context.attr == "href" and context.get("target") == "_blank"
            ),
        )

    def _object_reference(self, url, context, link_type):
        match = OBJECT_REFERENCE.search(url)
        if not match:
            return None
        ref_type = match.group(1)
        if ref_type not in KNOWN_REFERENCE_TYPES:
            # marker syntax with an unknown type; not a reference we can resolve
            self.service.report_link_parse_warning(ref_type)
            return LinkDescriptor.resolved(url)
        return LinkDescriptor(
            LinkType.OBJECT, type=ref_type, migration_id=match.group(2), query=match.group(3)
        )

    def _course_reference(self, url, context, link_type):
        match = COURSE_REFERENCE.search(url)
        if not match:
            return None
        return LinkDescriptor.resolved(f"{self.service.context_path()}/{match.group(1)}")

    def _filebase(self, url, context, link_type):
        match = FILEBASE_REFERENCE.search(url)
        if not match:
            return None
        rel_path = unescape(match.group(1))
        is_media = (
            (context.attr == "href" and context.has_class(INLINE_MEDIA_CLASS))
            or context.is_media_iframe_src
            or link_type == LinkType.MEDIA_OBJECT.value
        )
        kind = LinkType.MEDIA_OBJECT if is_media else LinkType.FILE
        return LinkDescriptor(kind, rel_path=rel_path)

    def _media_without_reference(self, url, context, link_type):
        # media_objects_iframe course copy reference without an attachment id
        if context.is_media_iframe_src or link_type == LinkType.MEDIA_OBJECT.value:
            rel_path = context.get("src") if context.has_node else url
            return LinkDescriptor(LinkType.MEDIA_OBJECT, rel_path=rel_path)
        return None

    def _embedded_image(self, url, context, link_type):
        if not self.service.supports_embedded_images():
            return None
        if link_type != "image" and context.attr != "src":
            return None
        match = DATA_URI_IMAGE.match(url)
        if not match:
            return None
        try:
            image = base64.b64decode(match.group("image"))
        except (binascii.Error, ValueError) as e:
            logger.warning("Leaving undecodable data: URI in place: %s", e)
            return LinkDescriptor.resolved()
        result = self.service.link_embedded_image(match.group("mime_type"), image)
        if result.resolved:
            return LinkDescriptor.resolved(result.url)
        return LinkDescriptor(LinkType.FILE, rel_path=result.url)

    def _leave_alone(self, url, context, link_type):
        if (
            (context.attr == "src" and context.has_class("equation_image"))
            or ASSESSMENT_QUESTION_FILE.search(url)
            or COURSE_FILE.search(url)
            or not self.service.fix_relative_urls()
            or url.startswith("#")
        ):
            return LinkDescriptor.resolved()
        return None

    def _relative_file(self, url, context, link_type):
        if relative_url(url):
            return LinkDescriptor(LinkType.FILE, rel_path=unescape(url))
        return None
