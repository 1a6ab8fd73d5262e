"""
# relink
# Copyright (c) 2026 relink contributors
# Licensed under the MIT License. See LICENSE in the project root.

resource_map.py - Destination lookups for a single migration run

Wraps the resource map produced by the migration pipeline:

    {
      "destination_course": "2",
      "destination_hosts": ["canvas.example.edu"],
      "destination_root_folder": "course files",
      "attachment_path_id_lookup": {"images/logo.png": "E"},
      "resource_mapping": {
        "wiki_pages": {"A": {"destination": {"id": "2", "url": "slug-a"}}},
        "files": {"E": {"source": {...}, "destination": {"id": "5", "uuid": "u5"}}},
        ...
      }
    }

Every lookup returns None when the migration id is unknown. Subclass and
override the methods in the "overridable" block to adapt the service to a
different host application.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Tuple

import yaml

from relink.classifier import KNOWN_REFERENCE_TYPES
from relink.errors import invalid_resource_map_error, resource_map_not_found_error


logger = logging.getLogger(__name__)


class EmbeddedImageResult(NamedTuple):
    """Outcome of handing a data: URI image to the host application"""
    resolved: bool
    url: str


EmbeddedImageHandler = Callable[[Optional[str], bytes], EmbeddedImageResult]


def _dig(data: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(data, Mapping):
            return None
        data = data.get(key)
    return data


def _id_and_uuid(destination: Any) -> Optional[Tuple[Any, Optional[str]]]:
    if not isinstance(destination, Mapping):
        return None
    return destination.get("id"), destination.get("uuid")


class ResourceMapService:
    """Answers "what did migration id X become?" for one migration."""

    def __init__(
        self,
        migration_data: Optional[Dict[str, Any]] = None,
        fix_relative_urls: bool = True,
        domain_substitutions: Optional[Dict[str, str]] = None,
        embedded_image_handler: Optional[EmbeddedImageHandler] = None,
    ):
        self.migration_data = migration_data or {}
        self._fix_relative_urls = fix_relative_urls
        self.domain_substitutions = domain_substitutions or {}
        self.embedded_image_handler = embedded_image_handler
        self.link_parse_warnings: List[str] = []
        self._media_map: Optional[Dict[str, Any]] = None
        self._media_map_loaded = False

    @classmethod
    def from_file(cls, path: Path, **options) -> "ResourceMapService":
        """Load a resource map from a .json, .yaml or .yml file."""
        path = Path(path)
        if not path.is_file():
            raise resource_map_not_found_error(path)
        text = path.read_text(encoding="utf-8")
        try:
            if path.suffix.lower() in (".yaml", ".yml"):
                data = yaml.safe_load(text) or {}
            else:
                data = json.loads(text)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise invalid_resource_map_error(path, e) from e
        if not isinstance(data, dict):
            raise invalid_resource_map_error(path, TypeError("top level is not a mapping"))
        logger.debug("Loaded resource map %s", path)
        return cls(data, **options)

    def resources(self) -> Dict[str, Any]:
        return self.migration_data.get("resource_mapping") or {}

    # ------------------------------------------------------------------
    # Overridable methods
    # ------------------------------------------------------------------

    def supports_embedded_images(self) -> bool:
        return self.embedded_image_handler is not None

    def fix_relative_urls(self) -> bool:
        return self._fix_relative_urls

    def process_domain_substitutions(self, url: str) -> str:
        for old, new in self.domain_substitutions.items():
            if url.startswith(old):
                return new + url[len(old):]
        return url

    def context_hosts(self) -> List[str]:
        return self.migration_data.get("destination_hosts") or []

    def attachment_path_id_lookup(self) -> Optional[Dict[str, str]]:
        return self.migration_data.get("attachment_path_id_lookup")

    def root_folder_name(self) -> str:
        return self.migration_data.get("destination_root_folder") or ""

    def link_embedded_image(self, mime_type: Optional[str], image: bytes) -> EmbeddedImageResult:
        """Store a data: URI image and return where it lives now."""
        if self.embedded_image_handler is None:
            raise NotImplementedError("embedded images are not supported by this resource map")
        return self.embedded_image_handler(mime_type, image)

    def report_link_parse_warning(self, ref_type: str) -> None:
        logger.warning("Unknown reference type in link: %s", ref_type)
        self.link_parse_warnings.append(ref_type)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def context_path(self) -> str:
        """Base path of the destination course, e.g. "/courses/2"."""
        return f"/courses/{self.migration_data.get('destination_course')}"

    def convert_wiki_page_migration_id_to_slug(self, migration_id: str) -> Optional[str]:
        resources = self.resources()
        return (
            _dig(resources, "wiki_pages", migration_id, "destination", "url")
            or _dig(resources, "pages", migration_id, "destination", "url")
        )

    def convert_discussion_topic_migration_id(self, migration_id: str) -> Optional[Any]:
        topic_id = _dig(self.resources(), "discussion_topics", migration_id, "destination", "id")
        # announcements share the /discussion_topics url scheme
        return topic_id or self.convert_announcement_migration_id(migration_id)

    def convert_announcement_migration_id(self, migration_id: str) -> Optional[Any]:
        return _dig(self.resources(), "announcements", migration_id, "destination", "id")

    def convert_context_module_tag_migration_id(self, migration_id: str) -> Optional[Any]:
        return _dig(self.resources(), "module_items", migration_id, "destination", "id")

    def convert_attachment_migration_id(self, migration_id: str) -> Optional[Tuple[Any, Optional[str]]]:
        return _id_and_uuid(_dig(self.resources(), "files", migration_id, "destination"))

    def media_map(self) -> Optional[Dict[str, Any]]:
        """Files keyed by their source media entry id."""
        if not self._media_map_loaded:
            files = self.resources().get("files")
            if files is not None:
                self._media_map = {}
                for file in files.values():
                    media_id = _dig(file, "source", "media_entry_id")
                    if media_id:
                        self._media_map[media_id] = file
            self._media_map_loaded = True
        return self._media_map

    def convert_attachment_media_id(self, media_id: Optional[str]) -> Optional[Tuple[Any, Optional[str]]]:
        if not media_id:
            return None
        return _id_and_uuid(_dig(self.media_map(), media_id, "destination"))

    def convert_migration_id(self, type: str, migration_id: str) -> Optional[Any]:
        if type == "context_modules":
            type = "modules"
        object_id = None
        if type in KNOWN_REFERENCE_TYPES:
            object_id = _dig(self.resources(), type, migration_id, "destination", "id")
        if object_id not in (None, ""):
            return object_id
        if type == "discussion_topics":
            return self.convert_announcement_migration_id(migration_id)
        return None

    def lookup_attachment_by_migration_id(self, migration_id: str) -> Optional[Dict[str, Any]]:
        return _dig(self.resources(), "files", migration_id, "destination")
