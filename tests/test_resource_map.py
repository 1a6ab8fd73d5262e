# tests/test_resource_map.py
"""
Tests for resource_map.py - Destination lookups
"""
import json

import pytest
import yaml

from relink.errors import ResourceMapError
from relink.resource_map import EmbeddedImageResult, ResourceMapService


class TestLookups:
    """Tests for migration id lookups"""

    def test_context_path(self, service):
        """Should build the course path"""
        assert service.context_path() == "/courses/2"

    def test_wiki_page_slug(self, service):
        """Should return the page slug"""
        assert service.convert_wiki_page_migration_id_to_slug("A") == "slug-a"
        assert service.convert_wiki_page_migration_id_to_slug("nope") is None

    def test_wiki_page_slug_from_pages(self):
        """Should accept the pages section name"""
        service = ResourceMapService({
            "resource_mapping": {"pages": {"P": {"destination": {"id": "1", "url": "from-pages"}}}}
        })

        assert service.convert_wiki_page_migration_id_to_slug("P") == "from-pages"

    def test_discussion_topic_and_announcement(self, service):
        """Should look up topics and announcements"""
        assert service.convert_discussion_topic_migration_id("G") == "7"
        assert service.convert_discussion_topic_migration_id("H") == "10"
        assert service.convert_announcement_migration_id("G") is None

    def test_module_item(self, service):
        """Should look up module items"""
        assert service.convert_context_module_tag_migration_id("C") == "3"

    def test_attachment(self, service):
        """Should return the attachment id and uuid"""
        assert service.convert_attachment_migration_id("F") == ("6", "u6")
        assert service.convert_attachment_migration_id("K") == ("7", None)
        assert service.convert_attachment_migration_id("nope") is None

    def test_media_map_is_keyed_by_source_media_id(self, service):
        """Should key the media map by source media id"""
        media_map = service.media_map()

        assert set(media_map) == {"m-stuff", "0_bq09qam2", "m-lolcat", "m-yodawg"}
        assert service.convert_attachment_media_id("m-lolcat") == ("8", "u8")
        assert service.convert_attachment_media_id(None) is None
        assert service.convert_attachment_media_id("m-nope") is None

    def test_media_map_without_files(self):
        """Should be empty without files"""
        assert ResourceMapService({"resource_mapping": {}}).media_map() is None

    @pytest.mark.parametrize("type,migration_id,expected", [
        ("assignments", "I", "12"),
        ("modules", "J", "36"),
        ("context_modules", "J", "36"),
        ("discussion_topics", "H", "10"),
        ("quizzes", "Q", None),
        ("not_a_type", "I", None),
    ])
    def test_convert_migration_id(self, service, type, migration_id, expected):
        """Should look up any object type"""
        assert service.convert_migration_id(type, migration_id) == expected

    def test_lookup_attachment_by_migration_id(self, service):
        """Should return the file record"""
        file = service.lookup_attachment_by_migration_id("E")

        assert file["id"] == "5"
        assert file["uuid"] == "u5"

    def test_empty_map(self):
        """Should find nothing in an empty map"""
        service = ResourceMapService()

        assert service.resources() == {}
        assert service.attachment_path_id_lookup() is None
        assert service.context_hosts() == []
        assert service.root_folder_name() == ""


class TestOverridableMethods:
    """Tests for behaviour hooks callers may replace"""

    def test_domain_substitutions(self, resource_map):
        """Should replace a configured domain"""
        service = ResourceMapService(
            resource_map, domain_substitutions={"http://old.edu": "https://new.edu"}
        )

        assert service.process_domain_substitutions("http://old.edu/x") == "https://new.edu/x"
        assert service.process_domain_substitutions("http://other.edu/x") == "http://other.edu/x"

    def test_fix_relative_urls(self, resource_map):
        """Should follow the fix_relative_urls option"""
        assert ResourceMapService(resource_map).fix_relative_urls() is True
        assert ResourceMapService(resource_map, fix_relative_urls=False).fix_relative_urls() is False

    def test_embedded_images_need_a_handler(self, service):
        """Should refuse embedded images without a handler"""
        assert service.supports_embedded_images() is False
        with pytest.raises(NotImplementedError):
            service.link_embedded_image("image/png", b"x")

    def test_embedded_image_handler(self, resource_map):
        """Should call the embedded image handler"""
        service = ResourceMapService(
            resource_map,
            embedded_image_handler=lambda mime, data: EmbeddedImageResult(True, f"/stored/{len(data)}"),
        )

        assert service.supports_embedded_images() is True
        assert service.link_embedded_image("image/png", b"abc") == EmbeddedImageResult(True, "/stored/3")

    def test_subclass_override(self, resource_map):
        """Should let subclasses replace a lookup"""
        class SandboxService(ResourceMapService):
            def context_path(self):
                return "/sandbox/2"

        assert SandboxService(resource_map).context_path() == "/sandbox/2"


class TestFromFile:
    """Tests for loading a resource map from disk"""

    def test_json(self, resource_map_file):
        """Should load a JSON resource map"""
        service = ResourceMapService.from_file(resource_map_file)

        assert service.context_path() == "/courses/2"

    def test_yaml(self, tmp_path, resource_map):
        """Should load a YAML resource map"""
        path = tmp_path / "resource_map.yaml"
        path.write_text(yaml.safe_dump(resource_map))

        service = ResourceMapService.from_file(path, fix_relative_urls=False)

        assert service.convert_wiki_page_migration_id_to_slug("A") == "slug-a"
        assert service.fix_relative_urls() is False

    def test_missing_file(self, tmp_path):
        """Should raise ResourceMapError for a missing file"""
        with pytest.raises(ResourceMapError) as exc_info:
            ResourceMapService.from_file(tmp_path / "nope.json")

        assert "not found" in exc_info.value.message

    def test_invalid_json(self, tmp_path):
        """Should raise ResourceMapError for bad JSON"""
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(ResourceMapError) as exc_info:
            ResourceMapService.from_file(path)

        assert isinstance(exc_info.value.cause, json.JSONDecodeError)

    def test_top_level_must_be_mapping(self, tmp_path):
        """Should reject a map that is not a mapping"""
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")

        with pytest.raises(ResourceMapError):
            ResourceMapService.from_file(path)
