# tests/test_config_utils.py
"""
Tests for config_utils.py - Configuration loading with YAML support
"""
import pytest
import yaml
from pathlib import Path

from relink.config_utils import (
    RelinkConfig,
    ConfigLoader,
    get_config,
    get_resource_map_path,
    create_config_template,
)
from relink.errors import ConfigurationError


class TestRelinkConfig:
    """Tests for RelinkConfig dataclass"""

    def test_default_values(self):
        """Config should have sensible defaults"""
        config = RelinkConfig()

        assert config.resource_map is None
        assert config.fix_relative_urls is True
        assert config.remove_outer_nodes is False
        assert config.domain_substitutions == {}
        assert config.destination_hosts == []

    def test_make_service_without_map(self):
        """A service cannot be built without a resource map"""
        with pytest.raises(ConfigurationError) as exc_info:
            RelinkConfig().make_service()

        assert "RELINK_RESOURCE_MAP" in exc_info.value.suggestion

    def test_make_service_merges_destination_hosts(self, resource_map_file):
        """Should add configured hosts to the service"""
        config = RelinkConfig(
            resource_map=resource_map_file,
            destination_hosts=["apple.edu", "canvas.example.edu"],
            fix_relative_urls=False,
        )

        service = config.make_service()

        assert service.context_hosts() == ["apple.edu", "kiwi.edu:8080", "canvas.example.edu"]
        assert service.fix_relative_urls() is False

    def test_make_service_prefers_explicit_map(self, tmp_path, resource_map_file):
        """Should use the given resource map over the configured one"""
        config = RelinkConfig(resource_map=tmp_path / "nope.json")

        service = config.make_service(resource_map_file)

        assert service.context_path() == "/courses/2"


class TestConfigLoader:
    """Tests for ConfigLoader"""

    def test_no_config_files(self, tmp_path, isolated_home):
        """Should fall back to defaults"""
        config = ConfigLoader(tmp_path).load()

        assert config.resource_map is None
        assert config.work_dir == tmp_path

    def test_loads_relink_yaml(self, tmp_path, isolated_home):
        """Should read relink.yaml in the working directory"""
        (tmp_path / "relink.yaml").write_text(
            "resource_map: maps/resource_map.json\n"
            "fix_relative_urls: false\n"
            "remove_outer_nodes: true\n"
            "domain_substitutions:\n"
            "  http://old.edu: https://new.edu\n"
            "destination_hosts:\n"
            "  - canvas.example.edu\n"
            "batch_name: fall\n"
        )

        config = get_config(tmp_path)

        assert config.resource_map == tmp_path / "maps" / "resource_map.json"
        assert config.fix_relative_urls is False
        assert config.remove_outer_nodes is True
        assert config.domain_substitutions == {"http://old.edu": "https://new.edu"}
        assert config.destination_hosts == ["canvas.example.edu"]
        assert config.extra == {"batch_name": "fall"}
        assert config._sources["resource_map"] == "relink.yaml"

    def test_local_overrides_global(self, tmp_path, isolated_home):
        """Should prefer relink.yaml over the home config"""
        global_dir = isolated_home / ".relink"
        global_dir.mkdir()
        (global_dir / "config.yaml").write_text("resource_map: /global/map.json\nfix_relative_urls: false\n")
        (tmp_path / "relink.yaml").write_text("resource_map: /local/map.json\n")

        config = get_config(tmp_path)

        assert config.resource_map == Path("/local/map.json")
        assert config.fix_relative_urls is False
        assert config._sources["fix_relative_urls"] == "global"

    def test_env_overrides_yaml(self, tmp_path, isolated_home, monkeypatch):
        """Should prefer environment variables over YAML"""
        (tmp_path / "relink.yaml").write_text("resource_map: local.json\nfix_relative_urls: true\n")
        monkeypatch.setenv("RELINK_RESOURCE_MAP", "/env/map.json")
        monkeypatch.setenv("RELINK_FIX_RELATIVE_URLS", "0")

        config = get_config(tmp_path)

        assert config.resource_map == Path("/env/map.json")
        assert config.fix_relative_urls is False
        assert config._sources["resource_map"] == "env:RELINK_RESOURCE_MAP"

    @pytest.mark.parametrize("value,expected", [
        ("1", True),
        ("true", True),
        ("YES", True),
        ("off", False),
        ("", False),
    ])
    def test_fix_relative_urls_env_values(self, tmp_path, isolated_home, monkeypatch, value, expected):
        """Should read booleans from the environment"""
        monkeypatch.setenv("RELINK_FIX_RELATIVE_URLS", value)

        assert get_config(tmp_path).fix_relative_urls is expected

    def test_invalid_yaml(self, tmp_path, isolated_home):
        """Should raise ConfigurationError for bad YAML"""
        (tmp_path / "relink.yaml").write_text("resource_map: [unclosed\n")

        with pytest.raises(ConfigurationError) as exc_info:
            get_config(tmp_path)

        assert "relink.yaml" in exc_info.value.message


class TestHelpers:
    """Tests for module-level helpers"""

    def test_get_resource_map_path(self, tmp_path, isolated_home, monkeypatch):
        """Should return the configured resource map path"""
        monkeypatch.setenv("RELINK_RESOURCE_MAP", "/env/map.json")

        assert get_resource_map_path(tmp_path) == Path("/env/map.json")

    def test_get_resource_map_path_missing(self, tmp_path, isolated_home):
        """Should raise when no resource map is configured"""
        with pytest.raises(ConfigurationError):
            get_resource_map_path(tmp_path)

    @pytest.mark.parametrize("include_comments", [True, False])
    def test_template_is_valid_yaml(self, include_comments):
        """Should write a template that loads back"""
        data = yaml.safe_load(create_config_template(include_comments))

        assert data["resource_map"] == "resource_map.json"
        assert data["fix_relative_urls"] is True
        assert data["destination_hosts"] == []
