# config_utils.py - YAML Configuration System for relink
"""
relink configuration utilities with YAML file support.

Configuration Resolution Order (highest to lowest priority):
1. Environment variables (RELINK_RESOURCE_MAP, RELINK_FIX_RELATIVE_URLS)
2. relink.yaml in the working directory
3. ~/.relink/config.yaml (global defaults)

Usage:
    from relink.config_utils import get_config

    config = get_config()
    print(config.resource_map)
    service = config.make_service()
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from relink.errors import ConfigurationError
from relink.resource_map import ResourceMapService


TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class RelinkConfig:
    """Complete relink configuration"""
    # Resource map exported by the migration
    resource_map: Optional[Path] = None

    # Parser behaviour
    fix_relative_urls: bool = True
    remove_outer_nodes: bool = False

    # Absolute URL rewriting
    domain_substitutions: Dict[str, str] = field(default_factory=dict)
    destination_hosts: List[str] = field(default_factory=list)

    # Paths (resolved at load time)
    work_dir: Optional[Path] = None

    # Extra settings from config file
    extra: Dict[str, Any] = field(default_factory=dict)

    # Track where values came from (for debugging)
    _sources: Dict[str, str] = field(default_factory=dict)

    def make_service(self, resource_map: Optional[Path] = None) -> ResourceMapService:
        """Build a ResourceMapService from the configured resource map."""
        path = resource_map or self.resource_map
        if path is None:
            raise missing_resource_map_error()
        service = ResourceMapService.from_file(
            path,
            fix_relative_urls=self.fix_relative_urls,
            domain_substitutions=self.domain_substitutions,
        )
        if self.destination_hosts:
            hosts = service.migration_data.setdefault("destination_hosts", [])
            hosts.extend(h for h in self.destination_hosts if h not in hosts)
        return service


class ConfigLoader:
    """Load configuration from multiple sources"""

    def __init__(self, work_dir: Optional[Path] = None):
        self.work_dir = Path(work_dir) if work_dir else Path.cwd()
        self.config = RelinkConfig(work_dir=self.work_dir)

    def load(self) -> RelinkConfig:
        """Load configuration from all sources in priority order"""
        # Load in reverse priority (lowest first, higher overwrites)
        self._load_global_config()
        self._load_yaml_config()
        self._load_env_vars()
        return self.config

    def _load_global_config(self):
        """Load ~/.relink/config.yaml if it exists"""
        global_config = Path.home() / ".relink" / "config.yaml"
        if global_config.exists():
            self._load_yaml_file(global_config, "global")

    def _load_yaml_config(self):
        """Load relink.yaml from the working directory"""
        yaml_path = self.work_dir / "relink.yaml"
        if yaml_path.exists():
            self._load_yaml_file(yaml_path, "relink.yaml")

    def _load_yaml_file(self, path: Path, source_name: str):
        """Load settings from a YAML file"""
        try:
            data = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                message=f"Failed to parse {path.name}",
                suggestion="Fix the YAML syntax or remove the file",
                context={"path": str(path)},
                cause=e,
            ) from e

        if "resource_map" in data:
            value = Path(data["resource_map"]).expanduser()
            if not value.is_absolute():
                value = path.parent / value
            self.config.resource_map = value
            self.config._sources["resource_map"] = source_name

        for key in ("fix_relative_urls", "remove_outer_nodes"):
            if key in data:
                setattr(self.config, key, bool(data[key]))
                self.config._sources[key] = source_name

        if isinstance(data.get("domain_substitutions"), dict):
            self.config.domain_substitutions.update(data["domain_substitutions"])
            self.config._sources["domain_substitutions"] = source_name

        if isinstance(data.get("destination_hosts"), list):
            self.config.destination_hosts = [str(h) for h in data["destination_hosts"]]
            self.config._sources["destination_hosts"] = source_name

        # Store any extra settings
        known_keys = {"resource_map", "fix_relative_urls", "remove_outer_nodes",
                      "domain_substitutions", "destination_hosts"}
        for key, value in data.items():
            if key not in known_keys:
                self.config.extra[key] = value

    def _load_env_vars(self):
        """Load from environment variables (highest priority)"""
        if os.environ.get("RELINK_RESOURCE_MAP"):
            self.config.resource_map = Path(os.environ["RELINK_RESOURCE_MAP"]).expanduser()
            self.config._sources["resource_map"] = "env:RELINK_RESOURCE_MAP"

        fix_relative = os.environ.get("RELINK_FIX_RELATIVE_URLS")
        if fix_relative is not None:
            self.config.fix_relative_urls = fix_relative.lower() in TRUE_VALUES
            self.config._sources["fix_relative_urls"] = "env:RELINK_FIX_RELATIVE_URLS"


# ============================================================================
# Public API
# ============================================================================

def get_config(work_dir: Optional[Path] = None) -> RelinkConfig:
    """
    Get complete relink configuration.

    Args:
        work_dir: Directory holding relink.yaml (defaults to cwd)

    Returns:
        RelinkConfig with all settings resolved
    """
    loader = ConfigLoader(work_dir)
    return loader.load()


def missing_resource_map_error() -> ConfigurationError:
    return ConfigurationError(
        message="Resource map not configured",
        suggestion=(
            "Set the resource map using one of these methods:\n\n"
            "1. Command line:\n"
            "   relink convert page.html --resource-map resource_map.json\n\n"
            "2. Environment variable:\n"
            "   export RELINK_RESOURCE_MAP=resource_map.json\n\n"
            "3. Create relink.yaml in the working directory:\n"
            "   resource_map: resource_map.json"
        ),
        context={
            "checked_locations": [
                "--resource-map option",
                "RELINK_RESOURCE_MAP environment variable",
                "relink.yaml",
                "~/.relink/config.yaml",
            ]
        }
    )


def get_resource_map_path(work_dir: Optional[Path] = None) -> Path:
    """
    Get the configured resource map path.

    Raises:
        ConfigurationError: If no resource map is configured anywhere
    """
    config = get_config(work_dir)
    if config.resource_map:
        return config.resource_map
    raise missing_resource_map_error()


def create_config_template(include_comments: bool = True) -> str:
    """
    Generate a relink.yaml template.

    Args:
        include_comments: Whether to include explanatory comments

    Returns:
        YAML string ready to write to file
    """
    if include_comments:
        return '''# relink Configuration File

# Resource map exported by the migration (JSON or YAML)
resource_map: resource_map.json

# Rewrite unrecognized relative links as course file links
fix_relative_urls: true

# Drop bare <div>/<p> wrappers around converted fragments
remove_outer_nodes: false

# Rewrite absolute URLs before host folding (old prefix: new prefix)
domain_substitutions: {}
#  https://old-canvas.example.edu: https://canvas.example.edu

# Extra hosts whose absolute links become relative
destination_hosts: []
'''
    else:
        return '''resource_map: resource_map.json
fix_relative_urls: true
remove_outer_nodes: false
domain_substitutions: {}
destination_hosts: []
'''
