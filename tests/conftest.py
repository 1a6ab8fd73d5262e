# tests/conftest.py
"""
Pytest configuration and shared fixtures for relink tests
"""
import copy
import json
import sys
from pathlib import Path
from typing import Any, Dict

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from relink.converter import HtmlConverter
from relink.link_parser import LinkParser
from relink.link_resolver import LinkResolver
from relink.resource_map import ResourceMapService


FIXTURES_DIR = Path(__file__).parent / "fixtures"
RESOURCE_MAP_FILE = FIXTURES_DIR / "resource_map.json"


@pytest.fixture(scope="session")
def _resource_map_data() -> Dict[str, Any]:
    return json.loads(RESOURCE_MAP_FILE.read_text(encoding="utf-8"))


@pytest.fixture
def resource_map(_resource_map_data) -> Dict[str, Any]:
    """A fresh copy of the sample migration's resource map"""
    return copy.deepcopy(_resource_map_data)


@pytest.fixture
def resource_map_file(tmp_path: Path, resource_map) -> Path:
    """The sample resource map written to a temporary directory"""
    path = tmp_path / "resource_map.json"
    path.write_text(json.dumps(resource_map))
    return path


@pytest.fixture
def service(resource_map) -> ResourceMapService:
    return ResourceMapService(resource_map)


@pytest.fixture
def parser(service) -> LinkParser:
    return LinkParser(service)


@pytest.fixture
def resolver(service) -> LinkResolver:
    return LinkResolver(service)


@pytest.fixture
def converter(service) -> HtmlConverter:
    return HtmlConverter(service=service)


@pytest.fixture
def isolated_home(tmp_path: Path, monkeypatch) -> Path:
    """Point HOME at an empty directory and clear relink env vars"""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("RELINK_RESOURCE_MAP", raising=False)
    monkeypatch.delenv("RELINK_FIX_RELATIVE_URLS", raising=False)
    return home
