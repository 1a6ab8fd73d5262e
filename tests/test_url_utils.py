# tests/test_url_utils.py
"""
Tests for url_utils.py - URL helpers
"""
import pytest

from relink.url_utils import (
    add_query_param,
    escape_path,
    join_path,
    path_components,
    relative_url,
    split_keep_leading,
    strip_host,
)


@pytest.mark.parametrize("url,expected", [
    ("relative/path.png", True),
    ("/courses/2/pages/x", True),
    ("#anchor", True),
    ("a%20b.png", True),
    ("http://example.com/x", False),
    ("mailto:someone@example.com", False),
    ("//cdn.example.com/x.js", False),
    ("stupid &^%$ url", False),
    ("100%.png", False),
    ("", False),
])
def test_relative_url(url, expected):
    """Should tell relative URLs from absolute and invalid ones"""
    assert relative_url(url) is expected


def test_escape_path():
    """Should percent-escape spaces"""
    assert escape_path("/courses/2/file_contents/course files") == "/courses/2/file_contents/course%20files"


def test_join_path():
    """Should join with exactly one slash"""
    assert join_path("/a/", "/b/c") == "/a/b/c"
    assert join_path("/a", "b") == "/a/b"


def test_split_keep_leading():
    """Should drop only trailing empty parts"""
    assert split_keep_leading("a.png?", "?") == ["a.png"]
    assert split_keep_leading("a?b?c", "?") == ["a", "b", "c"]
    assert split_keep_leading("?x", "?") == ["", "x"]


def test_path_components():
    """Should skip empty segments"""
    assert path_components("/a//b/c.txt") == ["a", "b", "c.txt"]


class TestAddQueryParam:
    """Tests for add_query_param"""

    def test_no_query(self):
        """Should start a query"""
        assert add_query_param("/files/1/preview", "verifier", "abc") == "/files/1/preview?verifier=abc"

    def test_existing_query_is_kept(self):
        """Should keep the existing query"""
        assert add_query_param("/files/1?wrap=1&x=a%20b", "verifier", "abc") == "/files/1?wrap=1&x=a%20b&verifier=abc"

    def test_existing_value_is_replaced(self):
        """Should replace an existing value"""
        assert add_query_param("/files/1?verifier=old", "verifier", "new") == "/files/1?verifier=new"

    def test_value_is_escaped(self):
        """Should escape the value"""
        assert add_query_param("/files/1", "verifier", "a b/c") == "/files/1?verifier=a%20b%2Fc"


class TestStripHost:
    """Tests for strip_host"""

    def test_matching_host(self):
        """Should strip a matching host"""
        assert strip_host("https://Apple.edu/x?y=1#z", ["apple.edu"]) == "/x?y=1#z"

    def test_port_in_allow_list_is_ignored(self):
        """Should ignore the port of a host entry"""
        assert strip_host("http://kiwi.edu/x", ["kiwi.edu:8080"]) == "/x"

    def test_other_host(self):
        """Should keep other hosts"""
        assert strip_host("https://other.edu/x", ["apple.edu"]) == "https://other.edu/x"

    def test_no_hosts(self):
        """Should keep the URL with no hosts"""
        assert strip_host("https://apple.edu/x", []) == "https://apple.edu/x"

    def test_malformed_url(self):
        """Should keep a URL it cannot split"""
        assert strip_host("http://[broken/x", ["apple.edu"]) == "http://[broken/x"
