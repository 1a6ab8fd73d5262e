"""
relink - Rewrite course links in imported HTML

Exported course content refers to pages, files, discussion topics, module
items and media through placeholders whose final ids only exist once the
migration has run. relink scans HTML, parks those references behind
content-addressed placeholders, and later resolves them to real URLs.
"""

__version__ = "1.0.0"
__license__ = "MIT"

# Make key classes easily importable
from .errors import RelinkError, ConfigurationError
from .descriptor import LinkDescriptor, LinkType
from .link_table import UnresolvedLinkTable
from .resource_map import ResourceMapService
from .link_parser import LinkParser
from .link_resolver import LinkResolver
from .converter import HtmlConverter, replace_placeholders

__all__ = [
    "__version__",
    "RelinkError",
    "ConfigurationError",
    "LinkDescriptor",
    "LinkType",
    "UnresolvedLinkTable",
    "ResourceMapService",
    "LinkParser",
    "LinkResolver",
    "HtmlConverter",
    "replace_placeholders",
]
