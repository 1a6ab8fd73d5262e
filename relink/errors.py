# errors.py
"""
Exceptions raised by relink

Every RelinkError renders as a boxed block: what went wrong, the values
involved, how to fix it, and the underlying exception if there is one.
The same text is used for tracebacks and for CLI error output.
"""
from pathlib import Path
from typing import Any, Dict, List, Optional


RULE = "=" * 70


class RelinkError(Exception):
    """Base exception for all relink errors"""

    def __init__(self, message: str, suggestion: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        self.message = message
        self.suggestion = suggestion
        self.context = dict(context or {})
        self.cause = cause
        super().__init__(self.format_message())

    def _sections(self) -> List[List[str]]:
        sections = [[self.message]]
        if self.context:
            sections.append(["Context:"] + [f"  {key}: {value}" for key, value in self.context.items()])
        if self.suggestion:
            sections.append(["💡 Suggestion:", f"  {self.suggestion}"])
        if self.cause is not None:
            sections.append([f"Caused by: {type(self.cause).__name__}: {self.cause}"])
        return sections

    def format_message(self) -> str:
        lines = ["", RULE, f"❌ {type(self).__name__}", RULE]
        for section in self._sections():
            lines.append("")
            lines.extend(section)
        lines.extend(["", RULE, ""])
        return "\n".join(lines)


class ConfigurationError(RelinkError):
    """relink.yaml or the environment is missing a setting, or is malformed"""


class ResourceMapError(RelinkError):
    """Resource map could not be loaded"""


class UnrecognizedLinkTypeError(RelinkError):
    """A recorded link has a type no resolution rule covers"""


# Factories for the errors raised in more than one place

def resource_map_not_found_error(path: Path) -> ResourceMapError:
    """Create error for a missing resource map file"""
    return ResourceMapError(
        message=f"Resource map not found: {path}",
        suggestion=(
            "Export the migration's resource map as JSON or YAML and pass it with:\n"
            "  relink convert page.html --resource-map resource_map.json\n\n"
            "Or set it once in relink.yaml:\n"
            "  resource_map: exports/resource_map.json"
        ),
        context={"path": str(path)}
    )


def invalid_resource_map_error(path: Path, cause: Exception) -> ResourceMapError:
    """Create error for a resource map that does not parse"""
    return ResourceMapError(
        message=f"Could not parse resource map {path.name}",
        suggestion="Check the file is valid JSON (.json) or YAML (.yaml/.yml) with a top-level mapping",
        context={"path": str(path)},
        cause=cause
    )


def unrecognized_link_type_error(link_type: Any, placeholder: Optional[str]) -> UnrecognizedLinkTypeError:
    """Create error when the resolver meets a link it has no rule for"""
    return UnrecognizedLinkTypeError(
        message=f"unrecognized link_type ({link_type}) in unresolved link",
        suggestion=(
            "The link table was built by a parser that records link types this\n"
            "  resolver does not handle. Re-run the scan with the same relink version."
        ),
        context={
            "link_type": link_type,
            "placeholder": placeholder,
        }
    )
