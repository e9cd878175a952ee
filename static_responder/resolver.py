"""
Logical path resolution.

Checks run in a fixed order and each outcome is observable on the wire:

1. allow-list membership (404 when absent, the file store is not touched)
2. containment within the document root (403 on escape)
3. existence on disk (404 when missing)
"""

import enum
import mimetypes
import os
from dataclasses import dataclass
from typing import Collection, Optional

DEFAULT_CONTENT_TYPE = "text/plain"


class Resolution(enum.Enum):
    FOUND = "found"
    NOT_ALLOWED = "not_allowed"
    ESCAPE_ATTEMPT = "escape_attempt"
    RESOURCE_MISSING = "resource_missing"


@dataclass(frozen=True)
class ResourceLocation:
    """Outcome of resolving one logical path, scoped to a single request."""
    logical_path: str
    resolution: Resolution
    file_path: Optional[str] = None
    content_type: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.resolution is Resolution.FOUND


def probe_content_type(file_path: str) -> Optional[str]:
    """Guess a MIME type from the file name, or None when unknown."""
    mime_type, _ = mimetypes.guess_type(file_path)
    return mime_type


class PathResolver:
    """Maps allow-listed logical paths onto files below a root directory."""

    def __init__(self, root_dir: str, allow_list: Collection[str]):
        self.root_dir = os.path.abspath(root_dir)
        self.allow_list = frozenset(allow_list)

    def is_contained(self, file_path: str) -> bool:
        """Lexical check that file_path lies inside the root directory."""
        return file_path == self.root_dir or file_path.startswith(self.root_dir + os.sep)

    def resolve(self, logical_path: str) -> ResourceLocation:
        """
        Resolve a logical path.

        Args:
            logical_path: Request path without query string

        Returns:
            ResourceLocation describing the outcome
        """
        if logical_path not in self.allow_list:
            return ResourceLocation(logical_path, Resolution.NOT_ALLOWED)

        # A leading slash would make os.path.join discard the root.
        file_path = os.path.abspath(os.path.join(self.root_dir, logical_path.lstrip('/')))

        if not self.is_contained(file_path):
            return ResourceLocation(logical_path, Resolution.ESCAPE_ATTEMPT, file_path)

        if not os.path.isfile(file_path):
            return ResourceLocation(logical_path, Resolution.RESOURCE_MISSING, file_path)

        content_type = probe_content_type(file_path) or DEFAULT_CONTENT_TYPE
        return ResourceLocation(logical_path, Resolution.FOUND, file_path, content_type)
