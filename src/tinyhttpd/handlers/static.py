"""
=============================================================================
RESOURCE RESOLVER
=============================================================================

Maps a decoded request path onto the served root and says what is there.

=============================================================================
FOUR OUTCOMES
=============================================================================

    request path ──► join under root ──► realpath ──► inside root?
                                                          │
                              no ─────────────────────────┤
                              │                           │ yes
                              ▼                           ▼
                           Missing                      stat()
                                                          │
         ┌──────────────────┬─────────────────┬───────────┴──────┐
         ▼                  ▼                 ▼                  ▼
      ENOENT /           directory       regular file     anything else
      ENOTDIR               │                 │          (EACCES, FIFO,
         │                  ▼                 ▼           socket, device)
         ▼             DirectoryResource  FileResource         │
      Missing          (child names)      (size, type)         ▼
                                                           Unreadable

The handler maps these to 404, 200 listing, 200 file and 500.

=============================================================================
SECURITY: STAYING INSIDE THE ROOT
=============================================================================

The decoded path is attacker-controlled. All of these must come back
Missing, never the file they point at:

    GET /../../etc/passwd           ".." climbs above the root
    GET /%2e%2e/%2e%2e/etc/passwd   same thing, percent-encoded
    GET /link-to-etc/passwd         symlink inside the root pointing out

os.path.realpath() collapses ".." AND follows symlinks, so one
commonpath() comparison against the canonical root covers all three. An
escape is answered with 404 rather than 403: from the outside, a path that
leaves the root does not exist.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union
import logging
import os
import stat

from ..http.mime_types import content_type_for


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileResource:
    """A regular file, ready to be opened and streamed."""

    path: str
    size: int
    content_type: str


@dataclass(frozen=True)
class DirectoryResource:
    """A directory and the names of its immediate children."""

    path: str
    entries: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Missing:
    """Nothing servable at that path (including paths outside the root)."""

    path: str


@dataclass(frozen=True)
class Unreadable:
    """The entry exists but cannot be stat-ed, listed or served."""

    path: str
    error: str


ResolvedResource = Union[FileResource, DirectoryResource, Missing, Unreadable]


class ResourceResolver:
    """
    Resolves request paths against one served root.

    Usage:
        resolver = ResourceResolver("/srv/www")

        resource = resolver.resolve("/docs")
        if isinstance(resource, DirectoryResource):
            ...
    """

    def __init__(self, root: str):
        """
        Args:
            root: Served root directory. Canonicalised once here; every
                  resolved path must stay under it.
        """
        self.root = os.path.realpath(root)

    def filesystem_path(self, request_path: str) -> Optional[str]:
        """
        Canonical filesystem path for a request path, or None if it would
        leave the root.

        The request path is always taken relative to the root, whether or
        not it starts with "/".
        """
        if "\x00" in request_path:
            return None

        relative = request_path.lstrip("/")
        candidate = os.path.realpath(os.path.join(self.root, relative))

        if not self.contains(candidate):
            return None
        return candidate

    def contains(self, path: str) -> bool:
        """True if `path` (already canonical) is the root or below it."""
        try:
            return os.path.commonpath([self.root, path]) == self.root
        except ValueError:
            return False

    def resolve(self, request_path: str) -> ResolvedResource:
        """
        Decide what a request path refers to.

        Never raises for filesystem conditions: every failure is folded
        into Missing or Unreadable.
        """
        target = self.filesystem_path(request_path)
        if target is None:
            logger.warning(f"Rejected path outside root: {request_path!r}")
            return Missing(request_path)

        try:
            info = os.stat(target)
        except (FileNotFoundError, NotADirectoryError):
            return Missing(target)
        except OSError as e:
            logger.warning(f"Cannot stat {target!r}: {e}")
            return Unreadable(target, str(e))

        if stat.S_ISDIR(info.st_mode):
            return self._list_directory(target)

        if stat.S_ISREG(info.st_mode):
            return FileResource(
                path=target,
                size=info.st_size,
                content_type=content_type_for(request_path),
            )

        logger.warning(f"Refusing to serve special file {target!r}")
        return Unreadable(target, "not a regular file or directory")

    def _list_directory(self, path: str) -> ResolvedResource:
        # scandir order is the filesystem's enumeration order
        try:
            with os.scandir(path) as it:
                names = [entry.name for entry in it]
        except OSError as e:
            logger.warning(f"Cannot list directory {path!r}: {e}")
            return Unreadable(path, str(e))

        return DirectoryResource(path=path, entries=names)
