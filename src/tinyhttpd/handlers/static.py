"""
=============================================================================
PATH RESOLVER
=============================================================================

Maps a request URL onto a file beneath the document root.

=============================================================================
MAPPING RULES
=============================================================================

The URL is appended to the document root verbatim: no percent-decoding,
no query-string stripping.

    ┌──────────────────────┬─────────────────────────────────────────────┐
    │ URL                  │ candidate path (root = "htdocs")            │
    ├──────────────────────┼─────────────────────────────────────────────┤
    │ /                    │ htdocs/index.html       (trailing-slash)    │
    │ /a.html              │ htdocs/a.html                               │
    │ /docs/               │ htdocs/docs/index.html  (trailing-slash)    │
    │ /docs   (directory)  │ htdocs/docs/index.html  (directory rule)    │
    │ /nope.html           │ → not found                                 │
    └──────────────────────┴─────────────────────────────────────────────┘

The two index rules are independent. The trailing-slash rule looks only at
the URL text; the directory rule looks at what stat() reports and appends
"/index.html" to whatever path was stat'ed, without stat'ing again. A URL
"/docs/" whose docs/index.html is itself a directory therefore becomes
docs/index.html/index.html, and the open() that follows decides.

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

    GET /../../etc/passwd HTTP/1.0

    root + url = htdocs/../../etc/passwd  →  /etc/passwd

Before touching the filesystem we resolve the candidate (following ".."
and symlinks) and require it to stay inside the resolved document root.
Anything outside is reported exactly like a missing file: the client
learns nothing about what exists elsewhere on disk.

=============================================================================
"""

import os
import stat
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedPath:
    """
    Result of resolving one URL.

    Attributes:
        path: Final filesystem path (document_root + url + index suffixes).
        found: True if the path should be opened and served.
        reason: Why it was not found ("missing", "outside root",
                "not a regular file"), for logs.
    """

    path: str
    found: bool
    reason: str = ""


class PathResolver:
    """
    Resolves request URLs against a fixed document root.

    Usage:
        resolver = PathResolver("htdocs")
        resolved = resolver.resolve("/")
        resolved.path   # "htdocs/index.html"
        resolved.found  # True if htdocs/index.html exists
    """

    def __init__(self, document_root: Union[str, Path], index_file: str = "index.html"):
        """
        Args:
            document_root: Directory that URLs are appended to. Kept as
                           given for building paths; resolved separately
                           for the containment check.
            index_file: Name served for "/"-terminated URLs and directories.

        Raises:
            ValueError: If document_root is not a directory.
        """
        self.document_root = str(document_root)
        self.index_file = index_file
        self._real_root = Path(self.document_root).resolve()

        if not self._real_root.is_dir():
            raise ValueError(f"Document root does not exist: {document_root}")

    def resolve(self, url: str) -> ResolvedPath:
        path = self.document_root + url
        if url.endswith("/"):
            path += self.index_file

        if not self._inside_root(path):
            logger.warning(f"Path traversal attempt: {url!r}")
            return ResolvedPath(path, found=False, reason="outside root")

        try:
            st = os.stat(path)
        except (OSError, ValueError):
            # ValueError: embedded NUL byte
            return ResolvedPath(path, found=False, reason="missing")

        if stat.S_ISDIR(st.st_mode):
            path += "/" + self.index_file
            # index.html may be a symlink pointing elsewhere
            if not self._inside_root(path):
                logger.warning(f"Path traversal attempt via directory index: {url!r}")
                return ResolvedPath(path, found=False, reason="outside root")
        elif not stat.S_ISREG(st.st_mode):
            # open() on a FIFO or device can block forever
            return ResolvedPath(path, found=False, reason="not a regular file")

        return ResolvedPath(path, found=True)

    def _inside_root(self, path: str) -> bool:
        """Check that path, with ".." and symlinks resolved, is under the root."""
        if "\x00" in path:
            return True  # Let stat() reject it as missing
        try:
            Path(path).resolve().relative_to(self._real_root)
        except ValueError:
            return False
        except (OSError, RuntimeError):
            # Symlink loops: RuntimeError before 3.13, OSError after
            return False
        return True
