"""
Request path resolution for staticserve.

Maps a decoded URL path onto the document root, rejecting anything that
normalizes to a location outside it.
"""

import fnmatch
import logging
from pathlib import Path
from typing import List, Optional

from core.errors import NotFound, TraversalRejected

logger = logging.getLogger(__name__)


class PathResolver:
    """
    Resolves URL paths to files under a document root.

    Symlinks are followed before the containment check, so a link pointing
    outside the root is rejected like any other traversal attempt.
    """

    def __init__(self, root_dir: Path, index_files: List[str], nondisclosure_names: Optional[List[str]] = None):
        """
        Initialize the resolver.

        Args:
            root_dir: Document root
            index_files: Index document names, in priority order
            nondisclosure_names: Glob patterns for names that are never served
        """
        self.root_dir = Path(root_dir).resolve()
        self.index_files = list(index_files)
        self.nondisclosure_names = list(nondisclosure_names or [])

    def locate(self, url_path: str) -> Path:
        """
        Map a URL path to an existing file or directory under the root.

        Args:
            url_path: Percent-decoded request path

        Returns:
            Path: Normalized absolute path inside the root

        Raises:
            TraversalRejected: If the path resolves outside the root
            NotFound: If nothing exists at the path or its name is not disclosed
        """
        if "\x00" in url_path:
            raise NotFound(url_path)

        relative = url_path.replace("\\", "/").lstrip("/")
        candidate = self._contain(self.root_dir / relative, url_path)

        try:
            exists = candidate.exists()
        except OSError as e:
            raise NotFound(url_path) from e
        if not exists:
            raise NotFound(url_path)

        return candidate

    def index_for(self, directory: Path) -> Path:
        """
        Get the first existing index document in a directory.

        Raises:
            NotFound: If none of the index names exists as a regular file
        """
        for name in self.index_files:
            try:
                candidate = self._contain(Path(directory) / name, name)
                if candidate.is_file():
                    return candidate
            except (NotFound, OSError):
                continue
        raise NotFound(str(directory))

    def _contain(self, path: Path, url_path: str) -> Path:
        """
        Resolve a path and make sure it stays under the root and is disclosed.

        Raises:
            TraversalRejected: If the resolved path is outside the root
            NotFound: If it cannot be resolved or a component is not disclosed
        """
        try:
            candidate = path.resolve()
        except (OSError, RuntimeError) as e:
            raise NotFound(url_path) from e

        if candidate != self.root_dir and self.root_dir not in candidate.parents:
            logger.warning("Rejected path outside document root: %r", url_path)
            raise TraversalRejected(url_path)

        if self._is_hidden(*candidate.relative_to(self.root_dir).parts):
            raise NotFound(url_path)

        return candidate

    def _is_hidden(self, *names: str) -> bool:
        return any(
            fnmatch.fnmatch(name, pattern)
            for name in names
            for pattern in self.nondisclosure_names
        )
