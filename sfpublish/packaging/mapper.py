"""Path mapper — expands a resource's glob patterns into archive entries.

Resolution rules:
  - Each pattern is expanded with `glob.glob(recursive=True)` relative to
    the working directory, so `**` descends into subdirectories.
  - Only regular files are kept. Matches for one pattern are sorted so
    iteration order does not depend on the filesystem.
  - Overlapping patterns are unioned: a path matched twice appears once,
    at the position of its first match.
  - When base_path is set and a path starts with it, the prefix is removed
    once to form the archive path; otherwise the path is used as-is.

Nothing is read here beyond the directory scan the glob performs.
"""

import glob
import logging
import os
from typing import Iterable, Optional

from sfpublish.core.config import ResourceSpec
from sfpublish.packaging.types import ResolvedFile, ResolvedResource

logger = logging.getLogger(__name__)


class PathMapper:
    """Resolves ResourceSpecs into ResolvedResources."""

    def resolve(self, spec: ResourceSpec) -> ResolvedResource:
        seen: dict[str, None] = {}
        for pattern in spec.files:
            for match in _expand(pattern):
                seen.setdefault(match, None)

        files = tuple(
            ResolvedFile(
                source_path=source,
                archive_path=archive_path_for(source, spec.base_path),
            )
            for source in seen
        )
        logger.debug(
            "Resource %s: %d file(s) matched by %d pattern(s)",
            spec.name, len(files), len(spec.files),
        )
        return ResolvedResource(name=spec.name, files=files)

    def resolve_all(self, specs: Iterable[ResourceSpec]) -> list[ResolvedResource]:
        return [self.resolve(spec) for spec in specs]


def archive_path_for(source_path: str, base_path: Optional[str]) -> str:
    """Strip base_path from the front of source_path, once, when it is a
    true prefix. A base_path equal to the whole path leaves it unchanged.
    """
    if base_path and len(source_path) > len(base_path) and source_path.startswith(base_path):
        return source_path[len(base_path):]
    return source_path


def _expand(pattern: str) -> list[str]:
    matches = [
        path.replace(os.sep, "/")
        for path in glob.glob(pattern, recursive=True)
        if os.path.isfile(path)
    ]
    return sorted(matches)
