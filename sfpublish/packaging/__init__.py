"""Packaging stage: glob resolution and zip bundling.

Public API:
    PathMapper().resolve(spec) -> ResolvedResource
    ResourcePackager(debug).package(resource) -> Artifact
"""

from sfpublish.packaging.bundler import ResourcePackager
from sfpublish.packaging.mapper import PathMapper
from sfpublish.packaging.types import Artifact, ResolvedFile, ResolvedResource

__all__ = ["Artifact", "PathMapper", "ResolvedFile", "ResolvedResource", "ResourcePackager"]
