"""Types for the packaging stage."""

from dataclasses import dataclass

# Declared content type for every packaged resource
ZIP_CONTENT_TYPE = "application/zip"


@dataclass(frozen=True)
class ResolvedFile:
    """A matched file and where it lands inside the archive.

    archive_path is source_path with the resource's base path stripped once,
    or source_path unchanged when it does not start with that prefix.
    """

    source_path: str
    archive_path: str


@dataclass(frozen=True)
class ResolvedResource:
    """A resource whose glob patterns have been expanded.

    files is unique by source_path, in first-match order.
    """

    name: str
    files: tuple[ResolvedFile, ...] = ()


@dataclass(frozen=True)
class Artifact:
    """A packaged resource ready for the upsert call.

    content is the base64 text of a deflate zip archive.
    """

    full_name: str
    content: str
    content_type: str = ZIP_CONTENT_TYPE

