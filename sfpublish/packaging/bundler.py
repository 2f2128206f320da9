"""Resource packager — zips one resolved resource into an uploadable artifact.

Each call builds its own in-memory zip (deflate), so nothing leaks between
resources. Files are read one of two ways:

  - binary (`read_bytes`) for fonts and images, which text decoding would
    corrupt: woff, woff2, png, jpg, jpeg, gif
  - UTF-8 text for everything else, stored back as UTF-8

Entries are keyed by archive_path, not source_path, so the bundle layout is
independent of the build output layout. Every entry carries the same fixed
timestamp, so packaging identical inputs yields identical bytes.

Debug mode logs every source path and writes the raw archive to
`<debug_dir>/<resource>.zip` for inspection. The debug copy is a side
channel and never changes the returned artifact.
"""

import base64
import io
import logging
import zipfile
from pathlib import Path
from typing import Iterable

from sfpublish.errors import ConfigurationError
from sfpublish.packaging.types import ZIP_CONTENT_TYPE, Artifact, ResolvedFile, ResolvedResource

logger = logging.getLogger(__name__)

BINARY_EXTENSIONS: frozenset[str] = frozenset({"woff", "woff2", "png", "jpg", "jpeg", "gif"})

DEFAULT_DEBUG_DIR = Path("tmp")

# Earliest timestamp a zip entry can hold
_FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)

TEXT_ENCODING = "utf-8"


def is_binary_path(path: str) -> bool:
    suffix = Path(path).suffix
    return suffix[1:].lower() in BINARY_EXTENSIONS


def read_source(path: str) -> bytes:
    """Return the bytes to store for `path`, honouring the binary/text split."""
    data = Path(path).read_bytes()
    if is_binary_path(path):
        return data
    # decoded without newline translation so CRLF files keep their endings
    text = data.decode(TEXT_ENCODING, errors="replace")
    return text.encode(TEXT_ENCODING)


class ResourcePackager:
    """Builds one Artifact per ResolvedResource."""

    def __init__(self, debug: bool = False, debug_dir: Path = DEFAULT_DEBUG_DIR):
        self.debug = debug
        self.debug_dir = Path(debug_dir)

    def package(self, resource: ResolvedResource) -> Artifact:
        """Zip `resource` and return it as a base64 Artifact.

        Raises:
            ConfigurationError: the resource matched no files, or two files
                map to the same archive path.
        """
        if not resource.files:
            raise ConfigurationError(f"Resource {resource.name} matched no files.")

        _check_archive_paths(resource)
        archive = self._build_archive(resource)

        if self.debug:
            self._write_debug_copy(resource.name, archive)

        logger.info(
            "Packaged resource %s: %d file(s), %d bytes",
            resource.name, len(resource.files), len(archive),
        )
        return Artifact(
            full_name=resource.name,
            content=base64.b64encode(archive).decode("ascii"),
            content_type=ZIP_CONTENT_TYPE,
        )

    def package_all(self, resources: Iterable[ResolvedResource]) -> list[Artifact]:
        return [self.package(resource) for resource in resources]

    def _build_archive(self, resource: ResolvedResource) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, mode="w", compression=zipfile.ZIP_DEFLATED) as zf:
            for entry in resource.files:
                if self.debug:
                    logger.debug("Adding %s as %s", entry.source_path, entry.archive_path)
                zf.writestr(_zip_info(entry), read_source(entry.source_path))
        return buffer.getvalue()

    def _write_debug_copy(self, name: str, archive: bytes) -> None:
        # separators flattened so every copy lands directly in debug_dir
        target = self.debug_dir / f"{_debug_file_stem(name)}.zip"
        try:
            self.debug_dir.mkdir(parents=True, exist_ok=True)
            target.write_bytes(archive)
        except OSError as exc:
            logger.warning("Could not write debug archive for %s to %s: %s", name, target, exc)
            return
        logger.debug("Wrote debug archive for %s to %s", name, target)


def _debug_file_stem(name: str) -> str:
    return name.replace("/", "_").replace("\\", "_")


def _zip_info(entry: ResolvedFile) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(entry.archive_path, date_time=_FIXED_DATE_TIME)
    info.compress_type = zipfile.ZIP_DEFLATED
    info.external_attr = 0o644 << 16
    return info


def _check_archive_paths(resource: ResolvedResource) -> None:
    owners: dict[str, str] = {}
    for entry in resource.files:
        if not entry.archive_path:
            raise ConfigurationError(
                f"Resource {resource.name}: {entry.source_path} maps to an empty archive path."
            )
        previous = owners.get(entry.archive_path)
        if previous is not None:
            raise ConfigurationError(
                f"Resource {resource.name}: {previous} and {entry.source_path} "
                f"both map to {entry.archive_path}"
            )
        owners[entry.archive_path] = entry.source_path
