"""Archive builder: streams an upload specification into a zip file.

Entries are written in specification order, so the same specification
always yields the same archive layout. Compressed bytes may differ across
zlib versions; member names and uncompressed content do not.

File contents are streamed from disk into the zip member; the archive is
never held in memory. The size is read from disk only after the zip and
its file handle have been closed.

Failure policy:
  - A source file that disappeared since it was resolved is skipped with a
    warning. A partial artifact is preferred over no artifact.
  - Any other I/O or member-name encoding error aborts the build, removes
    the partial archive and raises ArchiveError.
"""

import logging
import os
import zipfile
from pathlib import Path

from volc_artifact.errors import ArchiveError, InvalidCompressionLevel
from volc_artifact.packaging.types import ArchiveEntry, EntryKind, UploadSpecification

logger = logging.getLogger(__name__)

DEFAULT_COMPRESSION_LEVEL = 6


def validate_compression_level(level: int) -> int:
    """Return level unchanged if it is an int in 0..9, else raise."""
    if isinstance(level, bool) or not isinstance(level, int) or not 0 <= level <= 9:
        raise InvalidCompressionLevel(level)
    return level


def build(
    destination: str | os.PathLike,
    spec: UploadSpecification,
    compression_level: int = DEFAULT_COMPRESSION_LEVEL,
) -> int:
    """Write the archive for `spec` to `destination` and return its size in bytes.

    Level 0 stores members uncompressed; 1-9 deflate at that level.

    Raises:
        InvalidCompressionLevel: If compression_level is outside 0..9.
        ArchiveError: On any fatal I/O or encoding failure. The partial file
            is removed.
    """
    validate_compression_level(compression_level)
    archive_path = Path(destination)

    if compression_level == 0:
        compression, compresslevel = zipfile.ZIP_STORED, None
    else:
        compression, compresslevel = zipfile.ZIP_DEFLATED, compression_level

    logger.debug(
        "Creating artifact archive %s with compressionLevel: %d",
        archive_path, compression_level,
    )

    written = 0
    skipped = 0
    try:
        with open(archive_path, "wb") as fh:
            with zipfile.ZipFile(
                fh,
                mode="w",
                compression=compression,
                compresslevel=compresslevel,
                strict_timestamps=False,
            ) as zf:
                for entry in spec:
                    if _add_entry(zf, entry):
                        written += 1
                    else:
                        skipped += 1
    except (OSError, ValueError, zipfile.BadZipFile, zipfile.LargeZipFile) as exc:
        logger.error("An error has occurred while creating the zip file for upload: %s", exc)
        _discard(archive_path)
        raise ArchiveError(
            f"An error has occurred during zip creation for the artifact: {exc}"
        ) from exc

    size = os.path.getsize(archive_path)
    logger.info(
        "Archive %s finished: %d entries, %d skipped, %d bytes",
        archive_path.name, written, skipped, size,
    )
    return size


def _add_entry(zf: zipfile.ZipFile, entry: ArchiveEntry) -> bool:
    """Write one entry. Returns False if the source vanished and was skipped."""
    if entry.kind == EntryKind.DIRECTORY:
        zf.mkdir(entry.destination_path)
        return True

    source = entry.source_path
    if entry.is_symlink:
        source = Path(os.path.realpath(source))

    # ZipFile.write opens the source before emitting the member header, so a
    # missing file leaves nothing half-written behind.
    try:
        zf.write(source, arcname=entry.destination_path)
    except FileNotFoundError as exc:
        logger.warning(
            "ENOENT warning during artifact zip creation. No such file or directory: %s",
            entry.source_path,
        )
        logger.debug("Skipped entry %s: %s", entry.destination_path, exc)
        return False
    return True


def _discard(archive_path: Path) -> None:
    try:
        archive_path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not remove partial archive %s: %s", archive_path, exc)
