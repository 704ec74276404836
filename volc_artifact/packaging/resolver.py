"""Path resolver: turns requested file paths into ordered archive entries.

Each requested path is placed relative to the root directory and
classified as a regular file, a symlink or a directory:

  - regular file  → one file entry
  - symlink       → one file entry flagged is_symlink; the link is followed
                    by the archive builder, not here
  - directory     → an empty-directory entry, but only when no other
                    requested path lives beneath it

Containment:
  Only the directory portion of each path is resolved with realpath. The
  leaf may be a symlink pointing outside the root; what gets archived is
  the target's content under the link's own name, so the link location is
  what has to be inside the root.

Glob expansion is the caller's job; this module never walks directories.
"""

import logging
import os
import stat
from collections.abc import Sequence
from pathlib import Path

from volc_artifact.errors import (
    DuplicateEntryError,
    InvalidRootDirectory,
    PathEscapesRoot,
)
from volc_artifact.packaging.types import ArchiveEntry, EntryKind, UploadSpecification
from volc_artifact.packaging.validation import validate_archive_path

logger = logging.getLogger(__name__)


def validate_root_directory(root_directory: str | os.PathLike) -> Path:
    """Check that the root exists and is a directory.

    Returns the fully resolved root path.

    Raises:
        InvalidRootDirectory: If the root is missing or not a directory.
    """
    root = os.fspath(root_directory)
    if not root or not os.path.exists(root):
        raise InvalidRootDirectory(root, "does not exist")
    if not os.path.isdir(root):
        raise InvalidRootDirectory(root, "is not a valid directory")

    logger.debug("Root directory input is valid: %s", root)
    return Path(os.path.realpath(root))


def resolve(
    requested_paths: Sequence[str | os.PathLike],
    root_directory: str | os.PathLike,
) -> UploadSpecification:
    """Build the upload specification for the requested paths.

    Relative paths are taken relative to root_directory. Paths that do not
    exist are recorded in `missing` rather than raising, so the caller can
    decide whether an empty result is fatal.

    Raises:
        InvalidRootDirectory: If the root is missing or not a directory.
        PathEscapesRoot: If any path is outside the root.
        InvalidPathError: If a destination path has a forbidden character.
        DuplicateEntryError: If two paths map to the same destination.
    """
    real_root = validate_root_directory(root_directory)
    root = os.fspath(root_directory)

    spec = UploadSpecification()
    # (kind, destination, source, is_symlink) in request order
    candidates: list[tuple[EntryKind, str, Path | None, bool]] = []

    for requested in requested_paths:
        raw = os.fspath(requested)
        located = _locate(raw, root)

        if not _is_within(located, real_root):
            raise PathEscapesRoot(raw, root)

        try:
            st = os.lstat(located)
        except FileNotFoundError:
            logger.warning("File %s does not exist and will not be uploaded", raw)
            spec.missing.append(raw)
            continue

        destination = os.path.relpath(located, real_root).replace(os.sep, "/")
        if destination == ".":
            logger.debug("Skipping root directory %s, it has no archive entry of its own", raw)
            continue
        validate_archive_path(destination)

        if stat.S_ISLNK(st.st_mode):
            if os.path.isdir(located):
                candidates.append((EntryKind.DIRECTORY, destination, None, True))
            else:
                candidates.append((EntryKind.FILE, destination, Path(located), True))
        elif stat.S_ISDIR(st.st_mode):
            candidates.append((EntryKind.DIRECTORY, destination, None, False))
        elif stat.S_ISREG(st.st_mode):
            candidates.append((EntryKind.FILE, destination, Path(located), False))
        else:
            logger.warning(
                "%s is not a regular file, directory or symlink and will not be uploaded",
                raw,
            )

    all_destinations = [c[1] for c in candidates]
    seen: set[str] = set()

    for kind, destination, source, is_symlink in candidates:
        if destination in seen:
            raise DuplicateEntryError(destination)
        seen.add(destination)

        if kind == EntryKind.DIRECTORY:
            prefix = destination + "/"
            if any(d.startswith(prefix) for d in all_destinations):
                continue
            spec.entries.append(ArchiveEntry.directory(destination))
        else:
            spec.entries.append(ArchiveEntry.file(source, destination, is_symlink=is_symlink))

    logger.debug(
        "Resolved %d entries (%d missing) under %s",
        len(spec.entries), len(spec.missing), real_root,
    )
    return spec


def _locate(raw: str, root: str) -> str:
    """Absolute path with the directory portion resolved and the leaf kept."""
    path = raw if os.path.isabs(raw) else os.path.join(root, raw)

    # "sub/" and "sub" name the same directory
    stripped = path.rstrip("/" + os.sep)
    path = stripped or path

    head, leaf = os.path.split(path)
    if leaf in ("", ".", ".."):
        return os.path.realpath(path)
    return os.path.join(os.path.realpath(head), leaf)


def _is_within(path: str, real_root: Path) -> bool:
    root = os.fspath(real_root)
    try:
        return os.path.commonpath([root, path]) == root
    except ValueError:
        # Different drives on Windows
        return False
