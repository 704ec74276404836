"""Types for the packaging module."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Optional


class EntryKind(StrEnum):
    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class ArchiveEntry:
    """A single record to be written into the artifact archive.

    source_path is set iff kind is FILE. destination_path is always
    root-relative, slash-separated, non-empty and free of `..` segments.
    Symlinks keep their own path here; the link is followed at build time.
    """

    kind: EntryKind
    destination_path: str
    source_path: Optional[Path] = None
    is_symlink: bool = False

    def __post_init__(self) -> None:
        if (self.kind == EntryKind.FILE) != (self.source_path is not None):
            raise ValueError(
                f"source_path must be set iff kind is file (kind={self.kind}, "
                f"source_path={self.source_path})"
            )
        dest = self.destination_path
        if not dest or dest.startswith("/") or "\\" in dest:
            raise ValueError(f"Invalid archive destination path: {dest!r}")
        if any(part in ("", ".", "..") for part in dest.split("/")):
            raise ValueError(f"Invalid archive destination path: {dest!r}")

    @classmethod
    def file(cls, source_path: Path, destination_path: str, is_symlink: bool = False) -> "ArchiveEntry":
        return cls(
            kind=EntryKind.FILE,
            destination_path=destination_path,
            source_path=source_path,
            is_symlink=is_symlink,
        )

    @classmethod
    def directory(cls, destination_path: str) -> "ArchiveEntry":
        return cls(kind=EntryKind.DIRECTORY, destination_path=destination_path)


@dataclass
class UploadSpecification:
    """Ordered archive entries plus the requested paths that were not found.

    Order is the insertion order of the requested paths.
    """

    entries: list[ArchiveEntry] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[ArchiveEntry]:
        return iter(self.entries)

    @property
    def destination_paths(self) -> list[str]:
        return [e.destination_path for e in self.entries]
