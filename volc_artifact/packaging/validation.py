"""Artifact name and archive path validation.

Names become part of the storage key and paths become zip member names,
so both are checked against characters that are either reserved on common
filesystems or unsafe inside an object key. Checks run before any
filesystem or network access.
"""

import logging

from volc_artifact.errors import InvalidArtifactName, InvalidPathError

logger = logging.getLogger(__name__)

# Characters rejected in archive member paths
INVALID_PATH_CHARACTERS: dict[str, str] = {
    '"': ' Double quote "',
    ":": " Colon :",
    "<": " Less than <",
    ">": " Greater than >",
    "|": " Vertical bar |",
    "*": " Asterisk *",
    "?": " Question mark ?",
    "\r": " Carriage return \\r",
    "\n": " Line feed \\n",
    "\x00": " Null byte \\0",
    "\\": " Backslash \\",
}

# Names additionally may not contain the path separator
INVALID_NAME_CHARACTERS: dict[str, str] = {
    **INVALID_PATH_CHARACTERS,
    "/": " Forward slash /",
}


def _describe(characters: dict[str, str]) -> str:
    return "\n".join(characters.values())


def validate_artifact_name(name: str) -> None:
    """Reject artifact names that cannot be used in a storage key.

    Raises:
        InvalidArtifactName: If the name is empty or contains a forbidden
            character (including any ASCII control character).
    """
    if not name:
        raise InvalidArtifactName(name, "Provided artifact name input during validation is empty")

    for char, label in INVALID_NAME_CHARACTERS.items():
        if char in name:
            raise InvalidArtifactName(
                name,
                f"Contains the following character: {label.strip()}\n\n"
                f"Invalid characters include: {_describe(INVALID_NAME_CHARACTERS)}\n\n"
                "These characters are not allowed in the artifact name due to "
                "limitations with certain file systems such as NTFS. To maintain "
                "file system agnostic behavior, these characters are intentionally "
                "not allowed to prevent potential problems with downloads on "
                "different file systems.",
            )

    if any(ord(c) < 0x20 or ord(c) == 0x7F for c in name):
        raise InvalidArtifactName(name, "Contains a control character")

    if name in (".", ".."):
        raise InvalidArtifactName(name, "Relative path components are not allowed")

    logger.debug("Artifact name is valid: %s", name)


def validate_archive_path(path: str) -> None:
    """Reject archive member paths containing forbidden characters.

    Raises:
        InvalidPathError: If the path is empty, contains a forbidden
            character or cannot be encoded as UTF-8.
    """
    if not path:
        raise InvalidPathError(path, "Provided file path input during validation is empty")

    # Undecodable bytes in a filename surface as lone surrogates, which zip
    # member names cannot carry.
    try:
        path.encode("utf-8")
    except UnicodeEncodeError:
        printable = path.encode("utf-8", "backslashreplace").decode("utf-8")
        raise InvalidPathError(printable, "File path is not valid UTF-8") from None

    for char, label in INVALID_PATH_CHARACTERS.items():
        if char in path:
            raise InvalidPathError(
                path,
                f"Contains the following character: {label.strip()}\n\n"
                f"Invalid characters include: {_describe(INVALID_PATH_CHARACTERS)}",
            )
