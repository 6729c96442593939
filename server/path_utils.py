"""Path utilities for mapping usernames to record files.

Every user record lives directly under the storage root as `<username>.json`.
Usernames are used verbatim as file names, so only a conservative character
set is accepted.
"""

from __future__ import annotations

import re
from pathlib import Path

from .errors import InvalidFieldError

RECORD_SUFFIX = ".json"
MAX_USERNAME_LENGTH = 128

_USERNAME_RE = re.compile(r"[A-Za-z0-9_@][A-Za-z0-9_.@-]*")


def validate_username(username: str) -> str:
    """Return username unchanged if it is safe to use as a file name.

    Raises:
        InvalidFieldError: on separators, a leading dot, or other characters
            outside ``[A-Za-z0-9_.@-]``.

    Example:
        >>> validate_username("alice")
        'alice'
    """
    if len(username) > MAX_USERNAME_LENGTH:
        raise InvalidFieldError("username", f"longer than {MAX_USERNAME_LENGTH} characters")
    if not _USERNAME_RE.fullmatch(username):
        raise InvalidFieldError("username", "only letters, digits, '_', '-', '.', '@' allowed")
    return username


def record_path(storage_root: Path, username: str) -> Path:
    """Absolute path of the record file for username.

    Example:
        >>> record_path(Path("/data/mangas"), "alice")
        Path("/data/mangas/alice.json")
    """
    return storage_root / f"{validate_username(username)}{RECORD_SUFFIX}"


def username_from_path(path: Path) -> str:
    """Inverse of record_path: `/data/mangas/alice.json` -> `alice`."""
    return path.name[: -len(RECORD_SUFFIX)]
