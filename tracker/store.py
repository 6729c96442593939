"""User record store: one JSON file per username under the storage root.

Records are always loaded and saved whole. There is no locking, so two
concurrent load-modify-save sequences on the same user race and the last
save wins.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic import ValidationError as SchemaError

from server.errors import ConflictError, StoreError
from server.logging_config import get_logger
from server.path_utils import RECORD_SUFFIX, record_path, username_from_path

logger = get_logger(__name__)

RECORD_MODE = 0o644


class UserRecord(BaseModel):
    """Favorites plus finished chapter labels per title."""

    favorites: list[str] = Field(default_factory=list)
    finished: dict[str, list[str]] = Field(default_factory=dict)


class UserRecordStore:
    def __init__(self, root: Path) -> None:
        self.root = root

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def exists(self, username: str) -> bool:
        return record_path(self.root, username).exists()

    def load(self, username: str) -> UserRecord:
        """Return the stored record, or an empty one if absent or unreadable."""
        path = record_path(self.root, username)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return UserRecord()
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(f"Unreadable record for {username}, using empty record: {exc}")
            return UserRecord()

        try:
            return UserRecord.model_validate_json(raw)
        except SchemaError:
            logger.warning(f"Corrupt record for {username}, using empty record")
            return UserRecord()

    def save(self, username: str, record: UserRecord) -> None:
        """Replace the user's file with record.

        The new content goes to a temp file in the same directory and is
        moved over the old file, so readers never see a half-written record.
        """
        path = record_path(self.root, username)
        data = record.model_dump_json(indent=2)
        tmp_name = None
        try:
            self.ensure_root()
            fd, tmp_name = tempfile.mkstemp(
                dir=self.root, prefix=f".{username}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            # mkstemp creates 0600
            os.chmod(tmp_name, RECORD_MODE)
            os.replace(tmp_name, path)
        except OSError as exc:
            logger.error(f"Failed to save record for {username}: {exc}")
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StoreError() from exc
        logger.debug(f"Saved record for {username}")

    def create(self, username: str) -> UserRecord:
        """Persist an empty record for a new user."""
        if self.exists(username):
            raise ConflictError(f"User {username} already exists")
        record = UserRecord()
        self.save(username, record)
        logger.info(f"Created user {username}")
        return record

    def list_usernames(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(
            username_from_path(path)
            for path in self.root.glob(f"*{RECORD_SUFFIX}")
            if path.is_file() and not path.name.startswith(".")
        )
