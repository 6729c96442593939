"""Favorites and finished-chapter operations over user records.

Each operation loads the full record, mutates it in memory and writes it
back. Required fields are checked before the store is touched.
"""

from __future__ import annotations

from typing import Optional, Union

from server.errors import InvalidFieldError, MissingFieldError
from server.logging_config import get_logger
from server.path_utils import validate_username

from .store import UserRecordStore

logger = get_logger(__name__)

ChapterNumber = Union[int, float, str]


def _require(**fields) -> None:
    missing = [
        name
        for name, value in fields.items()
        if value is None or (isinstance(value, str) and not value.strip())
    ]
    if missing:
        raise MissingFieldError(*missing)


def chapter_label(chapter_number: ChapterNumber) -> str:
    """Canonical string label for a chapter: 5, 5.0 and "5" all give "5"."""
    if isinstance(chapter_number, bool):
        raise InvalidFieldError("chapterNumber", "must be a number or a string")
    if isinstance(chapter_number, int):
        return str(chapter_number)
    if isinstance(chapter_number, float):
        if chapter_number.is_integer():
            return str(int(chapter_number))
        return str(chapter_number)
    if isinstance(chapter_number, str):
        return chapter_number.strip()
    raise InvalidFieldError("chapterNumber", "must be a number or a string")


class FavoritesManager:
    def __init__(self, store: UserRecordStore) -> None:
        self.store = store

    def add_favorite(self, username: Optional[str], manga_name: Optional[str]) -> list[str]:
        """Append manga_name unless already present; returns the favorites."""
        _require(username=username, mangaName=manga_name)
        validate_username(username)
        record = self.store.load(username)
        if manga_name not in record.favorites:
            record.favorites.append(manga_name)
            self.store.save(username, record)
            logger.info(f"{username}: added favorite {manga_name!r}")
        return record.favorites

    def remove_favorite(self, username: Optional[str], manga_name: Optional[str]) -> list[str]:
        _require(username=username, mangaName=manga_name)
        validate_username(username)
        record = self.store.load(username)
        record.favorites = [name for name in record.favorites if name != manga_name]
        self.store.save(username, record)
        logger.info(f"{username}: removed favorite {manga_name!r}")
        return record.favorites

    def list_favorites(self, username: Optional[str]) -> list[str]:
        _require(username=username)
        validate_username(username)
        return self.store.load(username).favorites


class FinishedChaptersManager:
    def __init__(self, store: UserRecordStore) -> None:
        self.store = store

    def mark_finished(
        self,
        username: Optional[str],
        manga_name: Optional[str],
        chapter_number: Optional[ChapterNumber],
    ) -> list[str]:
        """Record a chapter of manga_name as read; returns that title's chapters."""
        _require(username=username, mangaName=manga_name, chapterNumber=chapter_number)
        validate_username(username)
        label = chapter_label(chapter_number)
        record = self.store.load(username)
        chapters = record.finished.setdefault(manga_name, [])
        if label not in chapters:
            chapters.append(label)
            self.store.save(username, record)
            logger.info(f"{username}: finished {manga_name!r} chapter {label}")
        return chapters

    def get_finished(self, username: Optional[str], manga_name: Optional[str]) -> list[str]:
        _require(username=username, mangaName=manga_name)
        validate_username(username)
        return self.store.load(username).finished.get(manga_name, [])
