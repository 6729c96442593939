"""FastAPI router for the tracker: tokens, users, favorites, finished chapters, image proxy."""

from __future__ import annotations

from typing import Optional, Union

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field

from server.errors import MissingFieldError
from server.path_utils import validate_username

from . import proxy
from .auth import AuthorizedContext
from .gate import get_token_service, require_token
from .services import FavoritesManager, FinishedChaptersManager
from .store import UserRecordStore

router = APIRouter(tags=["tracker"])
gated = APIRouter(tags=["tracker"], dependencies=[Depends(require_token)])


def get_store(request: Request) -> UserRecordStore:
    return request.app.state.store


def get_favorites_manager(request: Request) -> FavoritesManager:
    return request.app.state.favorites


def get_finished_manager(request: Request) -> FinishedChaptersManager:
    return request.app.state.finished


# --- Request bodies ---


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: Optional[str] = None


class PasswordBody(BaseModel):
    password: Optional[str] = None


class UrlBody(_Body):
    url: Optional[str] = None


class UserBody(_Body):
    username: Optional[str] = None


class MangaBody(UserBody):
    manga_name: Optional[str] = Field(default=None, alias="mangaName")


class ChapterBody(MangaBody):
    chapter_number: Optional[Union[int, float, str]] = Field(default=None, alias="chapterNumber")


# --- Tokens ---


@router.post("/get_token")
def get_token(request: Request, body: PasswordBody):
    """Exchange the shared password for a 24h token."""
    token = get_token_service(request).issue(body.password)
    return {"token": token}


@router.post("/verify_token")
def verify_token(context: AuthorizedContext = Depends(require_token)):
    return {"valid": True, "expiresAt": context.expires_at}


# --- Image proxy ---


@gated.post("/proxy")
def proxy_image(request: Request, body: UrlBody):
    """Raw image bytes with the upstream content type."""
    timeout = request.app.state.config.proxy.timeout_seconds
    data, content_type = proxy.fetch_image(body.url, timeout=timeout)
    return Response(content=data, media_type=content_type)


# --- Users ---


@gated.post("/create_user")
def create_user(body: UserBody, store: UserRecordStore = Depends(get_store)):
    if not body.username or not body.username.strip():
        raise MissingFieldError("username")
    store.create(validate_username(body.username))
    return {"success": True}


@gated.post("/list_users")
def list_users(store: UserRecordStore = Depends(get_store)):
    return {"users": store.list_usernames()}


# --- Favorites ---


@gated.post("/add_fav")
def add_favorite(body: MangaBody, favorites: FavoritesManager = Depends(get_favorites_manager)):
    result = favorites.add_favorite(body.username, body.manga_name)
    return {"success": True, "favorites": result}


@gated.post("/remove_fav")
def remove_favorite(body: MangaBody, favorites: FavoritesManager = Depends(get_favorites_manager)):
    result = favorites.remove_favorite(body.username, body.manga_name)
    return {"success": True, "favorites": result}


@gated.post("/get_favorites")
def get_favorites(body: UserBody, favorites: FavoritesManager = Depends(get_favorites_manager)):
    return {"success": True, "favorites": favorites.list_favorites(body.username)}


# --- Finished chapters ---


@gated.post("/add_finished")
def add_finished(
    body: ChapterBody,
    finished: FinishedChaptersManager = Depends(get_finished_manager),
):
    chapters = finished.mark_finished(body.username, body.manga_name, body.chapter_number)
    return {"success": True, "finishedChapters": chapters}


@gated.post("/get_finished")
def get_finished(
    body: MangaBody,
    finished: FinishedChaptersManager = Depends(get_finished_manager),
):
    chapters = finished.get_finished(body.username, body.manga_name)
    return {"success": True, "mangaName": body.manga_name, "finishedChapters": chapters}


router.include_router(gated)
