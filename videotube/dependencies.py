from __future__ import annotations

from typing import Generator, Optional

from fastapi import Depends, Query, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from . import models
from .config import Settings
from .errors import Unauthenticated
from .media import LocalMediaStore
from .security import decode_token

ACCESS_TOKEN_COOKIE = "accessToken"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/users/login", auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Generator[Session, None, None]:
    yield from request.app.state.database.session()


def get_media_store(request: Request) -> LocalMediaStore:
    return request.app.state.media_store


def get_current_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> models.User:
    token = token or request.cookies.get(ACCESS_TOKEN_COOKIE)
    if not token:
        raise Unauthenticated()
    payload = decode_token(token, settings)
    user_id: Optional[str] = payload.get("sub")
    if user_id is None:
        raise Unauthenticated("Invalid access token")
    user = db.get(models.User, user_id)
    if user is None:
        raise Unauthenticated("Invalid access token")
    return user


class PageParams:
    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(10, ge=1, le=100),
    ) -> None:
        self.page = page
        self.limit = limit
