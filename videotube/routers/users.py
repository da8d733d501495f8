"""Account, session and channel-profile routes."""
from __future__ import annotations

from typing import List

import structlog
from fastapi import APIRouter, Depends, File, Response, UploadFile, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from .. import models, schemas
from ..config import Settings
from ..dependencies import (
    ACCESS_TOKEN_COOKIE,
    get_current_user,
    get_db,
    get_media_store,
    get_settings,
)
from ..errors import Conflict, Unauthenticated, UpstreamFailure
from ..media import LocalMediaStore, MediaUploadError, stage_upload
from ..security import create_access_token, get_password_hash, verify_password
from ..services import cascade, readmodels

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _ensure_unique(db: Session, username: str, email: str, exclude_id: str = None) -> None:
    stmt = select(models.User).where(
        or_(models.User.username == username, models.User.email == email)
    )
    if exclude_id:
        stmt = stmt.where(models.User.id != exclude_id)
    if db.scalar(stmt) is not None:
        raise Conflict("User with this username or email already exists")


@router.post(
    "/register",
    response_model=schemas.ApiResponse[schemas.UserOut],
    status_code=status.HTTP_201_CREATED,
)
def register(user_in: schemas.UserCreate, db: Session = Depends(get_db)):
    email = user_in.email.lower()
    _ensure_unique(db, user_in.username, email)

    user = models.User(
        username=user_in.username,
        email=email,
        full_name=user_in.full_name,
        password_hash=get_password_hash(user_in.password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User registered", user_id=user.id, username=user.username)
    return schemas.ApiResponse.ok(
        schemas.UserOut.model_validate(user), "User registered successfully", status.HTTP_201_CREATED
    )


@router.post("/login", response_model=schemas.ApiResponse[schemas.LoginResult])
def login(
    response: Response,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    identifier = form_data.username.strip().lower()
    user = db.scalar(
        select(models.User).where(
            or_(models.User.username == identifier, models.User.email == identifier)
        )
    )
    if not user or not verify_password(form_data.password, user.password_hash):
        raise Unauthenticated("Incorrect username or password")

    access_token = create_access_token({"sub": user.id}, settings)
    response.set_cookie(ACCESS_TOKEN_COOKIE, access_token, httponly=True, samesite="lax")
    return schemas.ApiResponse.ok(
        schemas.LoginResult(user=schemas.UserOut.model_validate(user), access_token=access_token),
        "User logged in successfully",
    )


@router.post("/logout", response_model=schemas.ApiResponse[dict])
def logout(response: Response, current_user: models.User = Depends(get_current_user)):
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    return schemas.ApiResponse.ok({}, "User logged out")


@router.get("/me", response_model=schemas.ApiResponse[schemas.UserOut])
def read_users_me(current_user: models.User = Depends(get_current_user)):
    return schemas.ApiResponse.ok(
        schemas.UserOut.model_validate(current_user), "Current user fetched successfully"
    )


@router.patch("/me", response_model=schemas.ApiResponse[schemas.UserOut])
def update_account(
    account: schemas.AccountUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    email = account.email.lower()
    _ensure_unique(db, current_user.username, email, exclude_id=current_user.id)
    current_user.full_name = account.full_name
    current_user.email = email
    db.commit()
    return schemas.ApiResponse.ok(
        schemas.UserOut.model_validate(current_user), "Account details updated successfully"
    )


@router.patch("/avatar", response_model=schemas.ApiResponse[schemas.UserOut])
def update_avatar(
    avatar: UploadFile = File(...),
    db: Session = Depends(get_db),
    media: LocalMediaStore = Depends(get_media_store),
    settings: Settings = Depends(get_settings),
    current_user: models.User = Depends(get_current_user),
):
    with stage_upload(avatar, settings.staging_dir) as staged:
        try:
            asset = media.upload(staged, "image")
        except MediaUploadError as exc:
            logger.error("Avatar upload failed", user_id=current_user.id, error=str(exc))
            raise UpstreamFailure(
                "Error while uploading avatar", status_code=status.HTTP_502_BAD_GATEWAY
            ) from exc

    previous = current_user.avatar_id
    current_user.avatar_id = asset.id
    current_user.avatar_url = asset.url
    cascade.commit_or_discard(db, media, asset)
    media.delete(previous)
    return schemas.ApiResponse.ok(
        schemas.UserOut.model_validate(current_user), "Avatar updated successfully"
    )


@router.get("/c/{username}", response_model=schemas.ApiResponse[schemas.ChannelProfile])
def get_channel_profile(
    username: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    profile = readmodels.channel_profile(db, username, current_user.id)
    return schemas.ApiResponse.ok(profile, "User channel fetched successfully")


@router.get("/history", response_model=schemas.ApiResponse[List[schemas.VideoCard]])
def get_watch_history(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    history = readmodels.watch_history(db, current_user.id)
    return schemas.ApiResponse.ok(history, "Watch history fetched successfully")
