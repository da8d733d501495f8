from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import models, schemas
from ..dependencies import PageParams, get_current_user, get_db
from ..services import readmodels, toggles
from ..services.guards import parse_id

router = APIRouter(prefix="/likes", tags=["Likes"])


def _toggle(db: Session, user: models.User, kind: str, raw_id: str) -> schemas.ApiResponse:
    active = toggles.toggle_like(db, user.id, kind, parse_id(raw_id, kind))
    message = f"{kind.capitalize()} liked" if active else f"{kind.capitalize()} unliked"
    return schemas.ApiResponse.ok(schemas.ToggleState(active=active), message)


@router.post("/toggle/v/{video_id}", response_model=schemas.ApiResponse[schemas.ToggleState])
def toggle_video_like(
    video_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return _toggle(db, current_user, "video", video_id)


@router.post("/toggle/c/{comment_id}", response_model=schemas.ApiResponse[schemas.ToggleState])
def toggle_comment_like(
    comment_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return _toggle(db, current_user, "comment", comment_id)


@router.post("/toggle/t/{tweet_id}", response_model=schemas.ApiResponse[schemas.ToggleState])
def toggle_tweet_like(
    tweet_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return _toggle(db, current_user, "tweet", tweet_id)


@router.get("/videos", response_model=schemas.ApiResponse[schemas.Page[schemas.VideoCard]])
def get_liked_videos(
    paging: PageParams = Depends(),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    page = readmodels.liked_videos(db, current_user.id, paging.page, paging.limit)
    return schemas.ApiResponse.ok(page, "Liked videos fetched successfully")
