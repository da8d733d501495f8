"""Playlist routes."""
from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .. import models, schemas
from ..dependencies import PageParams, get_current_user, get_db
from ..errors import NotFound
from ..services import cascade, readmodels
from ..services.guards import get_or_404, load_owned, parse_id

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/playlist", tags=["Playlists"])


@router.post("", response_model=schemas.ApiResponse[schemas.PlaylistOut])
def create_playlist(
    playlist_in: schemas.PlaylistIn,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    playlist = models.Playlist(
        name=playlist_in.name,
        description=playlist_in.description,
        owner_id=current_user.id,
    )
    db.add(playlist)
    db.commit()
    db.refresh(playlist)
    return schemas.ApiResponse.ok(readmodels.playlist_out(playlist), "Playlist created successfully")


@router.get("/user/{user_id}", response_model=schemas.ApiResponse[schemas.Page[schemas.PlaylistSummary]])
def list_user_playlists(
    user_id: str,
    paging: PageParams = Depends(),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    page = readmodels.user_playlists(db, parse_id(user_id, "user"), paging.page, paging.limit)
    return schemas.ApiResponse.ok(page, "User playlists fetched successfully")


@router.get("/{playlist_id}", response_model=schemas.ApiResponse[schemas.PlaylistDetail])
def get_playlist(
    playlist_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    detail = readmodels.playlist_detail(db, parse_id(playlist_id, "playlist"))
    return schemas.ApiResponse.ok(detail, "Playlist fetched successfully")


@router.patch("/{playlist_id}", response_model=schemas.ApiResponse[schemas.PlaylistOut])
def update_playlist(
    playlist_id: str,
    playlist_in: schemas.PlaylistIn,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    playlist = load_owned(db, models.Playlist, playlist_id, current_user.id, "playlist")
    playlist.name = playlist_in.name
    playlist.description = playlist_in.description
    db.commit()
    db.refresh(playlist)
    return schemas.ApiResponse.ok(readmodels.playlist_out(playlist), "Playlist updated successfully")


@router.delete("/{playlist_id}", response_model=schemas.ApiResponse[dict])
def delete_playlist(
    playlist_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    playlist = load_owned(db, models.Playlist, playlist_id, current_user.id, "playlist")
    cascade.delete_playlist(db, playlist)
    return schemas.ApiResponse.ok({}, "Playlist deleted successfully")


@router.patch("/add/{video_id}/{playlist_id}", response_model=schemas.ApiResponse[schemas.PlaylistOut])
def add_video_to_playlist(
    video_id: str,
    playlist_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    playlist = load_owned(db, models.Playlist, playlist_id, current_user.id, "playlist")
    video = get_or_404(db, models.Video, parse_id(video_id, "video"), "video")

    already_added = db.get(models.PlaylistVideo, (playlist.id, video.id))
    if already_added is None:
        last = db.scalar(
            select(func.max(models.PlaylistVideo.position)).where(
                models.PlaylistVideo.playlist_id == playlist.id
            )
        )
        playlist.entries.append(
            models.PlaylistVideo(playlist_id=playlist.id, video_id=video.id, position=(last or 0) + 1)
        )
        db.commit()
        db.refresh(playlist)
        logger.info("Video added to playlist", playlist_id=playlist.id, video_id=video.id)

    return schemas.ApiResponse.ok(readmodels.playlist_out(playlist), "Added video to playlist successfully")


@router.patch("/remove/{video_id}/{playlist_id}", response_model=schemas.ApiResponse[schemas.PlaylistOut])
def remove_video_from_playlist(
    video_id: str,
    playlist_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    playlist = load_owned(db, models.Playlist, playlist_id, current_user.id, "playlist")
    video_id = parse_id(video_id, "video")

    entry = db.get(models.PlaylistVideo, (playlist.id, video_id))
    if entry is None:
        raise NotFound("Video not found in playlist")

    playlist.entries.remove(entry)
    db.commit()
    db.refresh(playlist)
    logger.info("Video removed from playlist", playlist_id=playlist.id, video_id=video_id)
    return schemas.ApiResponse.ok(
        readmodels.playlist_out(playlist), "Removed video from playlist successfully"
    )
