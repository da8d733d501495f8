"""Video routes."""
from __future__ import annotations

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..config import Settings
from ..dependencies import PageParams, get_current_user, get_db, get_media_store, get_settings
from ..errors import UpstreamFailure, ValidationFailed
from ..media import LocalMediaStore, MediaAsset, MediaUploadError, stage_upload
from ..services import cascade, readmodels
from ..services.guards import load_owned, parse_id, validate_input

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/videos", tags=["Videos"])


def _upload(media: LocalMediaStore, upload: UploadFile, settings: Settings, kind: str) -> MediaAsset:
    with stage_upload(upload, settings.staging_dir) as staged:
        try:
            return media.upload(staged, kind)
        except MediaUploadError as exc:
            logger.error("Media upload failed", kind=kind, filename=upload.filename, error=str(exc))
            raise UpstreamFailure(
                f"Error while uploading {kind}", status_code=status.HTTP_502_BAD_GATEWAY
            ) from exc


@router.get("", response_model=schemas.ApiResponse[schemas.Page[schemas.VideoCard]])
def list_videos(
    paging: PageParams = Depends(),
    query: Optional[str] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_type: Optional[str] = Query(None, alias="sortType"),
    user_id: Optional[str] = Query(None, alias="userId"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    page = readmodels.list_videos(
        db,
        page=paging.page,
        limit=paging.limit,
        query=query,
        sort_by=sort_by,
        sort_type=sort_type,
        user_id=user_id,
    )
    return schemas.ApiResponse.ok(page, "Videos fetched successfully")


@router.post("", response_model=schemas.ApiResponse[schemas.VideoOut])
def publish_video(
    title: str = Form(""),
    description: str = Form(""),
    video_file: Optional[UploadFile] = File(None, alias="videoFile"),
    thumbnail: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    media: LocalMediaStore = Depends(get_media_store),
    settings: Settings = Depends(get_settings),
    current_user: models.User = Depends(get_current_user),
):
    fields = validate_input(schemas.VideoFields, title=title, description=description)
    if video_file is None:
        raise ValidationFailed("Video file is required")
    if thumbnail is None:
        raise ValidationFailed("Thumbnail file is required")

    thumb_asset = _upload(media, thumbnail, settings, "image")
    try:
        video_asset = _upload(media, video_file, settings, "video")
    except UpstreamFailure:
        media.delete(thumb_asset.id)
        raise

    video = models.Video(
        title=fields.title,
        description=fields.description,
        video_file_id=video_asset.id,
        video_file_url=video_asset.url,
        thumbnail_id=thumb_asset.id,
        thumbnail_url=thumb_asset.url,
        duration=video_asset.duration or 0.0,
        owner_id=current_user.id,
    )
    db.add(video)
    cascade.commit_or_discard(db, media, thumb_asset, video_asset)
    db.refresh(video)
    logger.info("Video published", video_id=video.id, owner_id=current_user.id)
    return schemas.ApiResponse.ok(readmodels.video_out(video), "Video published successfully")


@router.get("/{video_id}", response_model=schemas.ApiResponse[schemas.VideoDetail])
def get_video(
    video_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    video_id = parse_id(video_id, "video")
    detail = readmodels.video_detail(db, video_id, current_user.id)
    readmodels.record_view(db, video_id, current_user.id)
    return schemas.ApiResponse.ok(detail, "Video fetched successfully")


@router.patch("/{video_id}", response_model=schemas.ApiResponse[schemas.VideoOut])
def update_video(
    video_id: str,
    title: str = Form(""),
    description: str = Form(""),
    thumbnail: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    media: LocalMediaStore = Depends(get_media_store),
    settings: Settings = Depends(get_settings),
    current_user: models.User = Depends(get_current_user),
):
    video_id = parse_id(video_id, "video")
    fields = validate_input(schemas.VideoFields, title=title, description=description)
    video = load_owned(db, models.Video, video_id, current_user.id, "video")

    old_thumbnail = None
    new_assets = []
    if thumbnail is not None:
        asset = _upload(media, thumbnail, settings, "image")
        new_assets.append(asset)
        old_thumbnail = video.thumbnail_id
        video.thumbnail_id = asset.id
        video.thumbnail_url = asset.url

    video.title = fields.title
    video.description = fields.description
    cascade.commit_or_discard(db, media, *new_assets)
    db.refresh(video)

    if old_thumbnail:
        media.delete(old_thumbnail)
    return schemas.ApiResponse.ok(readmodels.video_out(video), "Video updated successfully")


@router.delete("/{video_id}", response_model=schemas.ApiResponse[dict])
def delete_video(
    video_id: str,
    db: Session = Depends(get_db),
    media: LocalMediaStore = Depends(get_media_store),
    current_user: models.User = Depends(get_current_user),
):
    video = load_owned(db, models.Video, video_id, current_user.id, "video")
    cascade.delete_video(db, video, media)
    return schemas.ApiResponse.ok({}, "Video deleted successfully")


@router.patch("/toggle/publish/{video_id}", response_model=schemas.ApiResponse[schemas.VideoOut])
def toggle_publish_status(
    video_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    video = load_owned(db, models.Video, video_id, current_user.id, "video")
    video.is_published = not video.is_published
    db.commit()
    db.refresh(video)
    logger.info("Publish status toggled", video_id=video.id, is_published=video.is_published)
    return schemas.ApiResponse.ok(readmodels.video_out(video), "Publish status toggled successfully")
