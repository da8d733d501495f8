"""Comment routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import models, schemas
from ..dependencies import PageParams, get_current_user, get_db
from ..services import cascade, readmodels
from ..services.guards import get_or_404, load_owned, parse_id

router = APIRouter(prefix="/comments", tags=["Comments"])


def _comment_out(comment: models.Comment) -> schemas.CommentOut:
    return schemas.CommentOut.model_validate(comment)


@router.get("/{video_id}", response_model=schemas.ApiResponse[schemas.Page[schemas.CommentView]])
def list_video_comments(
    video_id: str,
    paging: PageParams = Depends(),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    video_id = parse_id(video_id, "video")
    page = readmodels.video_comments(db, video_id, current_user.id, paging.page, paging.limit)
    return schemas.ApiResponse.ok(page, "Comments fetched successfully")


@router.post("/{video_id}", response_model=schemas.ApiResponse[schemas.CommentOut])
def add_comment(
    video_id: str,
    comment_in: schemas.ContentIn,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    video = get_or_404(db, models.Video, parse_id(video_id, "video"), "video")
    comment = models.Comment(content=comment_in.content, video_id=video.id, owner_id=current_user.id)
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return schemas.ApiResponse.ok(_comment_out(comment), "Comment added successfully")


@router.patch("/c/{comment_id}", response_model=schemas.ApiResponse[schemas.CommentOut])
def update_comment(
    comment_id: str,
    comment_in: schemas.ContentIn,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    comment = load_owned(db, models.Comment, comment_id, current_user.id, "comment")
    comment.content = comment_in.content
    db.commit()
    db.refresh(comment)
    return schemas.ApiResponse.ok(_comment_out(comment), "Comment updated successfully")


@router.delete("/c/{comment_id}", response_model=schemas.ApiResponse[dict])
def delete_comment(
    comment_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    comment = load_owned(db, models.Comment, comment_id, current_user.id, "comment")
    cascade.delete_comment(db, comment)
    return schemas.ApiResponse.ok({}, "Comment deleted successfully")
