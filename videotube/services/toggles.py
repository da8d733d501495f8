"""Like/unlike and subscribe/unsubscribe as a single toggle call.

The link tables carry unique constraints, so two concurrent "create" halves
cannot both persist. The loser sees an IntegrityError, which means the link
already exists and is reported as active.
"""
from __future__ import annotations

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import ValidationFailed
from ..models import Comment, Like, Subscription, Tweet, User, Video
from .guards import get_or_404

logger = structlog.get_logger(__name__)

LIKE_TARGETS = {
    "video": (Video, "video_id"),
    "comment": (Comment, "comment_id"),
    "tweet": (Tweet, "tweet_id"),
}


def _toggle(db: Session, existing, create) -> bool:
    if existing is not None:
        db.delete(existing)
        db.commit()
        return False
    db.add(create())
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Concurrent toggle lost the insert race; link already exists")
    return True


def toggle_like(db: Session, principal_id: str, kind: str, target_id: str) -> bool:
    """Flip the like of ``principal_id`` on one target; returns the new state."""
    model, column = LIKE_TARGETS[kind]
    get_or_404(db, model, target_id, kind)

    existing = db.scalar(
        select(Like).where(Like.liked_by_id == principal_id, getattr(Like, column) == target_id)
    )
    active = _toggle(db, existing, lambda: Like(liked_by_id=principal_id, **{column: target_id}))
    logger.info("Like toggled", kind=kind, target_id=target_id, user_id=principal_id, active=active)
    return active


def toggle_subscription(db: Session, principal_id: str, channel_id: str) -> bool:
    if channel_id == principal_id:
        raise ValidationFailed("You cannot subscribe to your own channel")
    get_or_404(db, User, channel_id, "channel")

    existing = db.scalar(
        select(Subscription).where(
            Subscription.subscriber_id == principal_id,
            Subscription.channel_id == channel_id,
        )
    )
    active = _toggle(
        db, existing, lambda: Subscription(subscriber_id=principal_id, channel_id=channel_id)
    )
    logger.info("Subscription toggled", channel_id=channel_id, user_id=principal_id, active=active)
    return active
