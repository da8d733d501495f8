"""Denormalized read models.

Every listing is composed in the same order: filter, join the owner, attach
computed columns (counts and membership flags), sort, project into a view
schema, then cut one page out of the result. Nothing here writes to the
database except :func:`record_view`.
"""
from __future__ import annotations

import math
from typing import Callable, List, Optional, Sequence

import structlog
from sqlalchemy import Select, exists, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, aliased

from .. import schemas
from ..errors import NotFound, ValidationFailed
from ..models import (
    Comment,
    Like,
    Playlist,
    PlaylistVideo,
    Subscription,
    Tweet,
    User,
    Video,
    WatchHistoryEntry,
)
from .guards import get_or_404, parse_id

logger = structlog.get_logger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10

VIDEO_SORT_FIELDS = {
    "views": Video.views,
    "createdAt": Video.created_at,
    "duration": Video.duration,
}


# ── Building blocks ──────────────────────────────────────────────────────


def paginate(
    db: Session,
    stmt: Select,
    page: int,
    limit: int,
    to_view: Callable,
) -> schemas.Page:
    """Window ``stmt`` to ``[(page-1)*limit, page*limit)`` and describe the page."""
    total = db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery())) or 0
    rows = db.execute(stmt.offset((page - 1) * limit).limit(limit)).all()
    total_pages = max(math.ceil(total / limit), 1)
    return schemas.Page(
        docs=[to_view(row) for row in rows],
        total_docs=total,
        limit=limit,
        page=page,
        total_pages=total_pages,
        has_prev_page=page > 1,
        has_next_page=page < total_pages,
        prev_page=page - 1 if page > 1 else None,
        next_page=page + 1 if page < total_pages else None,
    )


def _likes_count(target_column, like_column):
    return (
        select(func.count(Like.id))
        .where(like_column == target_column)
        .scalar_subquery()
    )


def _is_liked(target_column, like_column, principal_id: Optional[str]):
    return exists().where(like_column == target_column, Like.liked_by_id == principal_id)


def _owner_view(user: User) -> schemas.OwnerView:
    return schemas.OwnerView(
        id=user.id,
        username=user.username,
        full_name=user.full_name,
        avatar=user.avatar_url,
    )


def _media(asset_id: Optional[str], url: str) -> schemas.MediaRef:
    return schemas.MediaRef(id=asset_id, url=url)


def video_out(video: Video) -> schemas.VideoOut:
    return schemas.VideoOut(
        id=video.id,
        title=video.title,
        description=video.description,
        video_file=_media(video.video_file_id, video.video_file_url),
        thumbnail=_media(video.thumbnail_id, video.thumbnail_url),
        duration=video.duration,
        views=video.views,
        is_published=video.is_published,
        owner_id=video.owner_id,
        created_at=video.created_at,
        updated_at=video.updated_at,
    )


def _video_card(row) -> schemas.VideoCard:
    video, owner = row.Video, row.User
    return schemas.VideoCard(
        id=video.id,
        title=video.title,
        description=video.description,
        video_file=_media(video.video_file_id, video.video_file_url),
        thumbnail=_media(video.thumbnail_id, video.thumbnail_url),
        duration=video.duration,
        views=video.views,
        is_published=video.is_published,
        created_at=video.created_at,
        owner=_owner_view(owner),
    )


def _require_docs(page: schemas.Page, message: str) -> schemas.Page:
    if not page.docs:
        raise NotFound(message)
    return page


# ── Videos ───────────────────────────────────────────────────────────────


def video_sort_clause(sort_by: Optional[str], sort_type: Optional[str]) -> list:
    if sort_by and sort_by.strip():
        column = VIDEO_SORT_FIELDS.get(sort_by.strip())
        if column is None:
            raise ValidationFailed(
                f"sortBy must be one of: {', '.join(sorted(VIDEO_SORT_FIELDS))}"
            )
        direction = (sort_type or "desc").strip().lower()
        if direction not in ("asc", "desc"):
            raise ValidationFailed("sortType must be 'asc' or 'desc'")
        primary = column.asc() if direction == "asc" else column.desc()
        return [primary, Video.created_at.desc(), Video.id]
    return [Video.created_at.desc(), Video.id]


def list_videos(
    db: Session,
    *,
    page: int = DEFAULT_PAGE,
    limit: int = DEFAULT_LIMIT,
    query: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_type: Optional[str] = None,
    user_id: Optional[str] = None,
) -> schemas.Page:
    """Published videos. An empty page is a valid answer here."""
    stmt = select(Video, User).join(User, User.id == Video.owner_id)

    if query and query.strip():
        text = query.strip()
        stmt = stmt.where(
            or_(
                Video.title.icontains(text, autoescape=True),
                Video.description.icontains(text, autoescape=True),
            )
        )

    if user_id and user_id.strip():
        stmt = stmt.where(Video.owner_id == parse_id(user_id, "user"))

    stmt = stmt.where(Video.is_published.is_(True))
    stmt = stmt.order_by(*video_sort_clause(sort_by, sort_type))

    return paginate(db, stmt, page, limit, _video_card)


def video_detail(db: Session, video_id: str, principal_id: Optional[str]) -> schemas.VideoDetail:
    likes_count = _likes_count(Video.id, Like.video_id).label("likes_count")
    is_liked = _is_liked(Video.id, Like.video_id, principal_id).label("is_liked")
    subscribers_count = (
        select(func.count(Subscription.id))
        .where(Subscription.channel_id == User.id)
        .scalar_subquery()
        .label("subscribers_count")
    )
    is_subscribed = (
        exists()
        .where(Subscription.channel_id == User.id, Subscription.subscriber_id == principal_id)
        .label("is_subscribed")
    )

    stmt = (
        select(Video, User, likes_count, is_liked, subscribers_count, is_subscribed)
        .join(User, User.id == Video.owner_id)
        .where(Video.id == video_id)
    )
    row = db.execute(stmt).first()
    if row is None:
        raise NotFound("Video not found")

    video, owner = row.Video, row.User
    return schemas.VideoDetail(
        id=video.id,
        title=video.title,
        description=video.description,
        video_file=_media(video.video_file_id, video.video_file_url),
        duration=video.duration,
        views=video.views,
        created_at=video.created_at,
        owner=schemas.ChannelOwnerView(
            id=owner.id,
            username=owner.username,
            full_name=owner.full_name,
            avatar=owner.avatar_url,
            subscribers_count=row.subscribers_count or 0,
            is_subscribed=bool(row.is_subscribed),
        ),
        likes_count=row.likes_count or 0,
        is_liked=bool(row.is_liked),
    )


def record_view(db: Session, video_id: str, principal_id: Optional[str]) -> None:
    """Count one view and remember the video in the viewer's history.

    Failures are logged and swallowed so the read that triggered them still
    succeeds.
    """
    try:
        db.execute(
            update(Video)
            .where(Video.id == video_id)
            .values(views=Video.views + 1)
            .execution_options(synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("View increment failed", video_id=video_id, exc_info=True)

    if principal_id is None:
        return
    try:
        seen = db.scalar(
            select(WatchHistoryEntry.id).where(
                WatchHistoryEntry.user_id == principal_id,
                WatchHistoryEntry.video_id == video_id,
            )
        )
        if seen is None:
            db.add(WatchHistoryEntry(user_id=principal_id, video_id=video_id))
            db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Watch history update failed", video_id=video_id, user_id=principal_id, exc_info=True)


def liked_videos(db: Session, principal_id: str, page: int, limit: int) -> schemas.Page:
    stmt = (
        select(Video, User)
        .join(Like, Like.video_id == Video.id)
        .join(User, User.id == Video.owner_id)
        .where(Like.liked_by_id == principal_id, Video.is_published.is_(True))
        .order_by(Video.created_at.desc(), Video.id)
    )
    return _require_docs(paginate(db, stmt, page, limit, _video_card), "No liked videos found")


def watch_history(db: Session, principal_id: str) -> List[schemas.VideoCard]:
    stmt = (
        select(Video, User)
        .join(WatchHistoryEntry, WatchHistoryEntry.video_id == Video.id)
        .join(User, User.id == Video.owner_id)
        .where(WatchHistoryEntry.user_id == principal_id)
        .order_by(WatchHistoryEntry.id)
    )
    return [_video_card(row) for row in db.execute(stmt).all()]


# ── Comments & tweets ────────────────────────────────────────────────────


def _comment_view(row) -> schemas.CommentView:
    return schemas.CommentView(
        id=row.Comment.id,
        content=row.Comment.content,
        created_at=row.Comment.created_at,
        owner=_owner_view(row.User),
        likes_count=row.likes_count or 0,
        is_liked=bool(row.is_liked),
    )


def video_comments(
    db: Session, video_id: str, principal_id: Optional[str], page: int, limit: int
) -> schemas.Page:
    stmt = (
        select(
            Comment,
            User,
            _likes_count(Comment.id, Like.comment_id).label("likes_count"),
            _is_liked(Comment.id, Like.comment_id, principal_id).label("is_liked"),
        )
        .join(User, User.id == Comment.owner_id)
        .where(Comment.video_id == video_id)
        .order_by(Comment.created_at.desc(), Comment.id)
    )
    return _require_docs(paginate(db, stmt, page, limit, _comment_view), "No comments found")


def _tweet_view(row) -> schemas.TweetView:
    return schemas.TweetView(
        id=row.Tweet.id,
        content=row.Tweet.content,
        created_at=row.Tweet.created_at,
        owner=_owner_view(row.User),
        likes_count=row.likes_count or 0,
        is_liked=bool(row.is_liked),
    )


def user_tweets(
    db: Session, user_id: str, principal_id: Optional[str], page: int, limit: int
) -> schemas.Page:
    stmt = (
        select(
            Tweet,
            User,
            _likes_count(Tweet.id, Like.tweet_id).label("likes_count"),
            _is_liked(Tweet.id, Like.tweet_id, principal_id).label("is_liked"),
        )
        .join(User, User.id == Tweet.owner_id)
        .where(Tweet.owner_id == user_id)
        .order_by(Tweet.created_at.desc(), Tweet.id)
    )
    return _require_docs(paginate(db, stmt, page, limit, _tweet_view), "No tweets found")


# ── Playlists ────────────────────────────────────────────────────────────


def playlist_out(playlist: Playlist) -> schemas.PlaylistOut:
    return schemas.PlaylistOut(
        id=playlist.id,
        name=playlist.name,
        description=playlist.description,
        owner_id=playlist.owner_id,
        videos=[entry.video_id for entry in playlist.entries],
        created_at=playlist.created_at,
        updated_at=playlist.updated_at,
    )


def user_playlists(db: Session, user_id: str, page: int, limit: int) -> schemas.Page:
    total_videos = (
        select(func.count(PlaylistVideo.video_id))
        .where(PlaylistVideo.playlist_id == Playlist.id)
        .scalar_subquery()
        .label("total_videos")
    )
    total_views = (
        select(func.coalesce(func.sum(Video.views), 0))
        .select_from(PlaylistVideo)
        .join(Video, Video.id == PlaylistVideo.video_id)
        .where(PlaylistVideo.playlist_id == Playlist.id)
        .scalar_subquery()
        .label("total_views")
    )
    stmt = (
        select(Playlist, total_videos, total_views)
        .where(Playlist.owner_id == user_id)
        .order_by(Playlist.created_at.desc(), Playlist.id)
    )

    def to_view(row) -> schemas.PlaylistSummary:
        return schemas.PlaylistSummary(
            id=row.Playlist.id,
            name=row.Playlist.name,
            description=row.Playlist.description,
            total_videos=row.total_videos or 0,
            total_views=row.total_views or 0,
            updated_at=row.Playlist.updated_at,
        )

    return _require_docs(paginate(db, stmt, page, limit, to_view), "No playlists found")


def playlist_detail(db: Session, playlist_id: str) -> schemas.PlaylistDetail:
    playlist = get_or_404(db, Playlist, playlist_id, "playlist")
    owner = db.get(User, playlist.owner_id)

    videos: Sequence[Video] = db.scalars(
        select(Video)
        .join(PlaylistVideo, PlaylistVideo.video_id == Video.id)
        .where(PlaylistVideo.playlist_id == playlist.id, Video.is_published.is_(True))
        .order_by(PlaylistVideo.position)
    ).all()

    return schemas.PlaylistDetail(
        id=playlist.id,
        name=playlist.name,
        description=playlist.description,
        created_at=playlist.created_at,
        updated_at=playlist.updated_at,
        total_videos=len(videos),
        total_views=sum(video.views for video in videos),
        videos=[
            schemas.PlaylistVideoView(
                id=video.id,
                title=video.title,
                description=video.description,
                video_file=_media(None, video.video_file_url),
                thumbnail=_media(None, video.thumbnail_url),
                duration=video.duration,
                views=video.views,
                created_at=video.created_at,
            )
            for video in videos
        ],
        owner=_owner_view(owner),
    )


# ── Subscriptions & channels ─────────────────────────────────────────────


def channel_subscribers(
    db: Session, channel_id: str, principal_id: Optional[str], page: int, limit: int
) -> schemas.Page:
    inner = aliased(Subscription)
    subscribers_count = (
        select(func.count(inner.id))
        .where(inner.channel_id == User.id)
        .scalar_subquery()
        .label("subscribers_count")
    )
    # the acting principal follows this subscriber back
    subscribed_back = (
        exists()
        .where(inner.channel_id == User.id, inner.subscriber_id == principal_id)
        .label("subscribed_to_subscriber")
    )
    stmt = (
        select(User, subscribers_count, subscribed_back)
        .join(Subscription, Subscription.subscriber_id == User.id)
        .where(Subscription.channel_id == channel_id)
        .order_by(Subscription.created_at.desc(), Subscription.id)
    )

    def to_view(row) -> schemas.SubscriberView:
        return schemas.SubscriberView(
            id=row.User.id,
            username=row.User.username,
            full_name=row.User.full_name,
            avatar=row.User.avatar_url,
            subscribers_count=row.subscribers_count or 0,
            subscribed_to_subscriber=bool(row.subscribed_to_subscriber),
        )

    return _require_docs(paginate(db, stmt, page, limit, to_view), "No subscribers found")


def subscribed_channels(db: Session, subscriber_id: str, page: int, limit: int) -> schemas.Page:
    stmt = (
        select(User)
        .join(Subscription, Subscription.channel_id == User.id)
        .where(Subscription.subscriber_id == subscriber_id)
        .order_by(Subscription.created_at.desc(), Subscription.id)
    )
    return _require_docs(
        paginate(db, stmt, page, limit, lambda row: _owner_view(row.User)),
        "No channels found",
    )


def channel_profile(db: Session, username: str, principal_id: Optional[str]) -> schemas.ChannelProfile:
    username = (username or "").strip().lower()
    if not username:
        raise ValidationFailed("Username is missing")

    subscribers_count = (
        select(func.count(Subscription.id))
        .where(Subscription.channel_id == User.id)
        .scalar_subquery()
        .label("subscribers_count")
    )
    subscribed_to_count = (
        select(func.count(Subscription.id))
        .where(Subscription.subscriber_id == User.id)
        .scalar_subquery()
        .label("channels_subscribed_to_count")
    )
    is_subscribed = (
        exists()
        .where(Subscription.channel_id == User.id, Subscription.subscriber_id == principal_id)
        .label("is_subscribed")
    )
    row = db.execute(
        select(User, subscribers_count, subscribed_to_count, is_subscribed).where(
            User.username == username
        )
    ).first()
    if row is None:
        raise NotFound("Channel does not exist")

    return schemas.ChannelProfile(
        id=row.User.id,
        username=row.User.username,
        full_name=row.User.full_name,
        avatar=row.User.avatar_url,
        subscribers_count=row.subscribers_count or 0,
        channels_subscribed_to_count=row.channels_subscribed_to_count or 0,
        is_subscribed=bool(row.is_subscribed),
    )
