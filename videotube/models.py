from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base


def new_id() -> str:
    return str(uuid.uuid4())


class TimestampMixin:
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(100), nullable=False)
    avatar_id = Column(String(255), nullable=True)
    avatar_url = Column(String(512), nullable=True)
    password_hash = Column(String(255), nullable=False)


class Video(TimestampMixin, Base):
    __tablename__ = "videos"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    video_file_id = Column(String(255), nullable=False)
    video_file_url = Column(String(512), nullable=False)
    thumbnail_id = Column(String(255), nullable=False)
    thumbnail_url = Column(String(512), nullable=False)
    duration = Column(Float, nullable=False, default=0.0)
    views = Column(Integer, nullable=False, default=0)
    is_published = Column(Boolean, nullable=False, default=True)
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)


class Comment(TimestampMixin, Base):
    __tablename__ = "comments"

    id = Column(String(36), primary_key=True, default=new_id)
    content = Column(Text, nullable=False)
    video_id = Column(String(36), ForeignKey("videos.id"), nullable=False, index=True)
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)


class Tweet(TimestampMixin, Base):
    __tablename__ = "tweets"

    id = Column(String(36), primary_key=True, default=new_id)
    content = Column(Text, nullable=False)
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)


class Like(TimestampMixin, Base):
    __tablename__ = "likes"
    __table_args__ = (
        UniqueConstraint("liked_by_id", "video_id", name="uq_like_video"),
        UniqueConstraint("liked_by_id", "comment_id", name="uq_like_comment"),
        UniqueConstraint("liked_by_id", "tweet_id", name="uq_like_tweet"),
        CheckConstraint(
            "(CASE WHEN video_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN comment_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN tweet_id IS NULL THEN 0 ELSE 1 END) = 1",
            name="ck_like_single_target",
        ),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    liked_by_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    video_id = Column(String(36), ForeignKey("videos.id"), nullable=True, index=True)
    comment_id = Column(String(36), ForeignKey("comments.id"), nullable=True, index=True)
    tweet_id = Column(String(36), ForeignKey("tweets.id"), nullable=True, index=True)


class Playlist(TimestampMixin, Base):
    __tablename__ = "playlists"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    entries = relationship(
        "PlaylistVideo",
        order_by="PlaylistVideo.position",
        cascade="all, delete-orphan",
    )


class PlaylistVideo(Base):
    __tablename__ = "playlist_videos"

    playlist_id = Column(String(36), ForeignKey("playlists.id"), primary_key=True)
    video_id = Column(String(36), ForeignKey("videos.id"), primary_key=True)
    position = Column(Integer, nullable=False)
    added_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Subscription(TimestampMixin, Base):
    __tablename__ = "subscriptions"
    __table_args__ = (UniqueConstraint("subscriber_id", "channel_id", name="uq_subscription"),)

    id = Column(String(36), primary_key=True, default=new_id)
    subscriber_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    channel_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)


class WatchHistoryEntry(Base):
    __tablename__ = "watch_history"
    __table_args__ = (UniqueConstraint("user_id", "video_id", name="uq_watch_history"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    video_id = Column(String(36), ForeignKey("videos.id"), nullable=False)
    watched_at = Column(DateTime, default=datetime.utcnow, nullable=False)
