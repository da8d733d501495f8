"""Deletes that take their dependent rows with them."""
from __future__ import annotations

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..media import LocalMediaStore, MediaAsset
from ..models import Comment, Like, Playlist, PlaylistVideo, Tweet, Video, WatchHistoryEntry

logger = structlog.get_logger(__name__)


def delete_video(db: Session, video: Video, media: LocalMediaStore) -> None:
    """Remove a video, its comments, every like on either, and its relation rows.

    Stored media is removed after the rows are gone; a failed media delete
    only leaves an unreferenced file behind.
    """
    comment_ids = select(Comment.id).where(Comment.video_id == video.id)

    comment_likes = db.execute(delete(Like).where(Like.comment_id.in_(comment_ids)))
    comments = db.execute(delete(Comment).where(Comment.video_id == video.id))
    video_likes = db.execute(delete(Like).where(Like.video_id == video.id))
    db.execute(delete(PlaylistVideo).where(PlaylistVideo.video_id == video.id))
    db.execute(delete(WatchHistoryEntry).where(WatchHistoryEntry.video_id == video.id))
    db.delete(video)
    db.commit()

    logger.info(
        "Video deleted",
        video_id=video.id,
        comments=comments.rowcount,
        comment_likes=comment_likes.rowcount,
        video_likes=video_likes.rowcount,
    )

    media.delete(video.thumbnail_id)
    media.delete(video.video_file_id, "video")


def delete_comment(db: Session, comment: Comment) -> None:
    likes = db.execute(delete(Like).where(Like.comment_id == comment.id))
    db.delete(comment)
    db.commit()
    logger.info("Comment deleted", comment_id=comment.id, likes=likes.rowcount)


def delete_tweet(db: Session, tweet: Tweet) -> None:
    likes = db.execute(delete(Like).where(Like.tweet_id == tweet.id))
    db.delete(tweet)
    db.commit()
    logger.info("Tweet deleted", tweet_id=tweet.id, likes=likes.rowcount)


def delete_playlist(db: Session, playlist: Playlist) -> None:
    """Drop the playlist and its membership rows; the videos stay."""
    db.delete(playlist)
    db.commit()
    logger.info("Playlist deleted", playlist_id=playlist.id)


def commit_or_discard(db: Session, media: LocalMediaStore, *assets: MediaAsset) -> None:
    """Commit, removing the freshly stored ``assets`` if the rows do not persist."""
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        for asset in assets:
            media.delete(asset.id, asset.kind)
        logger.warning("Commit failed; discarded new media", assets=[asset.id for asset in assets])
        raise
