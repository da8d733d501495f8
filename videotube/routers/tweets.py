from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import models, schemas
from ..dependencies import PageParams, get_current_user, get_db
from ..services import cascade, readmodels
from ..services.guards import load_owned, parse_id

router = APIRouter(prefix="/tweets", tags=["Tweets"])


@router.post("", response_model=schemas.ApiResponse[schemas.TweetOut])
def create_tweet(
    tweet_in: schemas.ContentIn,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    tweet = models.Tweet(content=tweet_in.content, owner_id=current_user.id)
    db.add(tweet)
    db.commit()
    db.refresh(tweet)
    return schemas.ApiResponse.ok(schemas.TweetOut.model_validate(tweet), "Tweet created successfully")


@router.get("/user/{user_id}", response_model=schemas.ApiResponse[schemas.Page[schemas.TweetView]])
def list_user_tweets(
    user_id: str,
    paging: PageParams = Depends(),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    user_id = parse_id(user_id, "user")
    page = readmodels.user_tweets(db, user_id, current_user.id, paging.page, paging.limit)
    return schemas.ApiResponse.ok(page, "Tweets fetched successfully")


@router.patch("/{tweet_id}", response_model=schemas.ApiResponse[schemas.TweetOut])
def update_tweet(
    tweet_id: str,
    tweet_in: schemas.ContentIn,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    tweet = load_owned(db, models.Tweet, tweet_id, current_user.id, "tweet")
    tweet.content = tweet_in.content
    db.commit()
    db.refresh(tweet)
    return schemas.ApiResponse.ok(schemas.TweetOut.model_validate(tweet), "Tweet updated successfully")


@router.delete("/{tweet_id}", response_model=schemas.ApiResponse[dict])
def delete_tweet(
    tweet_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    tweet = load_owned(db, models.Tweet, tweet_id, current_user.id, "tweet")
    cascade.delete_tweet(db, tweet)
    return schemas.ApiResponse.ok({}, "Tweet deleted successfully")
