from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import models, schemas
from ..dependencies import PageParams, get_current_user, get_db
from ..services import readmodels, toggles
from ..services.guards import parse_id

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])


@router.post("/c/{channel_id}", response_model=schemas.ApiResponse[schemas.ToggleState])
def toggle_subscription(
    channel_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    active = toggles.toggle_subscription(db, current_user.id, parse_id(channel_id, "channel"))
    message = "Channel subscribed successfully" if active else "Channel unsubscribed successfully"
    return schemas.ApiResponse.ok(schemas.ToggleState(active=active), message)


@router.get("/c/{channel_id}", response_model=schemas.ApiResponse[schemas.Page[schemas.SubscriberView]])
def get_channel_subscribers(
    channel_id: str,
    paging: PageParams = Depends(),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    page = readmodels.channel_subscribers(
        db, parse_id(channel_id, "channel"), current_user.id, paging.page, paging.limit
    )
    return schemas.ApiResponse.ok(page, "Subscribers fetched successfully")


@router.get("/u/{subscriber_id}", response_model=schemas.ApiResponse[schemas.Page[schemas.OwnerView]])
def get_subscribed_channels(
    subscriber_id: str,
    paging: PageParams = Depends(),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    page = readmodels.subscribed_channels(
        db, parse_id(subscriber_id, "subscriber"), paging.page, paging.limit
    )
    return schemas.ApiResponse.ok(page, "Subscribed channels fetched successfully")
