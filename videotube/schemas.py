from __future__ import annotations

from datetime import datetime
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints
from pydantic.alias_generators import to_camel
from typing_extensions import Annotated

DataT = TypeVar("DataT")

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ── Envelope ─────────────────────────────────────────────────────────────


class ApiResponse(CamelModel, Generic[DataT]):
    status_code: int = 200
    data: Optional[DataT] = None
    message: str = "Success"
    success: bool = True

    @classmethod
    def ok(cls, data=None, message: str = "Success", status_code: int = 200):
        return cls(status_code=status_code, data=data, message=message, success=status_code < 400)


class Page(CamelModel, Generic[DataT]):
    docs: List[DataT]
    total_docs: int
    limit: int
    page: int
    total_pages: int
    has_prev_page: bool
    has_next_page: bool
    prev_page: Optional[int] = None
    next_page: Optional[int] = None


class ToggleState(CamelModel):
    active: bool


# ── Users ────────────────────────────────────────────────────────────────


class UserCreate(CamelModel):
    username: Annotated[str, StringConstraints(strip_whitespace=True, to_lower=True, min_length=3, max_length=50)]
    email: EmailStr
    full_name: NonEmptyStr
    password: str = Field(..., min_length=6)


class AccountUpdate(CamelModel):
    full_name: NonEmptyStr
    email: EmailStr


class UserOut(CamelModel):
    id: str
    username: str
    email: str
    full_name: str
    avatar: Optional[str] = Field(None, validation_alias="avatar_url")
    created_at: datetime


class LoginResult(CamelModel):
    user: UserOut
    access_token: str
    token_type: str = "bearer"


class OwnerView(CamelModel):
    id: str
    username: str
    full_name: Optional[str] = None
    avatar: Optional[str] = None


class ChannelOwnerView(OwnerView):
    subscribers_count: int
    is_subscribed: bool


class ChannelProfile(OwnerView):
    subscribers_count: int
    channels_subscribed_to_count: int
    is_subscribed: bool


# ── Videos ───────────────────────────────────────────────────────────────


class VideoFields(CamelModel):
    title: NonEmptyStr
    description: NonEmptyStr


class MediaRef(CamelModel):
    id: Optional[str] = None
    url: str


class VideoOut(CamelModel):
    id: str
    title: str
    description: str
    video_file: MediaRef
    thumbnail: MediaRef
    duration: float
    views: int
    is_published: bool
    owner_id: str
    created_at: datetime
    updated_at: datetime


class VideoCard(CamelModel):
    id: str
    title: str
    description: str
    video_file: MediaRef
    thumbnail: MediaRef
    duration: float
    views: int
    is_published: bool
    created_at: datetime
    owner: OwnerView


class VideoDetail(CamelModel):
    id: str
    title: str
    description: str
    video_file: MediaRef
    duration: float
    views: int
    created_at: datetime
    owner: ChannelOwnerView
    likes_count: int
    is_liked: bool


# ── Comments & tweets ────────────────────────────────────────────────────


class ContentIn(CamelModel):
    content: NonEmptyStr


class CommentOut(CamelModel):
    id: str
    content: str
    video_id: str
    owner_id: str
    created_at: datetime
    updated_at: datetime


class CommentView(CamelModel):
    id: str
    content: str
    created_at: datetime
    owner: OwnerView
    likes_count: int
    is_liked: bool


class TweetOut(CamelModel):
    id: str
    content: str
    owner_id: str
    created_at: datetime
    updated_at: datetime


class TweetView(CamelModel):
    id: str
    content: str
    created_at: datetime
    owner: OwnerView
    likes_count: int
    is_liked: bool


# ── Playlists ────────────────────────────────────────────────────────────


class PlaylistIn(CamelModel):
    name: NonEmptyStr
    description: NonEmptyStr


class PlaylistOut(CamelModel):
    id: str
    name: str
    description: str
    owner_id: str
    videos: List[str]
    created_at: datetime
    updated_at: datetime


class PlaylistSummary(CamelModel):
    id: str
    name: str
    description: str
    total_videos: int
    total_views: int
    updated_at: datetime


class PlaylistVideoView(CamelModel):
    id: str
    title: str
    description: str
    video_file: MediaRef
    thumbnail: MediaRef
    duration: float
    views: int
    created_at: datetime


class PlaylistDetail(CamelModel):
    id: str
    name: str
    description: str
    created_at: datetime
    updated_at: datetime
    total_videos: int
    total_views: int
    videos: List[PlaylistVideoView]
    owner: OwnerView


# ── Subscriptions ────────────────────────────────────────────────────────


class SubscriberView(OwnerView):
    subscribers_count: int
    subscribed_to_subscriber: bool
