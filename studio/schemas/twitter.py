from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from studio.services.media_gate import MediaKind


class AccountResponse(BaseModel):
    id: str
    accountId: str = Field(alias="account_id", serialization_alias="accountId")
    username: str
    displayName: str = Field(alias="display_name", serialization_alias="displayName")
    profileImage: str = Field("", alias="profile_image", serialization_alias="profileImage")
    verified: bool = False
    isActive: bool = Field(False, alias="is_active", serialization_alias="isActive")
    createdAt: datetime = Field(alias="created_at", serialization_alias="createdAt")
    updatedAt: datetime = Field(alias="updated_at", serialization_alias="updatedAt")

    model_config = {"from_attributes": True, "populate_by_name": True}


class AccountListResponse(BaseModel):
    accounts: List[AccountResponse]


class ActiveAccountResponse(BaseModel):
    account: Optional[AccountResponse] = None


class SetActiveAccountRequest(BaseModel):
    accountId: str = Field(min_length=1, pattern=r"^\d+$")


class SetActiveAccountResponse(BaseModel):
    success: bool = True
    accountId: str


class PostTweetRequest(BaseModel):
    text: str
    accountId: Optional[str] = None
    mediaIds: List[str] = Field(default_factory=list)


class PostTweetResponse(BaseModel):
    tweetId: str
    twitterId: str
    accountId: str


class ScheduleTweetRequest(BaseModel):
    text: str
    scheduledUnix: float = Field(description="Unix seconds")
    accountId: Optional[str] = None
    mediaIds: List[str] = Field(default_factory=list)


class UpdateScheduledRequest(BaseModel):
    text: str
    scheduledUnix: float = Field(description="Unix seconds")
    mediaIds: List[str] = Field(default_factory=list)


class ScheduleTweetResponse(BaseModel):
    tweetId: str
    scheduledFor: datetime
    accountId: str
    jobMessageId: str


class TweetResponse(BaseModel):
    id: str
    accountId: str = Field(alias="account_id", serialization_alias="accountId")
    content: str
    mediaIds: List[str] = Field(default_factory=list, alias="media_ids", serialization_alias="mediaIds")
    isScheduled: bool = Field(alias="is_scheduled", serialization_alias="isScheduled")
    scheduledFor: Optional[datetime] = Field(None, alias="scheduled_for", serialization_alias="scheduledFor")
    isPublished: bool = Field(alias="is_published", serialization_alias="isPublished")
    twitterId: Optional[str] = Field(None, alias="twitter_id", serialization_alias="twitterId")
    error: Optional[dict[str, Any]] = None
    publishedAt: Optional[datetime] = Field(None, alias="published_at", serialization_alias="publishedAt")
    createdAt: datetime = Field(alias="created_at", serialization_alias="createdAt")

    model_config = {"from_attributes": True, "populate_by_name": True}


class PostedAccount(BaseModel):
    id: str
    accountId: str = Field(alias="account_id", serialization_alias="accountId")
    username: str
    displayName: str = Field(alias="display_name", serialization_alias="displayName")
    profileImage: str = Field("", alias="profile_image", serialization_alias="profileImage")
    verified: bool = False

    model_config = {"populate_by_name": True}


class PostedTweet(BaseModel):
    tweet: TweetResponse
    account: PostedAccount


class PostedTweetsResponse(BaseModel):
    tweets: List[PostedTweet]
    nextCursor: Optional[str] = None
    hasMore: bool = False


class PresignedUrlRequest(BaseModel):
    filename: str = Field(min_length=1)
    contentType: str = Field(min_length=1)


class PresignedUrlResponse(BaseModel):
    url: str
    fields: dict[str, str]
    key: str


class MediaUploadRequest(BaseModel):
    key: str = Field(min_length=1)
    kind: Optional[MediaKind] = None
    mimeType: Optional[str] = None
    existingKinds: List[MediaKind] = Field(default_factory=list)
    accountId: Optional[str] = None


class MediaUploadResponse(BaseModel):
    mediaId: str
    kind: MediaKind
    mimeType: str
    size: int


class WorkerPublishRequest(BaseModel):
    tweetId: str
    messageId: Optional[str] = None
