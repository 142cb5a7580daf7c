"""
Pydantic schemas for the newsfeed HTTP API.

Request models only describe shape; content rules (required text, enum
membership, ranges) are enforced by the services so both backends and all
callers get the same errors.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field


class SignUpRequest(BaseModel):
    email: str
    password: str
    username: str


class SignInRequest(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: str
    email: str
    username: str
    avatar_url: Optional[str] = None
    created_at: str
    updated_at: str


class SessionResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    user: UserResponse


class ProfileUpdateRequest(BaseModel):
    username: Optional[str] = None
    avatar_url: Optional[str] = None


class ArticleResponse(BaseModel):
    id: str
    title: str
    summary: str
    source: str
    category: str
    published_at: str
    image_url: Optional[str] = None
    sentiment: str
    credibility_score: float
    is_fake: bool
    is_trending: bool


class BookmarkResponse(BaseModel):
    id: str
    user_id: str
    article_id: str
    created_at: str


class BookmarkStateResponse(BaseModel):
    article_id: str
    bookmarked: bool


class PreferenceResponse(BaseModel):
    id: str
    user_id: str
    dark_mode: bool
    favorite_categories: list[str]
    notifications_enabled: bool


class FavoriteCategoriesRequest(BaseModel):
    categories: list[str] = Field(default_factory=list)


class NotificationsRequest(BaseModel):
    enabled: bool


class SubmissionCreateRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    kind: str = "news"
    source: Optional[str] = None


class SubmissionResponse(BaseModel):
    id: str
    user_id: str
    title: str
    description: str
    category: str
    kind: str
    source: Optional[str] = None
    status: str
    created_at: str


class ReadRequest(BaseModel):
    article_id: str
    read_duration: float = 0.0


class HistoryEntryResponse(BaseModel):
    id: str
    user_id: str
    article_id: str
    read_duration: float
    read_at: str


class HealthResponse(BaseModel):
    status: Literal["ok"]
    backend: str


class ErrorResponse(BaseModel):
    detail: str
    error: str
