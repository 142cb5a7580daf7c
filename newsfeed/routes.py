"""
HTTP routes exposing the domain services: GET endpoints for queries,
POST/PUT/DELETE endpoints for mutations.

Article ingest (``newsfeed-seed``) and submission review are not routed;
submissions are only visible to their author.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile

from newsfeed.dependencies import (
    Backend,
    get_access_token,
    get_auth_service,
    get_backend,
    get_bookmark_service,
    get_current_user,
    get_history_service,
    get_news_service,
    get_preferences_service,
    get_submission_service,
)
from newsfeed.records import User
from newsfeed.schemas import (
    ArticleResponse,
    BookmarkResponse,
    BookmarkStateResponse,
    FavoriteCategoriesRequest,
    HealthResponse,
    HistoryEntryResponse,
    NotificationsRequest,
    PreferenceResponse,
    ProfileUpdateRequest,
    ReadRequest,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
    SubmissionCreateRequest,
    SubmissionResponse,
    UserResponse,
)
from newsfeed.services.auth import AuthService
from newsfeed.services.bookmarks import BookmarkService
from newsfeed.services.history import HistoryService
from newsfeed.services.news import NewsService
from newsfeed.services.preferences import PreferencesService
from newsfeed.services.submissions import SubmissionService

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health(backend: Backend = Depends(get_backend)):
    return HealthResponse(status="ok", backend=backend.mode.value)


# Auth and profile


@router.post("/auth/signup", response_model=UserResponse, status_code=201)
def sign_up(payload: SignUpRequest, auth: AuthService = Depends(get_auth_service)):
    user = auth.sign_up(payload.email, payload.password, payload.username)
    return UserResponse(**user.as_dict())


@router.post("/auth/login", response_model=SessionResponse)
def sign_in(payload: SignInRequest, auth: AuthService = Depends(get_auth_service)):
    session = auth.sign_in(payload.email, payload.password)
    return SessionResponse(
        access_token=session.access_token,
        token_type=session.token_type,
        expires_in=session.expires_in,
        user=UserResponse(**session.user.as_dict()),
    )


@router.post("/auth/logout", status_code=204)
def sign_out(
    token: str = Depends(get_access_token),
    auth: AuthService = Depends(get_auth_service),
):
    auth.sign_out(token)
    return Response(status_code=204)


@router.get("/auth/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user)):
    return UserResponse(**user.as_dict())


@router.put("/profile", response_model=UserResponse)
def update_profile(
    payload: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    updated = auth.update_profile(
        user.id, username=payload.username, avatar_url=payload.avatar_url
    )
    return UserResponse(**updated.as_dict())


@router.post("/profile/avatar", response_model=UserResponse)
def upload_avatar(
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    content = file.file.read()
    updated = auth.upload_avatar(
        user.id, file.filename or "", content, file.content_type
    )
    return UserResponse(**updated.as_dict())


# Articles


@router.get("/articles", response_model=list[ArticleResponse])
def list_articles(
    category: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    include_fake: bool = Query(True),
    news: NewsService = Depends(get_news_service),
):
    articles = news.list_articles(
        category=category, limit=limit, include_fake=include_fake
    )
    return [ArticleResponse(**a.as_dict()) for a in articles]


@router.get("/articles/trending", response_model=list[ArticleResponse])
def trending_articles(
    limit: int = Query(10, ge=1, le=200),
    news: NewsService = Depends(get_news_service),
):
    return [ArticleResponse(**a.as_dict()) for a in news.trending_articles(limit)]


@router.get("/articles/search", response_model=list[ArticleResponse])
def search_articles(
    q: str = Query(..., min_length=1),
    limit: int = Query(50, ge=1, le=200),
    news: NewsService = Depends(get_news_service),
):
    return [ArticleResponse(**a.as_dict()) for a in news.search_articles(q, limit)]


@router.get("/articles/sentiment/{sentiment}", response_model=list[ArticleResponse])
def articles_by_sentiment(
    sentiment: str,
    limit: int = Query(50, ge=1, le=200),
    news: NewsService = Depends(get_news_service),
):
    articles = news.articles_by_sentiment(sentiment, limit)
    return [ArticleResponse(**a.as_dict()) for a in articles]


@router.get("/articles/{article_id}", response_model=ArticleResponse)
def get_article(article_id: str, news: NewsService = Depends(get_news_service)):
    return ArticleResponse(**news.get_article(article_id).as_dict())


# Bookmarks


@router.get("/bookmarks", response_model=list[BookmarkResponse])
def list_bookmarks(
    user: User = Depends(get_current_user),
    bookmarks: BookmarkService = Depends(get_bookmark_service),
):
    return [BookmarkResponse(**b.as_dict()) for b in bookmarks.list_bookmarks(user.id)]


@router.get("/bookmarks/articles", response_model=list[ArticleResponse])
def bookmarked_articles(
    user: User = Depends(get_current_user),
    bookmarks: BookmarkService = Depends(get_bookmark_service),
):
    articles = bookmarks.bookmarked_articles(user.id)
    return [ArticleResponse(**a.as_dict()) for a in articles]


@router.get("/bookmarks/{article_id}", response_model=BookmarkStateResponse)
def is_bookmarked(
    article_id: str,
    user: User = Depends(get_current_user),
    bookmarks: BookmarkService = Depends(get_bookmark_service),
):
    return BookmarkStateResponse(
        article_id=article_id,
        bookmarked=bookmarks.is_bookmarked(user.id, article_id),
    )


@router.post("/bookmarks/{article_id}", response_model=BookmarkStateResponse)
def toggle_bookmark(
    article_id: str,
    user: User = Depends(get_current_user),
    bookmarks: BookmarkService = Depends(get_bookmark_service),
):
    return BookmarkStateResponse(
        article_id=article_id,
        bookmarked=bookmarks.toggle_bookmark(user.id, article_id),
    )


@router.delete("/bookmarks/{article_id}", status_code=204)
def remove_bookmark(
    article_id: str,
    user: User = Depends(get_current_user),
    bookmarks: BookmarkService = Depends(get_bookmark_service),
):
    bookmarks.remove_bookmark(user.id, article_id)
    return Response(status_code=204)


# Preferences


@router.get("/preferences", response_model=PreferenceResponse)
def get_preferences(
    user: User = Depends(get_current_user),
    prefs: PreferencesService = Depends(get_preferences_service),
):
    return PreferenceResponse(**prefs.ensure_preferences(user.id).as_dict())


@router.post("/preferences/dark-mode", response_model=PreferenceResponse)
def toggle_dark_mode(
    user: User = Depends(get_current_user),
    prefs: PreferencesService = Depends(get_preferences_service),
):
    return PreferenceResponse(**prefs.toggle_dark_mode(user.id).as_dict())


@router.put("/preferences/categories", response_model=PreferenceResponse)
def set_favorite_categories(
    payload: FavoriteCategoriesRequest,
    user: User = Depends(get_current_user),
    prefs: PreferencesService = Depends(get_preferences_service),
):
    preference = prefs.set_favorite_categories(user.id, payload.categories)
    return PreferenceResponse(**preference.as_dict())


@router.post("/preferences/categories/{category}", response_model=PreferenceResponse)
def toggle_favorite_category(
    category: str,
    user: User = Depends(get_current_user),
    prefs: PreferencesService = Depends(get_preferences_service),
):
    preference = prefs.toggle_favorite_category(user.id, category)
    return PreferenceResponse(**preference.as_dict())


@router.put("/preferences/notifications", response_model=PreferenceResponse)
def set_notifications(
    payload: NotificationsRequest,
    user: User = Depends(get_current_user),
    prefs: PreferencesService = Depends(get_preferences_service),
):
    preference = prefs.set_notifications(user.id, payload.enabled)
    return PreferenceResponse(**preference.as_dict())


# Submissions


@router.post("/submissions", response_model=SubmissionResponse, status_code=201)
def submit(
    payload: SubmissionCreateRequest,
    user: User = Depends(get_current_user),
    submissions: SubmissionService = Depends(get_submission_service),
):
    submission = submissions.submit(
        user.id,
        title=payload.title,
        description=payload.description,
        category=payload.category,
        kind=payload.kind,
        source=payload.source,
    )
    return SubmissionResponse(**submission.as_dict())


@router.get("/submissions", response_model=list[SubmissionResponse])
def my_submissions(
    user: User = Depends(get_current_user),
    submissions: SubmissionService = Depends(get_submission_service),
):
    rows = submissions.list_user_submissions(user.id)
    return [SubmissionResponse(**s.as_dict()) for s in rows]


@router.get("/submissions/status/{status}", response_model=list[SubmissionResponse])
def submissions_by_status(
    status: str,
    user: User = Depends(get_current_user),
    submissions: SubmissionService = Depends(get_submission_service),
):
    rows = submissions.list_by_status(status, user_id=user.id)
    return [SubmissionResponse(**s.as_dict()) for s in rows]


@router.get("/submissions/{submission_id}", response_model=SubmissionResponse)
def get_submission(
    submission_id: str,
    user: User = Depends(get_current_user),
    submissions: SubmissionService = Depends(get_submission_service),
):
    submission = submissions.get_submission(submission_id, user_id=user.id)
    return SubmissionResponse(**submission.as_dict())


# Reading history


@router.post("/history", response_model=HistoryEntryResponse, status_code=201)
def record_read(
    payload: ReadRequest,
    user: User = Depends(get_current_user),
    history: HistoryService = Depends(get_history_service),
):
    entry = history.record_read(user.id, payload.article_id, payload.read_duration)
    return HistoryEntryResponse(**entry.as_dict())


@router.get("/history", response_model=list[HistoryEntryResponse])
def list_history(
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(get_current_user),
    history: HistoryService = Depends(get_history_service),
):
    entries = history.list_history(user.id, limit)
    return [HistoryEntryResponse(**e.as_dict()) for e in entries]


@router.get("/history/articles", response_model=list[ArticleResponse])
def recently_read(
    limit: int = Query(10, ge=1, le=200),
    user: User = Depends(get_current_user),
    history: HistoryService = Depends(get_history_service),
):
    articles = history.recently_read_articles(user.id, limit)
    return [ArticleResponse(**a.as_dict()) for a in articles]
