"""
api/routes/news.py -- CRUD routes for news articles.

Routes:
  GET    /news          -- list all news
  POST   /news          -- create news
  GET    /news/{id}     -- news detail
  PUT    /news/{id}     -- update title/body (and author in the open deployment)
  DELETE /news/{id}     -- delete news; 204

Auth:
  With Settings.auth_required (the default) every route goes through the auth
  gate and a new record's author is the token subject. With auth_required off
  the routes are public and the author comes from the request body.

Ownership:
  Any caller who passes the gate may update or delete any record unless
  Settings.enforce_author_ownership is on, in which case only the author may.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.models import ErrorDetail, NewsCreate, NewsResponse, NewsUpdate
from auth.dependencies import news_author
from core.models import News
from store.base import NewsStore, UnknownAuthorError

logger = logging.getLogger("newsapi.api.news")

# Router-level dependency: the gate runs for every route, and individual
# handlers that need the subject ask for news_author again (FastAPI caches
# the result per request).
router = APIRouter(dependencies=[Depends(news_author)])


def _not_found(news_id: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail=ErrorDetail(code="not_found", message=f"News {news_id} not found.").model_dump(),
    )


def _bad_request(code: str, message: str) -> HTTPException:
    return HTTPException(status_code=400, detail=ErrorDetail(code=code, message=message).model_dump())


def _check_owner(request: Request, news: News, subject: Optional[str]) -> None:
    """Raise 403 when ownership is enforced and the caller is not the author."""
    if not request.app.state.settings.enforce_author_ownership:
        return
    if subject is not None and subject != news.author:
        raise HTTPException(
            status_code=403,
            detail=ErrorDetail(code="forbidden", message="Only the author may change this news.").model_dump(),
        )


# ---------------------------------------------------------------------------
# GET /news -- list
# ---------------------------------------------------------------------------


@router.get("/news", response_model=list[NewsResponse])
def list_news(request: Request) -> list[NewsResponse]:
    """Return every news record. An empty store returns []."""
    store: NewsStore = request.app.state.store
    return [NewsResponse.from_news(n) for n in store.list_news()]


# ---------------------------------------------------------------------------
# POST /news -- create
# ---------------------------------------------------------------------------


@router.post("/news", response_model=NewsResponse, status_code=201)
def create_news(
    request: Request,
    body: NewsCreate,
    subject: Optional[str] = Depends(news_author),
) -> NewsResponse:
    """Create a news record.

    The author is the token subject when auth is required, otherwise the
    author field of the body (400 if missing).
    """
    store: NewsStore = request.app.state.store
    author = subject if subject is not None else body.author
    if not author:
        raise _bad_request("validation_error", "author is required.")

    news = News(id=str(uuid.uuid4()), title=body.title, body=body.body, author=author)
    try:
        created = store.create_news(news)
    except UnknownAuthorError as exc:
        raise _bad_request("unknown_author", "author does not reference an existing user.") from exc

    logger.info("Created news %s by %s", created.id, created.author)
    return NewsResponse.from_news(created)


# ---------------------------------------------------------------------------
# GET /news/{news_id} -- detail
# ---------------------------------------------------------------------------


@router.get("/news/{news_id}", response_model=NewsResponse)
def get_news(request: Request, news_id: str) -> NewsResponse:
    """Return one news record or 404."""
    store: NewsStore = request.app.state.store
    news = store.get_news(news_id)
    if news is None:
        raise _not_found(news_id)
    return NewsResponse.from_news(news)


# ---------------------------------------------------------------------------
# PUT /news/{news_id} -- update
# ---------------------------------------------------------------------------


@router.put("/news/{news_id}", response_model=NewsResponse)
def update_news(
    request: Request,
    news_id: str,
    body: NewsUpdate,
    subject: Optional[str] = Depends(news_author),
) -> NewsResponse:
    """Overwrite the supplied fields of a news record.

    author is only honoured in the open deployment; with auth enabled the
    author of a record never changes. id and created_at are never changed.
    """
    store: NewsStore = request.app.state.store

    updates: dict = {}
    if body.title is not None:
        updates["title"] = body.title
    if body.body is not None:
        updates["body"] = body.body
    if body.author is not None and subject is None:
        updates["author"] = body.author
    if not updates:
        raise _bad_request("no_changes", "No fields to update.")

    current = store.get_news(news_id)
    if current is None:
        raise _not_found(news_id)
    _check_owner(request, current, subject)

    try:
        updated = store.update_news(news_id, **updates)
    except UnknownAuthorError as exc:
        raise _bad_request("unknown_author", "author does not reference an existing user.") from exc
    # Deleted between the read and the write
    if updated is None:
        raise _not_found(news_id)

    logger.info("Updated news %s (%s)", news_id, ", ".join(sorted(updates)))
    return NewsResponse.from_news(updated)


# ---------------------------------------------------------------------------
# DELETE /news/{news_id}
# ---------------------------------------------------------------------------


@router.delete("/news/{news_id}", status_code=204)
def delete_news(
    request: Request,
    news_id: str,
    subject: Optional[str] = Depends(news_author),
) -> Response:
    """Delete a news record. 404 if no record has that id."""
    store: NewsStore = request.app.state.store

    if request.app.state.settings.enforce_author_ownership:
        current = store.get_news(news_id)
        if current is None:
            raise _not_found(news_id)
        _check_owner(request, current, subject)

    if not store.delete_news(news_id):
        raise _not_found(news_id)

    logger.info("Deleted news %s", news_id)
    return Response(status_code=204)
