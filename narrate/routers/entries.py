"""
Entries router.

POST  /entries         write a new entry
GET   /entries         list own entries (paginated, newest first)
GET   /entries/{id}    single entry
PATCH /entries/{id}    replace an entry's content
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from narrate.core.auth import get_current_user_id
from narrate.core.cache import TTLCache, get_eligibility_cache, invalidate_user
from narrate.core.clock import as_utc
from narrate.db.base import get_db
from narrate.models.entry import Entry
from narrate.schemas.entries import (
    EntryCreateRequest,
    EntryListResponse,
    EntryResponse,
    EntryUpdateRequest,
)
from narrate.services.entries import create_entry, get_entry, list_entries, update_entry

router = APIRouter(prefix="/entries", tags=["entries"])


def _entry_to_response(entry: Entry) -> EntryResponse:
    return EntryResponse(
        id=entry.id,
        content=entry.content,
        created_at=as_utc(entry.created_at).isoformat(),
        updated_at=as_utc(entry.updated_at).isoformat() if entry.updated_at else None,
    )


@router.post(
    "",
    response_model=EntryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Write a journal entry",
    responses={
        401: {"description": "Not authenticated."},
        422: {"description": "Validation error (empty, too short or too long)."},
    },
)
def create(
    payload: EntryCreateRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    cache: TTLCache = Depends(get_eligibility_cache),
):
    """
    Save a new entry for the authenticated user.

    Content is trimmed, stripped of control characters and line-ending
    normalized before it is stored. Invalidates the user's cached
    weekly-summary eligibility.
    """
    entry = create_entry(db=db, user_id=user_id, content=payload.content)
    invalidate_user(cache, user_id)
    return _entry_to_response(entry)


@router.get(
    "",
    response_model=EntryListResponse,
    summary="List own entries (paginated, newest first)",
)
def list_(
    limit: int = Query(default=20, ge=1, le=100, description="Page size."),
    offset: int = Query(default=0, ge=0, description="Skip N items."),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    total, items = list_entries(db=db, user_id=user_id, limit=limit, offset=offset)
    return EntryListResponse(total=total, items=[_entry_to_response(e) for e in items])


@router.get(
    "/{entry_id}",
    response_model=EntryResponse,
    summary="Retrieve a single entry",
    responses={404: {"description": "No such entry for this user."}},
)
def get(
    entry_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return _entry_to_response(get_entry(db=db, user_id=user_id, entry_id=entry_id))


@router.patch(
    "/{entry_id}",
    response_model=EntryResponse,
    summary="Edit an entry's content",
    responses={
        404: {"description": "No such entry for this user."},
        422: {"description": "Validation error."},
    },
)
def update(
    entry_id: str,
    payload: EntryUpdateRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    cache: TTLCache = Depends(get_eligibility_cache),
):
    """Replace the content of one of the user's entries. `created_at` is unchanged."""
    entry = update_entry(db=db, user_id=user_id, entry_id=entry_id, content=payload.content)
    invalidate_user(cache, user_id)
    return _entry_to_response(entry)
