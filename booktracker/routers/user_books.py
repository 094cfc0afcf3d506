import logging
from typing import Iterable, List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from booktracker.core.exceptions import Forbidden, NotFound, ValidationFailed
from booktracker.db.session import commit_or_fail, get_db
from booktracker.dependencies.auth import get_current_user_id
from booktracker.models.book import Book
from booktracker.models.user_book import ReadingStatus, UserBook
from booktracker.schemas.user_book import (
    ReadingSummary,
    UserBookCreate,
    UserBookResponse,
    UserBookUpdate,
)
from booktracker.utils.helpers import get_utc_now, validate_user_book_fields

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/userbooks", tags=["userbooks"])

DUPLICATE_MESSAGE = "Book already in your list"


def serialize_entry(entry: UserBook) -> dict:
    return UserBookResponse.model_validate(entry).model_dump(by_alias=True, mode="json")

def get_owned_entry(db: Session, entry_id: int, user_id: int) -> UserBook:
    entry = db.query(UserBook).filter(UserBook.id == entry_id).first()
    if not entry:
        raise NotFound("Entry not found")
    if entry.user_id != user_id:
        raise Forbidden("Not allowed")
    return entry

def apply_status(entry: UserBook, status_value: str) -> None:
    """Set the status and stamp the reading dates the first time they apply"""
    entry.status = ReadingStatus(status_value)
    now = get_utc_now()
    if entry.status == ReadingStatus.READING and entry.started_at is None:
        entry.started_at = now
    if entry.status == ReadingStatus.FINISHED:
        if entry.started_at is None:
            entry.started_at = now
        if entry.finished_at is None:
            entry.finished_at = now

def summarize(entries: Iterable[UserBook]) -> ReadingSummary:
    """Counts per status, average rating and latest update in one pass"""
    summary = ReadingSummary()
    rating_total = 0
    rated = 0
    for entry in entries:
        if entry.status == ReadingStatus.WISHLIST:
            summary.wishlist += 1
        elif entry.status == ReadingStatus.READING:
            summary.reading += 1
        elif entry.status == ReadingStatus.FINISHED:
            summary.finished += 1

        if entry.rating is not None:
            rating_total += entry.rating
            rated += 1

        summary.total_progress += entry.progress or 0

        if summary.last_updated is None or entry.updated_at > summary.last_updated:
            summary.last_updated = entry.updated_at

    if rated:
        summary.avg_rating = rating_total / rated
    return summary


@router.post("", status_code=status.HTTP_201_CREATED)
def add_to_list(
    request: UserBookCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    if request.book_id is None:
        raise ValidationFailed(["Book ID is required"])

    data = request.model_dump(exclude={"book_id"})
    errors = validate_user_book_fields(data)
    if errors:
        raise ValidationFailed(errors)

    if not db.query(Book).filter(Book.id == request.book_id).first():
        raise NotFound("Book not found")

    exists = (
        db.query(UserBook)
        .filter(UserBook.user_id == user_id, UserBook.book_id == request.book_id)
        .first()
    )
    if exists:
        raise ValidationFailed([DUPLICATE_MESSAGE])

    entry = UserBook(
        user_id=user_id,
        book_id=request.book_id,
        progress=request.progress or 0,
        rating=request.rating,
        notes=(request.notes or "").strip(),
    )
    apply_status(entry, request.status or ReadingStatus.WISHLIST.value)
    db.add(entry)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent insert of the same pair
        db.rollback()
        raise ValidationFailed([DUPLICATE_MESSAGE])
    db.refresh(entry)
    logger.info(f"User {user_id} added book {request.book_id} to their list")
    return serialize_entry(entry)

@router.get("/summary")
def reading_summary(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    entries = db.query(UserBook).filter(UserBook.user_id == user_id).all()
    return {
        "message": "Reading list summary retrieved successfully",
        "summary": summarize(entries).model_dump(by_alias=True, mode="json"),
    }

@router.get("")
def list_entries(
    status_filter: Optional[str] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> List[dict]:
    query = (
        db.query(UserBook)
        .options(joinedload(UserBook.book))
        .filter(UserBook.user_id == user_id)
    )
    if status_filter is not None:
        if status_filter not in {s.value for s in ReadingStatus}:
            raise ValidationFailed(["Invalid status"])
        query = query.filter(UserBook.status == ReadingStatus(status_filter))

    entries = query.order_by(UserBook.created_at.desc(), UserBook.id.desc()).all()
    return [serialize_entry(entry) for entry in entries]

@router.get("/{entry_id}")
def get_entry(
    entry_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return serialize_entry(get_owned_entry(db, entry_id, user_id))

@router.put("/{entry_id}")
def update_entry(
    entry_id: int,
    request: UserBookUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    entry = get_owned_entry(db, entry_id, user_id)

    data = request.model_dump(exclude_unset=True)
    if "book_id" in data and data["book_id"] != entry.book_id:
        raise ValidationFailed(["Book cannot be changed"])

    errors = validate_user_book_fields(data)
    if errors:
        raise ValidationFailed(errors)

    if data.get("status") is not None:
        apply_status(entry, data["status"])
    if data.get("progress") is not None:
        entry.progress = data["progress"]
    if "rating" in data:
        entry.rating = data["rating"]
    if data.get("notes") is not None:
        entry.notes = data["notes"].strip()

    commit_or_fail(db)
    db.refresh(entry)
    return serialize_entry(entry)

@router.delete("/{entry_id}")
def delete_entry(
    entry_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    entry = get_owned_entry(db, entry_id, user_id)
    db.delete(entry)
    commit_or_fail(db)
    return {"message": "Entry deleted", "id": entry_id}
