import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from booktracker.core.exceptions import Forbidden, NotFound, ValidationFailed
from booktracker.db.session import commit_or_fail, get_db
from booktracker.dependencies.auth import get_current_user_id
from booktracker.models.book import Book
from booktracker.schemas.book import BookCreate, BookResponse, BookUpdate
from booktracker.utils.helpers import validate_book_fields

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/books", tags=["books"])

STRIPPED_FIELDS = ("title", "author", "genre", "description")


def serialize_book(book: Book) -> dict:
    return BookResponse.model_validate(book).model_dump(by_alias=True, mode="json")

def get_book_or_404(db: Session, book_id: int) -> Book:
    book = db.query(Book).filter(Book.id == book_id).first()
    if not book:
        raise NotFound("Book not found")
    return book

def get_owned_book(db: Session, book_id: int, user_id: int) -> Book:
    book = get_book_or_404(db, book_id)
    if book.created_by != user_id:
        raise Forbidden("Not allowed")
    return book

def _clean(data: dict) -> dict:
    for field in STRIPPED_FIELDS:
        if isinstance(data.get(field), str):
            data[field] = data[field].strip()
    return data


@router.post("", status_code=status.HTTP_201_CREATED)
def create_book(
    request: BookCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    data = _clean(request.model_dump())
    errors = validate_book_fields(data)
    if errors:
        raise ValidationFailed(errors)

    book = Book(**data, created_by=user_id)
    db.add(book)
    commit_or_fail(db)
    db.refresh(book)
    logger.info(f"User {user_id} created book {book.id}")
    return serialize_book(book)

@router.get("")
def list_books(db: Session = Depends(get_db)) -> List[dict]:
    """All books in the catalog, newest first"""
    books = db.query(Book).order_by(Book.created_at.desc(), Book.id.desc()).all()
    return [serialize_book(book) for book in books]

@router.get("/mine")
def list_my_books(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    books = (
        db.query(Book)
        .filter(Book.created_by == user_id)
        .order_by(Book.created_at.desc(), Book.id.desc())
        .all()
    )
    return {
        "message": "Books created by user",
        "count": len(books),
        "books": [serialize_book(book) for book in books],
    }

@router.get("/{book_id}")
def get_book(book_id: int, db: Session = Depends(get_db)):
    return serialize_book(get_book_or_404(db, book_id))

@router.put("/{book_id}")
def update_book(
    book_id: int,
    request: BookUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    book = get_owned_book(db, book_id, user_id)

    data = _clean(request.model_dump(exclude_unset=True))
    errors = validate_book_fields(data, partial=True)
    if errors:
        raise ValidationFailed(errors)

    for key, value in data.items():
        setattr(book, key, value)
    commit_or_fail(db)
    db.refresh(book)
    return serialize_book(book)

@router.delete("/{book_id}")
def delete_book(
    book_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    book = get_owned_book(db, book_id, user_id)
    db.delete(book)
    commit_or_fail(db)
    logger.info(f"User {user_id} deleted book {book_id}")
    return {"message": "Book deleted successfully", "id": book_id}
