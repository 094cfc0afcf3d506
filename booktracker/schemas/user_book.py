from datetime import datetime
from typing import Optional

from booktracker.models.user_book import ReadingStatus
from booktracker.schemas.book import BookResponse
from booktracker.schemas.user import CamelModel

class UserBookCreate(CamelModel):
    book_id: Optional[int] = None
    status: Optional[str] = None
    progress: Optional[int] = None
    rating: Optional[int] = None
    notes: Optional[str] = None

class UserBookUpdate(CamelModel):
    book_id: Optional[int] = None
    status: Optional[str] = None
    progress: Optional[int] = None
    rating: Optional[int] = None
    notes: Optional[str] = None

class UserBookResponse(CamelModel):
    id: int
    user_id: int
    book_id: int
    status: ReadingStatus
    progress: int
    rating: Optional[int] = None
    notes: str
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    book: Optional[BookResponse] = None

class ReadingSummary(CamelModel):
    wishlist: int = 0
    reading: int = 0
    finished: int = 0
    avg_rating: Optional[float] = None
    total_progress: int = 0
    last_updated: Optional[datetime] = None
