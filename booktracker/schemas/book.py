from datetime import datetime
from typing import Optional

from booktracker.schemas.user import CamelModel

class BookBase(CamelModel):
    title: str
    author: str
    genre: Optional[str] = None
    description: Optional[str] = None
    cover_image: Optional[str] = None
    pages: Optional[int] = None
    published_year: Optional[int] = None

class BookFields(CamelModel):
    # Required fields are checked by validate_book_fields so every error is reported at once
    title: Optional[str] = None
    author: Optional[str] = None
    genre: Optional[str] = None
    description: Optional[str] = None
    cover_image: Optional[str] = None
    pages: Optional[int] = None
    published_year: Optional[int] = None

class BookCreate(BookFields):
    pass

class BookUpdate(BookFields):
    pass

class BookResponse(BookBase):
    id: int
    created_by: int
    created_at: datetime
    updated_at: datetime
