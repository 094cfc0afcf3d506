from sqlalchemy import Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from booktracker.db.base import Base, UTCDateTime, utc_now

class Book(Base):
    __tablename__ = "books"
    id = Column(Integer, primary_key=True)
    title = Column(String, nullable=False)
    author = Column(String, nullable=False)
    genre = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    pages = Column(Integer, nullable=True)
    published_year = Column(Integer, nullable=True)
    cover_image = Column(String, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    created_at = Column(UTCDateTime, nullable=False, default=utc_now)
    updated_at = Column(UTCDateTime, nullable=False, default=utc_now, onupdate=utc_now)

    creator = relationship("User", back_populates="books")
    user_books = relationship("UserBook", back_populates="book", cascade="all, delete-orphan")
