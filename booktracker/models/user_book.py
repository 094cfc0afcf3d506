import enum

from sqlalchemy import Column, Enum, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from booktracker.db.base import Base, UTCDateTime, utc_now

class ReadingStatus(enum.Enum):
    WISHLIST = "wishlist"
    READING = "reading"
    FINISHED = "finished"

class UserBook(Base):
    __tablename__ = "user_books"
    __table_args__ = (
        UniqueConstraint("user_id", "book_id", name="uq_user_books_user_book"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False)
    status = Column(
        Enum(ReadingStatus, values_callable=lambda statuses: [s.value for s in statuses]),
        nullable=False,
        default=ReadingStatus.WISHLIST,
    )
    progress = Column(Integer, nullable=False, default=0)
    rating = Column(Integer, nullable=True)
    notes = Column(Text, nullable=False, default="")
    started_at = Column(UTCDateTime, nullable=True)
    finished_at = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utc_now)
    updated_at = Column(UTCDateTime, nullable=False, default=utc_now, onupdate=utc_now)

    user = relationship("User", back_populates="user_books")
    book = relationship("Book", back_populates="user_books")
