import enum
import secrets

from sqlalchemy import Boolean, Column, Enum, Integer, String
from sqlalchemy.orm import relationship, validates

from booktracker.db.base import Base, UTCDateTime, utc_now

class AuthProvider(enum.Enum):
    LOCAL = "local"
    GOOGLE = "google"
    GITHUB = "github"
    APPLE = "apple"

def random_avatar_gradient() -> int:
    return secrets.randbelow(5)

class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    # Null for accounts created through an OAuth provider
    hashed_password = Column(String, nullable=True)
    auth_provider = Column(
        Enum(AuthProvider, values_callable=lambda providers: [p.value for p in providers]),
        nullable=False,
        default=AuthProvider.LOCAL,
    )
    google_id = Column(String, nullable=True, unique=True)
    profile_pic = Column(String, nullable=True)
    avatar_gradient = Column(Integer, nullable=False, default=random_avatar_gradient)
    email_verified = Column(Boolean, nullable=False, default=False)

    # OTP state, see booktracker.core.security.otp
    temp_otp = Column(String, nullable=True)
    otp_expires = Column(UTCDateTime, nullable=True)
    otp_attempts = Column(Integer, nullable=False, default=0)
    otp_locked_until = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utc_now)
    updated_at = Column(UTCDateTime, nullable=False, default=utc_now, onupdate=utc_now)

    books = relationship("Book", back_populates="creator")
    user_books = relationship("UserBook", back_populates="user", cascade="all, delete-orphan")

    @validates("email")
    def normalize_email(self, key, value):
        return value.strip().lower() if value else value

    @property
    def has_password(self) -> bool:
        return bool(self.hashed_password)
