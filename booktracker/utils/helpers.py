from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
import re

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
SPECIAL_CHARACTERS = re.compile(r"[!@#$%^&*(),.?\":{}|<>_\-+=~`'\[\]\\/;]")

READING_STATUSES = ("wishlist", "reading", "finished")
MAX_NOTES_LENGTH = 500
MAX_DESCRIPTION_LENGTH = 500

def get_utc_now() -> datetime:
    """Get current UTC datetime"""
    return datetime.now(timezone.utc)

def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()

def validate_email(email: str, allowed_domains: Iterable[str] = ()) -> List[str]:
    """Validate email format and, when given, the domain allowlist"""
    if not email or not EMAIL_PATTERN.match(email):
        return ["Please enter a valid email address"]

    domains = [d.lower().lstrip("@") for d in allowed_domains if d]
    if domains:
        domain = email.rsplit("@", 1)[1].lower()
        if domain not in domains:
            return [f"Email domain must be one of: {', '.join(domains)}"]
    return []

def validate_name(name: Optional[str]) -> List[str]:
    errors = []
    name = (name or "").strip()
    if len(name) < 2 or len(name) > 30:
        errors.append("Name must be between 2 and 30 characters long")
    if re.search(r"\d", name):
        errors.append("Name must not contain numbers")
    return errors

def validate_password_strength(password: Optional[str]) -> List[str]:
    """
    Validate password strength

    Args:
        password: Password to validate

    Returns:
        Every rule the password breaks, empty when it is acceptable
    """
    password = password or ""
    errors = []
    if len(password) < 8 or len(password) > 30:
        errors.append("Password must be between 8 and 30 characters long")

    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")

    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")

    if not re.search(r"\d", password):
        errors.append("Password must contain at least one number")

    if not SPECIAL_CHARACTERS.search(password):
        errors.append("Password must contain at least one special character")

    return errors

def validate_registration(
    name: Optional[str],
    email: Optional[str],
    password: Optional[str],
    allowed_domains: Iterable[str] = (),
) -> List[str]:
    return (
        validate_name(name)
        + validate_email(normalize_email(email), allowed_domains)
        + validate_password_strength(password)
    )

def validate_book_fields(data: Dict[str, Any], partial: bool = False) -> List[str]:
    """
    Validate catalog fields

    With ``partial`` only the keys present in ``data`` are checked, which is
    how updates are validated.
    """
    errors = []

    if not partial or "title" in data:
        title = (data.get("title") or "").strip()
        if len(title) < 2:
            errors.append("Title must be at least 2 characters")

    if not partial or "author" in data:
        author = (data.get("author") or "").strip()
        if len(author) < 2:
            errors.append("Author must be at least 2 characters")

    description = data.get("description")
    if description and len(description) > MAX_DESCRIPTION_LENGTH:
        errors.append(f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters")

    pages = data.get("pages")
    if pages is not None and pages <= 0:
        errors.append("Pages must be a positive number")

    year = data.get("published_year")
    if year is not None and (year < 0 or year > get_utc_now().year + 1):
        errors.append("Published year is not valid")

    return errors

def validate_user_book_fields(data: Dict[str, Any]) -> List[str]:
    errors = []

    status = data.get("status")
    if status is not None and status not in READING_STATUSES:
        errors.append("Invalid status")

    progress = data.get("progress")
    if progress is not None and (progress < 0 or progress > 100):
        errors.append("Progress must be between 0 and 100")

    rating = data.get("rating")
    if rating is not None and (rating < 1 or rating > 5):
        errors.append("Rating must be between 1 and 5")

    notes = data.get("notes")
    if notes and len(notes) > MAX_NOTES_LENGTH:
        errors.append(f"Notes must be less than {MAX_NOTES_LENGTH} characters")

    return errors
