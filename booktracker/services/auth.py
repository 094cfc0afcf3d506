"""
Account lifecycle: registration, email OTP verification, password login,
Google login and password reset.

Every function takes the request's database session and raises a
``BookTrackerError`` subclass on rejection; routers only translate results
into responses.
"""
import logging
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from booktracker.core.config.settings import get_settings
from booktracker.core.exceptions import (
    CodeExpired,
    DuplicateEmail,
    EmailNotVerified,
    InvalidCode,
    InvalidCredentials,
    NotFound,
    RateLimited,
    UpstreamFailure,
    ValidationFailed,
)
from booktracker.core.security import otp
from booktracker.core.security.auth import create_access_token, create_hashed_password, verify_password
from booktracker.db.session import commit_or_fail
from booktracker.models.user import AuthProvider, User
from booktracker.services.email import PURPOSE_RESET, PURPOSE_VERIFY, EmailSender, create_otp_email
from booktracker.services.oauth import GoogleOAuthClient
from booktracker.utils.helpers import (
    get_utc_now,
    normalize_email,
    validate_password_strength,
    validate_registration,
)

logger = logging.getLogger(__name__)

EMAIL_SUBJECTS = {
    PURPOSE_VERIFY: "Verify your email - Book Tracker",
    PURPOSE_RESET: "Your Password Reset Code - Book Tracker",
}


def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()

def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == normalize_email(email)).first()

def _require_user(db: Session, user_id: int) -> User:
    user = get_user(db, user_id)
    if not user:
        raise NotFound("User not found")
    return user


def issue_otp(db: Session, user: User, sender: EmailSender, purpose: str = PURPOSE_VERIFY) -> None:
    """Store a fresh code on the user and email it. Sends exactly one email."""
    policy = otp.OtpPolicy.from_settings(get_settings())
    plain_otp = otp.generate_secure_otp(policy.length)

    otp.write_state(user, otp.issue(otp.hash_otp(plain_otp), get_utc_now(), policy))
    commit_or_fail(db)

    minutes = int(policy.ttl.total_seconds() // 60)
    email_sent = sender.send(
        user.email,
        EMAIL_SUBJECTS.get(purpose, EMAIL_SUBJECTS[PURPOSE_VERIFY]),
        create_otp_email(plain_otp, minutes, purpose),
    )
    if not email_sent:
        logger.warning(f"Failed to send {purpose} OTP email to user {user.id}")
        raise UpstreamFailure("Failed to send verification email. Please try again.")

    logger.info(f"Issued {purpose} OTP for user {user.id}")


def check_otp(db: Session, user: User, code: str, consume: bool = True) -> None:
    """
    Run ``code`` through the OTP state machine and persist the new state.

    Raises:
        RateLimited: the user is locked out, or this attempt locked them out
        InvalidCode: wrong code, or no code is pending
        CodeExpired: right code, past its expiry
    """
    policy = otp.OtpPolicy.from_settings(get_settings())
    previous = otp.read_state(user)
    state, outcome = otp.verify(previous, code, get_utc_now(), policy, consume=consume)

    if state != previous:
        otp.write_state(user, state)
        commit_or_fail(db)

    if outcome is otp.Outcome.OK:
        return
    if outcome is otp.Outcome.LOCKED:
        logger.warning(f"OTP locked for user {user.id} after {user.otp_attempts} attempts")
        raise RateLimited("Too many invalid attempts. Please try again later.")
    if outcome is otp.Outcome.EXPIRED:
        raise CodeExpired()
    if outcome is otp.Outcome.MISSING:
        raise InvalidCode("No active OTP request found. Please request a new one.")
    raise InvalidCode("Invalid OTP")


def register(db: Session, sender: EmailSender, name: str, email: str, password: str) -> User:
    settings = get_settings()
    errors = validate_registration(name, email, password, settings.ALLOWED_EMAIL_DOMAINS)
    if errors:
        raise ValidationFailed(errors)

    email = normalize_email(email)
    if get_user_by_email(db, email):
        raise DuplicateEmail()

    new_user = User(
        name=name.strip(),
        email=email,
        hashed_password=create_hashed_password(password),
        auth_provider=AuthProvider.LOCAL,
        email_verified=False,
    )
    db.add(new_user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateEmail()
    db.refresh(new_user)
    logger.info(f"Registered user {new_user.id}")

    try:
        issue_otp(db, new_user, sender, PURPOSE_VERIFY)
    except UpstreamFailure as e:
        # The account exists now; the caller needs its id to ask for a new code
        raise UpstreamFailure(e.detail, extra={"userId": new_user.id}) from e
    return new_user


def verify_otp(db: Session, user_id: int, code: str) -> Tuple[User, str]:
    user = _require_user(db, user_id)
    check_otp(db, user, code, consume=True)
    db.refresh(user)
    logger.info(f"Email verified for user {user.id}")
    return user, create_access_token(user.id)


def resend_otp(db: Session, sender: EmailSender, user_id: int) -> User:
    # Re-issuing also lifts any active lock
    user = _require_user(db, user_id)
    issue_otp(db, user, sender, PURPOSE_VERIFY)
    return user


def login_local(db: Session, email: str, password: str) -> Tuple[User, str]:
    user = get_user_by_email(db, email)

    if not user or not user.has_password or not verify_password(password, user.hashed_password):
        logger.info("Rejected login with invalid credentials")
        raise InvalidCredentials()

    if user.auth_provider == AuthProvider.LOCAL and not user.email_verified:
        raise EmailNotVerified()

    return user, create_access_token(user.id)


def login_google(db: Session, client: GoogleOAuthClient, code: str) -> Tuple[User, str]:
    if not code:
        raise ValidationFailed(["Authorization code is required"])

    access_token = client.exchange_code(code)
    profile = client.fetch_profile(access_token)
    email = normalize_email(profile.email)

    user = get_user_by_email(db, email)
    if user is None:
        user = User(
            name=profile.name,
            email=email,
            hashed_password=None,
            auth_provider=AuthProvider.GOOGLE,
            google_id=profile.provider_id,
            profile_pic=profile.picture,
            email_verified=True,
        )
        db.add(user)
        logger.info("Creating account from Google profile")
    else:
        # Link the Google identity to the existing account
        if not user.google_id:
            user.google_id = profile.provider_id
        if not user.profile_pic and profile.picture:
            user.profile_pic = profile.picture
        user.email_verified = True

    commit_or_fail(db)
    db.refresh(user)
    return user, create_access_token(user.id)


def forgot_password(db: Session, sender: EmailSender, email: str) -> None:
    user = get_user_by_email(db, email)
    if not user:
        logger.info("Password reset requested for unknown email")
        return

    issue_otp(db, user, sender, PURPOSE_RESET)


def verify_reset_otp(db: Session, email: str, code: str) -> User:
    user = get_user_by_email(db, email)
    if not user:
        raise NotFound("User not found")
    check_otp(db, user, code, consume=False)
    return user


def reset_password(
    db: Session,
    email: str,
    code: str,
    new_password: str,
    confirm_password: Optional[str] = None,
) -> User:
    errors = validate_password_strength(new_password)
    if confirm_password is not None and confirm_password != new_password:
        errors.append("Passwords do not match")
    if errors:
        raise ValidationFailed(errors)

    user = get_user_by_email(db, email)
    if not user:
        raise NotFound("User not found")

    check_otp(db, user, code, consume=True)

    user.hashed_password = create_hashed_password(new_password)
    user.auth_provider = AuthProvider.LOCAL
    commit_or_fail(db)
    db.refresh(user)
    logger.info(f"Password reset for user {user.id}")
    return user
