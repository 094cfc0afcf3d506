"""
One-time code lifecycle for email verification and password reset.

The OTP fields stored on a user are read into one of four explicit states,
moved through pure transition functions, and written back. Nothing here
touches the database or the clock directly, so every transition can be
exercised with a fixed ``now``.

    NotStarted --issue--> Pending --verify ok--> Verified
                            |  ^
              max attempts  |  | lock elapsed
                            v  |
                           Locked

``issue`` is allowed from every state, including ``Locked``.
"""
import enum
import secrets
import string
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Optional, Tuple, Union

from booktracker.core.config.settings import Settings
from booktracker.core.security.auth import pwd_context


@dataclass(frozen=True)
class OtpPolicy:
    length: int = 6
    ttl: timedelta = timedelta(minutes=5)
    max_attempts: int = 5
    lock: timedelta = timedelta(minutes=5)

    @classmethod
    def from_settings(cls, settings: Settings) -> "OtpPolicy":
        return cls(
            length=settings.OTP_LENGTH,
            ttl=timedelta(minutes=settings.OTP_EXPIRE_MINUTES),
            max_attempts=settings.OTP_MAX_ATTEMPTS,
            lock=timedelta(minutes=settings.OTP_LOCK_MINUTES),
        )


@dataclass(frozen=True)
class NotStarted:
    pass


@dataclass(frozen=True)
class Pending:
    code_hash: Optional[str]
    expires: Optional[datetime]
    attempts: int = 0


@dataclass(frozen=True)
class Locked:
    code_hash: Optional[str]
    expires: Optional[datetime]
    attempts: int
    until: datetime


@dataclass(frozen=True)
class Verified:
    pass


OtpState = Union[NotStarted, Pending, Locked, Verified]


class Outcome(enum.Enum):
    OK = "ok"
    INVALID = "invalid"
    EXPIRED = "expired"
    LOCKED = "locked"
    MISSING = "missing"


def generate_secure_otp(length: int = 6) -> str:
    """Generate a cryptographically secure random OTP of specified length"""
    return "".join(secrets.choice(string.digits) for _ in range(length))

def hash_otp(otp: str) -> str:
    """Hash an OTP using the same password hashing mechanism"""
    return pwd_context.hash(otp)

def verify_otp(plain_otp: str, hashed_otp: Optional[str]) -> bool:
    """Verify an OTP against its hashed value"""
    if not hashed_otp or not plain_otp:
        return False
    return pwd_context.verify(plain_otp, hashed_otp)


def issue(code_hash: str, now: datetime, policy: OtpPolicy) -> Pending:
    """Start a fresh code: new expiry, zero attempts, no lock."""
    return Pending(code_hash=code_hash, expires=now + policy.ttl, attempts=0)


def verify(
    state: OtpState,
    code: str,
    now: datetime,
    policy: OtpPolicy,
    consume: bool = True,
) -> Tuple[OtpState, Outcome]:
    """
    Check ``code`` against ``state`` and return the next state with the outcome.

    A locked state rejects every code until its lock elapses and does not
    count the attempt. Mismatches count one attempt each; reaching
    ``policy.max_attempts`` locks. A matching but expired code leaves the
    attempt count alone. With ``consume=False`` a successful check keeps the
    code pending so it can be presented again.
    """
    if isinstance(state, Locked):
        if state.until > now:
            return state, Outcome.LOCKED
        state = Pending(code_hash=state.code_hash, expires=state.expires, attempts=state.attempts)

    if not isinstance(state, Pending) or not state.code_hash:
        return state, Outcome.MISSING

    if not verify_otp(code, state.code_hash):
        attempts = state.attempts + 1
        if attempts >= policy.max_attempts:
            locked = Locked(
                code_hash=state.code_hash,
                expires=state.expires,
                attempts=attempts,
                until=now + policy.lock,
            )
            return locked, Outcome.LOCKED
        return replace(state, attempts=attempts), Outcome.INVALID

    if state.expires is None or state.expires < now:
        return state, Outcome.EXPIRED

    if consume:
        return Verified(), Outcome.OK
    return replace(state, attempts=0), Outcome.OK


def read_state(user) -> OtpState:
    """Build the state held in a user's stored OTP fields."""
    if user.otp_locked_until is not None:
        return Locked(
            code_hash=user.temp_otp,
            expires=user.otp_expires,
            attempts=user.otp_attempts or 0,
            until=user.otp_locked_until,
        )
    if user.temp_otp:
        return Pending(
            code_hash=user.temp_otp,
            expires=user.otp_expires,
            attempts=user.otp_attempts or 0,
        )
    if user.email_verified:
        return Verified()
    return NotStarted()


def write_state(user, state: OtpState) -> None:
    """Store ``state`` back onto the user's OTP fields."""
    if isinstance(state, Locked):
        user.temp_otp = state.code_hash
        user.otp_expires = state.expires
        user.otp_attempts = state.attempts
        user.otp_locked_until = state.until
        return

    if isinstance(state, Pending):
        user.temp_otp = state.code_hash
        user.otp_expires = state.expires
        user.otp_attempts = state.attempts
        user.otp_locked_until = None
        return

    user.temp_otp = None
    user.otp_expires = None
    user.otp_attempts = 0
    user.otp_locked_until = None
    if isinstance(state, Verified):
        user.email_verified = True
