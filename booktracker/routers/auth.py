import logging
import secrets
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from booktracker.core.config.settings import get_settings
from booktracker.core.exceptions import ValidationFailed
from booktracker.core.security.transport import TokenTransport, get_token_transport
from booktracker.db.session import get_db
from booktracker.dependencies.auth import get_current_user
from booktracker.models.user import User
from booktracker.schemas.user import (
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    ResendOTPRequest,
    ResetPasswordRequest,
    UserPublic,
    VerifyOTPRequest,
    VerifyResetOTPRequest,
)
from booktracker.services import auth as auth_service
from booktracker.services.email import EmailSender, get_email_sender
from booktracker.services.oauth import GoogleOAuthClient, get_oauth_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])

OAUTH_STATE_COOKIE = "oauth_state"
RESET_MESSAGE = "If the email exists in our system, a verification code has been sent."


def serialize_user(user: User) -> dict:
    return UserPublic.model_validate(user).model_dump(by_alias=True, mode="json")

def session_body(message: str, user: User, token: str, transport: TokenTransport) -> dict:
    return {"message": message, "user": serialize_user(user), **transport.body(token)}


@router.post("/register", response_model=RegisterResponse)
def register(
    request: RegisterRequest,
    db: Session = Depends(get_db),
    sender: EmailSender = Depends(get_email_sender),
):
    """Create a local account and email a verification code. No session yet."""
    user = auth_service.register(db, sender, request.name, request.email, request.password)
    return RegisterResponse(
        message="Registration successful. Please verify the code sent to your email.",
        email=user.email,
        user_id=user.id,
    )

@router.post("/verify-otp")
def verify_otp(
    request: VerifyOTPRequest,
    response: Response,
    db: Session = Depends(get_db),
    transport: TokenTransport = Depends(get_token_transport),
):
    user, token = auth_service.verify_otp(db, request.user_id, request.otp)
    transport.attach(response, token)
    return session_body("Email verified successfully", user, token, transport)

@router.post("/resend-otp")
def resend_otp(
    request: ResendOTPRequest,
    db: Session = Depends(get_db),
    sender: EmailSender = Depends(get_email_sender),
):
    user = auth_service.resend_otp(db, sender, request.user_id)
    return {"message": "A new verification code has been sent", "email": user.email}

@router.post("/login")
def login(
    request: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    transport: TokenTransport = Depends(get_token_transport),
):
    user, token = auth_service.login_local(db, request.email, request.password)
    transport.attach(response, token)
    return session_body("Login successful", user, token, transport)

@router.post("/logout")
def logout(response: Response, transport: TokenTransport = Depends(get_token_transport)):
    # Tokens are not revoked server-side; they stay valid until they expire
    transport.clear(response)
    return {"message": "Logged out successfully"}

@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return {"user": serialize_user(current_user)}

@router.get("/google")
def google_login(client: GoogleOAuthClient = Depends(get_oauth_client)):
    state = secrets.token_urlsafe(16)
    response = RedirectResponse(url=client.authorization_url(state))
    response.set_cookie(
        key=OAUTH_STATE_COOKIE,
        value=state,
        max_age=600,
        httponly=True,
        secure=get_settings().COOKIE_SECURE,
        samesite="lax",
        path="/",
    )
    return response

@router.get("/google/callback")
def google_callback(
    request: Request,
    code: str = "",
    state: str = "",
    error: str = "",
    db: Session = Depends(get_db),
    client: GoogleOAuthClient = Depends(get_oauth_client),
    transport: TokenTransport = Depends(get_token_transport),
):
    expected_state = request.cookies.get(OAUTH_STATE_COOKIE)
    if not expected_state or not secrets.compare_digest(state.encode(), expected_state.encode()):
        raise ValidationFailed(["Invalid OAuth state"])

    frontend_url = get_settings().FRONTEND_URL
    if error:
        # The user declined or Google refused; send the browser back without a session
        logger.info(f"Google login was not completed: {error}")
        response = RedirectResponse(url=f"{frontend_url}?{urlencode({'oauth_error': error})}")
        response.delete_cookie(OAUTH_STATE_COOKIE, path="/")
        return response

    user, token = auth_service.login_google(db, client, code)

    response = RedirectResponse(url=transport.redirect_target(frontend_url, token))
    response.delete_cookie(OAUTH_STATE_COOKIE, path="/")
    transport.attach(response, token)
    return response

@router.post("/forgot-password")
def forgot_password(
    request: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    sender: EmailSender = Depends(get_email_sender),
):
    auth_service.forgot_password(db, sender, request.email)
    return {"message": RESET_MESSAGE}

@router.post("/verify-reset-otp")
def verify_reset_otp(request: VerifyResetOTPRequest, db: Session = Depends(get_db)):
    auth_service.verify_reset_otp(db, request.email, request.otp)
    return {"message": "OTP verified successfully"}

@router.post("/reset-password")
def reset_password(request: ResetPasswordRequest, db: Session = Depends(get_db)):
    auth_service.reset_password(
        db,
        request.email,
        request.otp,
        request.new_password,
        request.confirm_password,
    )
    return {"message": "Password reset successfully"}
