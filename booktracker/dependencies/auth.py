from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from booktracker.core.exceptions import NotFound, Unauthenticated
from booktracker.core.security.auth import decode_access_token
from booktracker.core.security.transport import (
    TokenTransport,
    bearer_scheme,
    cookie_scheme,
    get_token_transport,
)
from booktracker.db.session import get_db
from booktracker.models.user import User


def get_current_user_id(
    request: Request,
    cookie_token: Optional[str] = Depends(cookie_scheme),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    transport: TokenTransport = Depends(get_token_transport),
) -> int:
    token = transport.extract(cookie_token, credentials)
    if not token:
        raise Unauthenticated()
    user_id = decode_access_token(token)
    request.state.user_id = user_id
    return user_id

def get_current_user(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFound("User not found")
    return user
