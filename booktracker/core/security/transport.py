from typing import Optional

from fastapi import Response
from fastapi.security import APIKeyCookie, HTTPAuthorizationCredentials, HTTPBearer

from booktracker.core.config.settings import Settings, get_settings

# Both schemes are resolved on every protected route and show up in the API docs;
# the configured transport decides which one carries the session
bearer_scheme = HTTPBearer(auto_error=False, scheme_name="bearerAuth")
cookie_scheme = APIKeyCookie(
    name=get_settings().SESSION_COOKIE_NAME,
    auto_error=False,
    scheme_name="cookieAuth",
)


class TokenTransport:
    """Carries a session token between the API and its clients."""

    def attach(self, response: Response, token: str) -> None:
        raise NotImplementedError

    def clear(self, response: Response) -> None:
        raise NotImplementedError

    def extract(
        self,
        cookie_token: Optional[str],
        credentials: Optional[HTTPAuthorizationCredentials],
    ) -> Optional[str]:
        """Pick this transport's token out of what the security schemes found."""
        raise NotImplementedError

    def body(self, token: str) -> dict:
        """Extra fields merged into the JSON body of a successful login."""
        return {}

    def redirect_target(self, url: str, token: str) -> str:
        """Where a browser lands after a redirect-based login."""
        return url


class CookieTransport(TokenTransport):
    def __init__(self, settings: Settings):
        self.cookie_name = settings.SESSION_COOKIE_NAME
        self.max_age = settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
        self.secure = settings.COOKIE_SECURE
        self.samesite = settings.COOKIE_SAMESITE

    def attach(self, response: Response, token: str) -> None:
        response.set_cookie(
            key=self.cookie_name,
            value=token,
            max_age=self.max_age,
            httponly=True,
            secure=self.secure,
            samesite=self.samesite,
            path="/",
        )

    def clear(self, response: Response) -> None:
        response.delete_cookie(
            key=self.cookie_name,
            path="/",
            httponly=True,
            secure=self.secure,
            samesite=self.samesite,
        )

    def extract(self, cookie_token, credentials):
        return cookie_token or None


class BearerTransport(TokenTransport):
    scheme = "bearer"

    def attach(self, response: Response, token: str) -> None:
        pass

    def clear(self, response: Response) -> None:
        pass

    def extract(self, cookie_token, credentials):
        if credentials is None:
            return None
        return credentials.credentials

    def body(self, token: str) -> dict:
        return {"token": token, "token_type": self.scheme}

    def redirect_target(self, url: str, token: str) -> str:
        # Fragments never reach the server logs
        return f"{url}#token={token}"


def get_token_transport() -> TokenTransport:
    settings = get_settings()
    if settings.TOKEN_TRANSPORT.lower() == "bearer":
        return BearerTransport()
    return CookieTransport(settings)
