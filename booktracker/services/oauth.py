import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

import requests

from booktracker.core.config.settings import Settings, get_settings
from booktracker.core.exceptions import UpstreamFailure

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"


@dataclass
class GoogleProfile:
    email: str
    name: str
    picture: Optional[str]
    provider_id: str


class GoogleOAuthClient:
    """Authorization-code flow against Google's OAuth 2.0 endpoints."""

    def __init__(self, settings: Settings, session: requests.Session = None):
        self.client_id = settings.GOOGLE_CLIENT_ID
        self.client_secret = settings.GOOGLE_CLIENT_SECRET
        self.redirect_uri = settings.GOOGLE_REDIRECT_URI
        self.timeout = settings.OAUTH_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def _require_configured(self) -> None:
        if not self.configured:
            raise UpstreamFailure("Google OAuth not configured")

    def authorization_url(self, state: str) -> str:
        self._require_configured()
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": "openid email profile",
            "access_type": "online",
            "include_granted_scopes": "true",
            "state": state,
            "prompt": "select_account",
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    def exchange_code(self, code: str) -> str:
        self._require_configured()
        try:
            response = self.session.post(
                GOOGLE_TOKEN_URL,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "code": code,
                    "grant_type": "authorization_code",
                    "redirect_uri": self.redirect_uri,
                },
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            token_json = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Google token exchange failed: {str(e)}")
            raise UpstreamFailure(f"Google token exchange failed: {str(e)}")

        access_token = token_json.get("access_token")
        if not access_token:
            raise UpstreamFailure("Google did not return an access token")
        return access_token

    def fetch_profile(self, access_token: str) -> GoogleProfile:
        try:
            response = self.session.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            info = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Google profile fetch failed: {str(e)}")
            raise UpstreamFailure(f"Google profile fetch failed: {str(e)}")

        email = info.get("email")
        provider_id = info.get("sub")
        if not email or not provider_id:
            raise UpstreamFailure("Google profile is missing email or id")

        return GoogleProfile(
            email=email,
            name=info.get("name") or email.split("@")[0],
            picture=info.get("picture"),
            provider_id=str(provider_id),
        )


def get_oauth_client() -> GoogleOAuthClient:
    return GoogleOAuthClient(get_settings())
