"""Bearer token verification against the identity provider."""
import logging
from dataclasses import dataclass
from typing import Optional

import requests

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: Optional[str] = None


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


class AuthResolver:
    """
    Resolves a bearer token to a user identity.

    Never raises: a missing, malformed or rejected token, and any failure
    talking to the identity provider, all resolve to ``None`` (anonymous).
    """

    def __init__(
        self,
        auth_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.auth_url = (auth_url or "").rstrip("/")
        self.api_key = api_key or ""
        self.timeout = timeout
        self.session = session or requests.Session()

    def resolve(self, authorization: Optional[str]) -> Optional[Identity]:
        token = extract_bearer_token(authorization)
        if token is None:
            return None

        if not self.auth_url:
            logger.warning("AUTH_URL not configured; treating request as anonymous")
            return None

        try:
            response = self.session.get(
                f"{self.auth_url}/auth/v1/user",
                headers={"Authorization": f"Bearer {token}", "apikey": self.api_key},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("Identity provider unreachable: %s", type(e).__name__)
            return None

        if response.status_code != 200:
            logger.warning("Auth error: identity provider returned %s", response.status_code)
            return None

        try:
            data = response.json()
        except ValueError:
            logger.error("Auth error: identity provider returned a non-JSON body")
            return None

        user_id = data.get("id") if isinstance(data, dict) else None
        if not user_id:
            logger.warning("Auth error: identity response has no user id")
            return None

        return Identity(user_id=str(user_id), email=data.get("email"))
