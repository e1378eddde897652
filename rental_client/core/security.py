from collections.abc import Callable, Generator

import httpx
from jose import JWTError, jwt

TokenProvider = Callable[[], str | None]


def static_token(token: str | None) -> TokenProvider:
    def provide() -> str | None:
        return token or None

    return provide


class BearerAuth(httpx.Auth):
    """Attach the current access token to every outgoing request.

    The provider is consulted per request so a token refreshed by the
    auth collaborator is picked up without rebuilding the client.
    """

    def __init__(self, token_provider: TokenProvider) -> None:
        self._token_provider = token_provider

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        token = self._token_provider()
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        yield request


def current_user_id(token: str | None) -> str | None:
    # The client holds no signing key, so the claims are read unverified.
    if not token:
        return None
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return None

    subject = claims.get("sub")
    if subject is None or subject == "":
        return None
    return str(subject)
