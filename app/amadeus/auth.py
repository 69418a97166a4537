import time
from typing import Callable, Optional

import httpx
from pydantic import BaseModel

from app.errors import AuthError, TransientProviderError
from app.infrastructure.resilience import ResilientCaller
from app.obs.logger import log_event

TOKEN_PATH = "/v1/security/oauth2/token"


class Credential(BaseModel):
    value: str
    expires_at: float  # epoch seconds
    host: str


class TokenManager:
    """Acquire and cache an Amadeus client-credentials access token.

    The cache lives on the instance; construct one per search invocation.
    """

    def __init__(
        self,
        caller: ResilientCaller,
        host: str,
        client_id: Optional[str],
        client_secret: Optional[str],
        clock: Callable[[], float] = time.time,
        safety_margin_s: int = 30,
        default_ttl_s: int = 1700,
    ):
        self.caller = caller
        self.host = host
        self.client_id = client_id or ""
        self.client_secret = client_secret or ""
        self.clock = clock
        self.safety_margin_s = safety_margin_s
        self.default_ttl_s = default_ttl_s
        self._credential: Optional[Credential] = None
        self.exchanges = 0

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def require_credentials(self) -> None:
        if not self.has_credentials:
            raise AuthError("Missing Amadeus credentials (AMADEUS_CLIENT_ID/AMADEUS_CLIENT_SECRET)")

    def _is_valid(self, cred: Optional[Credential]) -> bool:
        return cred is not None and self.clock() < cred.expires_at - self.safety_margin_s

    def invalidate(self) -> None:
        self._credential = None

    async def acquire(self) -> Credential:
        if self._is_valid(self._credential):
            return self._credential

        self.require_credentials()

        request = httpx.Request(
            "POST",
            f"{self.host}{TOKEN_PATH}",
            data={
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
            headers={"Accept": "application/json"},
        )
        now = self.clock()
        self.exchanges += 1
        try:
            r = await self.caller.execute(request)
        except TransientProviderError as e:
            raise AuthError(f"Amadeus token exchange failed: {e}") from e

        if not r.is_success:
            raise AuthError(f"Amadeus token error: {r.status_code} {r.text[:200]}")

        j = r.json()
        token = j.get("access_token")
        if not token:
            raise AuthError("Amadeus token response has no access_token")
        ttl = j.get("expires_in") or self.default_ttl_s
        self._credential = Credential(value=token, expires_at=now + float(ttl), host=self.host)
        log_event("token_refreshed", expires_in=ttl, access_token=token)
        return self._credential
