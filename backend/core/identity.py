"""
Bearer credential verification against the external identity service.

The service's account lookup endpoint turns an ID token into an account record;
the first account found gives the principal. Verified principals are cached in
memory for a short time so repeated calls with the same token skip the round trip.
"""

import hashlib
import logging
from dataclasses import asdict, dataclass
from typing import Optional

import httpx
from aiocache import Cache
from aiocache.serializers import JsonSerializer

from .config import Settings
from .errors import AuthenticationError

logger = logging.getLogger(__name__)


@dataclass
class Principal:
    uid: str
    phone_number: Optional[str] = None
    name: Optional[str] = None


class IdentityVerifier:
    def __init__(self, app_settings: Settings):
        self.base_url = app_settings.IDENTITY_PROVIDER_URL.rstrip("/")
        self.api_key = app_settings.IDENTITY_API_KEY
        self.timeout = app_settings.IDENTITY_TIMEOUT_SECONDS
        self.ttl = app_settings.IDENTITY_CACHE_TTL_SECONDS
        self.cache = Cache(Cache.MEMORY, serializer=JsonSerializer(), namespace="principal")

    @staticmethod
    def _cache_key(token: str) -> str:
        return hashlib.sha256(token.encode()).hexdigest()

    async def verify(self, token: str) -> Principal:
        key = self._cache_key(token)
        cached = await self.cache.get(key)
        if cached:
            return Principal(**cached)

        principal = await self._lookup(token)
        await self.cache.set(key, asdict(principal), ttl=self.ttl)
        return principal

    async def _lookup(self, token: str) -> Principal:
        url = f"{self.base_url}/accounts:lookup"
        params = {"key": self.api_key} if self.api_key else None
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, params=params, json={"idToken": token})
        except httpx.HTTPError as e:
            logger.warning(f"Identity service unreachable: {e}")
            raise AuthenticationError("Invalid or expired token")

        if response.status_code != 200:
            logger.info(f"Identity service rejected token (status {response.status_code})")
            raise AuthenticationError("Invalid or expired token")

        try:
            body = response.json()
        except ValueError:
            body = None
        users = body.get("users") if isinstance(body, dict) else None
        if not isinstance(users, list) or not users or not isinstance(users[0], dict) or not users[0].get("localId"):
            raise AuthenticationError("Invalid or expired token")

        account = users[0]
        return Principal(
            uid=account["localId"],
            phone_number=account.get("phoneNumber"),
            name=account.get("displayName"),
        )
