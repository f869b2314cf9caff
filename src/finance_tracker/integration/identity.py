import asyncio

import httpx

from finance_tracker.logger import get_logger

logger = get_logger(__name__)


class InvalidCredential(Exception):
    """The credential is malformed, expired or rejected by the provider."""


class ServiceUnavailable(Exception):
    """The identity provider could not be reached; retrying may succeed."""


# Rejections caused by the service account or rate limits, not by the token.
PROVIDER_SIDE_STATUSES = frozenset({401, 403, 429})
PROVIDER_SIDE_MARKERS = ("API key", "API_KEY", "TOO_MANY_ATTEMPTS", "QUOTA_EXCEEDED")


def _provider_error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return f"HTTP {response.status_code}"


def _is_provider_side(status_code: int, message: str) -> bool:
    if status_code >= 500 or status_code in PROVIDER_SIDE_STATUSES:
        return True
    return any(marker in message for marker in PROVIDER_SIDE_MARKERS)


class IdentityVerifier:
    """Verifies bearer ID tokens against the identity provider's account lookup API."""

    def __init__(
        self,
        base_url: str | None,
        api_key: str | None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        self.base_url = (base_url or "").rstrip("/") or None
        self.api_key = api_key
        self.timeout = timeout
        self._client = client
        self._client_lock = asyncio.Lock()

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _get_client(self) -> httpx.AsyncClient:
        client = self._client
        if client is not None and not client.is_closed:
            return client

        async with self._client_lock:
            client = self._client
            if client is None or client.is_closed:
                client = httpx.AsyncClient()
                self._client = client
            return client

    async def verify(self, credential: str) -> str:
        """Return the stable subject identifier for ``credential``."""
        if not credential:
            raise InvalidCredential("Empty credential")
        if not self.configured:
            logger.error("[AUTH] Identity provider is not configured.")
            raise ServiceUnavailable("Identity provider is not configured")

        client = await self._get_client()
        try:
            response = await client.post(
                f"{self.base_url}/v1/accounts:lookup",
                params={"key": self.api_key},
                json={"idToken": credential},
                timeout=self.timeout,
            )
        except httpx.TransportError as exc:
            logger.error("[AUTH] Identity provider unreachable: %s", exc)
            raise ServiceUnavailable(str(exc) or exc.__class__.__name__) from exc

        if response.status_code >= 400:
            message = _provider_error_message(response)
            if _is_provider_side(response.status_code, message):
                logger.error("[AUTH] Identity provider error: %s", message)
                raise ServiceUnavailable(message)
            logger.info("[AUTH] Credential rejected: %s", message)
            raise InvalidCredential(message)

        try:
            payload = response.json()
        except ValueError as exc:
            logger.error("[AUTH] Identity provider answered with a non-JSON body.")
            raise ServiceUnavailable("Unreadable identity provider response") from exc
        if not isinstance(payload, dict):
            logger.error("[AUTH] Identity provider answered with an unexpected body.")
            raise ServiceUnavailable("Unexpected identity provider response")

        users = payload.get("users")
        first = users[0] if isinstance(users, list) and users else None
        uid = first.get("localId") if isinstance(first, dict) else None
        if not uid:
            logger.info("[AUTH] Credential did not resolve to an account.")
            raise InvalidCredential("USER_NOT_FOUND")
        return str(uid)
