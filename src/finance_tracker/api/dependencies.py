from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, Request, Response
from fastapi.routing import APIRoute

from finance_tracker.errors import AuthenticationError, FinanceTrackerError, UpstreamUnavailable
from finance_tracker.integration.identity import IdentityVerifier, InvalidCredential, ServiceUnavailable
from finance_tracker.integration.store import RecordStore
from finance_tracker.logger import get_logger

logger = get_logger(__name__)

BEARER_SCHEME = "bearer"


def get_store(request: Request) -> RecordStore:
    store = getattr(request.app.state, "store", None)
    if not store:
        raise FinanceTrackerError("Service not initialized")
    return store


def get_verifier(request: Request) -> IdentityVerifier:
    verifier = getattr(request.app.state, "verifier", None)
    if not verifier:
        raise FinanceTrackerError("Service not initialized")
    return verifier


def extract_bearer_token(header: str | None) -> str | None:
    if not header:
        return None
    scheme, _, token = header.strip().partition(" ")
    if scheme.lower() != BEARER_SCHEME:
        return None
    token = token.strip()
    return token or None


async def verify_credential(verifier: IdentityVerifier, token: str) -> str:
    try:
        return await verifier.verify(token)
    except InvalidCredential as exc:
        raise AuthenticationError("Invalid token", error=str(exc)) from exc
    except ServiceUnavailable as exc:
        raise UpstreamUnavailable("Identity provider unavailable", error=str(exc)) from exc


async def authenticate(request: Request) -> str:
    """
    Resolve the caller's identity from ``Authorization: Bearer <token>``.

    The identity is bound to ``request.state`` so later calls for the same
    request reuse it instead of asking the provider again.
    """
    identity = getattr(request.state, "identity", None)
    if identity is not None:
        return identity

    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        logger.debug("[AUTH] %s %s rejected: missing bearer token.", request.method, request.url.path)
        raise AuthenticationError("Authentication required")

    identity = await verify_credential(get_verifier(request), token)
    request.state.identity = identity
    return identity


class AuthenticatedRoute(APIRoute):
    """Route that authenticates the caller before the request body is read or validated."""

    def get_route_handler(self) -> Callable[[Request], Awaitable[Response]]:
        handler = super().get_route_handler()

        async def authenticated_handler(request: Request) -> Response:
            await authenticate(request)
            return await handler(request)

        return authenticated_handler


async def require_identity(request: Request) -> str:
    return await authenticate(request)


Identity = Annotated[str, Depends(require_identity)]
Store = Annotated[RecordStore, Depends(get_store)]
Verifier = Annotated[IdentityVerifier, Depends(get_verifier)]
