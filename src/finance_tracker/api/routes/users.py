from fastapi import APIRouter, Request, status

from finance_tracker.api.dependencies import Identity, Store, Verifier, authenticate, verify_credential
from finance_tracker.api.schemas import UserCreate, VerifyTokenRequest, VerifyTokenResponse
from finance_tracker.errors import AuthorizationError, NotFoundError, ValidationError
from finance_tracker.models import UserProfile
from finance_tracker.services.users import create_profile, find_profile_by_uid

router = APIRouter(tags=["users"])


@router.post("/users", response_model=UserProfile, status_code=status.HTTP_201_CREATED)
async def create_user(payload: UserCreate, request: Request, store: Store) -> UserProfile:
    # Linking a profile to an identity requires a token for that identity.
    if payload.uid is not None:
        identity = await authenticate(request)
        if identity != payload.uid:
            raise AuthorizationError("Not authorized to link this identity")
    return await create_profile(store, payload)


@router.post("/auth/verify-token", response_model=VerifyTokenResponse)
async def verify_token(payload: VerifyTokenRequest, verifier: Verifier) -> VerifyTokenResponse:
    if not payload.token:
        raise ValidationError("Token is required")
    uid = await verify_credential(verifier, payload.token)
    return VerifyTokenResponse(uid=uid)


@router.get("/users/profile", response_model=UserProfile)
async def get_profile(identity: Identity, store: Store) -> UserProfile:
    profile = await find_profile_by_uid(store, identity)
    if profile is None:
        raise NotFoundError("User not found")
    return profile
