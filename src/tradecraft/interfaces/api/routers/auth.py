# src/tradecraft/interfaces/api/routers/auth.py
"""
Account endpoints. The session is a signed JWT in an httpOnly cookie whose
subject is the user's email.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from tradecraft.config import settings
from tradecraft.domain.entities import User
from tradecraft.domain.errors import DuplicateUserError, ValidationError
from tradecraft.domain.ports import SubscriptionStore
from tradecraft.interfaces.api.deps import get_current_user, get_store
from tradecraft.interfaces.api.schemas import Credentials, ProfileUpdate, PublicUser
from tradecraft.interfaces.api.security import auth

log = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth", tags=["Authentication"])

SESSION_MAX_AGE = 60 * 60 * 24 * 7  # 1 week


def _set_session(response: Response, email: str) -> None:
    response.set_cookie(
        auth.SESSION_COOKIE,
        auth.create_access_token(subject=email),
        httponly=True,
        secure=settings.ENV != "dev",
        samesite="lax",
        max_age=SESSION_MAX_AGE,
        path="/",
    )


def _require_credentials(creds: Credentials) -> None:
    if not creds.email or not creds.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email and password are required")


@router.post("/signup")
def signup(creds: Credentials, response: Response, store: SubscriptionStore = Depends(get_store)):
    _require_credentials(creds)
    try:
        user = store.create_user(
            email=creds.email,
            name=creds.name,
            hashed_password=auth.hash_password(creds.password),
        )
    except DuplicateUserError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")
    _set_session(response, user.email)
    log.info(f"New account signed up: {user.email}")
    return PublicUser.from_user(user).to_json()


@router.post("/login")
def login(creds: Credentials, response: Response, store: SubscriptionStore = Depends(get_store)):
    _require_credentials(creds)
    user = store.find_user_by_email(creds.email)

    if user is None:
        # Demo behaviour: first login creates the account.
        try:
            user = store.create_user(email=creds.email, hashed_password=auth.hash_password(creds.password))
        except DuplicateUserError:
            # Lost a race with a concurrent signup.
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")
    elif not user.hashed_password:
        # Accounts created by a billing webhook have no password until first login.
        user = store.set_password_hash(user.email, auth.hash_password(creds.password))
    elif not auth.verify_password(creds.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect email or password")

    _set_session(response, user.email)
    return PublicUser.from_user(user).to_json()


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(auth.SESSION_COOKIE, path="/")
    return {"success": True}


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return PublicUser.from_user(user).to_json()


@router.patch("/me")
def update_me(
    update: ProfileUpdate,
    user: User = Depends(get_current_user),
    store: SubscriptionStore = Depends(get_store),
):
    fields = update.model_dump(exclude_unset=True)
    try:
        updated = store.update_profile(user.email, **fields)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return PublicUser.from_user(updated).to_json()
