"""Account endpoints — register and login, both returning a bearer token."""

from __future__ import annotations

import logging

from fastapi import APIRouter

from errors.exceptions import AuthError
from models.user import AuthResponse, LoginRequest, RegisterRequest, User
from services.auth import create_token, hash_password, verify_password
from services.user_store import get_user_store, normalize_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse)
async def register(req: RegisterRequest):
    user = User(
        name=req.name.strip(),
        email=normalize_email(req.email),
        password_hash=hash_password(req.password),
        knowledge_level=req.knowledge_level,
    )
    if not await get_user_store().create(user):
        raise AuthError("User already exists", status_code=400)
    logger.info("Registered user %s", user.id)
    return AuthResponse(token=create_token(user), user=user.public())


@router.post("/login", response_model=AuthResponse)
async def login(req: LoginRequest):
    user = await get_user_store().get_by_email(req.email)
    if user is None or not verify_password(req.password, user.password_hash):
        raise AuthError("Invalid credentials", status_code=401)
    return AuthResponse(token=create_token(user), user=user.public())
