# storefront/auth.py
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .config import ACCESS_TOKEN_EXPIRE_DAYS, IS_PRODUCTION, TOKEN_COOKIE
from .database import get_session
from .errors import DuplicateEmail, Forbidden, InvalidCredentials, NotFound, Unauthorized
from .models import User
from .pagination import PageParams, pagination
from .schemas import AuthOut, ProfileUpdate, UserCreate, UserLogin, UserOut, UsersPage
from .security import create_access_token, decode_access_token, get_password_hash, verify_password

logger = logging.getLogger("storefront.auth")

router = APIRouter(prefix="/api/auth", tags=["auth"])


@dataclass(frozen=True)
class Identity:
    """Authenticated caller, resolved once per request and passed to handlers."""
    id: int
    name: str
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @classmethod
    def from_user(cls, user: User) -> "Identity":
        return cls(id=user.id, name=user.name, email=user.email, role=user.role)


def token_from_request(request: Request) -> Optional[str]:
    """Bearer token from the Authorization header, falling back to the session cookie."""
    auth = request.headers.get("Authorization")
    if auth and auth.lower().startswith("bearer "):
        token = auth.split(None, 1)[1].strip()
        if token:
            return token
    return request.cookies.get(TOKEN_COOKIE) or None


async def protect(request: Request, session: AsyncSession = Depends(get_session)) -> Identity:
    token = token_from_request(request)
    if not token:
        raise Unauthorized("Not authorized, no token")
    user_id = decode_access_token(token)
    if user_id is None:
        raise Unauthorized("Not authorized, token invalid")
    user = await session.get(User, user_id)
    if user is None:
        raise Unauthorized("Not authorized, user not found")
    return Identity.from_user(user)


async def require_admin(identity: Identity = Depends(protect)) -> Identity:
    if not identity.is_admin:
        raise Forbidden()
    return identity


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        max_age=ACCESS_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        path="/",
        httponly=True,
        secure=IS_PRODUCTION,
        samesite="none" if IS_PRODUCTION else "strict",
    )


def auth_payload(user: User, token: str) -> AuthOut:
    return AuthOut(**UserOut.model_validate(user).model_dump(), token=token)


# ✅ Регистрация пользователя
@router.post("/register", response_model=AuthOut, status_code=status.HTTP_201_CREATED)
async def register_user(payload: UserCreate, response: Response, session: AsyncSession = Depends(get_session)):
    result = await session.execute(select(User).where(User.email == payload.email))
    if result.scalar_one_or_none():
        raise DuplicateEmail()

    user = User(
        name=payload.name,
        email=payload.email,
        password_hash=get_password_hash(payload.password),
        role="user",
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError:
        # Unique constraint: concurrent registration with the same email
        await session.rollback()
        raise DuplicateEmail()
    await session.refresh(user)

    token = create_access_token(user.id)
    set_session_cookie(response, token)
    logger.info("registered user id=%s", user.id)
    return auth_payload(user, token)


# ✅ Логин (через JSON)
@router.post("/login", response_model=AuthOut)
async def login_user(payload: UserLogin, response: Response, session: AsyncSession = Depends(get_session)):
    result = await session.execute(select(User).where(User.email == payload.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(payload.password, user.password_hash):
        raise InvalidCredentials()

    token = create_access_token(user.id)
    set_session_cookie(response, token)
    return auth_payload(user, token)


@router.post("/logout")
async def logout_user(response: Response):
    response.delete_cookie(TOKEN_COOKIE, path="/", httponly=True)
    return {"message": "Logged out successfully"}


@router.get("/profile", response_model=UserOut)
async def get_profile(identity: Identity = Depends(protect), session: AsyncSession = Depends(get_session)):
    user = await session.get(User, identity.id)
    if user is None:
        raise NotFound("User not found")
    return user


@router.put("/profile", response_model=UserOut)
async def update_profile(
    payload: ProfileUpdate,
    identity: Identity = Depends(protect),
    session: AsyncSession = Depends(get_session),
):
    user = await session.get(User, identity.id)
    if user is None:
        raise NotFound("User not found")

    if payload.email and payload.email != user.email:
        taken = await session.execute(select(User.id).where(User.email == payload.email))
        if taken.scalar_one_or_none() is not None:
            raise DuplicateEmail("Email already in use")
        user.email = payload.email
    if payload.name:
        user.name = payload.name
    if payload.phone:
        user.phone = payload.phone
    if payload.address is not None:
        user.address = payload.address.model_dump()
    if payload.password:
        user.password_hash = get_password_hash(payload.password)

    await session.commit()
    await session.refresh(user)
    return user


# 👥 Админ: пользователи
@router.get("/users", response_model=UsersPage)
async def list_users(
    params: PageParams = Depends(pagination(20)),
    _: Identity = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    result = await session.execute(
        select(User)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset(params.offset)
        .limit(params.limit)
    )
    total = (await session.execute(select(func.count()).select_from(User))).scalar_one()
    return {
        "users": result.scalars().all(),
        "page": params.page,
        "pages": params.pages(total),
        "total": total,
    }


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: int,
    admin: Identity = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    user = await session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")

    await session.delete(user)
    await session.commit()
    logger.info("admin %s removed user %s", admin.id, user_id)
    return {"message": "User removed"}
