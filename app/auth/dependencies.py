"""Authentication dependencies: get_current_user, require_role."""

from __future__ import annotations

import uuid
from typing import Callable

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.jwt import AuthError, create_access_token, create_refresh_token, decode_token
from app.database import get_db
from app.models.enums import UserRoleEnum
from app.models.users import User

bearer_scheme = HTTPBearer(auto_error=False)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

STAFF_ROLES: tuple[UserRoleEnum, ...] = (
	UserRoleEnum.admin,
	UserRoleEnum.manager,
	UserRoleEnum.employee,
)


def _raise_auth(exc: AuthError) -> HTTPException:
	return HTTPException(
		status_code=exc.status_code,
		detail={"error": exc.code, "message": exc.detail},
	)


def hash_password(plaintext: str) -> str:
	return pwd_context.hash(plaintext)


def verify_password(plaintext: str, hashed: str) -> bool:
	try:
		return pwd_context.verify(plaintext, hashed)
	except ValueError:
		return False


async def authenticate_user(db: AsyncSession, email: str, password: str) -> dict[str, str]:
	"""Check credentials and issue an access/refresh token pair."""
	row = await db.execute(select(User).where(User.email == email.strip().lower()))
	user = row.scalar_one_or_none()
	if user is None or not user.is_active or not verify_password(password, user.hashed_password):
		raise _raise_auth(AuthError(code="credentials_invalid", detail="Invalid email or password"))
	subject = str(user.id)
	return {
		"access_token": create_access_token(subject),
		"refresh_token": create_refresh_token(subject),
		"token_type": "bearer",
	}


async def refresh_access_token(db: AsyncSession, refresh_token: str) -> dict[str, str]:
	try:
		payload = decode_token(refresh_token, expected_type="refresh")
	except AuthError as exc:
		raise _raise_auth(exc) from exc
	user = await _load_active_user(db, payload["sub"])
	subject = str(user.id)
	return {
		"access_token": create_access_token(subject),
		"refresh_token": create_refresh_token(subject),
		"token_type": "bearer",
	}


async def _load_active_user(db: AsyncSession, subject: str) -> User:
	try:
		user_id = uuid.UUID(str(subject))
	except ValueError as exc:
		raise _raise_auth(AuthError(code="token_invalid", detail="Token subject is invalid")) from exc

	row = await db.execute(select(User).where(User.id == user_id))
	user = row.scalar_one_or_none()
	if user is None or not user.is_active:
		raise _raise_auth(AuthError(code="user_invalid", detail="User is not active"))
	return user


async def _resolve_user_from_token(
	db: AsyncSession,
	credentials: HTTPAuthorizationCredentials | None,
) -> User:
	if credentials is None or credentials.scheme.lower() != "bearer":
		raise _raise_auth(AuthError(code="auth_required", detail="Bearer token is required"))

	try:
		payload = decode_token(credentials.credentials, expected_type="access")
	except AuthError as exc:
		raise _raise_auth(exc) from exc
	return await _load_active_user(db, payload["sub"])


async def get_current_user(
	request: Request,
	db: AsyncSession = Depends(get_db),
) -> User:
	credentials = await bearer_scheme(request)
	return await _resolve_user_from_token(db, credentials)


def require_role(*allowed: UserRoleEnum) -> Callable[[User], User]:
	allowed_set = set(allowed)

	async def dependency(current_user: User = Depends(get_current_user)) -> User:
		if current_user.role not in allowed_set:
			raise HTTPException(
				status_code=status.HTTP_403_FORBIDDEN,
				detail={"error": "forbidden", "message": "Insufficient role"},
			)
		return current_user

	return dependency


require_staff = require_role(*STAFF_ROLES)
require_manager = require_role(UserRoleEnum.admin, UserRoleEnum.manager)
