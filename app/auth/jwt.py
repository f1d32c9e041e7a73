"""JWT access/refresh token creation and validation for back-office users."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Literal

from jose import ExpiredSignatureError, JWTError, jwt

from app.config import get_settings

TokenType = Literal["access", "refresh"]
TOKEN_ISSUER = "trayline"


@dataclass(slots=True)
class AuthError(Exception):
	"""Authentication failure carrying the error code returned to clients."""

	code: str
	detail: str
	status_code: int = 401


def _encode(claims: dict[str, Any]) -> str:
	settings = get_settings()
	return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def issue_token(subject: str, token_type: TokenType, ttl_minutes: int) -> str:
	issued = datetime.now(UTC)
	return _encode(
		{
			"iss": TOKEN_ISSUER,
			"sub": subject,
			"typ": token_type,
			"iat": int(issued.timestamp()),
			"exp": int((issued + timedelta(minutes=ttl_minutes)).timestamp()),
		}
	)


def create_access_token(subject: str, expires_minutes: int | None = None) -> str:
	return issue_token(
		subject,
		"access",
		expires_minutes or get_settings().jwt_access_token_expire_minutes,
	)


def create_refresh_token(subject: str, expires_minutes: int | None = None) -> str:
	return issue_token(
		subject,
		"refresh",
		expires_minutes or get_settings().jwt_refresh_token_expire_minutes,
	)


def decode_token(token: str, expected_type: TokenType | None = None) -> dict[str, Any]:
	"""Verify signature, expiry, issuer and token type; return the claims."""
	settings = get_settings()
	try:
		claims = jwt.decode(
			token,
			settings.jwt_secret,
			algorithms=[settings.jwt_algorithm],
			issuer=TOKEN_ISSUER,
		)
	except ExpiredSignatureError as exc:
		raise AuthError(code="token_expired", detail="Authentication token has expired") from exc
	except JWTError as exc:
		raise AuthError(code="token_invalid", detail="Invalid authentication token") from exc

	subject = claims.get("sub")
	if not isinstance(subject, str) or not subject:
		raise AuthError(code="token_invalid", detail="Token subject is missing")

	if expected_type is not None and claims.get("typ") != expected_type:
		raise AuthError(code="token_type_invalid", detail=f"Expected {expected_type} token")

	return claims
