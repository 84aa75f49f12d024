from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ats.app.settings import Settings

bearer_scheme = HTTPBearer(auto_error=False)

RECRUITING_ROLES = ("recruiter", "admin")
FUNCTION_ROLES = ("service", "recruiter", "admin")
ALL_ROLES = frozenset({"admin", "recruiter", "service"})


@dataclass(frozen=True)
class AuthContext:
    user_id: str
    roles: frozenset[str] = field(default_factory=frozenset)

    def has_any(self, roles: Iterable[str]) -> bool:
        return not self.roles.isdisjoint(roles)


class TokenError(Exception):
    def __init__(self, message: str, status_code: int = status.HTTP_401_UNAUTHORIZED) -> None:
        super().__init__(message)
        self.status_code = status_code


def _parse_roles(raw: object) -> frozenset[str]:
    if isinstance(raw, str):
        raw = raw.split(",")
    if not isinstance(raw, list):
        raise TokenError("token roles must be a list")
    return frozenset(str(role).strip() for role in raw if str(role).strip())


def decode_token(token: str, *, secret: str, algorithm: str) -> AuthContext:
    """Validate a bearer token and return who is calling with which roles."""
    try:
        claims = jwt.decode(token, secret, algorithms=[algorithm])
    except jwt.ExpiredSignatureError as exc:
        raise TokenError("auth token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise TokenError("invalid auth token") from exc

    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        raise TokenError("token missing subject")
    roles = _parse_roles(claims.get("roles", []))
    if not roles:
        raise TokenError("token has no roles", status.HTTP_403_FORBIDDEN)
    return AuthContext(user_id=subject.strip(), roles=roles)


def get_auth_context(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthContext:
    settings: Settings = request.app.state.settings
    if not settings.auth_enabled:
        return AuthContext(user_id="dev-local", roles=ALL_ROLES)

    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return decode_token(
            credentials.credentials,
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
    except TokenError as exc:
        raise HTTPException(
            status_code=exc.status_code,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


def require_roles(*allowed: str) -> Callable[..., AuthContext]:
    allowed_roles = frozenset(role.strip() for role in allowed if role.strip())

    def dependency(context: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if allowed_roles and not context.has_any(allowed_roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"requires one of roles: {', '.join(sorted(allowed_roles))}",
            )
        return context

    return dependency
