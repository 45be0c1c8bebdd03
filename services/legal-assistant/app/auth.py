from typing import Any

import structlog
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from structlog.contextvars import bind_contextvars

from app.config import settings
from app.schemas.chat import UserContext

bearer_scheme = HTTPBearer(auto_error=False)

logger = structlog.get_logger("auth")


def _default_user() -> UserContext:
    return UserContext(
        id="local-user",
        role="admin",
        tenant_id=settings.default_tenant_id,
        organization_id=settings.default_tenant_id,
        claims={"source": "auth_disabled"},
    )


def _decode_token(token: str) -> dict[str, Any]:
    if not settings.jwt_secret:
        logger.error("jwt_secret_missing")
        raise HTTPException(status_code=401, detail="Token inválido")
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise HTTPException(status_code=403, detail="Token inválido") from exc


def _user_from_claims(claims: dict[str, Any]) -> UserContext:
    tenant_id = claims.get("tenantId") or claims.get("organizationId")
    if not claims.get("id") or not tenant_id:
        raise HTTPException(status_code=403, detail="Token inválido")
    return UserContext(
        id=str(claims["id"]),
        role=claims.get("role", ""),
        tenant_id=str(tenant_id),
        organization_id=claims.get("organizationId"),
        claims=claims,
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> UserContext:
    if settings.auth_disabled:
        user = _default_user()
    elif not credentials:
        raise HTTPException(status_code=401, detail="Token de acceso requerido")
    else:
        user = _user_from_claims(_decode_token(credentials.credentials))
    bind_contextvars(user_id=user.id, tenant_id=user.tenant_id, role=user.role)
    return user
