"""Shared FastAPI dependencies: DB session, clock and auth context."""

from collections.abc import Callable, Generator
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from cleaning_market.booking.clock import Clock

bearer = HTTPBearer(auto_error=False)


@dataclass
class Principal:
    id: int
    role: str
    username: str = ""


def get_db(request: Request) -> Generator[Session, None, None]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_current_principal(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> Principal:
    """Decode the bearer JWT into a Principal (401 when missing or invalid)."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, no token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    auth = request.app.state.config.auth
    try:
        payload = jwt.decode(credentials.credentials, auth.jwt_secret, algorithms=[auth.jwt_algorithm])
        return Principal(id=int(payload["sub"]), role=payload["role"], username=payload.get("username", ""))
    except (JWTError, KeyError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, token failed",
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_role(role: str) -> Callable[..., Principal]:
    """Dependency factory: the authenticated principal must have ``role``."""

    def _check(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role != role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden, insufficient permissions",
            )
        return principal

    return _check
