"""FastAPI dependencies for authentication, authorization, and database access."""

from typing import Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from caretrack.core.exceptions import NotAuthenticatedError, NotAuthorizedError
from caretrack.core.security import decode_session_token
from caretrack.db.enums import Role
from caretrack.db.models import UserAccount
from caretrack.db.session import SessionLocal
from caretrack.schemas.auth import Principal, TokenPayload
from caretrack.services import permission_service

# Cookie and header names
COOKIE_NAME = "caretrack_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _read_token(request: Request) -> str | None:
    token = request.cookies.get(COOKIE_NAME)
    if token:
        return token
    auth_header = request.headers.get("Authorization", "")
    scheme, _, credentials = auth_header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


def get_current_principal(
    request: Request,
    db: Session = Depends(get_db),
) -> Principal:
    """
    Resolve the calling principal from the session cookie or bearer token.

    Raises:
        NotAuthenticatedError: missing/invalid token or unknown account
        NotAuthorizedError: account carries an unknown role
    """
    token = _read_token(request)
    if not token:
        raise NotAuthenticatedError("Not authenticated")

    try:
        payload = TokenPayload.model_validate(decode_session_token(token))
    except Exception:
        raise NotAuthenticatedError("Invalid session")

    account = db.query(UserAccount).filter(UserAccount.id == payload.sub).first()
    if not account:
        raise NotAuthenticatedError("User not found")

    # Validate role is a known enum value - 403 not 500
    if not Role.has_value(account.role):
        raise NotAuthorizedError(f"Unknown role '{account.role}'. Contact administrator.")

    return Principal(
        user_id=account.id,
        role=Role(account.role),
        email=account.email,
        full_name=account.full_name,
    )


def require_roles(allowed_roles: list[Role]):
    """
    Dependency factory for role-based authorization.

    Usage:
        @router.get("/stats", dependencies=[Depends(require_roles([Role.ADMIN]))])
    """
    def dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        permission_service.require_any_role(principal, allowed_roles)
        return principal
    return dependency


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on mutations.

    Apply to state-changing endpoints (POST, PUT, PATCH, DELETE).
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise NotAuthorizedError(
            f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'"
        )
