"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel

from caretrack.db.enums import Role


class TokenPayload(BaseModel):
    """Decoded JWT payload structure."""
    sub: UUID  # user_id
    role: str


class Principal(BaseModel):
    """
    The acting caller for one request.

    Returned by the get_current_principal dependency and passed
    explicitly into every service call that needs authorization.
    """
    user_id: UUID
    role: Role  # Validated enum
    email: str
    full_name: str
