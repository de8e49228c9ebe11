"""Invitation-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator


class InvitationCreate(BaseModel):
    """
    Request schema for inviting a caretaker.

    Email is normalized to lowercase.
    """
    email: EmailStr

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower()


class InvitationRead(BaseModel):
    """Response schema for reading an invitation (token is never echoed)."""
    id: UUID
    email: str
    invited_by_user_id: UUID | None
    invited_by_role: str
    status: str
    created_at: datetime
    accepted_at: datetime | None

    model_config = {"from_attributes": True}


class InvitationCreateResponse(BaseModel):
    invitation: InvitationRead
    invite_link: str
    email_sent: bool
    warning: str | None = None


class InvitationValidation(BaseModel):
    email: str


class SignupComplete(BaseModel):
    token: str = Field(..., min_length=1)
    full_name: str = Field(..., min_length=1, max_length=255)
    phone: str | None = Field(None, max_length=50)


class AccountRead(BaseModel):
    id: UUID
    role: str
    full_name: str
    email: str
    phone: str | None

    model_config = {"from_attributes": True}
