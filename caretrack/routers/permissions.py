"""Patient-controlled caretaker permission endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from caretrack.core.deps import get_current_principal, get_db, require_csrf_header
from caretrack.core.exceptions import ConflictError
from caretrack.core.structured_logging import build_log_context
from caretrack.schemas.assignment import (
    AssignmentRead,
    CapabilityUpdate,
    CapabilityUpdateResponse,
)
from caretrack.schemas.auth import Principal
from caretrack.services import assignment_service, permission_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/permissions", tags=["permissions"])


@router.get("", response_model=list[AssignmentRead])
async def list_permissions(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """The calling patient's active assignments with their flags."""
    assignments = assignment_service.get_patient_assignments(db, principal)
    return [assignment_service.to_read(a) for a in assignments]


@router.patch(
    "/{assignment_id}",
    response_model=CapabilityUpdateResponse,
    dependencies=[Depends(require_csrf_header)],
)
async def update_permission(
    assignment_id: UUID,
    body: CapabilityUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Set one capability flag. Only the owning patient may call this."""
    assignment, change = permission_service.set_capability(
        db, principal, assignment_id, body.capability, body.enabled
    )
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "Capability change not confirmed; applying compensation",
            extra=build_log_context(user_id=principal.user_id, assignment_id=assignment_id),
        )
        try:
            permission_service.revert_capability(db, change)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception(
                "Capability compensation failed",
                extra=build_log_context(user_id=principal.user_id, assignment_id=assignment_id),
            )
        raise ConflictError("Permission change was not saved. Please try again.")

    return CapabilityUpdateResponse(
        assignment=assignment_service.to_read(assignment_service.get_assignment(db, assignment.id)),
        capability=change.capability,
        previous=change.previous,
        enabled=change.requested,
    )
