"""Assignment registry endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from caretrack.core.deps import get_current_principal, get_db, require_csrf_header
from caretrack.schemas.assignment import (
    AssignmentCreate,
    AssignmentRead,
    AssignmentStatusUpdate,
)
from caretrack.schemas.auth import Principal
from caretrack.services import assignment_service

router = APIRouter(prefix="/assignments", tags=["assignments"])


@router.post(
    "",
    response_model=AssignmentRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
async def create_assignment(
    body: AssignmentCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Create an active assignment with all capability flags off (admin)."""
    assignment = assignment_service.create_assignment(
        db, principal, body.patient_id, body.caretaker_id, body.notes
    )
    db.commit()
    return assignment_service.to_read(assignment_service.get_assignment(db, assignment.id))


@router.get("", response_model=list[AssignmentRead])
async def list_assignments(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """All assignments, newest first (admin)."""
    return [assignment_service.to_read(a) for a in assignment_service.list_assignments(db, principal)]


@router.get("/mine", response_model=list[AssignmentRead])
async def list_my_assignments(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """The calling caretaker's active assignments."""
    assignments = assignment_service.list_caretaker_assignments(db, principal)
    return [assignment_service.to_read(a) for a in assignments]


@router.patch(
    "/{assignment_id}/status",
    response_model=AssignmentRead,
    dependencies=[Depends(require_csrf_header)],
)
async def set_assignment_status(
    assignment_id: UUID,
    body: AssignmentStatusUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    assignment = assignment_service.set_assignment_status(db, principal, assignment_id, body.status)
    db.commit()
    return assignment_service.to_read(assignment_service.get_assignment(db, assignment.id))


@router.delete(
    "/{assignment_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
async def delete_assignment(
    assignment_id: UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Permanently remove an assignment (admin)."""
    assignment_service.delete_assignment(db, principal, assignment_id)
    db.commit()
    return Response(status_code=204)
