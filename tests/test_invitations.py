"""Tests for the caretaker invitation workflow."""
import httpx
import pytest

from caretrack.core.exceptions import ConflictError, InvitationAlreadyUsedError, NotFoundError
from caretrack.db.enums import AssignmentStatus, InvitationStatus, Role
from caretrack.db.models import Assignment, Invitation, UserAccount
from caretrack.services import invite_service
from caretrack.services.invite_email_service import NotificationResult


def _token_for(db, email: str) -> str:
    invitation = db.query(Invitation).filter(Invitation.email == email).one()
    return invitation.token


@pytest.mark.asyncio
async def test_patient_creates_invitation_and_email_is_sent(client, db, patient, auth, notifier):
    response = await client.post(
        "/invites", json={"email": "New.Carer@Example.com"}, headers=auth(patient)
    )

    assert response.status_code == 201
    body = response.json()
    assert body["email_sent"] is True
    assert body["warning"] is None
    assert body["invitation"]["email"] == "new.carer@example.com"
    assert body["invitation"]["status"] == "pending"
    assert body["invitation"]["invited_by_role"] == "patient"
    assert "token" not in body["invitation"]

    token = _token_for(db, "new.carer@example.com")
    assert body["invite_link"].endswith(f"/accept-invite?token={token}")
    assert notifier.sent == [("new.carer@example.com", body["invite_link"])]


@pytest.mark.asyncio
async def test_second_pending_invitation_for_same_email_conflicts(client, patient, admin, auth):
    first = await client.post("/invites", json={"email": "carer@example.com"}, headers=auth(patient))
    assert first.status_code == 201

    second = await client.post("/invites", json={"email": "carer@example.com"}, headers=auth(admin))

    assert second.status_code == 409
    assert second.json()["detail"] == "An invitation is already pending for this email."
    assert second.json()["error"] == "conflict"


@pytest.mark.asyncio
async def test_notifier_failure_still_returns_link(client, db, patient, auth, notifier):
    notifier.error = httpx.ConnectError("smtp down")

    response = await client.post("/invites", json={"email": "carer@example.com"}, headers=auth(patient))

    assert response.status_code == 201
    body = response.json()
    assert body["email_sent"] is False
    assert body["warning"]
    assert "accept-invite?token=" in body["invite_link"]
    assert db.query(Invitation).filter(Invitation.email == "carer@example.com").count() == 1


@pytest.mark.asyncio
async def test_notifier_error_result_is_reported_as_warning(client, patient, auth, notifier):
    notifier.result = NotificationResult(success=False, error="Resend API error: 500")

    response = await client.post("/invites", json={"email": "carer@example.com"}, headers=auth(patient))

    assert response.status_code == 201
    assert response.json()["email_sent"] is False


@pytest.mark.asyncio
async def test_caretaker_cannot_invite(client, caretaker, auth):
    response = await client.post("/invites", json={"email": "x@example.com"}, headers=auth(caretaker))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_invite_requires_csrf_header(client, patient, auth):
    response = await client.post(
        "/invites",
        json={"email": "x@example.com"},
        headers={**auth(patient), "X-Requested-With": ""},
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_invite_requires_authentication(client):
    response = await client.post("/invites", json={"email": "x@example.com"})
    assert response.status_code == 401
    assert response.json()["error"] == "not_authenticated"


@pytest.mark.asyncio
async def test_validate_unknown_token(client):
    response = await client.get("/invites/validate", params={"token": "nope"})
    assert response.status_code == 404
    assert response.json()["detail"] == "Invalid invitation token"


@pytest.mark.asyncio
async def test_complete_signup_from_patient_invite_creates_assignment(client, db, patient, auth):
    await client.post("/invites", json={"email": "carer@example.com"}, headers=auth(patient))
    token = _token_for(db, "carer@example.com")

    validated = await client.get("/invites/validate", params={"token": token})
    assert validated.status_code == 200
    assert validated.json() == {"email": "carer@example.com"}

    response = await client.post(
        "/invites/complete",
        json={"token": token, "full_name": "Cora Carer", "phone": "555-0100"},
    )

    assert response.status_code == 201
    account = response.json()
    assert account["role"] == "caretaker"
    assert account["email"] == "carer@example.com"

    assignment = db.query(Assignment).filter(Assignment.patient_id == patient.id).one()
    assert str(assignment.caretaker_id) == account["id"]
    assert assignment.status == AssignmentStatus.ACTIVE.value
    assert assignment.assigned_by_user_id == patient.id
    assert not assignment.can_view_data
    assert not assignment.can_log_on_behalf
    assert not assignment.can_generate_reports

    invitation = db.query(Invitation).filter(Invitation.token == token).one()
    assert invitation.status == InvitationStatus.ACCEPTED.value
    assert str(invitation.accepted_by_user_id) == account["id"]


@pytest.mark.asyncio
async def test_token_is_single_use(client, db, patient, auth):
    await client.post("/invites", json={"email": "carer@example.com"}, headers=auth(patient))
    token = _token_for(db, "carer@example.com")
    first = await client.post("/invites/complete", json={"token": token, "full_name": "Cora"})
    assert first.status_code == 201

    validated = await client.get("/invites/validate", params={"token": token})
    replay = await client.post("/invites/complete", json={"token": token, "full_name": "Mallory"})

    assert validated.status_code == 409
    assert validated.json()["error"] == "already_used"
    assert validated.json()["detail"] == "This invitation has already been used"
    assert replay.status_code == 409
    assert db.query(UserAccount).filter(UserAccount.role == Role.CARETAKER.value).count() == 1


@pytest.mark.asyncio
async def test_admin_invite_creates_no_assignment(client, db, admin, auth):
    await client.post("/invites", json={"email": "carer@example.com"}, headers=auth(admin))
    token = _token_for(db, "carer@example.com")

    response = await client.post("/invites/complete", json={"token": token, "full_name": "Cora"})

    assert response.status_code == 201
    assert db.query(Assignment).count() == 0


@pytest.mark.asyncio
async def test_list_invitations_shows_only_callers(client, patient, other_patient, auth):
    await client.post("/invites", json={"email": "a@example.com"}, headers=auth(patient))
    await client.post("/invites", json={"email": "b@example.com"}, headers=auth(other_patient))

    response = await client.get("/invites", headers=auth(patient))

    assert response.status_code == 200
    assert [i["email"] for i in response.json()] == ["a@example.com"]


# =============================================================================
# Service-level
# =============================================================================

def test_signup_conflicts_when_account_exists(db, patient, caretaker, principal):
    invitation = invite_service.create_invitation(db, principal(patient), caretaker.email)
    db.commit()

    with pytest.raises(ConflictError):
        invite_service.complete_signup(db, invitation.token, "Dup")


def test_new_invitation_allowed_once_previous_was_accepted(db, patient, principal):
    invitation = invite_service.create_invitation(db, principal(patient), "carer@example.com")
    db.commit()
    invite_service.complete_signup(db, invitation.token, "Cora")
    db.commit()

    again = invite_service.create_invitation(db, principal(patient), "carer@example.com")

    assert again.status == InvitationStatus.PENDING.value
    assert again.token != invitation.token


def test_validate_invitation_errors(db, patient, principal):
    with pytest.raises(NotFoundError):
        invite_service.validate_invitation(db, "missing")

    invitation = invite_service.create_invitation(db, principal(patient), "carer@example.com")
    invitation.status = InvitationStatus.ACCEPTED.value
    db.commit()

    with pytest.raises(InvitationAlreadyUsedError):
        invite_service.validate_invitation(db, invitation.token)
