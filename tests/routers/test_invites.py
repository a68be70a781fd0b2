from datetime import datetime, timedelta, timezone

from classroom_invites.dependencies import create_access_token
from classroom_invites.events import InviteRedeemed
from classroom_invites.main import app
from classroom_invites.models.invite_code import InviteCode
from classroom_invites.services.invite_store import create_invite
from classroom_invites.services.redemption import redeem


def test_create_invite_as_owner(client, sample_class, teacher_headers):
    response = client.post(
        f"/classes/{sample_class.id}/invites",
        headers=teacher_headers,
        json={"expires_in_minutes": 1440, "max_uses": 5, "role": "student"},
    )
    assert response.status_code == 201
    data = response.json()
    assert len(data["code"]) == 8
    assert data["class_id"] == sample_class.id
    assert data["role"] == "student"
    assert data["max_uses"] == 5
    assert data["used_count"] == 0
    assert data["remaining_uses"] == 5
    assert data["is_valid"] is True
    assert data["expires_at"] is not None


def test_create_invite_defaults(client, sample_class, teacher_headers):
    response = client.post(
        f"/classes/{sample_class.id}/invites",
        headers=teacher_headers,
        json={},
    )
    assert response.status_code == 201
    data = response.json()
    assert data["expires_at"] is None
    assert data["max_uses"] == 0
    assert data["remaining_uses"] is None
    assert data["role"] == "student"


def test_create_invite_as_admin(client, sample_class, admin_headers):
    response = client.post(
        f"/classes/{sample_class.id}/invites",
        headers=admin_headers,
        json={"max_uses": 1},
    )
    assert response.status_code == 201


def test_create_invite_as_student(client, sample_class, student_headers):
    response = client.post(
        f"/classes/{sample_class.id}/invites",
        headers=student_headers,
        json={},
    )
    assert response.status_code == 403


def test_create_invite_for_missing_class(client, teacher_user, teacher_headers):
    response = client.post("/classes/99999/invites", headers=teacher_headers, json={})
    assert response.status_code == 404


def test_create_invite_rejects_negative_values(client, sample_class, teacher_headers):
    response = client.post(
        f"/classes/{sample_class.id}/invites",
        headers=teacher_headers,
        json={"max_uses": -1},
    )
    assert response.status_code == 422


def test_create_invite_unauthenticated(client, sample_class):
    response = client.post(f"/classes/{sample_class.id}/invites", json={})
    assert response.status_code == 401


def test_list_invites_as_owner(client, db, sample_class, teacher_user, teacher_headers):
    active = create_invite(db, sample_class, teacher_user)
    exhausted = create_invite(db, sample_class, teacher_user, max_uses=1)
    exhausted.used_count = 1
    db.flush()

    response = client.get(f"/classes/{sample_class.id}/invites", headers=teacher_headers)
    assert response.status_code == 200
    assert len(response.json()) == 2

    response = client.get(
        f"/classes/{sample_class.id}/invites",
        headers=teacher_headers,
        params={"active_only": True},
    )
    assert response.status_code == 200
    assert [i["code"] for i in response.json()] == [active.code]


def test_list_invites_as_student(client, enrolled_class, student_headers):
    response = client.get(f"/classes/{enrolled_class.id}/invites", headers=student_headers)
    assert response.status_code == 403


def test_redeem_invite(client, db, sample_class, teacher_user, student_headers):
    invite = create_invite(db, sample_class, teacher_user, max_uses=1)

    response = client.post(f"/invites/{invite.code}/redeem", headers=student_headers)
    assert response.status_code == 200
    assert response.json() == {"class_id": sample_class.id, "role": "student"}


def test_redeem_invite_lowercase(client, db, sample_class, teacher_user, student_headers):
    invite = create_invite(db, sample_class, teacher_user)

    response = client.post(f"/invites/{invite.code.lower()}/redeem", headers=student_headers)
    assert response.status_code == 200


def test_redeem_unknown_code(client, student_user, student_headers):
    response = client.post("/invites/NOPE2345/redeem", headers=student_headers)
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "INVALID_CODE"


def test_redeem_expired_code(client, db, sample_class, teacher_user, student_headers):
    invite = create_invite(
        db,
        sample_class,
        teacher_user,
        expires_in_minutes=60,
        now=datetime.now(timezone.utc) - timedelta(minutes=61),
    )

    response = client.post(f"/invites/{invite.code}/redeem", headers=student_headers)
    assert response.status_code == 410
    assert response.json()["error"]["code"] == "EXPIRED"


def test_redeem_exhausted_code(client, db, sample_class, teacher_user, student_headers, user_factory):
    invite = create_invite(db, sample_class, teacher_user, max_uses=1)
    redeem(db, invite.code, user_factory())

    response = client.post(f"/invites/{invite.code}/redeem", headers=student_headers)
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "USES_EXHAUSTED"
    assert response.json()["error"]["message"]


def test_redeem_when_already_enrolled(client, db, enrolled_class, teacher_user, student_headers):
    invite = create_invite(db, enrolled_class, teacher_user)

    response = client.post(f"/invites/{invite.code}/redeem", headers=student_headers)
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "ALREADY_ENROLLED"


def test_redeem_unauthenticated(client, db, sample_class, teacher_user):
    invite = create_invite(db, sample_class, teacher_user)

    response = client.post(f"/invites/{invite.code}/redeem")
    assert response.status_code == 401


def test_redeem_notifies_app_bus(client, db, sample_class, teacher_user, student_user, student_headers):
    received = []
    unsubscribe = app.state.events.subscribe(InviteRedeemed, received.append)
    invite = create_invite(db, sample_class, teacher_user)
    try:
        client.post(f"/invites/{invite.code}/redeem", headers=student_headers)
    finally:
        unsubscribe()

    assert [(e.code, e.user_id) for e in received] == [(invite.code, student_user.id)]


def test_delete_invite_as_owner(client, db, sample_class, teacher_user, teacher_headers):
    invite = create_invite(db, sample_class, teacher_user)
    invite_id = invite.id

    response = client.delete(f"/invites/{invite.code}", headers=teacher_headers)
    assert response.status_code == 204
    db.expire_all()
    assert db.get(InviteCode, invite_id) is None


def test_delete_invite_as_student(client, db, sample_class, teacher_user, student_headers):
    invite = create_invite(db, sample_class, teacher_user)

    response = client.delete(f"/invites/{invite.code}", headers=student_headers)
    assert response.status_code == 403


def test_delete_missing_invite(client, teacher_user, teacher_headers):
    response = client.delete("/invites/NOPE2345", headers=teacher_headers)
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "INVALID_CODE"


def test_delete_admin_issued_invite_as_owner(client, db, sample_class, admin_user, teacher_headers):
    invite = create_invite(db, sample_class, admin_user)
    invite_id = invite.id

    response = client.delete(f"/invites/{invite.code}", headers=teacher_headers)
    assert response.status_code == 204
    db.expire_all()
    assert db.get(InviteCode, invite_id) is None


def test_delete_invite_as_other_teacher(client, db, sample_class, admin_user, user_factory):
    invite = create_invite(db, sample_class, admin_user)
    other = user_factory(email="other@test.com", role="teacher")
    headers = {"Authorization": f"Bearer {create_access_token(other)}"}

    response = client.delete(f"/invites/{invite.code}", headers=headers)
    assert response.status_code == 403
