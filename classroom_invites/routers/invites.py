from fastapi import APIRouter, HTTPException, status

from classroom_invites.dependencies import CurrentUser, DbSession, Events, OwnedClass
from classroom_invites.models.school_class import SchoolClass
from classroom_invites.schemas.invite import InviteCreate, InviteRead, RedemptionRead
from classroom_invites.services.invite_store import (
    create_invite,
    find_invite,
    list_invites,
    revoke_invite,
)
from classroom_invites.services.redemption import redeem

router = APIRouter(tags=["invites"])


@router.post(
    "/classes/{class_id}/invites",
    response_model=InviteRead,
    status_code=status.HTTP_201_CREATED,
)
def create_class_invite(
    request: InviteCreate,
    school_class: OwnedClass,
    user: CurrentUser,
    db: DbSession,
    events: Events,
):
    invite = create_invite(
        db,
        school_class,
        user,
        role=request.role,
        expires_in_minutes=request.expires_in_minutes,
        max_uses=request.max_uses,
        events=events,
    )
    db.refresh(invite)
    return invite


@router.get("/classes/{class_id}/invites", response_model=list[InviteRead])
def list_class_invites(
    school_class: OwnedClass,
    db: DbSession,
    active_only: bool = False,
):
    return list_invites(db, school_class.id, active_only=active_only)


@router.delete("/invites/{code}", status_code=status.HTTP_204_NO_CONTENT)
def delete_invite(code: str, user: CurrentUser, db: DbSession):
    invite = find_invite(db, code)
    school_class = db.get(SchoolClass, invite.class_id)
    if user.role != "admin" and school_class.owner_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)
    revoke_invite(db, invite)


@router.post("/invites/{code}/redeem", response_model=RedemptionRead)
def redeem_invite(code: str, user: CurrentUser, db: DbSession, events: Events):
    return redeem(db, code, user, events=events)
