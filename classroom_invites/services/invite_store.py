"""Persistence for invite codes.

The ``invite_codes.code`` unique constraint is the authority on collisions,
and :func:`increment_use` is the only write path for ``used_count``.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from classroom_invites.config import settings
from classroom_invites.errors import GenerationExhausted, InvalidCode, UsesExhausted
from classroom_invites.events import EventBus, InviteIssued
from classroom_invites.models.invite_code import InviteCode
from classroom_invites.models.school_class import SchoolClass
from classroom_invites.models.user import User
from classroom_invites.services.code_generator import generate_code, normalize_code
from classroom_invites.timeutils import get_utc_now

logger = logging.getLogger(__name__)

INVITE_ROLES = ("student", "teacher")


def create_invite(
    db: Session,
    school_class: SchoolClass,
    created_by: User,
    *,
    role: str | None = None,
    expires_in_minutes: int | None = None,
    max_uses: int = 0,
    now: datetime | None = None,
    generate: Callable[[], str] | None = None,
    events: EventBus | None = None,
) -> InviteCode:
    """Issue a new invite code for ``school_class``.

    Parameters:
        db: Database session.
        school_class: Class the code grants access to.
        created_by: The issuing user.
        role: Role granted on redemption; defaults to the configured role.
        expires_in_minutes: Lifetime of the code. 0 or None means no expiry.
        max_uses: Redemption cap. 0 means unlimited.
        now: Issuance time, for expiry computation.
        generate: Code source; a fresh draw is taken on every attempt.
        events: Bus to notify of the issued code.

    Returns:
        The persisted invite code.

    Raises:
        GenerationExhausted: No unused code was drawn within the retry budget.
        ValueError: A negative lifetime or cap, or a role codes cannot grant.
    """
    role = role or settings.default_invite_role
    if role not in INVITE_ROLES:
        raise ValueError(f"Invite codes cannot grant the {role!r} role")
    if max_uses < 0:
        raise ValueError("max_uses must be 0 (unlimited) or positive")
    if expires_in_minutes is not None and expires_in_minutes < 0:
        raise ValueError("expires_in_minutes must not be negative")

    now = now or get_utc_now()
    generate = generate or generate_code
    expires_at = now + timedelta(minutes=expires_in_minutes) if expires_in_minutes else None

    for attempt in range(1, settings.invite_generation_attempts + 1):
        invite = InviteCode(
            code=normalize_code(generate()),
            class_id=school_class.id,
            role=role,
            expires_at=expires_at,
            max_uses=max_uses,
            used_count=0,
            created_by_id=created_by.id,
        )
        try:
            with db.begin_nested():
                db.add(invite)
                db.flush()
        except IntegrityError:
            logger.warning("Invite code collision on attempt %d for class %s", attempt, school_class.id)
            continue

        logger.info("Issued invite %s for class %s", invite.code, school_class.id)
        if events is not None:
            events.publish(
                InviteIssued(code=invite.code, class_id=invite.class_id, issued_by_id=created_by.id)
            )
        return invite

    raise GenerationExhausted()


def find_invite(db: Session, code: str) -> InviteCode:
    invite = db.execute(
        select(InviteCode).where(InviteCode.code == normalize_code(code))
    ).scalar_one_or_none()
    if invite is None:
        raise InvalidCode()
    return invite


def increment_use(db: Session, code: str, now: datetime | None = None) -> InviteCode:
    """Consume one use of ``code`` with a single conditional UPDATE.

    The WHERE clause re-checks capacity and expiry, so concurrent
    redemptions can never push ``used_count`` past ``max_uses``.

    Raises:
        UsesExhausted: The update matched no row.
    """
    now = now or get_utc_now()
    code = normalize_code(code)
    result = db.execute(
        update(InviteCode)
        .where(
            InviteCode.code == code,
            or_(InviteCode.max_uses == 0, InviteCode.used_count < InviteCode.max_uses),
            or_(InviteCode.expires_at.is_(None), InviteCode.expires_at > now),
        )
        .values(used_count=InviteCode.used_count + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise UsesExhausted()

    return db.execute(
        select(InviteCode)
        .where(InviteCode.code == code)
        .execution_options(populate_existing=True)
    ).scalar_one()


def list_invites(
    db: Session,
    class_id: int,
    *,
    active_only: bool = False,
    now: datetime | None = None,
) -> list[InviteCode]:
    """Invite codes of a class, newest first."""
    query = select(InviteCode).where(InviteCode.class_id == class_id)
    if active_only:
        now = now or get_utc_now()
        query = query.where(
            or_(InviteCode.max_uses == 0, InviteCode.used_count < InviteCode.max_uses),
            or_(InviteCode.expires_at.is_(None), InviteCode.expires_at > now),
        )
    return list(
        db.execute(query.order_by(InviteCode.id.desc())).scalars().all()
    )


def revoke_invite(db: Session, invite: InviteCode) -> None:
    db.delete(invite)
    db.flush()
    logger.info("Revoked invite %s for class %s", invite.code, invite.class_id)
