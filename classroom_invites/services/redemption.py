import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from classroom_invites.errors import AlreadyEnrolled, Expired, InviteError, UsesExhausted
from classroom_invites.events import EventBus, InviteRedeemed, RedemptionRejected
from classroom_invites.models.enrollment import Enrollment
from classroom_invites.models.user import User
from classroom_invites.services.code_generator import normalize_code
from classroom_invites.services.invite_store import find_invite, increment_use
from classroom_invites.timeutils import get_utc_now

logger = logging.getLogger(__name__)


def redeem(
    db: Session,
    code: str,
    user: User,
    *,
    now: datetime | None = None,
    events: EventBus | None = None,
) -> Enrollment:
    """Enroll ``user`` in the class behind ``code``.

    On success exactly one use is consumed and one enrollment row is
    inserted; on failure neither happens.

    Raises:
        InvalidCode: No such code.
        Expired: The code's expiry has passed.
        UsesExhausted: The code has no uses left, including when another
            redemption took the last one first.
        AlreadyEnrolled: The user is already in the class.
    """
    now = now or get_utc_now()
    code = normalize_code(code)
    try:
        enrollment = _redeem(db, code, user, now)
    except InviteError as exc:
        if events is not None:
            events.publish(
                RedemptionRejected(code=code, user_id=user.id, reason=exc.code, message=exc.message)
            )
        raise

    logger.info("User %s enrolled in class %s with %s", user.id, enrollment.class_id, code)
    if events is not None:
        events.publish(
            InviteRedeemed(
                code=code,
                class_id=enrollment.class_id,
                user_id=user.id,
                role=enrollment.role,
            )
        )
    return enrollment


def _redeem(db: Session, code: str, user: User, now: datetime) -> Enrollment:
    invite = find_invite(db, code)
    if invite.is_expired(now):
        raise Expired()
    if invite.is_exhausted:
        raise UsesExhausted()

    if _is_enrolled(db, invite.class_id, user.id):
        raise AlreadyEnrolled()

    enrollment = Enrollment(class_id=invite.class_id, user_id=user.id, role=invite.role)
    try:
        with db.begin_nested():
            increment_use(db, code, now)
            db.add(enrollment)
            db.flush()
    except IntegrityError:
        raise AlreadyEnrolled()
    return enrollment


def _is_enrolled(db: Session, class_id: int, user_id: int) -> bool:
    return db.execute(
        select(Enrollment.id).where(
            Enrollment.class_id == class_id,
            Enrollment.user_id == user_id,
        )
    ).first() is not None
