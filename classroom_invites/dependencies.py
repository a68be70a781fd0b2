from datetime import datetime, timedelta, timezone
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.orm import Session

from classroom_invites.config import settings
from classroom_invites.database import SessionLocal
from classroom_invites.events import EventBus
from classroom_invites.models.enrollment import Enrollment
from classroom_invites.models.school_class import SchoolClass
from classroom_invites.models.user import User


def get_db():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


DbSession = Annotated[Session, Depends(get_db)]

security = HTTPBearer()


def get_event_bus(request: Request) -> EventBus:
    return request.app.state.events


Events = Annotated[EventBus, Depends(get_event_bus)]


def create_access_token(user: User) -> str:
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role,
        "exp": datetime.now(timezone.utc)
        + timedelta(minutes=settings.access_token_expire_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_refresh_token(user: User) -> str:
    payload = {
        "sub": str(user.id),
        "type": "refresh",
        "exp": datetime.now(timezone.utc)
        + timedelta(days=settings.refresh_token_expire_days),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: DbSession,
) -> User:
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)

    if payload.get("type") == "refresh":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)

    user = db.get(User, int(payload["sub"]))
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return user


def require_admin(
    user: Annotated[User, Depends(get_current_user)],
) -> User:
    if user.role != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)
    return user


def require_teacher(
    user: Annotated[User, Depends(get_current_user)],
) -> User:
    if not user.can_teach:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[User, Depends(require_admin)]
TeacherUser = Annotated[User, Depends(require_teacher)]


def get_class_for_owner(
    class_id: int,
    user: Annotated[User, Depends(get_current_user)],
    db: DbSession,
) -> SchoolClass:
    """Load a class the current user may manage.

    Raises:
        HTTPException: 404 if the class does not exist, 403 unless the user
            owns it or is an admin.
    """
    school_class = db.get(SchoolClass, class_id)
    if school_class is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    if school_class.owner_id != user.id and user.role != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)
    return school_class


def get_class_for_member(
    class_id: int,
    user: Annotated[User, Depends(get_current_user)],
    db: DbSession,
) -> SchoolClass:
    school_class = db.get(SchoolClass, class_id)
    if school_class is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    if school_class.owner_id == user.id or user.role == "admin":
        return school_class
    enrollment = db.execute(
        select(Enrollment).where(
            Enrollment.class_id == class_id,
            Enrollment.user_id == user.id,
        )
    ).scalar_one_or_none()
    if enrollment is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)
    return school_class


OwnedClass = Annotated[SchoolClass, Depends(get_class_for_owner)]
MemberClass = Annotated[SchoolClass, Depends(get_class_for_member)]
