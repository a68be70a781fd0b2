import logging

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import or_, select

from classroom_invites.dependencies import (
    CurrentUser,
    DbSession,
    MemberClass,
    OwnedClass,
    TeacherUser,
)
from classroom_invites.models.enrollment import Enrollment
from classroom_invites.models.school_class import SchoolClass
from classroom_invites.schemas.school_class import (
    ClassCreate,
    ClassDetailRead,
    ClassRead,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/classes", tags=["classes"])


def _build_detail(school_class: SchoolClass) -> dict:
    """Build a ClassDetailRead-compatible dict with the class roster.

    Parameters:
        school_class: The class, with enrollments loaded.

    Returns:
        Dict matching ClassDetailRead schema.
    """
    return {
        "id": school_class.id,
        "name": school_class.name,
        "period": school_class.period,
        "capacity": school_class.capacity,
        "owner_id": school_class.owner_id,
        "created_at": school_class.created_at,
        "students": [
            {
                "user_id": enrollment.user_id,
                "name": enrollment.user.name,
                "email": enrollment.user.email,
                "role": enrollment.role,
                "enrolled_at": enrollment.created_at,
            }
            for enrollment in school_class.enrollments
        ],
    }


@router.post("", response_model=ClassRead, status_code=status.HTTP_201_CREATED)
def create_class(request: ClassCreate, teacher: TeacherUser, db: DbSession):
    school_class = SchoolClass(
        name=request.name,
        period=request.period,
        capacity=request.capacity,
        owner_id=teacher.id,
    )
    db.add(school_class)
    db.flush()
    db.refresh(school_class)
    logger.info("User %s created class %s", teacher.id, school_class.id)
    return school_class


@router.get("", response_model=list[ClassRead])
def list_classes(user: CurrentUser, db: DbSession):
    """List classes the current user owns or is enrolled in."""
    enrolled = select(Enrollment.class_id).where(Enrollment.user_id == user.id)
    classes = db.execute(
        select(SchoolClass)
        .where(
            or_(
                SchoolClass.owner_id == user.id,
                SchoolClass.id.in_(enrolled),
            )
        )
        .order_by(SchoolClass.id)
    ).scalars().all()
    return classes


@router.get("/{class_id}", response_model=ClassDetailRead)
def get_class(school_class: MemberClass, db: DbSession) -> dict:
    db.refresh(school_class)
    return _build_detail(school_class)


@router.delete(
    "/{class_id}/students/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def remove_student(school_class: OwnedClass, user_id: int, db: DbSession):
    """Remove a user from the class roster.

    Raises:
        HTTPException: 404 if the user is not enrolled in the class.
    """
    enrollment = db.execute(
        select(Enrollment).where(
            Enrollment.class_id == school_class.id,
            Enrollment.user_id == user_id,
        )
    ).scalar_one_or_none()
    if enrollment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    db.delete(enrollment)
    db.flush()
    logger.info("Removed user %s from class %s", user_id, school_class.id)
