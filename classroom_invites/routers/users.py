from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select

from classroom_invites.dependencies import AdminUser, DbSession
from classroom_invites.models.user import User
from classroom_invites.schemas.user import UserRead, UserUpdate

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[UserRead])
def list_users(admin: AdminUser, db: DbSession, role: str | None = None):
    query = select(User).order_by(User.id)
    if role is not None:
        query = query.where(User.role == role)
    return db.execute(query).scalars().all()


@router.get("/{user_id}", response_model=UserRead)
def get_user(user_id: int, admin: AdminUser, db: DbSession):
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return user


@router.put("/{user_id}", response_model=UserRead)
def update_user(user_id: int, updates: UserUpdate, admin: AdminUser, db: DbSession):
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)

    changes = updates.model_dump(exclude_unset=True)
    if changes.get("email") is not None:
        changes["email"] = changes["email"].strip().lower()
        taken = db.execute(
            select(User.id).where(User.email == changes["email"], User.id != user.id)
        ).first()
        if taken is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Email already registered.",
            )

    for field, value in changes.items():
        setattr(user, field, value)

    db.flush()
    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: int, admin: AdminUser, db: DbSession):
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    if user.id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete yourself.",
        )
    db.delete(user)
    db.flush()
