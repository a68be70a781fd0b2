from datetime import datetime
from typing import Literal

from pydantic import BaseModel

Role = Literal["admin", "teacher", "student"]


class UserRead(BaseModel):
    id: int
    email: str
    name: str
    role: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserUpdate(BaseModel):
    email: str | None = None
    name: str | None = None
    role: Role | None = None
    is_active: bool | None = None
