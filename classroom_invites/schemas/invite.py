from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class InviteCreate(BaseModel):
    expires_in_minutes: int = Field(default=0, ge=0)
    max_uses: int = Field(default=0, ge=0)
    role: Literal["student", "teacher"] = "student"


class InviteRead(BaseModel):
    code: str
    class_id: int
    role: str
    expires_at: datetime | None
    max_uses: int
    used_count: int
    remaining_uses: int | None
    is_valid: bool
    created_by_id: int
    created_at: datetime

    model_config = {"from_attributes": True}


class RedemptionRead(BaseModel):
    class_id: int
    role: str

    model_config = {"from_attributes": True}
