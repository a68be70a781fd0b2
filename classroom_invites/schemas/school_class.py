from datetime import datetime

from pydantic import BaseModel, Field


class ClassCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    period: str = Field(min_length=1, max_length=20)
    capacity: int = Field(gt=0)


class ClassRead(BaseModel):
    id: int
    name: str
    period: str
    capacity: int
    owner_id: int
    created_at: datetime

    model_config = {"from_attributes": True}


class RosterEntryRead(BaseModel):
    user_id: int
    name: str
    email: str
    role: str
    enrolled_at: datetime


class ClassDetailRead(ClassRead):
    students: list[RosterEntryRead] = []
