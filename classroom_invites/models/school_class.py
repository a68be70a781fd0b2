from datetime import datetime

from sqlalchemy import ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from classroom_invites.database import Base


class SchoolClass(Base):
    __tablename__ = "classes"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    period: Mapped[str] = mapped_column(String(20))
    capacity: Mapped[int] = mapped_column()
    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    enrollments: Mapped[list["Enrollment"]] = relationship(
        "Enrollment",
        lazy="selectin",
        order_by="Enrollment.id",
        viewonly=True,
    )
