from datetime import datetime

from sqlalchemy import ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from classroom_invites.database import Base
from classroom_invites.timeutils import as_utc, get_utc_now


class InviteCode(Base):
    __tablename__ = "invite_codes"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(16), unique=True, index=True)
    class_id: Mapped[int] = mapped_column(ForeignKey("classes.id", ondelete="CASCADE"), index=True)
    role: Mapped[str] = mapped_column(String(50), default="student")
    expires_at: Mapped[datetime | None] = mapped_column(default=None)
    max_uses: Mapped[int] = mapped_column(default=0)
    used_count: Mapped[int] = mapped_column(default=0)
    created_by_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    @property
    def remaining_uses(self) -> int | None:
        """Uses left before exhaustion, or None when unlimited."""
        if not self.max_uses:
            return None
        return max(self.max_uses - (self.used_count or 0), 0)

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return as_utc(self.expires_at) <= (now or get_utc_now())

    @property
    def is_exhausted(self) -> bool:
        return bool(self.max_uses) and (self.used_count or 0) >= self.max_uses

    @property
    def is_valid(self) -> bool:
        return not self.is_expired() and not self.is_exhausted
