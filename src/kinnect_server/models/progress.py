"""Per-user points and streak model."""

from datetime import date

from sqlalchemy import Date, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from kinnect_server.models.base import Base, TimestampMixin


class UserProgress(Base, TimestampMixin):
    """Accumulated points and the current daily streak for one user.

    Read-modify-write of a row must happen under a row lock
    (see repositories.get_user_progress_for_update).
    """

    __tablename__ = "user_progress"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_activity_date: Mapped[date | None] = mapped_column(Date)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<UserProgress(user_id={self.user_id}, points={self.points}, "
            f"streak={self.streak}, last={self.last_activity_date})>"
        )
